"""Unit tests for the polling wait primitive."""

import pytest

from xcommunity.core.waiting import wait_for


class TestWaitFor:

    @pytest.mark.asyncio
    async def test_returns_first_truthy_value(self):
        assert await wait_for(lambda: "card", timeout_ms=0) == "card"

    @pytest.mark.asyncio
    async def test_polls_until_ready(self):
        calls = []

        def condition():
            calls.append(1)
            return len(calls) >= 3

        assert await wait_for(condition, timeout_ms=1000, interval_ms=1) is True
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_async_condition(self):
        async def condition():
            return {"ok": True}

        assert await wait_for(condition, timeout_ms=10) == {"ok": True}

    @pytest.mark.asyncio
    async def test_timeout_returns_none(self):
        calls = []

        def condition():
            calls.append(1)
            return None

        assert await wait_for(condition, timeout_ms=30, interval_ms=5, backoff=2.0) is None
        assert len(calls) >= 2

    @pytest.mark.asyncio
    async def test_zero_timeout_checks_once(self):
        calls = []
        assert await wait_for(lambda: calls.append(1), timeout_ms=0) is None
        assert len(calls) == 1
