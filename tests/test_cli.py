"""CLI tests - exit codes and dataset summary, no browser."""

import json

import pytest
from typer.testing import CliRunner

from xcommunity.cli import app
from xcommunity.config import UpdatePolicy
from xcommunity.exceptions import MissingSessionError


runner = CliRunner()


class TestScrapeCommand:

    def test_missing_session_exits_nonzero(self, tmp_path):
        result = runner.invoke(app, [
            "scrape",
            "--session", str(tmp_path / "cookies.json"),
            "--output", str(tmp_path / "universe.json"),
            "--no-images",
        ])

        assert result.exit_code == 1
        assert "login" in result.output
        assert not (tmp_path / "universe.json").exists()

    def test_corrupt_dataset_exits_nonzero(self, tmp_path):
        (tmp_path / "cookies.json").write_text(json.dumps([
            {"name": "auth_token", "value": "x", "domain": ".x.com", "path": "/"},
        ]), encoding="utf-8")
        (tmp_path / "universe.json").write_text("{oops", encoding="utf-8")

        result = runner.invoke(app, [
            "scrape",
            "--session", str(tmp_path / "cookies.json"),
            "--output", str(tmp_path / "universe.json"),
            "--no-images",
        ])

        assert result.exit_code == 1
        assert "Storage error" in result.output


class RecordingHarvester:
    """Captures the config the CLI builds, then fails like a missing session."""

    configs = []

    def __init__(self, config):
        RecordingHarvester.configs.append(config)

    async def __aenter__(self):
        raise MissingSessionError("no session")

    async def __aexit__(self, *exc):
        return None


class TestScrapeConfig:
    """Flags override env settings only when given."""

    @pytest.fixture(autouse=True)
    def recording(self, monkeypatch, tmp_path):
        RecordingHarvester.configs = []
        monkeypatch.setattr("xcommunity.cli.Harvester", RecordingHarvester)
        monkeypatch.setenv("XCOMMUNITY_OUTPUT_PATH", str(tmp_path / "universe.json"))

    def test_env_update_policy_is_kept(self, monkeypatch):
        monkeypatch.setenv("XCOMMUNITY_UPDATE_POLICY", "replace")

        runner.invoke(app, ["scrape"])

        assert RecordingHarvester.configs[0].update_policy == UpdatePolicy.REPLACE

    def test_env_headless_and_images_are_kept(self, monkeypatch):
        monkeypatch.setenv("XCOMMUNITY_HEADLESS", "false")
        monkeypatch.setenv("XCOMMUNITY_DOWNLOAD_IMAGES", "false")

        runner.invoke(app, ["scrape"])

        config = RecordingHarvester.configs[0]
        assert config.headless is False
        assert config.download_images is False

    def test_flags_override_env(self, monkeypatch):
        monkeypatch.setenv("XCOMMUNITY_HEADLESS", "false")

        runner.invoke(app, ["scrape", "--headless", "--refresh"])

        config = RecordingHarvester.configs[0]
        assert config.headless is True
        assert config.update_policy == UpdatePolicy.REPLACE

    def test_defaults_without_flags_or_env(self):
        runner.invoke(app, ["scrape"])

        config = RecordingHarvester.configs[0]
        assert config.update_policy == UpdatePolicy.SKIP
        assert config.headless is True

    def test_invalid_env_value_exits_with_diagnostic(self, monkeypatch):
        monkeypatch.setenv("XCOMMUNITY_STAGNATION_THRESHOLD", "0")

        result = runner.invoke(app, ["scrape"])

        assert result.exit_code == 1
        assert "Config error" in result.output
        assert RecordingHarvester.configs == []


class TestStatsCommand:

    def test_summarizes_dataset(self, tmp_path):
        dataset = tmp_path / "universe.json"
        dataset.write_text(json.dumps([
            {"handle": "a", "name": "A", "bio": "hi", "followers": 12300, "pfp_url": "https://p/a.jpg"},
            {"handle": "b", "name": "B", "bio": "", "followers": None, "pfp_url": "https://p/b.jpg"},
        ]), encoding="utf-8")
        pfp = tmp_path / "pfp"
        pfp.mkdir()
        (pfp / "a.jpg").write_bytes(b"img")

        result = runner.invoke(app, ["stats", "--output", str(dataset), "--pfp-dir", str(pfp)])

        assert result.exit_code == 0
        assert "@a" in result.output
        assert "12,300" in result.output

    def test_empty_dataset(self, tmp_path):
        result = runner.invoke(app, ["stats", "--output", str(tmp_path / "none.json")])

        assert result.exit_code == 0
        assert "No profiles" in result.output


class TestVersion:

    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "xcommunity version" in result.output
