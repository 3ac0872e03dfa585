"""Unit tests for avatar downloads - httpx mock transport, no internet."""

import httpx
import pytest

from xcommunity.core.images import ImageFetcher, extension_for
from xcommunity.exceptions import DownloadError


JPEG_BYTES = b"\xff\xd8\xff\xe0fake-jpeg"


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestExtensionFor:
    """Test file extension derivation."""

    @pytest.mark.parametrize("url,expected", [
        ("https://pbs.twimg.com/profile_images/1/a_normal.jpg", "jpg"),
        ("https://pbs.twimg.com/profile_images/1/a_normal.JPEG", "jpg"),
        ("https://pbs.twimg.com/profile_images/1/a_normal.png?x=1", "png"),
        ("https://pbs.twimg.com/profile_images/1/a_normal", "jpg"),
        ("https://abs.twimg.com/sticky/default.exe", "jpg"),
    ])
    def test_extension(self, url, expected):
        assert extension_for(url) == expected


class TestImageFetcher:
    """Test the download path."""

    @pytest.mark.asyncio
    async def test_writes_file_named_by_handle(self, tmp_path):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=JPEG_BYTES)

        async with ImageFetcher(tmp_path / "pfp", client=mock_client(handler)) as images:
            path = await images.fetch("https://pbs.twimg.com/p/a_normal.jpg", "alice")

        assert path == tmp_path / "pfp" / "alice.jpg"
        assert path.read_bytes() == JPEG_BYTES

    @pytest.mark.asyncio
    async def test_non_2xx_raises(self, tmp_path):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404)

        async with ImageFetcher(tmp_path, client=mock_client(handler)) as images:
            with pytest.raises(DownloadError, match="404"):
                await images.fetch("https://pbs.twimg.com/p/gone.jpg", "gone")

        assert not (tmp_path / "gone.jpg").exists()

    @pytest.mark.asyncio
    async def test_network_error_raises(self, tmp_path):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with ImageFetcher(tmp_path, client=mock_client(handler)) as images:
            with pytest.raises(DownloadError):
                await images.fetch("https://pbs.twimg.com/p/a.jpg", "a")

    @pytest.mark.asyncio
    async def test_fetch_outside_context_raises(self, tmp_path):
        images = ImageFetcher(tmp_path)
        with pytest.raises(DownloadError):
            await images.fetch("https://pbs.twimg.com/p/a.jpg", "a")

    @pytest.mark.asyncio
    async def test_owned_client_is_closed(self, tmp_path):
        images = ImageFetcher(tmp_path / "pfp")
        async with images:
            assert (tmp_path / "pfp").is_dir()
        assert images._client is None
