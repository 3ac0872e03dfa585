"""Avatar downloads into the local picture directory."""

from pathlib import Path
from urllib.parse import urlparse

import httpx

from xcommunity.core.exporter import write_bytes_atomic
from xcommunity.exceptions import DownloadError


DEFAULT_EXTENSION = "jpg"

_KNOWN_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}


def extension_for(url: str) -> str:
    """File extension for an image URL, ``jpg`` when the path has none."""
    suffix = Path(urlparse(url).path).suffix.lower().lstrip(".")
    if suffix == "jpeg":
        return "jpg"
    if suffix in _KNOWN_EXTENSIONS:
        return suffix
    return DEFAULT_EXTENSION


class ImageFetcher:
    """
    Downloads remote images to ``<directory>/<name>.<ext>``.

    One attempt per call, no retries; failures raise DownloadError.

    Example:
        async with ImageFetcher("public/pfp") as images:
            await images.fetch(profile.pfp_url, profile.handle)
    """

    def __init__(
        self,
        directory: str | Path,
        timeout_s: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.directory = Path(directory)
        self.timeout_s = timeout_s
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "ImageFetcher":
        return await self.open()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def open(self) -> "ImageFetcher":
        """Create the target directory and the HTTP client."""
        self.directory.mkdir(parents=True, exist_ok=True)
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_s),
                follow_redirects=True,
            )
        return self

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def path_for(self, url: str, destination_name: str) -> Path:
        return self.directory / f"{destination_name}.{extension_for(url)}"

    async def fetch(self, url: str, destination_name: str) -> Path:
        """
        Download ``url`` and store it under ``destination_name``.

        Args:
            url: Remote image URL
            destination_name: File stem, usually the profile handle

        Returns:
            Path of the written image

        Raises:
            DownloadError: Network failure, non-2xx status or write failure
        """
        if self._client is None:
            raise DownloadError("ImageFetcher used outside its async context")

        target = self.path_for(url, destination_name)
        try:
            response = await self._client.get(url)
            response.raise_for_status()
            content = response.content
        except httpx.HTTPStatusError as e:
            raise DownloadError(f"HTTP {e.response.status_code} for {url}") from e
        except httpx.HTTPError as e:
            raise DownloadError(f"Download failed for {url}: {e}") from e

        try:
            return write_bytes_atomic(target, content)
        except OSError as e:
            raise DownloadError(f"Could not write {target}: {e}") from e
