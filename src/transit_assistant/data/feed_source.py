"""Resolve a feed location (URL, ZIP file or directory) to a local path."""

import logging
from pathlib import Path

import httpx

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 64 * 1024


def is_remote(location: str | Path) -> bool:
    """Return True if the location is an http(s) URL."""
    return str(location).lower().startswith(("http://", "https://"))


class FeedDownloader:
    """Async HTTP client for downloading a GTFS ZIP archive.

    Usage:
        async with FeedDownloader() as downloader:
            path = await downloader.download(url, target)
    """

    def __init__(self, timeout: float = 120.0):
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "FeedDownloader":
        """Enter async context - create HTTP client."""
        self._client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context - close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def download(self, url: str, target: Path) -> Path:
        """Stream the feed at `url` into `target`.

        The file is written to a temporary sibling first and renamed once complete.

        Raises:
            RuntimeError: If client not initialized.
            httpx.HTTPError: If the HTTP request fails.
        """
        if not self._client:
            raise RuntimeError("Client not initialized - use 'async with'")

        target.parent.mkdir(parents=True, exist_ok=True)
        partial = target.with_suffix(target.suffix + ".part")

        logger.info(f"Downloading GTFS feed from {url}...")
        try:
            async with self._client.stream("GET", url) as response:
                response.raise_for_status()
                with open(partial, "wb") as f:
                    async for chunk in response.aiter_bytes(DOWNLOAD_CHUNK_SIZE):
                        f.write(chunk)
            partial.replace(target)
        except Exception:
            partial.unlink(missing_ok=True)
            raise

        logger.info(f"Feed saved to {target} ({target.stat().st_size:,} bytes)")
        return target


async def resolve_feed(location: str | Path, cache_dir: Path) -> Path:
    """Return a local path for a feed location, downloading it if remote.

    Args:
        location: http(s) URL, path to a ZIP file, or path to a GTFS directory.
        cache_dir: Directory where downloaded archives are stored.

    Raises:
        FileNotFoundError: If a local location does not exist.
    """
    if is_remote(location):
        async with FeedDownloader() as downloader:
            return await downloader.download(str(location), cache_dir / "feed.zip")

    path = Path(location)
    if not path.exists():
        raise FileNotFoundError(f"GTFS path not found: {path}")
    return path
