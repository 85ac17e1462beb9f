"""HTTP image fetcher: httpx download with size limit, Pillow size probe, per-URL sharing"""

import asyncio
import io
from typing import Optional

import httpx
from loguru import logger
from PIL import Image, UnidentifiedImageError

from mdrender.core.models import Size
from mdrender.core.render.images import FetchedImage, ImageFetchError


USER_AGENT = "mdrender/1.0 (image fetcher)"
DEFAULT_MAX_BYTES = 20 * 1024 * 1024


def probe_size(data: bytes) -> Size:
    """Read natural pixel dimensions from encoded image bytes."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
    except (UnidentifiedImageError, OSError) as e:
        raise ImageFetchError(f"Not a decodable image: {e}") from e
    return Size(width=float(width), height=float(height))


class HttpImageFetcher:
    """Fetch images over HTTP(S). Concurrent and repeated requests for one URL share a result.

    Failed fetches are evicted from the cache so a later render can retry them.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        max_bytes: int = DEFAULT_MAX_BYTES,
        client: Optional[httpx.AsyncClient] = None,
        ):
        self.timeout = timeout
        self.max_bytes = max_bytes
        self._client = client
        self._owns_client = client is None
        self._cache: dict[str, asyncio.Task] = {}

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                follow_redirects=True,
                timeout=self.timeout,
                headers={"User-Agent": USER_AGENT},
            )
        return self._client

    async def fetch(self, url: str) -> FetchedImage:
        task = self._cache.get(url)
        if task is None:
            task = asyncio.ensure_future(self._download(url))
            self._cache[url] = task
            task.add_done_callback(lambda t: self._evict_failed(url, t))
        return await asyncio.shield(task)

    def _evict_failed(self, url: str, task: asyncio.Task) -> None:
        if task.cancelled() or task.exception() is not None:
            if self._cache.get(url) is task:
                del self._cache[url]

    async def _download(self, url: str) -> FetchedImage:
        logger.debug(f"Fetching image {url}")
        try:
            async with self.client.stream("GET", url) as response:
                response.raise_for_status()
                content_length = response.headers.get("content-length")
                if content_length and content_length.isdigit() and int(content_length) > self.max_bytes:
                    raise ImageFetchError(
                        f"Image too large: {int(content_length)} bytes exceeds maximum of {self.max_bytes} bytes"
                    )
                content = io.BytesIO()
                downloaded = 0
                async for chunk in response.aiter_bytes(chunk_size=8192):
                    downloaded += len(chunk)
                    if downloaded > self.max_bytes:
                        raise ImageFetchError(
                            f"Image too large: downloaded {downloaded} bytes exceeds maximum of {self.max_bytes} bytes"
                        )
                    content.write(chunk)
                content_type = response.headers.get("content-type")
        except httpx.HTTPStatusError as e:
            raise ImageFetchError(f"HTTP {e.response.status_code} fetching {url}") from e
        except httpx.RequestError as e:
            raise ImageFetchError(f"Unable to reach {url}: {e}") from e
        size = probe_size(content.getvalue())
        logger.debug(f"Fetched image {url}: {size.width:g}x{size.height:g}")
        return FetchedImage(url=url, size=size, content_type=content_type)

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "HttpImageFetcher":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
