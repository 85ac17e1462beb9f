"""Image resource resolver: pending -> loaded/failed state machine over an async fetcher"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional, Protocol
from urllib.parse import urljoin, urlparse

from loguru import logger

from mdrender.core.models import ImageLoadState, Size


FETCHABLE_SCHEMES = ("http", "https")


class ImageFetchError(Exception):
    """Raised by fetchers when an image cannot be downloaded or decoded."""


@dataclass(frozen=True)
class FetchedImage:
    url:          str
    size:         Size
    content_type: Optional[str] = None


class ImageFetcher(Protocol):
    """Fetch substrate: resolves a URL to a decoded image or raises; owns caching."""

    async def fetch(self, url: str) -> FetchedImage: ...


class ImageRequest:
    """Handle for one resolution; settles at most once and never reverts."""

    def __init__(self, url: str) -> None:
        self.url = url
        self.state = ImageLoadState()
        self._subscribers: list[Callable[[ImageLoadState], None]] = []
        self._settled = asyncio.Event()

    @property
    def settled(self) -> bool:
        return self.state.settled

    def subscribe(self, callback: Callable[[ImageLoadState], None]) -> None:
        """Call callback once with the settled state (immediately if already settled)."""
        if self.settled:
            callback(self.state)
        else:
            self._subscribers.append(callback)

    def settle(self, state: ImageLoadState) -> bool:
        """Transition out of pending; returns False if already settled."""
        if self.settled or not state.settled:
            return False
        self.state = state
        self._settled.set()
        subscribers, self._subscribers = self._subscribers, []
        for callback in subscribers:
            callback(state)
        return True

    async def wait(self) -> ImageLoadState:
        await self._settled.wait()
        return self.state


class ImageResolver:
    """Start image fetches fire-and-forget and settle their requests.

    Fetches are scheduled on the running event loop. Requests made outside a loop
    are deferred until drain() is awaited. Without a fetcher valid requests stay pending.
    """

    def __init__(self, fetcher: Optional[ImageFetcher] = None, base_url: Optional[str] = None) -> None:
        self.fetcher = fetcher
        self.base_url = base_url
        self._tasks: set[asyncio.Task] = set()
        self._deferred: list[tuple[ImageRequest, str]] = []

    def normalize_url(self, source: Optional[str]) -> tuple[Optional[str], Optional[str]]:
        """Return (absolute_url, None) for a fetchable source, else (None, reason)."""
        if source is None or not source.strip():
            return None, "Image source is empty"
        source = source.strip()
        if any(ch.isspace() for ch in source):
            return None, f"Malformed image URL: {source!r}"
        parsed = urlparse(source)
        if not parsed.scheme:
            if not self.base_url:
                return None, f"Relative image URL without a base URL: {source!r}"
            source = urljoin(self.base_url, source)
            parsed = urlparse(source)
        if parsed.scheme.lower() not in FETCHABLE_SCHEMES:
            return None, f"Unsupported image URL scheme: {parsed.scheme!r}"
        if not parsed.netloc:
            return None, f"Malformed image URL: {source!r}"
        return source, None

    def resolve(self, source: Optional[str]) -> ImageRequest:
        """Return a request in pending state; malformed sources settle to failed at once."""
        request = ImageRequest(source or "")
        url, reason = self.normalize_url(source)
        if url is None:
            logger.debug(reason)
            request.settle(ImageLoadState.failed(reason))
            return request
        if self.fetcher is None:
            return request
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            self._deferred.append((request, url))
            return request
        self._start(request, url)
        return request

    def _start(self, request: ImageRequest, url: str) -> None:
        task = asyncio.create_task(self._run(request, url))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, request: ImageRequest, url: str) -> None:
        try:
            image = await self.fetcher.fetch(url)
        except Exception as e:
            logger.debug(f"Image fetch failed for {url}: {e}")
            request.settle(ImageLoadState.failed(str(e) or type(e).__name__))
            return
        request.settle(ImageLoadState.loaded(image.size))

    @property
    def outstanding(self) -> int:
        return len(self._tasks) + len(self._deferred)

    async def drain(self) -> None:
        """Start deferred fetches and wait until every outstanding request has settled."""
        while self._deferred:
            self._start(*self._deferred.pop(0))
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
