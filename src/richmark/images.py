"""Image resolution: the resolver contract, request tokens and an HTTP resolver."""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, TypeAlias

import httpx

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from richmark.buffer import RichTextBuffer

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30.0  # seconds
MAX_IMAGE_BYTES = 10 * 1024 * 1024

CompletionCallback: TypeAlias = "Callable[[Any | None], None]"


class ImageResolver(Protocol):
    """Resolve a locator to image content, reporting through ``on_complete``.

    ``on_complete`` may be called synchronously or later from another turn
    of the event loop, and must be called at most once. ``None`` means the
    image is unavailable. Resolvers must not raise on malformed locators.
    """

    def __call__(self, locator: str, on_complete: CompletionCallback) -> None: ...


@dataclass(frozen=True)
class ImageData:
    """Image bytes fetched for a locator."""

    locator: str
    data: bytes
    media_type: str = "application/octet-stream"


@dataclass(eq=False)
class ImageRequest:
    """Token for one outstanding image resolution."""

    locator: str
    future: Future[Any | None] = field(default_factory=Future)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _claimed: bool = field(default=False, repr=False)

    @property
    def done(self) -> bool:
        return self.future.done()

    def claim(self) -> bool:
        """Return True for the first completion only."""
        with self._lock:
            if self._claimed:
                return False
            self._claimed = True
            return True


def null_resolver(locator: str, on_complete: CompletionCallback) -> None:  # noqa: ARG001
    """Report every image as unavailable."""
    on_complete(None)


class StaticImageResolver:
    """Synchronous resolver backed by an in-memory mapping."""

    def __init__(self, images: Mapping[str, Any]) -> None:
        self._images = dict(images)

    def __call__(self, locator: str, on_complete: CompletionCallback) -> None:
        on_complete(self._images.get(locator))


class HttpImageResolver:
    """Fetch images over HTTP on the running event loop.

    Transport errors, non-2xx responses, non-image content types and
    oversized bodies are reported as absence. Without a running loop every
    image is reported absent immediately.
    """

    def __init__(
        self,
        *,
        timeout: float = REQUEST_TIMEOUT,
        headers: Mapping[str, str] | None = None,
        max_bytes: int = MAX_IMAGE_BYTES,
    ) -> None:
        self._timeout = timeout
        self._headers = dict(headers or {})
        self._max_bytes = max_bytes
        self._tasks: set[asyncio.Task[None]] = set()

    def __call__(self, locator: str, on_complete: CompletionCallback) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, cannot fetch image %s", locator)
            on_complete(None)
            return
        task = loop.create_task(self._resolve(locator, on_complete))
        # Keep a reference so the task is not garbage collected mid-flight.
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _resolve(self, locator: str, on_complete: CompletionCallback) -> None:
        on_complete(await self.fetch(locator))

    async def fetch(self, locator: str) -> ImageData | None:
        """Download ``locator``, returning None on any failure."""
        try:
            url = httpx.URL(locator)
        except httpx.InvalidURL:
            logger.warning("Invalid image URL: %r", locator)
            return None

        async with httpx.AsyncClient(
            headers=self._headers, timeout=self._timeout, follow_redirects=True
        ) as client:
            try:
                response = await client.get(url)
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.warning("Failed to fetch image %s: %s", locator, e)
                return None

        media_type = response.headers.get("Content-Type", "").split(";")[0].strip()
        if not media_type.startswith("image/"):
            logger.warning("Not an image: %s (%s)", locator, media_type or "no content type")
            return None
        if len(response.content) > self._max_bytes:
            logger.warning(
                "Image %s exceeds %d bytes, ignoring", locator, self._max_bytes
            )
            return None
        return ImageData(locator=locator, data=response.content, media_type=media_type)


async def wait_settled(buffer: RichTextBuffer, timeout: float | None = None) -> bool:
    """Wait until every image resolution for ``buffer`` has completed.

    Returns False if ``timeout`` elapsed first; pending regions stay literal.
    """
    pending = [asyncio.wrap_future(r.future) for r in buffer.outstanding_images]
    if not pending:
        return True
    _done, not_done = await asyncio.wait(pending, timeout=timeout)
    return not not_done
