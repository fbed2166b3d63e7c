"""Shared fixtures: style configuration and test image resolvers."""

from __future__ import annotations

import asyncio
import threading
from typing import TYPE_CHECKING, Any

import pytest

from richmark.styles import StyleConfig

if TYPE_CHECKING:
    from collections.abc import Callable

    from richmark.images import CompletionCallback


class DeferredResolver:
    """Resolver completing on a later turn of the running event loop."""

    def __init__(self, images: dict[str, Any]) -> None:
        self.images = images
        self.locators: list[str] = []

    def __call__(self, locator: str, on_complete: CompletionCallback) -> None:
        self.locators.append(locator)
        asyncio.get_running_loop().call_soon(on_complete, self.images.get(locator))


class ManualResolver:
    """Resolver that holds callbacks until the test completes them."""

    def __init__(self) -> None:
        self.pending: dict[str, CompletionCallback] = {}

    def __call__(self, locator: str, on_complete: CompletionCallback) -> None:
        self.pending[locator] = on_complete


class ThreadedResolver:
    """Resolver completing every request from its own worker thread."""

    def __init__(self, content: Any) -> None:  # noqa: ANN401
        self.content = content
        self.threads: list[threading.Thread] = []

    def __call__(self, _locator: str, on_complete: CompletionCallback) -> None:
        thread = threading.Thread(target=on_complete, args=(self.content,))
        self.threads.append(thread)
        thread.start()

    def join(self, timeout: float = 5.0) -> None:
        for thread in self.threads:
            thread.join(timeout)


@pytest.fixture
def config() -> StyleConfig:
    return StyleConfig()


@pytest.fixture
def manual_resolver() -> ManualResolver:
    return ManualResolver()


@pytest.fixture
def threaded_resolver() -> ThreadedResolver:
    return ThreadedResolver(b"png")


@pytest.fixture
def deferred_resolver() -> Callable[[dict[str, Any]], DeferredResolver]:
    return DeferredResolver

