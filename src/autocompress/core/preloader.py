from __future__ import annotations

import logging
import threading
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Callable, Hashable, Iterable

from autocompress.core.codec import load_image
from autocompress.core.config import Settings
from autocompress.core.remote import DEFAULT_TIMEOUT_SECONDS, fetch_source

logger = logging.getLogger(__name__)

Loader = Callable[[str], object]
CompletionCallback = Callable[[str, bool], None]


def fetch_and_decode(url: str, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
    source = fetch_source(url, timeout=timeout)
    load_image(source.data)


class ImagePreloader:
    """Bounded-concurrency image prefetcher.

    URLs start in FIFO order with at most ``max_concurrent`` loads in flight.
    A URL that is queued, loading or loaded is never requested twice; a failed
    load is dropped from ``loading`` without being marked loaded.
    """

    def __init__(
        self,
        max_concurrent: int = 3,
        loader: Loader | None = None,
        on_complete: CompletionCallback | None = None,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")

        self.max_concurrent = max_concurrent
        self._loader = loader or fetch_and_decode
        self._on_complete = on_complete

        self._queue: deque[str] = deque()
        self._loaded: set[str] = set()
        self._loading: set[str] = set()
        self._active = 0
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._executor = ThreadPoolExecutor(max_workers=max_concurrent, thread_name_prefix="preload")

    @property
    def loaded(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._loaded)

    @property
    def loading(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._loading)

    def is_loaded(self, url: str) -> bool:
        with self._lock:
            return url in self._loaded

    def is_loading(self, url: str) -> bool:
        with self._lock:
            return url in self._loading

    def preload(self, url: str) -> None:
        self.preload_multiple([url])

    def preload_multiple(self, urls: Iterable[str]) -> None:
        with self._lock:
            for url in urls:
                if not url or url in self._loaded or url in self._loading or url in self._queue:
                    continue
                self._queue.append(url)
            started = self._take_ready()
        self._start(started)

    def wait_idle(self, timeout: float | None = None) -> bool:
        with self._idle:
            return self._idle.wait_for(lambda: self._active == 0 and not self._queue, timeout=timeout)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> ImagePreloader:
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    # Must be called with the lock held.
    def _take_ready(self) -> list[str]:
        started: list[str] = []
        while self._queue and self._active < self.max_concurrent:
            url = self._queue.popleft()
            if url in self._loaded or url in self._loading:
                continue
            self._active += 1
            self._loading.add(url)
            started.append(url)
        return started

    def _start(self, urls: list[str]) -> None:
        for url in urls:
            self._executor.submit(self._run, url)

    def _run(self, url: str) -> None:
        succeeded = True
        try:
            self._loader(url)
        except Exception as error:
            succeeded = False
            logger.warning("Failed to preload %s: %s", url, error)

        with self._lock:
            self._loading.discard(url)
            if succeeded:
                self._loaded.add(url)

        if self._on_complete:
            try:
                self._on_complete(url, succeeded)
            except Exception:
                logger.exception("Preload completion callback failed for %s", url)

        with self._lock:
            self._active -= 1
            started = self._take_ready()
            if self._active == 0 and not self._queue:
                self._idle.notify_all()
        self._start(started)


class ViewportPreloader:
    """Preloads the images of observed elements once they become visible."""

    def __init__(self, preloader: ImagePreloader) -> None:
        self.preloader = preloader
        self._elements: dict[Hashable, str] = {}

    def observe(self, element: Hashable, image_url: str) -> None:
        if element is None or not image_url:
            return
        self._elements[element] = image_url

    def unobserve(self, element: Hashable) -> None:
        self._elements.pop(element, None)

    def is_loaded(self, url: str) -> bool:
        return self.preloader.is_loaded(url)

    def update_visible(self, visible: Iterable[Hashable]) -> None:
        to_preload: list[str] = []
        for element in visible:
            url = self._elements.get(element)
            if url and not self.preloader.is_loaded(url):
                to_preload.append(url)
        if to_preload:
            self.preloader.preload_multiple(to_preload)


def build_preloader(settings: Settings, on_complete: CompletionCallback | None = None) -> ImagePreloader:
    """Preloader sized and timed out from ``AUTOCOMPRESS_PRELOAD_MAX_CONCURRENT`` and ``AUTOCOMPRESS_HTTP_TIMEOUT``."""
    return ImagePreloader(
        max_concurrent=settings.preload_max_concurrent,
        loader=partial(fetch_and_decode, timeout=settings.http_timeout),
        on_complete=on_complete,
    )
