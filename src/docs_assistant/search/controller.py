"""
Search Controller

Latest-query-wins driver for instant search. Every query submission gets a
monotonically increasing sequence number; a finished ranking is applied only
if no newer query has been submitted in the meantime.

`on_query_change()` is the synchronous entry point for input events. It
debounces submissions and schedules the ranking on the running event loop.
A debounced query that fails is logged and recorded in `last_error`; the
previous results stay in place and listeners are not called.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional, Sequence

from .grouping import build_search_results
from ..config import settings
from .index_cache import SearchIndexCache
from .models import SearchResult

logger = logging.getLogger("docs.search")


ResultsListener = Callable[[List[SearchResult]], None]


class SearchController:
    def __init__(
        self,
        cache: SearchIndexCache,
        key: str,
        initial_results: Sequence[SearchResult] = (),
        debounce: Optional[float] = None,
        max_results: Optional[int] = None,
    ) -> None:
        self._cache = cache
        self._key = key
        self._initial = list(initial_results)
        self._debounce = settings.search_debounce_seconds if debounce is None else debounce
        self._max_results = max_results

        self._results: List[SearchResult] = list(self._initial)
        self._sequence = 0
        self._pending: Optional[asyncio.Task] = None
        self._listeners: List[ResultsListener] = []
        self._last_error: Optional[BaseException] = None

    @property
    def results(self) -> List[SearchResult]:
        return list(self._results)

    @property
    def sequence(self) -> int:
        return self._sequence

    @property
    def last_error(self) -> Optional[BaseException]:
        """Failure of the latest debounced query, cleared by the next success."""
        return self._last_error

    def subscribe(self, listener: ResultsListener) -> Callable[[], None]:
        """Register a results listener; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Query entry points
    # ------------------------------------------------------------------

    def on_query_change(self, text: str) -> None:
        """
        Debounced query submission. Must be called from a running event loop.
        """
        self._sequence += 1
        sequence = self._sequence

        if self._pending is not None and not self._pending.done():
            self._pending.cancel()

        loop = asyncio.get_running_loop()
        self._pending = loop.create_task(self._debounced(text, sequence))

    async def search(self, text: str) -> List[SearchResult]:
        """
        Run a query immediately, superseding any earlier submission.
        """
        self._sequence += 1
        return await self._run(text, self._sequence)

    async def wait_idle(self) -> None:
        """Wait until the most recent debounced query has finished."""
        while self._pending is not None:
            task = self._pending
            try:
                await task
            except asyncio.CancelledError:
                # superseded by a newer query
                if not task.cancelled():
                    raise
            if self._pending is task:
                return

    def reset(self) -> None:
        """Drop any pending query and restore the initial results."""
        self._sequence += 1
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None
        self._last_error = None
        self._apply(list(self._initial))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _debounced(self, text: str, sequence: int) -> None:
        await asyncio.sleep(self._debounce)
        try:
            await self._run(text, sequence)
        except Exception as exc:
            if sequence != self._sequence:
                return
            logger.exception("Search query #%d for '%s' failed", sequence, self._key)
            self._last_error = exc

    async def _run(self, text: str, sequence: int) -> List[SearchResult]:
        if not text.strip():
            results = list(self._initial)
        else:
            index = await self._cache.get(self._key)
            if not len(index):
                logger.warning("Search data for '%s' is empty", self._key)
            hits = index.search(text, max_results=self._max_results)
            results = build_search_results(hits, index)

        if sequence != self._sequence:
            logger.debug("Discarding stale results for query #%d", sequence)
            return self.results

        self._last_error = None
        self._apply(results)
        return results

    def _apply(self, results: List[SearchResult]) -> None:
        self._results = results
        for listener in list(self._listeners):
            listener(list(results))
