"""
Search Index Cache

Explicit, caller-owned cache of full-text indexes keyed by search data key
(typically a namespace). Each index is loaded and built lazily on first use
and kept until it is invalidated.

Concurrency
-----------
- Concurrent `get()` calls for the same key share one in-flight build
- Index construction runs in a worker thread to keep the event loop free
- A failed build is not cached; the next `get()` retries
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from pydantic import TypeAdapter

from .models import Section
from .ranker import FullTextIndex, SearchOptions
from ..core.errors import SearchDataNotFoundError
from ..namespaces import namespace_file

logger = logging.getLogger("docs.search")


SearchDataLoader = Callable[[str], Awaitable[Sequence[Section]]]

_sections_adapter = TypeAdapter(List[Section])


# ---------------------------------------------------------------------
# Search Data Sources
# ---------------------------------------------------------------------

class JsonSearchDataLoader:
    """
    Load search data from `<directory>/<key>.json`.

    The file holds either a JSON array of sections or an object with a
    `searchData` array.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    async def __call__(self, key: str) -> List[Section]:
        path = namespace_file(self.directory, key)
        return await asyncio.to_thread(self._read, path)

    @staticmethod
    def _read(path: Path) -> List[Section]:
        if not path.is_file():
            raise SearchDataNotFoundError(f"No search data for '{path.stem}'")

        raw = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(raw, dict):
            raw = raw.get("searchData", [])
        return _sections_adapter.validate_python(raw)


# ---------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------

class SearchIndexCache:
    """Map from key to a lazily built FullTextIndex."""

    def __init__(
        self,
        loader: SearchDataLoader,
        options: Optional[SearchOptions] = None,
    ) -> None:
        self._loader = loader
        self._options = options
        self._indexes: Dict[str, FullTextIndex] = {}
        self._pending: Dict[str, asyncio.Task] = {}

    async def get(self, key: str) -> FullTextIndex:
        """
        Return the index for `key`, building it on first use.
        """
        index = self._indexes.get(key)
        if index is not None:
            return index

        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(self._build(key))
            self._pending[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))

        # shield: one cancelled waiter must not cancel the shared build
        return await asyncio.shield(task)

    def invalidate(self, key: Optional[str] = None) -> None:
        """
        Drop the cached index for `key`, or every index when key is None.
        """
        if key is None:
            self._indexes.clear()
            self._pending.clear()
            logger.info("Invalidated all search indexes")
            return

        self._indexes.pop(key, None)
        self._pending.pop(key, None)
        logger.info("Invalidated search index '%s'", key)

    def keys(self) -> List[str]:
        return list(self._indexes)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]

    async def _build(self, key: str) -> FullTextIndex:
        sections = await self._loader(key)
        index = await asyncio.to_thread(FullTextIndex, sections, self._options)

        # a concurrent invalidate() drops the pending task; do not resurrect it
        if self._pending.get(key) is asyncio.current_task():
            self._indexes[key] = index
        logger.info("Built search index '%s' (%d sections)", key, len(index))
        return index
