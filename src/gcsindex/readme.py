"""README fetching, caching and rendering for directory listings.

Fetched README content is kept in a size-bounded cache shared by all
requests. Eviction is strict FIFO by first insertion: refreshing a key does
not move it to the back of the queue.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime

from markdown_it import MarkdownIt

import gcsindex.metrics as _metrics
from gcsindex.storage.backend import ObjectAttributes, StorageBackend

logger = logging.getLogger(__name__)

# 16 MB
DEFAULT_MAX_BYTES = 16 * 1024 * 1024

# Raw HTML in a README is escaped, never passed through.
_md = MarkdownIt("commonmark", {"html": False}).enable(["table", "strikethrough"])


@dataclass
class ReadmeCacheEntry:
    content: bytes
    source_timestamp: datetime | None


def cache_key(attrs: ObjectAttributes) -> str:
    return attrs.bucket + "/" + attrs.name


class ReadmeCache:
    """Byte-bounded cache of README content keyed by ``bucket/name``.

    The lock guards the entry map, the running total and the insertion
    queue, and is never held across a backend read. Concurrent misses for
    the same object version share one in-flight download, so a key is read
    and inserted once.

    Attributes:
        storage: Backend the content is read from on a miss.
        max_bytes: Byte budget; the running total is brought back under it
            after every insertion.
    """

    def __init__(self, storage: StorageBackend, max_bytes: int = DEFAULT_MAX_BYTES) -> None:
        self.storage = storage
        self.max_bytes = max_bytes
        self._entries: dict[str, ReadmeCacheEntry] = {}
        self._keys: deque[str] = deque()
        self._size = 0
        self._lock = asyncio.Lock()
        # In-flight downloads by (key, source timestamp)
        self._pending: dict[tuple[str, datetime | None], asyncio.Future[bytes]] = {}

    @property
    def size(self) -> int:
        """Running total of cached content bytes."""
        return self._size

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    async def fetch(self, attrs: ObjectAttributes) -> bytes:
        """Return the content of a README object, from cache when fresh.

        A cached entry is fresh only while the object's last-modified instant
        equals the one recorded at caching time. Content is cached only
        after a complete read.

        Raises:
            FileNotFoundError: If the object vanished since it was listed.
        """
        key = cache_key(attrs)
        async with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.source_timestamp == attrs.updated:
                _metrics.inc(_metrics.readme_cache_hits_total)
                return entry.content

            pending = self._pending.get((key, attrs.updated))
            if pending is None:
                _metrics.inc(_metrics.readme_cache_misses_total)
                pending = asyncio.ensure_future(self._load(key, attrs))
                self._pending[(key, attrs.updated)] = pending

        # A cancelled waiter must not cancel the download others share.
        return await asyncio.shield(pending)

    async def _load(self, key: str, attrs: ObjectAttributes) -> bytes:
        logger.info("Fetching readme: bucket=%s name=%s", attrs.bucket, attrs.name)
        try:
            content = await self.storage.read_all(attrs.bucket, attrs.name)
            async with self._lock:
                self._insert(key, content, attrs.updated)
            return content
        finally:
            self._pending.pop((key, attrs.updated), None)

    def _insert(self, key: str, content: bytes, timestamp: datetime | None) -> None:
        previous = self._entries.get(key)
        self._entries[key] = ReadmeCacheEntry(content=content, source_timestamp=timestamp)
        if previous is None:
            self._keys.append(key)
            self._size += len(content)
        else:
            self._size += len(content) - len(previous.content)

        while self._size > self.max_bytes and self._keys:
            oldest = self._keys.popleft()
            evicted = self._entries.pop(oldest)
            self._size -= len(evicted.content)
            _metrics.inc(_metrics.readme_cache_evictions_total)
            logger.debug("Evicted readme %s (cache size now %d)", oldest, self._size)


def render_markdown(content: bytes) -> str:
    """Convert README markdown to HTML."""
    return _md.render(content.decode("utf-8", errors="replace"))


async def render_readme(cache: ReadmeCache, attrs: ObjectAttributes) -> str:
    """Fetch and render a README, returning an empty string on failure.

    A README that cannot be fetched must not break the listing it decorates.
    """
    try:
        content = await cache.fetch(attrs)
    except Exception:
        logger.exception(
            "Failed to fetch readme: bucket=%s name=%s", attrs.bucket, attrs.name
        )
        return ""
    return render_markdown(content)
