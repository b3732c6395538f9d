"""In-memory storage backend for gcs-index.

Implements the StorageBackend protocol using Python dictionaries, including
delimiter emulation for listings. Used by the test suite and for local
demos (``storage.backend: memory``); objects are seeded with ``put()``.
"""

import hashlib
import logging
from collections.abc import AsyncIterator, Callable
from datetime import datetime, timezone

from gcsindex.storage.backend import CHUNK_SIZE, ListedItem, ObjectAttributes

logger = logging.getLogger(__name__)


class MemoryObjectReader:
    """Content stream over an in-memory byte string."""

    def __init__(
        self,
        attrs: ObjectAttributes,
        data: bytes,
        on_close: Callable[[], None] | None = None,
    ) -> None:
        self.attrs = attrs
        self._data = data
        self._pos = 0
        self._on_close = on_close
        self.closed = False

    @property
    def size(self) -> int:
        return len(self._data)

    async def read(self, n: int = CHUNK_SIZE) -> bytes:
        chunk = self._data[self._pos : self._pos + n]
        self._pos += len(chunk)
        return chunk

    async def close(self) -> None:
        if not self.closed and self._on_close is not None:
            self._on_close()
        self.closed = True


class MemoryStorageBackend:
    """Storage backend that holds all objects in memory.

    Objects are stored in a dictionary keyed by (bucket, name) with values
    of (data, attributes).
    """

    def __init__(self) -> None:
        self._objects: dict[tuple[str, str], tuple[bytes, ObjectAttributes]] = {}
        self.readers_opened = 0
        self.readers_closed = 0
        self.reads = 0

    async def init(self) -> None:
        logger.info("Memory storage backend initialized")

    async def close(self) -> None:
        self._objects.clear()

    def put(
        self,
        bucket: str,
        name: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        updated: datetime | None = None,
        metadata: dict[str, str] | None = None,
        **extra: str,
    ) -> ObjectAttributes:
        """Store an object, replacing any previous one with the same name.

        Args:
            bucket: The bucket name.
            name: The full object name.
            data: The object content.
            content_type: MIME type.
            updated: Last-modified instant (defaults to now).
            metadata: Custom object metadata.
            **extra: Other ObjectAttributes string fields, e.g. ``cache_control``.

        Returns:
            The attributes stored for the object.
        """
        md5 = hashlib.md5(data).hexdigest()
        attrs = ObjectAttributes(
            bucket=bucket,
            name=name,
            size=len(data),
            content_type=content_type,
            metadata=dict(metadata or {}),
            updated=updated or datetime.now(timezone.utc),
            etag=extra.pop("etag", md5),
            md5=md5,
            **extra,
        )
        self._objects[(bucket, name)] = (data, attrs)
        return attrs

    def _lookup(self, bucket: str, name: str) -> tuple[bytes, ObjectAttributes]:
        try:
            return self._objects[(bucket, name)]
        except KeyError:
            raise FileNotFoundError(f"Object not found: {bucket}/{name}") from None

    async def list_objects(
        self, bucket: str, prefix: str, delimiter: str = "/"
    ) -> AsyncIterator[ListedItem]:
        """List objects in name order, collapsing nested names into prefixes."""
        seen_prefixes: set[str] = set()
        for (obj_bucket, name), (_, attrs) in sorted(self._objects.items()):
            if obj_bucket != bucket or not name.startswith(prefix):
                continue
            rest = name[len(prefix) :]
            if delimiter and delimiter in rest:
                common = prefix + rest[: rest.index(delimiter) + len(delimiter)]
                if common not in seen_prefixes:
                    seen_prefixes.add(common)
                    yield ListedItem(prefix=common)
                continue
            yield ListedItem(attrs=attrs)

    async def get_attributes(self, bucket: str, name: str) -> ObjectAttributes:
        return self._lookup(bucket, name)[1]

    async def open_reader(self, bucket: str, name: str) -> MemoryObjectReader:
        data, attrs = self._lookup(bucket, name)
        self.readers_opened += 1
        return MemoryObjectReader(attrs, data, on_close=self._reader_closed)

    def _reader_closed(self) -> None:
        self.readers_closed += 1

    async def read_all(self, bucket: str, name: str) -> bytes:
        data, _ = self._lookup(bucket, name)
        self.reads += 1
        return data
