"""Abstract storage backend protocol and data types for gcs-index."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Protocol

# Streaming chunk size: 64 KB
CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class ObjectAttributes:
    """Metadata of a single stored object, as reported by the backend.

    Attributes:
        bucket: The bucket holding the object.
        name: The full object name inside the bucket.
        size: Size in bytes.
        content_type: MIME type, empty when the object declares none.
        content_encoding: Content-Encoding value, if any.
        content_disposition: Content-Disposition value, if any.
        cache_control: Cache-Control value, if any.
        metadata: Custom object metadata.
        updated: Last-modified instant (timezone-aware UTC).
        etag: Opaque entity tag assigned by the backend.
        md5: Hex-encoded MD5 of the content, empty when unknown.
    """

    bucket: str
    name: str
    size: int = 0
    content_type: str = ""
    content_encoding: str = ""
    content_disposition: str = ""
    cache_control: str = ""
    metadata: dict[str, str] = field(default_factory=dict)
    updated: datetime | None = None
    etag: str = ""
    md5: str = ""


@dataclass(frozen=True)
class ListedItem:
    """One result of a delimited listing: either an object or a common prefix.

    Exactly one of ``attrs`` and ``prefix`` is set.
    """

    attrs: ObjectAttributes | None = None
    prefix: str = ""

    @property
    def is_prefix(self) -> bool:
        return self.attrs is None


class ObjectReader(Protocol):
    """An open content stream for one object.

    Must be closed on every exit path.
    """

    attrs: ObjectAttributes

    @property
    def size(self) -> int:
        """Size of the content as reported by the stream itself."""
        ...

    async def read(self, n: int = CHUNK_SIZE) -> bytes:
        """Read up to ``n`` bytes; an empty result marks the end of the stream.

        Raises:
            StreamInterrupted: If the stream is severed part-way.
        """
        ...

    async def close(self) -> None:
        """Release the underlying stream."""
        ...


class StorageBackend(Protocol):
    """Protocol defining the read-only object storage backend interface.

    Methods raise ``FileNotFoundError`` when the addressed object does not
    exist and let every other failure propagate unchanged.
    """

    async def init(self) -> None:
        """Initialize the storage backend (create clients, connect, etc.)."""
        ...

    async def close(self) -> None:
        """Release resources held by the storage backend."""
        ...

    def list_objects(
        self, bucket: str, prefix: str, delimiter: str = "/"
    ) -> AsyncIterator[ListedItem]:
        """List objects and common prefixes under a prefix.

        Args:
            bucket: The bucket name.
            prefix: Only names starting with this prefix are returned.
            delimiter: Names containing the delimiter after the prefix are
                collapsed into a single common-prefix result.

        Returns:
            An async iterator of listing results. It may raise part-way
            through; results yielded before the error remain valid.
        """
        ...

    async def get_attributes(self, bucket: str, name: str) -> ObjectAttributes:
        """Fetch the metadata of one object.

        Raises:
            FileNotFoundError: If the object does not exist.
        """
        ...

    async def open_reader(self, bucket: str, name: str) -> ObjectReader:
        """Open a content stream for one object.

        Raises:
            FileNotFoundError: If the object does not exist.
        """
        ...

    async def read_all(self, bucket: str, name: str) -> bytes:
        """Read the complete content of one object.

        Raises:
            FileNotFoundError: If the object does not exist.
        """
        ...
