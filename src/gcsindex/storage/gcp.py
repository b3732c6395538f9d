"""Google Cloud Storage backend for gcs-index.

Reads listings, object metadata and object content from GCS via
gcloud-aio-storage. Any number of buckets may be addressed through one
client; the bucket is chosen per call by the mount that covers a request.

Credentials are resolved via GCS Application Default Credentials
(GOOGLE_APPLICATION_CREDENTIALS, gcloud auth, metadata server) unless a
service account file is configured.
"""

import base64
import binascii
import logging
from collections.abc import AsyncIterator
from datetime import datetime, timezone
from typing import Any

from gcloud.aio.storage import Storage

from gcsindex.errors import StreamInterrupted
from gcsindex.storage.backend import CHUNK_SIZE, ListedItem, ObjectAttributes

logger = logging.getLogger(__name__)


def _parse_rfc3339(value: str | None) -> datetime | None:
    """Parse a GCS RFC 3339 timestamp (``2024-01-01T00:00:00.123Z``)."""
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Unparseable GCS timestamp: %s", value)
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _md5_hex(md5_b64: str | None) -> str:
    """Convert the base64 ``md5Hash`` field to a hex digest."""
    if not md5_b64:
        return ""
    try:
        return base64.b64decode(md5_b64).hex()
    except (binascii.Error, ValueError):
        return ""


def attributes_from_resource(bucket: str, resource: dict[str, Any]) -> ObjectAttributes:
    """Build ObjectAttributes from a GCS JSON API object resource."""
    return ObjectAttributes(
        bucket=resource.get("bucket", bucket),
        name=resource["name"],
        size=int(resource.get("size", 0)),
        content_type=resource.get("contentType", ""),
        content_encoding=resource.get("contentEncoding", ""),
        content_disposition=resource.get("contentDisposition", ""),
        cache_control=resource.get("cacheControl", ""),
        metadata=dict(resource.get("metadata") or {}),
        updated=_parse_rfc3339(resource.get("updated")),
        etag=resource.get("etag", ""),
        md5=_md5_hex(resource.get("md5Hash")),
    )


class GCSObjectReader:
    """Content stream over a gcloud-aio-storage StreamResponse."""

    def __init__(self, attrs: ObjectAttributes, stream: Any) -> None:
        self.attrs = attrs
        self._stream = stream

    @property
    def size(self) -> int:
        # None for chunked or transcoded downloads
        length = self._stream.content_length
        return self.attrs.size if length is None else length

    async def read(self, n: int = CHUNK_SIZE) -> bytes:
        try:
            return await self._stream.read(n)
        except Exception as e:
            raise StreamInterrupted(
                f"Download of {self.attrs.bucket}/{self.attrs.name} failed: {e}"
            ) from e

    async def close(self) -> None:
        # StreamResponse has no close of its own; release the HTTP response.
        response = getattr(self._stream, "_response", None)
        if response is not None:
            response.release()


class GCSStorageBackend:
    """Storage backend that reads from Google Cloud Storage.

    Attributes:
        service_file: Optional path to a service account JSON file.
    """

    def __init__(self, service_file: str = "") -> None:
        self.service_file = service_file
        self._client: Storage | None = None

    async def init(self) -> None:
        """Create the gcloud-aio-storage client."""
        self._client = Storage(service_file=self.service_file or None)
        logger.info(
            "GCS backend initialized (credentials: %s)",
            self.service_file or "application default",
        )

    async def close(self) -> None:
        """Close the gcloud-aio-storage client session."""
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def list_objects(
        self, bucket: str, prefix: str, delimiter: str = "/"
    ) -> AsyncIterator[ListedItem]:
        """List one directory level, following pagination.

        Each page yields its objects first, then its common prefixes.
        """
        params: dict[str, str] = {"prefix": prefix, "delimiter": delimiter}
        logger.debug("Listing objects: bucket=%s prefix=%r", bucket, prefix)

        while True:
            page = await self._client.list_objects(bucket, params=params)

            for resource in page.get("items", []):
                yield ListedItem(attrs=attributes_from_resource(bucket, resource))
            for common_prefix in page.get("prefixes", []):
                yield ListedItem(prefix=common_prefix)

            token = page.get("nextPageToken")
            if not token:
                break
            params["pageToken"] = token

    async def get_attributes(self, bucket: str, name: str) -> ObjectAttributes:
        """Fetch object metadata.

        Raises:
            FileNotFoundError: If the object does not exist.
        """
        try:
            resource = await self._client.download_metadata(bucket, name)
        except Exception as e:
            if _is_not_found(e):
                raise FileNotFoundError(f"Object not found: {bucket}/{name}") from e
            raise
        return attributes_from_resource(bucket, resource)

    async def open_reader(self, bucket: str, name: str) -> GCSObjectReader:
        """Open a streaming download.

        Raises:
            FileNotFoundError: If the object does not exist.
        """
        attrs = await self.get_attributes(bucket, name)
        try:
            stream = await self._client.download_stream(bucket, name)
        except Exception as e:
            if _is_not_found(e):
                raise FileNotFoundError(f"Object not found: {bucket}/{name}") from e
            raise
        return GCSObjectReader(attrs, stream)

    async def read_all(self, bucket: str, name: str) -> bytes:
        """Download the complete object.

        Raises:
            FileNotFoundError: If the object does not exist.
        """
        try:
            return await self._client.download(bucket, name)
        except Exception as e:
            if _is_not_found(e):
                raise FileNotFoundError(f"Object not found: {bucket}/{name}") from e
            raise


def _is_not_found(exc: Exception) -> bool:
    """Check if an exception represents a 404 Not Found from GCS."""
    # gcloud-aio-storage raises aiohttp.ClientResponseError for HTTP errors
    status = getattr(exc, "status", None)
    if status == 404:
        return True
    # Also check for wrapped exceptions
    if hasattr(exc, "args") and exc.args:
        msg = str(exc.args[0]).lower()
        if "404" in msg or "not found" in msg:
            return True
    return False
