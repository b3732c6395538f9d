"""Object request handler for gcs-index.

Serves any path not ending in ``/``:
    - resolve the covering mount and fetch the object's attributes
    - answer conditional requests with 304
    - send caching headers and stream the content (GET) or stop (HEAD)

Per request: resolving -> attributes fetched -> not modified, or headers
sent -> streaming -> done / stream error. No retries happen here.
"""

import email.utils
import logging
from collections.abc import AsyncIterator
from datetime import datetime, timezone

from fastapi import FastAPI, Request, Response
from fastapi.responses import StreamingResponse

import gcsindex.metrics as _metrics
from gcsindex.errors import (
    BackendUnavailable,
    MalformedConditionalHeader,
    NotFound,
    StreamInterrupted,
)
from gcsindex.mounts import Mount
from gcsindex.storage.backend import CHUNK_SIZE, ObjectAttributes, ObjectReader

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Conditional request evaluation
# ---------------------------------------------------------------------------


def _strip_etag_quotes(etag: str) -> str:
    """Strip surrounding double quotes and optional W/ prefix from an ETag.

    Args:
        etag: An ETag value, possibly quoted.

    Returns:
        The unquoted ETag string.
    """
    etag = etag.strip()
    if etag.startswith("W/"):
        etag = etag[2:]
    return etag.strip('"')


def _parse_http_date(date_str: str) -> datetime:
    """Parse an HTTP date string into a timezone-aware datetime.

    Args:
        date_str: An HTTP date string (RFC 1123, RFC 850, or asctime).

    Returns:
        A timezone-aware datetime in UTC.

    Raises:
        MalformedConditionalHeader: If the value is not a valid HTTP date.
    """
    try:
        dt = email.utils.parsedate_to_datetime(date_str)
    except (ValueError, TypeError) as e:
        raise MalformedConditionalHeader(date_str) from e
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def http_date(dt: datetime) -> str:
    """Format a datetime as an RFC 1123 HTTP date (second precision)."""
    return email.utils.format_datetime(dt.astimezone(timezone.utc), usegmt=True)


def is_not_modified(request: Request, attrs: ObjectAttributes) -> bool:
    """Evaluate If-None-Match, then If-Modified-Since, against an object.

    If-Modified-Since is only consulted when If-None-Match is absent, and is
    ignored when it does not parse.

    Args:
        request: The incoming HTTP request.
        attrs: The object's current attributes.

    Returns:
        True if the client's copy is current and a 304 should be sent.
    """
    if_none_match = request.headers.get("if-none-match")
    if if_none_match:
        return _strip_etag_quotes(if_none_match) == attrs.etag

    if_modified_since = request.headers.get("if-modified-since")
    if if_modified_since and attrs.updated is not None:
        try:
            since = _parse_http_date(if_modified_since)
        except MalformedConditionalHeader as e:
            logger.debug("Ignoring conditional header: %s", e.message)
            return False
        return not attrs.updated.replace(microsecond=0) > since

    return False


def object_headers(attrs: ObjectAttributes, default_cache_control: str) -> dict[str, str]:
    """Build the full-response headers for an object.

    Empty attribute values produce no header.
    """
    headers = {"Content-Length": str(attrs.size)}
    if attrs.content_type:
        headers["Content-Type"] = attrs.content_type
    if attrs.content_encoding:
        headers["Content-Encoding"] = attrs.content_encoding
    if attrs.content_disposition:
        headers["Content-Disposition"] = attrs.content_disposition
    headers["Cache-Control"] = attrs.cache_control or default_cache_control
    for key, value in attrs.metadata.items():
        if value:
            headers[key] = value
    headers["X-Fetched-At"] = email.utils.formatdate(usegmt=True)
    return headers


class ObjectHandler:
    """Handles object GET and HEAD requests.

    Attributes:
        app: The parent FastAPI application.
    """

    def __init__(self, app: FastAPI) -> None:
        self.app = app

    @property
    def storage(self):
        """Shortcut to the storage backend on app.state."""
        return self.app.state.storage

    @property
    def config(self):
        """Shortcut to the GCSIndexConfig on app.state."""
        return self.app.state.config

    def _resolve(self, path: str) -> Mount:
        mount = self.app.state.mounts.resolve(path)
        if mount is None:
            raise NotFound(f"No mount covers {path}")
        return mount

    async def _get_attributes(self, mount: Mount, name: str) -> ObjectAttributes:
        try:
            return await self.storage.get_attributes(mount.bucket, name)
        except FileNotFoundError as e:
            logger.info("Object not found: bucket=%s object=%s", mount.bucket, name)
            raise NotFound(str(e)) from e
        except Exception as e:
            # Not distinguished from absence at the HTTP layer.
            logger.error(
                "Failed to get object attributes: bucket=%s object=%s err=%s",
                mount.bucket,
                name,
                e,
            )
            raise NotFound(f"Attributes unavailable for {mount.bucket}/{name}") from e

    async def serve(self, request: Request, path: str) -> Response:
        """Serve GET or HEAD on an object path.

        Returns:
            304 on a conditional match; 200 with headers only for HEAD;
            200 with a streamed body for GET.

        Raises:
            NotFound: If no mount covers the path or the object is missing.
            BackendUnavailable: If the content stream cannot be opened.
        """
        mount = self._resolve(path)
        name = mount.backend_name(path)
        attrs = await self._get_attributes(mount, name)

        validators = {"Last-Modified": http_date(attrs.updated)} if attrs.updated else {}
        validators["ETag"] = f'"{attrs.etag}"'

        if is_not_modified(request, attrs):
            _metrics.inc(_metrics.objects_served_total, status="304")
            return Response(status_code=304, headers=validators)

        headers = validators | object_headers(attrs, self.config.index.default_cache_control)

        if request.method == "HEAD":
            _metrics.inc(_metrics.objects_served_total, status="200")
            return Response(status_code=200, headers=headers)

        logger.info("Serving object: bucket=%s object=%s", mount.bucket, name)
        try:
            reader = await self.storage.open_reader(mount.bucket, name)
        except Exception as e:
            logger.error(
                "Failed to read object: bucket=%s object=%s err=%s", mount.bucket, name, e
            )
            _metrics.inc(_metrics.objects_served_total, status="500")
            raise BackendUnavailable(f"Cannot read {mount.bucket}/{name}") from e

        # Trust the stream over the attributes fetched a moment earlier.
        headers["Content-Length"] = str(reader.size)
        _metrics.inc(_metrics.objects_served_total, status="200")
        return StreamingResponse(_copy(reader), status_code=200, headers=headers)


async def _copy(reader: ObjectReader) -> AsyncIterator[bytes]:
    """Yield the object content, closing the reader on every exit path.

    Headers are already on the wire when this runs, so an interrupted
    stream can only truncate the body; it is logged and the copy stops.
    """
    try:
        while True:
            chunk = await reader.read(CHUNK_SIZE)
            if not chunk:
                break
            yield chunk
    except StreamInterrupted as e:
        logger.error(
            "Failed to write object: bucket=%s object=%s err=%s",
            reader.attrs.bucket,
            reader.attrs.name,
            e.message,
        )
        _metrics.inc(_metrics.objects_served_total, status="truncated")
    finally:
        await reader.close()
