"""Error definitions for gcs-index."""


class GCSIndexError(Exception):
    """An error that maps onto an HTTP status.

    Attributes:
        code: Short error code (e.g. "NotFound", "BackendUnavailable").
        message: Human-readable error description, logged but not sent to clients.
        http_status: The HTTP status code to return.
    """

    def __init__(self, code: str, message: str, http_status: int = 500) -> None:
        """Initialize the error.

        Args:
            code: Error code.
            message: Error description.
            http_status: HTTP status code (default 500).
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.http_status = http_status


# -- Taxonomy -----------------------------------------------------------------


class NotFound(GCSIndexError):
    """No mount covers the path, or the backend object does not exist."""

    def __init__(self, message: str = "Not Found") -> None:
        super().__init__(code="NotFound", message=message, http_status=404)


class BackendUnavailable(GCSIndexError):
    """A listing, metadata or read call failed for a reason other than absence."""

    def __init__(self, message: str = "Backend Unavailable") -> None:
        super().__init__(code="BackendUnavailable", message=message, http_status=500)


class MalformedConditionalHeader(GCSIndexError):
    """An If-Modified-Since value could not be parsed.

    Never surfaces to the client: the header is ignored instead.
    """

    def __init__(self, value: str = "") -> None:
        super().__init__(
            code="MalformedConditionalHeader",
            message=f"Unparseable conditional header value: {value!r}",
            http_status=400,
        )


class StreamInterrupted(GCSIndexError):
    """The body copy was severed after the response headers were sent."""

    def __init__(self, message: str = "Stream Interrupted") -> None:
        super().__init__(code="StreamInterrupted", message=message, http_status=500)


class MethodNotAllowed(GCSIndexError):
    """Only GET and HEAD are served."""

    def __init__(self, method: str = "") -> None:
        super().__init__(
            code="MethodNotAllowed",
            message=f"Method not allowed: {method}" if method else "Method Not Allowed",
            http_status=405,
        )
