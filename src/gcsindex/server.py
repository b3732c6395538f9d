"""FastAPI application factory and route setup for gcs-index."""

import logging
import secrets
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response

from gcsindex.config import GCSIndexConfig
from gcsindex.errors import GCSIndexError, MethodNotAllowed, NotFound
from gcsindex.handlers.index import IndexHandler
from gcsindex.handlers.object import ObjectHandler
from gcsindex.html_utils import render_error
from gcsindex.readme import ReadmeCache
from gcsindex.storage.backend import StorageBackend

logger = logging.getLogger(__name__)

# Module-level singleton so multiple create_app() calls (e.g. in tests)
# don't re-register the same Prometheus collectors in the global registry.
_instrumentator = None


def _get_instrumentator():
    global _instrumentator
    if _instrumentator is None:
        from prometheus_fastapi_instrumentator import Instrumentator

        _instrumentator = Instrumentator(
            should_instrument_requests_inprogress=True,
            excluded_handlers=["/metrics"],
        )
    return _instrumentator


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(config: GCSIndexConfig) -> FastAPI:
    """Create and configure the gcs-index FastAPI application.

    The mount table is built here, once, and never changes afterwards. The
    lifespan context manager initializes the storage backend and README
    cache on startup and closes the backend on shutdown.

    Args:
        config: The loaded configuration.

    Returns:
        A configured FastAPI application ready to run.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan hook: initialize storage backend and README cache."""
        storage = _create_storage_backend(config)
        await storage.init()
        app.state.storage = storage
        app.state.readme_cache = ReadmeCache(storage, config.index.readme_cache_max_bytes)

        for mount in app.state.mounts:
            logger.info(
                "Mounted %s -> gs://%s/%s", mount.path, mount.bucket, mount.prefix
            )
        logger.info("Storage backend initialized: %s", config.storage.backend)

        yield

        await storage.close()
        logger.info("Storage backend closed")

    app = FastAPI(
        title="gcs-index",
        version="0.1.0",
        lifespan=lifespan,
        openapi_url=None,
        docs_url=None,
        redoc_url=None,
    )
    app.state.config = config
    app.state.mounts = config.mount_table()

    _register_exception_handlers(app)
    _register_middleware(app)

    # Wire Prometheus metrics BEFORE the catch-all route so /metrics is not
    # shadowed by it.
    if config.observability.metrics:
        import gcsindex.metrics as _metrics

        _metrics.init_metrics()
        _get_instrumentator().instrument(app, metric_namespace="gcsindex").expose(
            app, endpoint="/metrics"
        )

    _setup_routes(app, config)

    return app


def _create_storage_backend(config: GCSIndexConfig) -> StorageBackend:
    """Create a storage backend instance based on configuration.

    Supports 'gcp' and 'memory' backends.

    Args:
        config: The gcs-index configuration.

    Returns:
        A storage backend instance.
    """
    backend = config.storage.backend
    if backend == "gcp":
        from gcsindex.storage.gcp import GCSStorageBackend

        return GCSStorageBackend(service_file=config.storage.gcp_credentials_file)
    elif backend == "memory":
        from gcsindex.storage.memory import MemoryStorageBackend

        return MemoryStorageBackend()
    else:
        raise ValueError(f"Unknown storage backend: {backend}")


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


def _error_response(request: Request, status: int, code: str) -> Response:
    # HEAD requests must not have a body
    if request.method == "HEAD":
        return Response(status_code=status)
    return Response(
        content=render_error(status, code), status_code=status, media_type="text/plain"
    )


def _register_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the FastAPI app."""

    @app.exception_handler(GCSIndexError)
    async def index_error_handler(request: Request, exc: GCSIndexError) -> Response:
        """Render GCSIndexError as a bare status response."""
        logger.debug("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
        return _error_response(request, exc.http_status, exc.code)

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> Response:
        """Catch unexpected exceptions and return 500."""
        logger.exception("Unhandled exception in request handler")
        return _error_response(request, 500, "InternalError")


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


def _register_middleware(app: FastAPI) -> None:
    """Register the request logging middleware."""

    # Paths to suppress from per-request logging
    _QUIET_PATHS = {"/metrics"}

    @app.middleware("http")
    async def request_log_middleware(request: Request, call_next) -> Response:
        """Log every request with its outcome and timing.

        Stores a generated request_id on request.state.
        """
        request_id = secrets.token_hex(8).upper()
        request.state.request_id = request_id
        start = time.monotonic()

        response = await call_next(request)

        duration_ms = round((time.monotonic() - start) * 1000, 2)

        if request.url.path not in _QUIET_PATHS:
            remote = request.client.host if request.client else ""
            logger.info(
                "%s %s %d %.2fms",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status": response.status_code,
                    "duration_ms": duration_ms,
                    "request_id": request_id,
                    "remote": remote,
                    "forwarded_for": request.headers.get("x-forwarded-for"),
                    "user_agent": request.headers.get("user-agent"),
                },
            )

        return response


# ---------------------------------------------------------------------------
# Route handlers
# ---------------------------------------------------------------------------


def _setup_routes(app: FastAPI, config: GCSIndexConfig) -> None:
    """Register the catch-all routes.

    Paths ending in ``/`` are directories, everything else is an object.
    Only GET and HEAD are served.

    Args:
        app: The FastAPI application to attach routes to.
        config: The gcs-index configuration.
    """
    index_handler = IndexHandler(app)
    object_handler = ObjectHandler(app)

    @app.api_route("/{path:path}", methods=["GET", "HEAD"])
    async def handle_get(request: Request) -> Response:
        """Dispatch GET/HEAD to the directory or object handler."""
        path = request.url.path

        if path == "/favicon.ico" and app.state.config.index.favicon_not_found:
            raise NotFound("favicon")

        if path.endswith("/"):
            if request.method == "HEAD":
                return await index_handler.head_index(request, path)
            return await index_handler.get_index(request, path)
        return await object_handler.serve(request, path)

    @app.api_route("/{path:path}", methods=["POST", "PUT", "DELETE", "PATCH", "OPTIONS"])
    async def handle_other(request: Request) -> Response:
        """Reject every method but GET and HEAD."""
        logger.warning("Method not allowed: %s %s", request.method, request.url.path)
        raise MethodNotAllowed(request.method)
