"""Shared pytest fixtures for gcs-index tests.

A single FastAPI app is created per test session to avoid duplicate
Prometheus metric registration errors (the instrumentator registers
gauges in the global prometheus_client registry).

The storage backend and README cache are manually set on the app to avoid
needing to run the full lifespan. Each test gets a freshly seeded
in-memory backend.
"""

from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from gcsindex.config import (
    GCSIndexConfig,
    IndexConfig,
    MountConfig,
    ObservabilityConfig,
    ServerConfig,
    StorageConfig,
)
from gcsindex.readme import ReadmeCache
from gcsindex.server import create_app
from gcsindex.storage.memory import MemoryStorageBackend

UPDATED = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

README_TEXT = b"# Welcome\n\nHello *world*.\n"


def make_config(**index_overrides) -> GCSIndexConfig:
    """Build a test config with the standard three mounts."""
    return GCSIndexConfig(
        server=ServerConfig(host="127.0.0.1", port=9010),
        index=IndexConfig(**index_overrides),
        storage=StorageConfig(backend="memory"),
        observability=ObservabilityConfig(metrics=False),
        mounts=[
            MountConfig(path="/", bucket="root-bucket"),
            MountConfig(path="/docs/", bucket="docs-bucket", prefix="site/"),
            MountConfig(path="/data/archive/", bucket="archive-bucket"),
        ],
    )


def seed(storage: MemoryStorageBackend) -> MemoryStorageBackend:
    """Populate a memory backend with the standard test objects."""
    storage.put("root-bucket", "index.html", b"<h1>hi</h1>", "text/html", updated=UPDATED)
    storage.put("root-bucket", "favicon.ico", b"\x00\x00\x01\x00", "image/x-icon", updated=UPDATED)
    storage.put("root-bucket", "README.md", README_TEXT, "text/markdown", updated=UPDATED)
    storage.put("root-bucket", "notes/todo.txt", b"buy milk\n", "text/plain", updated=UPDATED)
    storage.put("root-bucket", "docs/old.txt", b"stale\n", "text/plain", updated=UPDATED)
    storage.put("docs-bucket", "site/", b"", "application/x-directory", updated=UPDATED)
    storage.put(
        "docs-bucket",
        "site/guide.txt",
        b"read the guide\n",
        "text/plain",
        updated=UPDATED,
        metadata={"x-owner": "docs-team"},
        cache_control="no-cache",
        etag="guide-etag",
    )
    storage.put("docs-bucket", "site/img/logo.png", b"\x89PNG", "image/png", updated=UPDATED)
    storage.put("archive-bucket", "2023/report.csv", b"a,b\n1,2\n", "text/csv", updated=UPDATED)
    return storage


async def make_client(app, storage: MemoryStorageBackend | None = None) -> AsyncClient:
    """Attach storage and a README cache to ``app`` and return a client for it."""
    if storage is None:
        storage = seed(MemoryStorageBackend())
    await storage.init()
    app.state.storage = storage
    app.state.readme_cache = ReadmeCache(
        storage, app.state.config.index.readme_cache_max_bytes
    )
    transport = ASGITransport(app=app)
    return AsyncClient(transport=transport, base_url="http://testserver")


@pytest.fixture(scope="session")
def config() -> GCSIndexConfig:
    """Create the default test GCSIndexConfig."""
    return make_config()


@pytest.fixture(scope="session")
def app(config: GCSIndexConfig):
    """Create a single test FastAPI application for the whole session."""
    return create_app(config)


@pytest.fixture
def storage() -> MemoryStorageBackend:
    """A freshly seeded in-memory storage backend."""
    return seed(MemoryStorageBackend())


@pytest.fixture
async def client(app, storage) -> AsyncClient:
    """Create an async test client with fresh storage on app.state."""
    async with await make_client(app, storage) as c:
        yield c
