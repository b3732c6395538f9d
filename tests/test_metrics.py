"""Tests for the Prometheus metrics endpoint."""

import re

import pytest

from gcsindex import metrics
from gcsindex.config import ObservabilityConfig
from gcsindex.server import create_app

from conftest import make_client, make_config


@pytest.fixture(scope="module")
def metrics_app():
    """One metrics-enabled app per module; collectors register globally."""
    config = make_config()
    config.observability = ObservabilityConfig(metrics=True)
    return create_app(config)


@pytest.fixture
async def client(metrics_app):
    async with await make_client(metrics_app) as c:
        yield c


def _value(body: str, name: str) -> float:
    match = re.search(rf"^{re.escape(name)} ([0-9.e+]+)$", body, re.MULTILINE)
    assert match, name
    return float(match.group(1))


class TestMetricsEndpoint:
    """Tests for GET /metrics."""

    async def test_metrics_returns_200(self, client):
        """GET /metrics returns 200 in Prometheus text format."""
        resp = await client.get("/metrics")
        assert resp.status_code == 200
        assert "text/plain" in resp.headers.get("content-type", "")

    async def test_metrics_not_shadowed_by_catch_all(self, client):
        """/metrics is served by the exporter, not listed as an object."""
        resp = await client.get("/metrics")
        assert "gcsindex_" in resp.text

    async def test_http_histogram(self, client):
        """The instrumentator's request duration histogram is namespaced."""
        await client.get("/")
        resp = await client.get("/metrics")
        assert "gcsindex_http_request_duration_seconds" in resp.text

    async def test_init_is_idempotent(self):
        metrics.init_metrics()
        metrics.init_metrics()
        assert metrics.listings_total is not None


class TestApplicationCounters:
    """Tests for the gcsindex_ application counters."""

    async def test_listing_counter(self, client):
        before = _value((await client.get("/metrics")).text, "gcsindex_listings_total")
        await client.get("/")
        after = _value((await client.get("/metrics")).text, "gcsindex_listings_total")
        assert after == before + 1

    async def test_object_counter(self, client):
        await client.get("/index.html")
        body = (await client.get("/metrics")).text
        assert 'gcsindex_objects_served_total{status="200"}' in body

    async def test_readme_cache_counters(self, client):
        await client.get("/")
        await client.get("/")
        body = (await client.get("/metrics")).text
        assert _value(body, "gcsindex_readme_cache_hits_total") >= 1
        assert _value(body, "gcsindex_readme_cache_misses_total") >= 1


class TestInc:
    """Tests for metrics.inc()."""

    def test_none_counter_is_noop(self):
        metrics.inc(None)
        metrics.inc(None, status="200")
