"""
API tests for the HTTP endpoints.
"""
import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import SleepRecorder, make_oversized_png, make_png, sample_palette, thread_executor_factory, unreachable_transport
from main import create_app, run_maintenance_loop
from palettesniffer import __version__
from palettesniffer.config import ExtractorConfig
from palettesniffer.services.orchestrator import PaletteExtractor
from palettesniffer.services.security.rate_limiter import RateLimit, RateLimiter
from palettesniffer.services.strategies import Strategy


async def stub_strategy(url):
    return sample_palette("#336699")


def build_extractor(config=None, **kwargs):
    kwargs.setdefault("strategies", [Strategy("stub", stub_strategy)])
    return PaletteExtractor(
        config or ExtractorConfig(),
        client=httpx.AsyncClient(transport=unreachable_transport()),
        executor_factory=thread_executor_factory,
        sleep=SleepRecorder(),
        rng_seed=1,
        **kwargs,
    )


@pytest.fixture
def api():
    with TestClient(create_app(extractor=build_extractor())) as client:
        yield client


class TestServiceEndpoints:
    """Test health and root endpoints"""

    def test_healthz(self, api):
        response = api.get("/healthz")

        assert response.status_code == 200
        assert response.json() == {"ok": True, "version": __version__, "service": "palette-sniffer"}

    def test_root(self, api):
        response = api.get("/")

        assert response.status_code == 200
        assert response.json()["docs"] == "/docs"


class TestImageEndpoint:
    """Test POST /v1/palette/image"""

    def test_extracts_palette(self, api):
        files = {"file": ("red.png", make_png(), "image/png")}
        response = api.post("/v1/palette/image", files=files)

        assert response.status_code == 200
        data = response.json()
        assert data["source"] == "image"
        assert data["palette"]["dominant"][0]["hex"] == "#ff0000"
        assert data["palette"]["dominant"][0]["rgb"] == [255, 0, 0]
        assert data["processing_time_ms"] >= 0

    def test_corrupt_image(self, api):
        files = {"file": ("broken.png", b"\x89PNG not really", "image/png")}
        response = api.post("/v1/palette/image", files=files)

        assert response.status_code == 400

    def test_oversized_image(self, api):
        files = {"file": ("huge.png", make_oversized_png(), "image/png")}
        response = api.post("/v1/palette/image", files=files)

        assert response.status_code == 400
        assert "Failed to decode image" in response.json()["detail"]

    def test_missing_file(self, api):
        response = api.post("/v1/palette/image")

        assert response.status_code == 422

    def test_file_too_large(self):
        extractor = build_extractor(ExtractorConfig(max_file_mb=0))
        with TestClient(create_app(extractor=extractor)) as client:
            files = {"file": ("red.png", make_png(), "image/png")}
            response = client.post("/v1/palette/image", files=files)

        assert response.status_code == 413
        assert "File too large" in response.json()["detail"]


class TestUrlEndpoint:
    """Test POST /v1/palette/url"""

    def test_extracts_palette(self, api):
        response = api.post("/v1/palette/url", json={"url": "zzqx.io/"})

        assert response.status_code == 200
        data = response.json()
        assert data["source"] == "https://zzqx.io"
        assert data["palette"]["dominant"][0]["hex"] == "#336699"

    def test_invalid_url(self, api):
        response = api.post("/v1/palette/url", json={"url": "   "})

        assert response.status_code == 400

    def test_missing_url(self, api):
        response = api.post("/v1/palette/url", json={})

        assert response.status_code == 422

    def test_rate_limited(self):
        limiter = RateLimiter(RateLimit(requests=1, window_seconds=60))
        with TestClient(create_app(extractor=build_extractor(rate_limiter=limiter))) as client:
            assert client.post("/v1/palette/url", json={"url": "zzqx.io"}).status_code == 200
            response = client.post("/v1/palette/url", json={"url": "zzqx.io/other"})

        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) >= 1
        assert "Rate limit exceeded" in response.json()["detail"]


class TestMetricsEndpoint:
    """Test GET /v1/metrics"""

    def test_counts_url_requests(self, api):
        api.post("/v1/palette/url", json={"url": "zzqx.io"})
        api.post("/v1/palette/url", json={"url": "zzqx.io"})
        api.post("/v1/palette/url", json={"url": ""})

        response = api.get("/v1/metrics")

        assert response.status_code == 200
        data = response.json()
        assert data["total_requests"] == 3
        assert data["successful_requests"] == 2
        assert data["failed_requests"] == 1
        assert data["cache"]["size"] == 1
        assert data["summary"]["counters"]["cache_hits"] == 1


class TestMaintenanceLoop:
    """Test the background maintenance task"""

    @pytest.mark.asyncio
    async def test_runs_maintenance_until_cancelled(self):
        extractor = build_extractor()
        passes = []

        def run_maintenance():
            passes.append(True)
            return {"cache_entries_removed": 0, "rate_windows_removed": 0}

        extractor.run_maintenance = run_maintenance
        task = asyncio.ensure_future(
            run_maintenance_loop(extractor, cleanup_interval=0, metrics_interval=0)
        )
        for _ in range(5):
            await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        await extractor.aclose()

        assert len(passes) >= 2
