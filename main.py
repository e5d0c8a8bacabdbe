import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from palettesniffer import __version__
from palettesniffer.api.v1 import router as v1_router
from palettesniffer.config import ExtractorConfig
from palettesniffer.schemas import HealthResponse
from palettesniffer.services.orchestrator import PaletteExtractor
from palettesniffer.utils.logging import configure_logging


CACHE_CLEANUP_INTERVAL_SECONDS = 5 * 60
METRICS_LOG_INTERVAL_SECONDS = 10 * 60


async def run_maintenance_loop(extractor: PaletteExtractor,
                               cleanup_interval: float = CACHE_CLEANUP_INTERVAL_SECONDS,
                               metrics_interval: float = METRICS_LOG_INTERVAL_SECONDS):
    """Purge expired cache entries periodically and log metrics less often."""
    since_metrics = 0.0
    while True:
        await asyncio.sleep(cleanup_interval)
        removed = extractor.run_maintenance()
        logger.debug(f"Maintenance pass: {removed}")

        since_metrics += cleanup_interval
        if since_metrics >= metrics_interval:
            since_metrics = 0.0
            metrics = extractor.get_performance_metrics()
            logger.info(
                f"Performance metrics: total={metrics['total_requests']} "
                f"successful={metrics['successful_requests']} failed={metrics['failed_requests']} "
                f"avg_ms={metrics['average_response_time_ms']:.1f}"
            )


def create_app(config: ExtractorConfig = None, extractor: PaletteExtractor = None) -> FastAPI:
    """Build the application; tests inject their own extractor."""
    config = config or (extractor.config if extractor else ExtractorConfig.from_env())
    configure_logging(config.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.extractor = extractor or PaletteExtractor(config)
        maintenance = asyncio.create_task(run_maintenance_loop(app.state.extractor))
        logger.info("Palette Sniffer started")
        try:
            yield
        finally:
            maintenance.cancel()
            try:
                await maintenance
            except asyncio.CancelledError:
                pass
            await app.state.extractor.aclose()
            logger.info("Palette Sniffer stopped")

    app = FastAPI(
        title="Palette Sniffer",
        description="Color palette extraction from images and webpages",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["Retry-After"],
    )

    app.include_router(v1_router)

    @app.get("/healthz", response_model=HealthResponse)
    def health_check():
        """Health check endpoint"""
        return HealthResponse(ok=True, version=__version__)

    @app.get("/")
    def root():
        """Root endpoint"""
        return {
            "message": "Palette Sniffer API",
            "version": __version__,
            "docs": "/docs"
        }

    return app


app = create_app()
