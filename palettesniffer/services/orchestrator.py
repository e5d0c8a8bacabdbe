"""
Palette Sniffer Orchestrator
Entry points for image and URL palette extraction.
"""
import asyncio
import time
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlsplit

import httpx
import numpy as np
from loguru import logger

from ..config import ExtractorConfig
from ..utils.ids import generate_request_id
from ..utils.metrics import MetricsCollector
from .cache import ResultCache
from .channel import ExecutorFactory, ExtractionChannel
from .colors.extraction import extract_colors_from_buffer
from .colors.palette import (
    PRIMARY_MIN_FREQUENCY,
    SIMPLIFIED_MIN_FREQUENCY,
    ColorRecord,
    Palette,
    categorize_tiered,
)
from .imaging import RGBAImage, decode_image
from .reliability import ChannelError, InvalidUrlError, RateLimitExceeded
from .resolver import Sleep, SourceResolver
from .security.rate_limiter import RateLimit, RateLimiter
from .strategies import Strategy, build_strategies


def normalize_url(url: str) -> str:
    """
    Trim, default the scheme to https and drop one trailing slash.

    Raises:
        InvalidUrlError: Empty input or no host after normalization
    """
    normalized = (url or "").strip()
    if not normalized:
        raise InvalidUrlError("URL must not be empty")

    if not normalized.startswith("http://") and not normalized.startswith("https://"):
        normalized = "https://" + normalized

    if normalized.endswith("/"):
        normalized = normalized[:-1]

    try:
        host = urlsplit(normalized).hostname
    except ValueError as e:
        raise InvalidUrlError(f"Invalid URL: {url}") from e
    if not host:
        raise InvalidUrlError(f"Invalid URL: {url}")

    return normalized


class PaletteExtractor:
    """
    Coordinates decoding, offloaded clustering, the URL strategy chain,
    caching, rate limiting and metrics.
    """

    def __init__(self, config: Optional[ExtractorConfig] = None,
                 client: Optional[httpx.AsyncClient] = None,
                 channel: Optional[ExtractionChannel] = None,
                 cache: Optional[ResultCache] = None,
                 rate_limiter: Optional[RateLimiter] = None,
                 metrics: Optional[MetricsCollector] = None,
                 strategies: Optional[Sequence[Strategy]] = None,
                 sleep: Sleep = asyncio.sleep,
                 executor_factory: Optional[ExecutorFactory] = None,
                 rng_seed: Optional[int] = None):
        self.config = config or ExtractorConfig()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(follow_redirects=True)
        self.channel = channel or ExtractionChannel(
            executor_factory=executor_factory,
            worker_count=self.config.worker_count,
        )
        self.cache = cache or ResultCache(
            ttl_seconds=self.config.cache_ttl_seconds,
            max_entries=self.config.cache_max_entries,
        )
        self.rate_limiter = rate_limiter or RateLimiter(RateLimit(
            requests=self.config.rate_limit_max_requests,
            window_seconds=self.config.rate_limit_window_seconds,
        ))
        self.metrics = metrics or MetricsCollector()
        self.rng_seed = rng_seed
        self._rng = np.random.default_rng(rng_seed)

        if strategies is None:
            strategies = build_strategies(self.config, self.client, self.analyze_screenshot)
        self.resolver = SourceResolver(
            strategies,
            max_retries=self.config.max_retries,
            backoff_base=self.config.backoff_base,
            sleep=sleep,
        )

    # ------------------------------------------------------------------
    # Image path
    # ------------------------------------------------------------------

    async def extract_from_image(self, file_bytes: bytes) -> Palette:
        """
        Palette for an uploaded image.

        Raises:
            ImageDecodeError: The bytes are not a readable image
        """
        request_id = generate_request_id("img")
        start_time = time.time()
        try:
            image = decode_image(file_bytes, max_edge=self.config.max_image_edge)
            records = await self._extract_records(
                image,
                fallback_k=self.config.image_k,
                fallback_min_frequency=PRIMARY_MIN_FREQUENCY,
            )
        except Exception:
            self.metrics.record_request("image", False, (time.time() - start_time) * 1000)
            raise

        palette = categorize_tiered(records)
        duration_ms = (time.time() - start_time) * 1000
        self.metrics.record_request("image", True, duration_ms)
        logger.bind(request_id=request_id).info(
            f"Extracted {len(records)} colors from {image.width}x{image.height} image "
            f"in {duration_ms:.1f}ms"
        )
        return palette

    async def analyze_screenshot(self, file_bytes: bytes) -> Palette:
        """Palette for a rendered page screenshot returned by a provider."""
        image = decode_image(file_bytes, max_edge=self.config.max_image_edge, allow_upscale=True)
        records = await self._extract_records(
            image,
            fallback_k=self.config.screenshot_fallback_k,
            fallback_min_frequency=SIMPLIFIED_MIN_FREQUENCY,
        )
        return categorize_tiered(records)

    async def _extract_records(self, image: RGBAImage, fallback_k: int,
                               fallback_min_frequency: float) -> List[ColorRecord]:
        if self.config.enable_worker_offload:
            try:
                return await self.channel.analyze(
                    bytearray(image.buffer),
                    image.width,
                    image.height,
                    k=self.config.image_k,
                    alpha_threshold=self.config.alpha_threshold,
                    sample_step=self.config.sample_step,
                    min_frequency=PRIMARY_MIN_FREQUENCY,
                    max_iterations=self.config.kmeans_max_iterations,
                    rng_seed=self.rng_seed,
                )
            except ChannelError as e:
                self.metrics.increment("channel_fallbacks")
                logger.warning(f"Offloaded extraction failed, running inline: {e}")

        return extract_colors_from_buffer(
            image.buffer,
            k=fallback_k,
            alpha_threshold=self.config.alpha_threshold,
            sample_step=self.config.fallback_sample_step,
            min_frequency=fallback_min_frequency,
            max_iterations=self.config.kmeans_max_iterations,
            rng=self._rng,
        )

    # ------------------------------------------------------------------
    # URL path
    # ------------------------------------------------------------------

    async def extract_from_url(self, url: str) -> Palette:
        """
        Palette for a webpage.

        Raises:
            InvalidUrlError: The URL cannot be normalized
            RateLimitExceeded: Too many analyses for the domain
        """
        request_id = generate_request_id("url")
        start_time = time.time()
        try:
            normalized = normalize_url(url)
            domain = urlsplit(normalized).hostname

            status = self.rate_limiter.check(domain)
            if not status.allowed:
                raise RateLimitExceeded(domain, retry_after=status.retry_after or 0.0)

            cached = self.cache.get(normalized)
            if cached is not None:
                self.metrics.increment("cache_hits")
                logger.bind(request_id=request_id).info(f"Returning cached result for {normalized}")
                self.metrics.record_request("url", True, (time.time() - start_time) * 1000)
                return cached

            palette = await self.resolver.resolve(normalized)
            self.cache.set(normalized, palette)
        except Exception as e:
            self.metrics.record_request("url", False, (time.time() - start_time) * 1000)
            logger.bind(request_id=request_id).error(f"URL color extraction failed: {e}")
            raise

        duration_ms = (time.time() - start_time) * 1000
        self.metrics.record_request("url", True, duration_ms)
        logger.bind(request_id=request_id).info(f"Analyzed {normalized} in {duration_ms:.1f}ms")
        return palette

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def get_performance_metrics(self) -> Dict[str, Any]:
        """URL request counters and average response time, plus service stats."""
        counters = self.metrics.get_counters()
        timings = self.metrics.get_timing_stats().get("url_duration_ms", {})
        return {
            "total_requests": counters.get("url_requests_total", 0),
            "successful_requests": counters.get("url_requests_succeeded", 0),
            "failed_requests": counters.get("url_requests_failed", 0),
            "average_response_time_ms": timings.get("mean", 0.0),
            "cache": self.cache.get_cache_stats(),
            "rate_limiter": self.rate_limiter.get_stats(),
            "summary": self.metrics.get_summary(),
        }

    def run_maintenance(self) -> Dict[str, int]:
        """Purge expired cache entries and idle rate windows."""
        return {
            "cache_entries_removed": self.cache.cleanup_expired(),
            "rate_windows_removed": self.rate_limiter.cleanup_expired(),
        }

    async def aclose(self) -> None:
        self.channel.close()
        if self._owns_client:
            await self.client.aclose()
