"""
Color extraction pipeline for raw pixel buffers.

This module implements the pure, process-safe extraction step: sample the
RGBA buffer, cluster the samples, and turn the clusters into ranked color
records. It also defines the request/response messages exchanged with the
offload workers so that a worker only ever needs this module.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
from loguru import logger

from .kmeans import DEFAULT_MAX_ITERATIONS, KMeansClusterer
from .palette import PRIMARY_MIN_FREQUENCY, ColorRecord, records_from_clusters
from .sampling import DEFAULT_ALPHA_THRESHOLD, DEFAULT_SAMPLE_STEP, sample_pixels


def extract_colors_from_buffer(buffer,
                               k: int = 32,
                               alpha_threshold: int = DEFAULT_ALPHA_THRESHOLD,
                               sample_step: int = DEFAULT_SAMPLE_STEP,
                               min_frequency: float = PRIMARY_MIN_FREQUENCY,
                               max_iterations: int = DEFAULT_MAX_ITERATIONS,
                               rng: Optional[np.random.Generator] = None,
                               rng_seed: Optional[int] = None) -> List[ColorRecord]:
    """
    Extract ranked colors from an RGBA buffer.

    Args:
        buffer: Raw RGBA bytes, 4 bytes per pixel
        k: Number of clusters to request
        alpha_threshold: Pixels with alpha at or below this are ignored
        sample_step: Pixel stride used while sampling
        min_frequency: Records at or below this frequency are dropped
        max_iterations: K-means iteration cap
        rng: Generator used for centroid initialization
        rng_seed: Seed used when no generator is supplied

    Returns:
        Color records sorted by frequency descending; ``[]`` when no pixel
        qualified for sampling
    """
    start_time = time.time()

    samples = sample_pixels(buffer, stride=sample_step, alpha_min=alpha_threshold)
    if samples.shape[0] == 0:
        logger.debug("No opaque pixels sampled; returning empty color list")
        return []

    clusterer = KMeansClusterer(k=k, max_iterations=max_iterations, rng=rng, rng_seed=rng_seed)
    clusters = clusterer.fit(samples)
    records = records_from_clusters(clusters, samples.shape[0], min_frequency=min_frequency)

    processing_time = (time.time() - start_time) * 1000
    logger.debug(f"Extracted {len(records)} colors from {samples.shape[0]} samples "
                 f"in {processing_time:.1f}ms")
    return records


@dataclass
class OffloadRequest:
    """Job message handed to an extraction worker."""
    request_id: int
    buffer: bytes
    width: int
    height: int
    k: int = 32
    alpha_threshold: int = DEFAULT_ALPHA_THRESHOLD
    sample_step: int = DEFAULT_SAMPLE_STEP
    min_frequency: float = PRIMARY_MIN_FREQUENCY
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    rng_seed: Optional[int] = None


@dataclass
class OffloadResponse:
    """Result message returned by an extraction worker."""
    request_id: int
    ok: bool
    colors: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None


def handle_offload_request(request: OffloadRequest) -> OffloadResponse:
    """
    Worker entry point.

    Never raises for extraction problems: failures are reported as
    ``ok=False`` so that only the originating request is rejected.
    """
    try:
        expected = request.width * request.height * 4
        if request.width <= 0 or request.height <= 0 or len(request.buffer) < expected:
            raise ValueError(
                f"Buffer of {len(request.buffer)} bytes does not hold "
                f"{request.width}x{request.height} RGBA pixels"
            )

        records = extract_colors_from_buffer(
            request.buffer[:expected],
            k=request.k,
            alpha_threshold=request.alpha_threshold,
            sample_step=request.sample_step,
            min_frequency=request.min_frequency,
            max_iterations=request.max_iterations,
            rng_seed=request.rng_seed,
        )
        return OffloadResponse(
            request_id=request.request_id,
            ok=True,
            colors=[record.to_dict() for record in records],
        )
    except Exception as e:
        return OffloadResponse(request_id=request.request_id, ok=False, error=str(e))
