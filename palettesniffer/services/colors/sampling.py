"""
Pixel sampling for color analysis.

Walks a raw RGBA buffer at a fixed pixel stride and keeps the RGB channels of
sufficiently opaque pixels.
"""
from typing import Union

import numpy as np


DEFAULT_SAMPLE_STEP = 16
DEFAULT_ALPHA_THRESHOLD = 128

BufferLike = Union[bytes, bytearray, memoryview, np.ndarray]


def sample_pixels(buffer: BufferLike,
                  stride: int = DEFAULT_SAMPLE_STEP,
                  alpha_min: int = DEFAULT_ALPHA_THRESHOLD) -> np.ndarray:
    """
    Sample RGB pixels from an RGBA byte buffer.

    Every ``stride``-th pixel is visited (a step of ``4 * stride`` bytes) and
    kept when its alpha is strictly greater than ``alpha_min``.

    Args:
        buffer: Raw RGBA bytes, 4 bytes per pixel, row-major
        stride: Pixel step between visited pixels (values below 1 act as 1)
        alpha_min: Alpha values at or below this are skipped

    Returns:
        ``(N, 3)`` uint8 array of samples; empty ``(0, 3)`` when nothing qualifies
    """
    data = np.frombuffer(buffer, dtype=np.uint8) if not isinstance(buffer, np.ndarray) \
        else buffer.reshape(-1).astype(np.uint8, copy=False)

    pixel_count = data.size // 4
    if pixel_count == 0:
        return np.empty((0, 3), dtype=np.uint8)

    step = max(1, int(stride or DEFAULT_SAMPLE_STEP))
    rgba = data[:pixel_count * 4].reshape(-1, 4)[::step]
    opaque = rgba[:, 3] > alpha_min

    return np.ascontiguousarray(rgba[opaque, :3])
