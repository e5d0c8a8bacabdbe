"""
Palette Sniffer Imaging Utilities
Decodes encoded images into raw RGBA pixel buffers for color analysis.
"""
import io
from dataclasses import dataclass
from typing import Tuple

from loguru import logger
from PIL import Image, UnidentifiedImageError

from .reliability import ImageDecodeError


DEFAULT_MAX_EDGE = 800


@dataclass
class RGBAImage:
    """Decoded pixels, 4 bytes per pixel, row-major."""
    width: int
    height: int
    buffer: bytes


def fit_dimensions(width: int, height: int, max_edge: int = DEFAULT_MAX_EDGE,
                   allow_upscale: bool = False) -> Tuple[int, int]:
    """
    Compute target dimensions for analysis.

    By default only downscales: a landscape image wider than ``max_edge`` is
    scaled by width, otherwise an image taller than ``max_edge`` is scaled by
    height. With ``allow_upscale`` the image is scaled so that it fits the
    ``max_edge`` box exactly, growing small inputs too.
    """
    if allow_upscale:
        ratio = min(max_edge / width, max_edge / height)
        return max(1, int(width * ratio)), max(1, int(height * ratio))

    if width > height and width > max_edge:
        return max_edge, max(1, int(height * max_edge / width))
    if height > max_edge:
        return max(1, int(width * max_edge / height)), max_edge
    return width, height


def decode_image(file_bytes: bytes, max_edge: int = DEFAULT_MAX_EDGE,
                 allow_upscale: bool = False) -> RGBAImage:
    """
    Decode image bytes to an RGBA buffer scaled for analysis.

    Args:
        file_bytes: Encoded image (any format Pillow can open)
        max_edge: Longest edge after scaling
        allow_upscale: Scale small images up to ``max_edge`` as well

    Returns:
        Decoded RGBA image

    Raises:
        ImageDecodeError: Empty, unreadable or corrupt input
    """
    if not file_bytes:
        raise ImageDecodeError("Empty image payload")

    try:
        with Image.open(io.BytesIO(file_bytes)) as pil_image:
            pil_image.load()
            rgba = pil_image.convert("RGBA")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        logger.warning(f"Failed to decode image: {e}")
        raise ImageDecodeError(f"Failed to decode image: {e}") from e

    width, height = rgba.size
    if width == 0 or height == 0:
        raise ImageDecodeError("Image has no pixels")

    target = fit_dimensions(width, height, max_edge, allow_upscale)
    if target != (width, height):
        rgba = rgba.resize(target, Image.Resampling.BILINEAR)
        logger.debug(f"Resized image from {width}x{height} to {target[0]}x{target[1]}")

    return RGBAImage(width=rgba.width, height=rgba.height, buffer=rgba.tobytes())
