"""
Color conversion helpers shared by the image and webpage pipelines.
"""
import math
import re
from typing import Optional, Sequence, Tuple


HEX_PATTERN = re.compile(r"^#[0-9a-f]{6}$", re.IGNORECASE)


def rgb_to_hex(rgb: Sequence[int]) -> str:
    """Convert an RGB triplet to a lowercase ``#rrggbb`` string."""
    r, g, b = [int(x) for x in rgb[:3]]
    return f"#{r:02x}{g:02x}{b:02x}"


def hex_to_rgb(hex_color: str) -> Optional[Tuple[int, int, int]]:
    """Convert ``#rrggbb`` (or ``rrggbb``) to an RGB tuple; ``None`` when malformed."""
    value = hex_color.lstrip("#")
    if len(value) != 6:
        return None
    try:
        return tuple(int(value[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        return None


def rgb_to_hsl(r: int, g: int, b: int) -> Tuple[int, int, int]:
    """
    Convert RGB to rounded HSL.

    Returns:
        (hue 0-360, saturation 0-100, lightness 0-100)
    """
    r, g, b = r / 255.0, g / 255.0, b / 255.0
    high = max(r, g, b)
    low = min(r, g, b)
    h = s = 0.0
    l = (high + low) / 2

    if high != low:
        d = high - low
        s = d / (2 - high - low) if l > 0.5 else d / (high + low)
        if high == r:
            h = (g - b) / d + (6 if g < b else 0)
        elif high == g:
            h = (b - r) / d + 2
        else:
            h = (r - g) / d + 4
        h /= 6

    return round_half_up(h * 360), round_half_up(s * 100), round_half_up(l * 100)


def hsl_to_rgb(h: float, s: float, l: float) -> Tuple[int, int, int]:
    """Convert HSL (degrees, percent, percent) to an RGB tuple."""
    s /= 100.0
    l /= 100.0

    c = (1 - abs(2 * l - 1)) * s
    x = c * (1 - abs((h / 60) % 2 - 1))
    m = l - c / 2

    r = g = b = 0.0
    if 0 <= h < 60:
        r, g, b = c, x, 0
    elif 60 <= h < 120:
        r, g, b = x, c, 0
    elif 120 <= h < 180:
        r, g, b = 0, c, x
    elif 180 <= h < 240:
        r, g, b = 0, x, c
    elif 240 <= h < 300:
        r, g, b = x, 0, c
    elif 300 <= h < 360:
        r, g, b = c, 0, x

    return (
        _clamp_channel(round_half_up((r + m) * 255)),
        _clamp_channel(round_half_up((g + m) * 255)),
        _clamp_channel(round_half_up((b + m) * 255)),
    )


def round_half_up(value: float) -> int:
    # round() rounds halves to even
    return int(math.floor(value + 0.5))


def _clamp_channel(value: int) -> int:
    return max(0, min(255, value))
