"""
Per-color analysis: WCAG contrast against white and black text, lightness
flags, and hue-rotated harmony colors built from a palette record.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from .palette import ColorRecord


WHITE_RGB = (255, 255, 255)
BLACK_RGB = (0, 0, 0)

WCAG_AAA = 7.0
WCAG_AA = 4.5


@dataclass
class ColorHarmony:
    complementary: ColorRecord
    analogous: List[ColorRecord]
    triadic: List[ColorRecord]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "complementary": self.complementary.to_dict(),
            "analogous": [c.to_dict() for c in self.analogous],
            "triadic": [c.to_dict() for c in self.triadic],
        }


@dataclass
class ColorAnalysis:
    """Readability summary for one color."""
    color: ColorRecord
    contrast_with_white: float
    contrast_with_black: float
    wcag_level: str
    is_light: bool
    is_dark: bool
    saturation: int
    lightness: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.color.to_dict(),
            "contrast_with_white": self.contrast_with_white,
            "contrast_with_black": self.contrast_with_black,
            "wcag_level": self.wcag_level,
            "is_light": self.is_light,
            "is_dark": self.is_dark,
            "saturation": self.saturation,
            "lightness": self.lightness,
        }


def relative_luminance(rgb: Sequence[int]) -> float:
    """Relative luminance per WCAG 2.0."""

    def channel(c):
        c = c / 255
        return c / 12.92 if c <= 0.03928 else ((c + 0.055) / 1.055) ** 2.4

    r, g, b = rgb[:3]
    return 0.2126 * channel(r) + 0.7152 * channel(g) + 0.0722 * channel(b)


def contrast_ratio(rgb1: Sequence[int], rgb2: Sequence[int]) -> float:
    lighter = max(relative_luminance(rgb1), relative_luminance(rgb2))
    darker = min(relative_luminance(rgb1), relative_luminance(rgb2))
    return (lighter + 0.05) / (darker + 0.05)


def get_wcag_level(ratio: float) -> str:
    if ratio >= WCAG_AAA:
        return "AAA"
    if ratio >= WCAG_AA:
        return "AA"
    return "FAIL"


def analyze_color(color: ColorRecord) -> ColorAnalysis:
    """
    Contrast of ``color`` against white and black text.

    The WCAG level is graded on the better of the two contrasts. Lightness
    exactly 50 counts as neither light nor dark.
    """
    with_white = contrast_ratio(color.rgb, WHITE_RGB)
    with_black = contrast_ratio(color.rgb, BLACK_RGB)
    _, saturation, lightness = color.hsl
    return ColorAnalysis(
        color=color,
        contrast_with_white=with_white,
        contrast_with_black=with_black,
        wcag_level=get_wcag_level(max(with_white, with_black)),
        is_light=lightness > 50,
        is_dark=lightness < 50,
        saturation=saturation,
        lightness=lightness,
    )


def generate_complementary_colors(color: ColorRecord) -> ColorHarmony:
    """Complementary, analogous (+/-30) and triadic (+120/+240) hues at the same S and L."""
    h, s, l = color.hsl

    def rotate(degrees):
        return ColorRecord.from_hsl([(h + degrees) % 360, s, l], 0)

    return ColorHarmony(
        complementary=rotate(180),
        analogous=[rotate(30), rotate(330)],
        triadic=[rotate(120), rotate(240)],
    )
