"""
Palette construction, categorization and validation.

Turns clustering output or HTML/CSS color tallies into ranked color records,
splits them into dominant / secondary / accent groups, and sanitizes palettes
that come from external sources before they are accepted.
"""
from dataclasses import dataclass, field
from numbers import Real
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from loguru import logger

from .kmeans import Cluster
from .utils import HEX_PATTERN, hex_to_rgb, hsl_to_rgb, rgb_to_hex, rgb_to_hsl, round_half_up


# Frequency floors for clustering-derived records
PRIMARY_MIN_FREQUENCY = 0.002     # offloaded / primary image pipeline
SIMPLIFIED_MIN_FREQUENCY = 0.01   # simplified non-offloaded screenshot path

# Threshold categorization (webpage evidence)
DOMINANT_THRESHOLD = 0.10
SECONDARY_THRESHOLD = 0.05
DOMINANT_CAP = 4
SECONDARY_CAP = 4
ACCENT_CAP = 3

# Tiered categorization (image evidence)
TIER_DOMINANT = slice(0, 3)
TIER_SECONDARY = slice(3, 6)
TIER_ACCENT = slice(6, 8)

MAX_CATEGORY_SIZE = 5
CATEGORIES = ("dominant", "secondary", "accent")

BLACK = "#000000"
WHITE = "#ffffff"
MONOCHROME_SIGNIFICANCE = 0.1


@dataclass
class ColorRecord:
    """A single palette color with its share of the evidence."""
    hex: str
    rgb: List[int]
    hsl: List[int]
    frequency: float

    @classmethod
    def from_rgb(cls, rgb: Sequence[int], frequency: float) -> "ColorRecord":
        r, g, b = [int(c) for c in rgb[:3]]
        return cls(hex=rgb_to_hex((r, g, b)), rgb=[r, g, b],
                   hsl=list(rgb_to_hsl(r, g, b)), frequency=frequency)

    @classmethod
    def from_hex(cls, hex_color: str, frequency: float) -> "ColorRecord":
        rgb = hex_to_rgb(hex_color)
        if rgb is None:
            raise ValueError(f"Invalid hex color: {hex_color}")
        return cls.from_rgb(rgb, frequency)

    @classmethod
    def from_hsl(cls, hsl: Sequence[int], frequency: float) -> "ColorRecord":
        """Build a record from HSL, keeping the HSL triplet as given."""
        h, s, l = hsl
        rgb = hsl_to_rgb(h, s, l)
        return cls(hex=rgb_to_hex(rgb), rgb=list(rgb), hsl=[h, s, l], frequency=frequency)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hex": self.hex,
            "rgb": list(self.rgb),
            "hsl": list(self.hsl),
            "frequency": self.frequency,
        }


@dataclass
class Palette:
    """Categorized palette; ``all`` holds the full ranked list."""
    dominant: List[ColorRecord] = field(default_factory=list)
    secondary: List[ColorRecord] = field(default_factory=list)
    accent: List[ColorRecord] = field(default_factory=list)
    all: List[ColorRecord] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.dominant or self.secondary or self.accent)

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            "dominant": [c.to_dict() for c in self.dominant],
            "secondary": [c.to_dict() for c in self.secondary],
            "accent": [c.to_dict() for c in self.accent],
            "all": [c.to_dict() for c in self.all],
        }


DEFAULT_COLOR = ColorRecord(hex="#6366f1", rgb=[99, 102, 241], hsl=[238, 84, 67], frequency=1.0)
DEFAULT_SECONDARY_COLOR = ColorRecord(hex="#8b5cf6", rgb=[139, 92, 246], hsl=[258, 90, 66], frequency=0.2)
DEFAULT_ACCENT_COLOR = ColorRecord(hex="#06b6d4", rgb=[6, 182, 212], hsl=[189, 94, 43], frequency=0.1)


def default_color(frequency: float = 1.0) -> ColorRecord:
    return ColorRecord(hex=DEFAULT_COLOR.hex, rgb=list(DEFAULT_COLOR.rgb),
                       hsl=list(DEFAULT_COLOR.hsl), frequency=frequency)


# ============================================================================
# RECORD BUILDERS
# ============================================================================

def records_from_clusters(clusters: Iterable[Cluster], total_samples: int,
                          min_frequency: float = PRIMARY_MIN_FREQUENCY) -> List[ColorRecord]:
    """
    Convert clusters to ranked color records.

    ``frequency`` is ``cluster.size / total_samples``; records at or below
    ``min_frequency`` are dropped.
    """
    if total_samples <= 0:
        return []

    records = []
    for cluster in clusters:
        rgb = [max(0, min(255, round_half_up(c))) for c in cluster.centroid]
        records.append(ColorRecord.from_rgb(rgb, cluster.size / total_samples))

    records = [r for r in records if r.frequency > min_frequency]
    records.sort(key=lambda r: r.frequency, reverse=True)
    return records


def records_from_color_map(color_map: Mapping[str, float]) -> List[ColorRecord]:
    """
    Convert an HTML/CSS color tally into ranked color records.

    ``frequency`` is ``count / len(color_map)``. Pure black and white are left
    out unless their count exceeds 10% of the distinct-color count, in which
    case they are appended after the ranked colors.
    """
    distinct = len(color_map)
    if distinct == 0:
        return []

    ranked = sorted(
        ((hex_color, count) for hex_color, count in color_map.items()
         if count > 0 and hex_color not in (BLACK, WHITE)),
        key=lambda item: item[1],
        reverse=True,
    )
    records = [ColorRecord.from_hex(hex_color, count / distinct) for hex_color, count in ranked]

    for monochrome in (WHITE, BLACK):
        count = color_map.get(monochrome, 0)
        if count > distinct * MONOCHROME_SIGNIFICANCE:
            records.append(ColorRecord.from_hex(monochrome, count / distinct))

    return records


# ============================================================================
# CATEGORIZATION
# ============================================================================

def categorize_tiered(records: Sequence[ColorRecord]) -> Palette:
    """Image policy: top 3 dominant, next 3 secondary, next 2 accent."""
    ranked = sorted(records, key=lambda r: r.frequency, reverse=True)
    return Palette(
        dominant=ranked[TIER_DOMINANT],
        secondary=ranked[TIER_SECONDARY],
        accent=ranked[TIER_ACCENT],
        all=ranked,
    )


def categorize_by_threshold(records: Sequence[ColorRecord]) -> Palette:
    """
    Webpage policy: split by frequency thresholds with per-category caps.

    Empty categories are backfilled from the ranked list by position
    (dominant from the 1st record, secondary from the 2nd, accent from the
    3rd) even when that record already sits in another category; whatever is
    still empty receives a default color.
    """
    ranked = sorted(records, key=lambda r: r.frequency, reverse=True)

    dominant = [r for r in ranked if r.frequency >= DOMINANT_THRESHOLD][:DOMINANT_CAP]
    secondary = [r for r in ranked
                 if SECONDARY_THRESHOLD <= r.frequency < DOMINANT_THRESHOLD][:SECONDARY_CAP]
    accent = [r for r in ranked if r.frequency < SECONDARY_THRESHOLD][:ACCENT_CAP]

    if not dominant and len(ranked) > 0:
        dominant.append(ranked[0])
    if not secondary and len(ranked) > 1:
        secondary.append(ranked[1])
    if not accent and len(ranked) > 2:
        accent.append(ranked[2])

    return Palette(
        dominant=dominant or [default_color(0.3)],
        secondary=secondary or [_copy(DEFAULT_SECONDARY_COLOR)],
        accent=accent or [_copy(DEFAULT_ACCENT_COLOR)],
        all=ranked,
    )


def palette_from_color_map(color_map: Mapping[str, float]) -> Palette:
    """Build a threshold-categorized palette from HTML/CSS evidence."""
    if not color_map:
        fallback = default_color(1.0)
        return Palette(dominant=[fallback], all=[_copy(fallback)])

    return categorize_by_threshold(records_from_color_map(color_map))


# ============================================================================
# VALIDATION / SANITIZATION
# ============================================================================

def is_valid_color(color: Any) -> bool:
    """Check a raw color record (ColorRecord or mapping) for structural validity."""
    if isinstance(color, ColorRecord):
        color = color.to_dict()
    if not isinstance(color, Mapping):
        return False

    hex_value = color.get("hex")
    rgb = color.get("rgb")
    hsl = color.get("hsl")
    if not hex_value or not rgb or not hsl:
        return False
    if not isinstance(hex_value, str) or not HEX_PATTERN.match(hex_value):
        return False

    if not _is_triplet(rgb):
        return False
    if any(value < 0 or value > 255 for value in rgb):
        return False

    if not _is_triplet(hsl):
        return False
    hue, saturation, lightness = hsl
    if hue < 0 or hue > 360:
        return False
    if saturation < 0 or saturation > 100:
        return False
    if lightness < 0 or lightness > 100:
        return False

    return True


def sanitize_color(color: Any) -> ColorRecord:
    """Normalize a valid color: lowercase hex, rounded channels, frequency in [0.01, 1]."""
    if isinstance(color, ColorRecord):
        color = color.to_dict()

    frequency = color.get("frequency")
    if not _is_number(frequency) or frequency <= 0:
        frequency = 0.3
    frequency = max(0.01, min(1.0, float(frequency)))

    return ColorRecord(
        hex=color["hex"].lower(),
        rgb=[round_half_up(v) for v in color["rgb"]],
        hsl=[round_half_up(v) for v in color["hsl"]],
        frequency=frequency,
    )


def sanitize_palette(candidate: Any) -> Optional[Palette]:
    """
    Validate and sanitize an externally produced palette.

    Returns:
        A sanitized ``Palette`` or ``None`` when the candidate is not a
        palette-shaped object at all
    """
    if isinstance(candidate, Palette):
        candidate = candidate.to_dict()
    if not isinstance(candidate, Mapping):
        return None

    sanitized: Dict[str, List[ColorRecord]] = {}
    for category in CATEGORIES:
        raw = candidate.get(category)
        if not isinstance(raw, (list, tuple)):
            raw = []
        valid = [sanitize_color(c) for c in raw if is_valid_color(c)]
        dropped = len(raw) - len(valid)
        if dropped:
            logger.debug(f"Dropped {dropped} invalid {category} colors during sanitization")
        sanitized[category] = valid[:MAX_CATEGORY_SIZE]

    if not sanitized["dominant"]:
        sanitized["dominant"] = [default_color(1.0)]

    raw_all = candidate.get("all")
    if isinstance(raw_all, (list, tuple)) and raw_all:
        all_colors = [sanitize_color(c) for c in raw_all if is_valid_color(c)]
    else:
        all_colors = sanitized["dominant"] + sanitized["secondary"] + sanitized["accent"]

    return Palette(all=all_colors, **sanitized)


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _is_triplet(values: Any) -> bool:
    return (isinstance(values, (list, tuple)) and len(values) == 3
            and all(_is_number(v) for v in values))


def _copy(record: ColorRecord) -> ColorRecord:
    return ColorRecord(hex=record.hex, rgb=list(record.rgb), hsl=list(record.hsl),
                       frequency=record.frequency)
