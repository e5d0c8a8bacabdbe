"""
Palette Sniffer Fallback Palettes
Brand and industry tables plus a deterministic hash-derived palette used when
no strategy produced usable evidence for a URL.
"""
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlsplit

from loguru import logger

from .colors.palette import ColorRecord, Palette


def _record(hex_color: str, rgb: Sequence[int], hsl: Sequence[int], frequency: float) -> ColorRecord:
    return ColorRecord(hex=hex_color, rgb=list(rgb), hsl=list(hsl), frequency=frequency)


def _palette(dominant: List[ColorRecord], secondary: List[ColorRecord],
             accent: List[ColorRecord]) -> Palette:
    return Palette(dominant=dominant, secondary=secondary, accent=accent,
                   all=dominant + secondary + accent)


# Well-known brands, matched when the host contains the brand stem
BRAND_PALETTES: Dict[str, Tuple[Tuple, Tuple, Tuple]] = {
    "github": (("#24292e", (36, 41, 46), (210, 13, 16)),
               ("#f6f8fa", (246, 248, 250), (210, 14, 97)),
               ("#0366d6", (3, 102, 214), (212, 97, 43))),
    "twitter": (("#1da1f2", (29, 161, 242), (203, 89, 53)),
                ("#ffffff", (255, 255, 255), (0, 0, 100)),
                ("#14171a", (20, 23, 26), (210, 13, 9))),
    "facebook": (("#1877f2", (24, 119, 242), (214, 89, 52)),
                 ("#ffffff", (255, 255, 255), (0, 0, 100)),
                 ("#42a5f5", (66, 165, 245), (207, 90, 61))),
    "linkedin": (("#0077b5", (0, 119, 181), (201, 100, 35)),
                 ("#ffffff", (255, 255, 255), (0, 0, 100)),
                 ("#00a0dc", (0, 160, 220), (199, 100, 43))),
    "instagram": (("#e4405f", (228, 64, 95), (348, 72, 57)),
                  ("#ffffff", (255, 255, 255), (0, 0, 100)),
                  ("#833ab4", (131, 58, 180), (280, 51, 47))),
    "youtube": (("#ff0000", (255, 0, 0), (0, 100, 50)),
                ("#ffffff", (255, 255, 255), (0, 0, 100)),
                ("#282828", (40, 40, 40), (0, 0, 16))),
    "netflix": (("#e50914", (229, 9, 20), (357, 92, 47)),
                ("#000000", (0, 0, 0), (0, 0, 0)),
                ("#ffffff", (255, 255, 255), (0, 0, 100))),
}
BRAND_FREQUENCIES = (0.4, 0.3, 0.2)

# Industry palettes: two colors per category with fixed frequencies
INDUSTRY_PALETTES: Dict[str, Tuple[Tuple, ...]] = {
    "tech": (
        ("#2563eb", (37, 99, 235), (217, 91, 53)), ("#1e40af", (30, 64, 175), (217, 91, 40)),
        ("#64748b", (100, 116, 139), (215, 16, 47)), ("#f1f5f9", (241, 245, 249), (210, 20, 96)),
        ("#06b6d4", (6, 182, 212), (189, 94, 43)), ("#8b5cf6", (139, 92, 246), (258, 90, 66)),
    ),
    "bank": (
        ("#059669", (5, 150, 105), (160, 84, 30)), ("#047857", (4, 120, 87), (160, 84, 24)),
        ("#374151", (55, 65, 81), (220, 13, 27)), ("#f9fafb", (249, 250, 251), (220, 14, 98)),
        ("#f59e0b", (245, 158, 11), (38, 92, 50)), ("#dc2626", (220, 38, 38), (0, 84, 51)),
    ),
    "health": (
        ("#0891b2", (8, 145, 178), (191, 91, 36)), ("#0e7490", (14, 116, 144), (191, 91, 31)),
        ("#6b7280", (107, 114, 128), (220, 9, 46)), ("#f8fafc", (248, 250, 252), (210, 20, 98)),
        ("#10b981", (16, 185, 129), (160, 84, 39)), ("#ef4444", (239, 68, 68), (0, 84, 60)),
    ),
    "edu": (
        ("#7c3aed", (124, 58, 237), (262, 83, 58)), ("#6d28d9", (109, 40, 217), (262, 83, 50)),
        ("#4b5563", (75, 85, 99), (220, 13, 34)), ("#fafafa", (250, 250, 250), (0, 0, 98)),
        ("#f97316", (249, 115, 22), (25, 95, 53)), ("#06b6d4", (6, 182, 212), (189, 94, 43)),
    ),
    "shop": (
        ("#dc2626", (220, 38, 38), (0, 84, 51)), ("#b91c1c", (185, 28, 28), (0, 84, 42)),
        ("#374151", (55, 65, 81), (220, 13, 27)), ("#ffffff", (255, 255, 255), (0, 0, 100)),
        ("#059669", (5, 150, 105), (160, 84, 30)), ("#f59e0b", (245, 158, 11), (38, 92, 50)),
    ),
    "design": (
        ("#8b5cf6", (139, 92, 246), (258, 90, 66)), ("#7c3aed", (124, 58, 237), (262, 83, 58)),
        ("#64748b", (100, 116, 139), (215, 16, 47)), ("#f8fafc", (248, 250, 252), (210, 20, 98)),
        ("#f97316", (249, 115, 22), (25, 95, 53)), ("#10b981", (16, 185, 129), (160, 84, 39)),
    ),
}
INDUSTRY_FREQUENCIES = (0.4, 0.3, 0.25, 0.2, 0.15, 0.1)

INDUSTRY_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "tech": ("tech", "software", "app", "api", "dev", "code", "programming", "digital", "web", "online"),
    "bank": ("bank", "finance", "credit", "loan", "money", "pay", "cash", "financial", "investment"),
    "health": ("health", "medical", "doctor", "hospital", "clinic", "pharmacy", "care", "wellness",
               "therapy"),
    "edu": ("edu", "school", "university", "college", "learn", "education", "course", "training",
            "academy"),
    "shop": ("shop", "store", "buy", "sell", "market", "mall", "retail", "commerce", "ecommerce"),
    "design": ("design", "creative", "art", "studio", "agency", "brand", "marketing", "advertising"),
}


def simple_hash(text: str) -> int:
    """
    Polynomial string hash (``h = h * 31 + unit``) wrapped to signed 32 bits
    after every step, over UTF-16 code units. Returns the absolute value.
    """
    value = 0
    units = text.encode("utf-16-le")
    for i in range(0, len(units), 2):
        code = units[i] | (units[i + 1] << 8)
        value = ((value << 5) - value + code) & 0xFFFFFFFF
        if value >= 0x80000000:
            value -= 0x100000000
    return abs(value)


def get_domain_based_colors(domain: str) -> Optional[Palette]:
    """Brand palette for well-known hosts, ``None`` otherwise."""
    domain = domain.lower()
    for brand, colors in BRAND_PALETTES.items():
        if brand in domain:
            dominant, secondary, accent = [
                _record(hex_color, rgb, hsl, frequency)
                for (hex_color, rgb, hsl), frequency in zip(colors, BRAND_FREQUENCIES)
            ]
            return _palette([dominant], [secondary], [accent])
    return None


def has_industry_keywords(domain: str, industry: str) -> bool:
    domain = domain.lower()
    return any(keyword in domain for keyword in INDUSTRY_KEYWORDS.get(industry, ()))


def get_industry_based_colors(domain: str) -> Optional[Palette]:
    """Industry palette when the host names an industry or one of its keywords."""
    for industry, colors in INDUSTRY_PALETTES.items():
        if industry in domain or has_industry_keywords(domain, industry):
            records = [
                _record(hex_color, rgb, hsl, frequency)
                for (hex_color, rgb, hsl), frequency in zip(colors, INDUSTRY_FREQUENCIES)
            ]
            return _palette(records[0:2], records[2:4], records[4:6])
    return None


def generate_hashed_palette(domain: str, hash_value: int) -> Palette:
    """HSL palette derived from the domain length and a hash value."""
    base_hue = hash_value % 360
    base_saturation = 65 + (len(domain) % 20)
    base_lightness = 45 + (hash_value % 25)

    dominant = [
        ColorRecord.from_hsl([base_hue, base_saturation, base_lightness], 0.5),
        ColorRecord.from_hsl([base_hue, base_saturation - 10, base_lightness - 10], 0.3),
    ]
    secondary = [
        ColorRecord.from_hsl([(base_hue + 30) % 360, base_saturation - 20, base_lightness + 15], 0.2),
        ColorRecord.from_hsl([(base_hue + 60) % 360, base_saturation - 15, base_lightness + 20], 0.15),
    ]
    accent = [
        ColorRecord.from_hsl([(base_hue + 180) % 360, base_saturation + 15, base_lightness - 5], 0.1),
        ColorRecord.from_hsl([(base_hue + 120) % 360, base_saturation + 10, base_lightness + 10], 0.08),
    ]
    return _palette(dominant, secondary, accent)


def generate_fallback_palette(url: str) -> Palette:
    """
    Deterministic palette for a URL: brand table, then industry table, then a
    palette hashed from ``host + path``. Identical URLs always produce
    identical palettes.
    """
    parts = urlsplit(url)
    domain = (parts.hostname or "").lower()
    path = parts.path or "/"

    palette = get_domain_based_colors(domain)
    if palette is not None:
        logger.info(f"Using brand fallback palette for {domain}")
        return palette

    palette = get_industry_based_colors(domain)
    if palette is not None:
        logger.info(f"Using industry fallback palette for {domain}")
        return palette

    palette = generate_hashed_palette(domain, simple_hash(domain + path))
    logger.info(f"Generated hashed fallback palette for {domain}")
    return palette
