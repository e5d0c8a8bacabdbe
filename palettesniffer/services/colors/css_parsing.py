"""
HTML and CSS color evidence parsing.

Collects color mentions from markup (inline styles, <style> blocks, meta
theme tags, SVG paint attributes, data attributes and custom properties)
into a tally of ``#rrggbb -> weight`` that the palette builder ranks.
"""
import re
from html.parser import HTMLParser
from typing import Dict, List, Optional, Tuple

from loguru import logger

from .utils import HEX_PATTERN, hsl_to_rgb, rgb_to_hex


ColorMap = Dict[str, float]

HEX_RE = re.compile(r"#([0-9A-Fa-f]{3}|[0-9A-Fa-f]{6})\b")
RGB_RE = re.compile(r"rgb\s*\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*\)")
RGBA_RE = re.compile(r"rgba\s*\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*,\s*[\d.]+\s*\)")
HSL_RE = re.compile(r"hsl\s*\(\s*(\d+)\s*,\s*(\d+)%\s*,\s*(\d+)%\s*\)")
HSLA_RE = re.compile(r"hsla\s*\(\s*(\d+)\s*,\s*(\d+)%\s*,\s*(\d+)%\s*,\s*[\d.]+\s*\)")
NAMED_RE = re.compile(
    r"\b(aqua|black|blue|fuchsia|gray|green|lime|maroon|navy|olive|purple|red|silver|teal"
    r"|white|yellow|orange|pink|brown|violet|indigo|magenta|cyan|transparent)\b",
    re.IGNORECASE,
)
CUSTOM_PROPERTY_RE = re.compile(r"--[\w-]+:\s*([#\w\(\),\s%]+);")

# Loose forms accepted for single color values (meta content, SVG paint)
RGB_VALUE_RE = re.compile(r"rgb\((\d+),\s*(\d+),\s*(\d+)\)")
HSL_VALUE_RE = re.compile(r"hsl\s*\(\s*(\d+)\s*,\s*(\d+)%\s*,\s*(\d+)%\s*\)")

NAMED_COLORS = {
    "aqua": "#00ffff", "black": "#000000", "blue": "#0000ff", "fuchsia": "#ff00ff",
    "gray": "#808080", "green": "#008000", "lime": "#00ff00", "maroon": "#800000",
    "navy": "#000080", "olive": "#808000", "purple": "#800080", "red": "#ff0000",
    "silver": "#c0c0c0", "teal": "#008080", "white": "#ffffff", "yellow": "#ffff00",
    "orange": "#ffa500", "pink": "#ffc0cb", "brown": "#a52a2a", "violet": "#ee82ee",
    "indigo": "#4b0082", "magenta": "#ff00ff", "cyan": "#00ffff",
}

THEME_META_SELECTORS: Tuple[Tuple[str, str], ...] = (
    ("name", "theme-color"),
    ("name", "msapplication-TileColor"),
    ("name", "apple-mobile-web-app-status-bar-style"),
    ("property", "og:theme-color"),
)
DATA_COLOR_ATTRIBUTES = ("data-color", "data-bg-color", "data-theme-color")

# Evidence weights
META_THEME_WEIGHT = 10
META_TILE_WEIGHT = 8
THEME_META_WEIGHT = 8
DATA_ATTRIBUTE_WEIGHT = 5
SVG_PAINT_WEIGHT = 3


def _tally(color_map: ColorMap, hex_color: str, weight: float = 1) -> None:
    color_map[hex_color] = color_map.get(hex_color, 0) + weight


def _rgb_hex(r: str, g: str, b: str) -> str:
    return rgb_to_hex([max(0, min(255, int(v))) for v in (r, g, b)])


def _hsl_hex(h: str, s: str, l: str) -> str:
    return rgb_to_hex(hsl_to_rgb(int(h), int(s), int(l)))


def named_color_to_hex(name: str) -> Optional[str]:
    return NAMED_COLORS.get(name.lower())


def extract_colors_from_style_string(style_text: Optional[str], color_map: ColorMap) -> None:
    """
    Add every color literal found in a CSS fragment to ``color_map`` (+1 each).

    Recognizes 3/6-digit hex, rgb(), rgba(), hsl(), hsla() and a fixed set of
    named colors. ``transparent`` is matched but contributes nothing.
    """
    if not style_text:
        return

    for match in HEX_RE.finditer(style_text):
        value = match.group(1)
        if len(value) == 3:
            value = "".join(c + c for c in value)
        _tally(color_map, "#" + value.lower())

    for pattern in (RGB_RE, RGBA_RE):
        for match in pattern.finditer(style_text):
            _tally(color_map, _rgb_hex(*match.groups()))

    for pattern in (HSL_RE, HSLA_RE):
        for match in pattern.finditer(style_text):
            _tally(color_map, _hsl_hex(*match.groups()))

    for match in NAMED_RE.finditer(style_text):
        hex_color = named_color_to_hex(match.group(1))
        if hex_color:
            _tally(color_map, hex_color)


def extract_custom_property_colors(css_text: Optional[str], color_map: ColorMap) -> None:
    """Scan ``--name: value;`` declarations and tally colors in their values."""
    if not css_text:
        return
    for match in CUSTOM_PROPERTY_RE.finditer(css_text):
        extract_colors_from_style_string(match.group(1), color_map)


def add_color_to_map(color: Optional[str], color_map: ColorMap, weight: float = 1) -> bool:
    """
    Add a single color value with the given weight.

    ``rgb(...)`` and ``hsl(...)`` values are converted to hex; anything that
    does not end up as a 6-digit hex is ignored.

    Returns:
        True when the value was tallied
    """
    if not color:
        return False

    hex_color = color.strip()
    if hex_color.startswith("rgb"):
        match = RGB_VALUE_RE.search(hex_color)
        if match:
            hex_color = _rgb_hex(*match.groups())
    elif hex_color.startswith("hsl"):
        match = HSL_VALUE_RE.search(hex_color)
        if match:
            hex_color = _hsl_hex(*match.groups())

    if not HEX_PATTERN.match(hex_color):
        return False

    _tally(color_map, hex_color.lower(), weight)
    return True


class ColorEvidenceParser(HTMLParser):
    """
    Single pass over an HTML document collecting raw color evidence.

    Nothing is tallied while parsing; ``build_color_map`` applies the
    collected evidence in a fixed order so the tally is independent of
    where in the document each kind of evidence appeared.
    """

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.inline_styles: List[str] = []
        self.style_blocks: List[str] = []
        self.meta_content: Dict[Tuple[str, str], str] = {}
        self.svg_paints: List[Tuple[Optional[str], Optional[str], Optional[str]]] = []
        self.data_colors: List[str] = []
        self.stylesheet_hrefs: List[str] = []
        self._svg_stack: List[str] = []
        self._in_style = False
        self._style_buffer: List[str] = []

    def handle_starttag(self, tag, attrs):
        attributes = dict(attrs)
        style = attributes.get("style")
        if style:
            self.inline_styles.append(style)

        if tag == "style":
            self._in_style = True
            self._style_buffer = []
        elif tag == "meta":
            self._record_meta(attributes)
        elif tag == "link":
            rel = (attributes.get("rel") or "").lower().split()
            href = attributes.get("href")
            if "stylesheet" in rel and href:
                self.stylesheet_hrefs.append(href.strip())

        if tag == "svg" or self._svg_stack:
            self._svg_stack.append(tag)
            self.svg_paints.append((attributes.get("fill"), attributes.get("stroke"), style))

        for name in DATA_COLOR_ATTRIBUTES:
            value = attributes.get(name)
            if value:
                self.data_colors.append(value)
                break

    def handle_endtag(self, tag):
        if tag == "style" and self._in_style:
            self.style_blocks.append("".join(self._style_buffer))
            self._in_style = False
        if tag in self._svg_stack:
            # Unclosed children close with their parent
            while self._svg_stack.pop() != tag:
                pass

    def handle_data(self, data):
        if self._in_style:
            self._style_buffer.append(data)

    def _record_meta(self, attributes):
        for attribute, expected in THEME_META_SELECTORS:
            key = (attribute, expected)
            if attributes.get(attribute) == expected and key not in self.meta_content:
                self.meta_content[key] = attributes.get("content") or ""

    def close(self):
        super().close()
        if self._in_style:
            self.style_blocks.append("".join(self._style_buffer))
            self._in_style = False

    def build_color_map(self) -> ColorMap:
        """Tally all collected evidence into a color map."""
        color_map: ColorMap = {}

        for style in self.inline_styles:
            extract_colors_from_style_string(style, color_map)

        for block in self.style_blocks:
            extract_colors_from_style_string(block, color_map)

        for key in THEME_META_SELECTORS:
            content = self.meta_content.get(key)
            if content and content.startswith(("#", "rgb", "hsl")):
                add_color_to_map(content, color_map, THEME_META_WEIGHT)

        for block in self.style_blocks:
            extract_custom_property_colors(block, color_map)

        for fill, stroke, style in self.svg_paints:
            if fill and fill != "none":
                add_color_to_map(fill, color_map, SVG_PAINT_WEIGHT)
            if stroke and stroke != "none":
                add_color_to_map(stroke, color_map, SVG_PAINT_WEIGHT)
            if style:
                extract_colors_from_style_string(style, color_map)

        for value in self.data_colors:
            add_color_to_map(value, color_map, DATA_ATTRIBUTE_WEIGHT)

        for style in self.inline_styles:
            if "--" in style:
                extract_custom_property_colors(style, color_map)

        return color_map


def parse_html(html: str) -> ColorEvidenceParser:
    parser = ColorEvidenceParser()
    parser.feed(html or "")
    parser.close()
    return parser


def extract_colors_from_html(html: str) -> ColorMap:
    """Full-document color tally used by the proxy and direct-fetch methods."""
    parser = parse_html(html)
    color_map = parser.build_color_map()
    if parser.stylesheet_hrefs:
        logger.debug(f"Found {len(parser.stylesheet_hrefs)} linked stylesheets")
    return color_map


def extract_meta_colors_from_html(html: str) -> ColorMap:
    """
    Metadata-only tally: theme-color (weight 10), msapplication-TileColor
    (weight 8) and custom properties declared in <style> blocks.
    """
    parser = parse_html(html)
    color_map: ColorMap = {}

    add_color_to_map(parser.meta_content.get(("name", "theme-color")), color_map, META_THEME_WEIGHT)
    add_color_to_map(parser.meta_content.get(("name", "msapplication-TileColor")), color_map,
                     META_TILE_WEIGHT)

    for block in parser.style_blocks:
        extract_custom_property_colors(block, color_map)

    return color_map


def extract_stylesheet_links(html: str) -> List[str]:
    """Hrefs of ``<link rel="stylesheet">`` elements in document order."""
    return list(parse_html(html).stylesheet_hrefs)
