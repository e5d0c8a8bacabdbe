"""
Unit tests for deterministic fallback palettes.
"""
import pytest

from palettesniffer.services.fallback import (
    generate_fallback_palette,
    generate_hashed_palette,
    get_domain_based_colors,
    get_industry_based_colors,
    simple_hash,
)


class TestSimpleHash:
    """Test the polynomial string hash"""

    @pytest.mark.parametrize("text, expected", [
        ("", 0),
        ("a", 97),
        ("ab", 3105),
    ])
    def test_known_values(self, text, expected):
        assert simple_hash(text) == expected

    def test_wraps_to_32_bits(self):
        value = simple_hash("x" * 200)
        assert 0 <= value <= 2 ** 31

    def test_uses_utf16_code_units(self):
        # U+1F600 is a surrogate pair: 0xD83D, 0xDE00
        assert simple_hash("\U0001F600") == 0xD83D * 31 + 0xDE00


class TestBrandAndIndustry:
    """Test table lookups"""

    def test_brand_match_on_host_substring(self):
        palette = get_domain_based_colors("gist.github.com")

        assert [c.hex for c in palette.dominant] == ["#24292e"]
        assert [c.hex for c in palette.accent] == ["#0366d6"]
        assert [c.frequency for c in palette.all] == [0.4, 0.3, 0.2]

    def test_unknown_brand(self):
        assert get_domain_based_colors("zzqx.io") is None

    def test_industry_keyword(self):
        palette = get_industry_based_colors("mybank.example")

        assert [c.hex for c in palette.dominant] == ["#059669", "#047857"]
        assert len(palette.secondary) == 2
        assert len(palette.accent) == 2
        assert [c.frequency for c in palette.all] == [0.4, 0.3, 0.25, 0.2, 0.15, 0.1]

    def test_no_industry(self):
        assert get_industry_based_colors("zzqx.io") is None


class TestFallbackPalette:
    """Test the overall fallback order"""

    def test_brand_wins(self):
        palette = generate_fallback_palette("https://www.youtube.com/watch")
        assert palette.dominant[0].hex == "#ff0000"

    def test_industry_before_hash(self):
        palette = generate_fallback_palette("https://mybank.example/")
        assert palette.dominant[0].hex == "#059669"

    def test_hashed_palette_is_deterministic(self):
        first = generate_fallback_palette("https://zzqx.io/pricing")
        second = generate_fallback_palette("https://zzqx.io/pricing")

        assert first == second
        assert len(first.dominant) == 2
        assert len(first.secondary) == 2
        assert len(first.accent) == 2
        assert first.all == first.dominant + first.secondary + first.accent

    def test_hashed_palette_depends_on_path(self):
        home = generate_fallback_palette("https://zzqx.io")
        pricing = generate_fallback_palette("https://zzqx.io/pricing")

        assert home == generate_hashed_palette("zzqx.io", simple_hash("zzqx.io/"))
        assert pricing == generate_hashed_palette("zzqx.io", simple_hash("zzqx.io/pricing"))

    def test_hashed_palette_hsl(self):
        hash_value = simple_hash("zzqx.io/")
        palette = generate_hashed_palette("zzqx.io", hash_value)

        assert palette.dominant[0].hsl == [hash_value % 360, 72, 45 + hash_value % 25]
        assert palette.dominant[0].frequency == 0.5
        assert palette.accent[1].frequency == 0.08
