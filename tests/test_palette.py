"""
Unit tests for palette building, categorization and sanitization.
"""
import pytest

from palettesniffer.services.colors.kmeans import Cluster
from palettesniffer.services.colors.palette import (
    PRIMARY_MIN_FREQUENCY,
    SIMPLIFIED_MIN_FREQUENCY,
    ColorRecord,
    Palette,
    categorize_by_threshold,
    categorize_tiered,
    is_valid_color,
    palette_from_color_map,
    records_from_clusters,
    records_from_color_map,
    sanitize_palette,
)


def _records(*frequencies):
    return [ColorRecord.from_rgb([i * 20, i * 10, i * 5], f) for i, f in enumerate(frequencies)]


class TestRecordsFromClusters:
    """Test clustering output to color records"""

    def test_frequency_is_share_of_samples(self):
        records = records_from_clusters([Cluster((255.0, 0.0, 0.0), 3)], total_samples=10)

        assert records[0].frequency == pytest.approx(0.3)
        assert records[0].hex == "#ff0000"
        assert records[0].rgb == [255, 0, 0]
        assert records[0].hsl == [0, 100, 50]

    def test_frequency_at_floor_is_dropped(self):
        clusters = [Cluster((10.0, 10.0, 10.0), 2), Cluster((20.0, 20.0, 20.0), 3)]
        records = records_from_clusters(clusters, 1000, min_frequency=PRIMARY_MIN_FREQUENCY)

        assert [r.rgb for r in records] == [[20, 20, 20]]

    def test_simplified_floor_is_stricter(self):
        clusters = [Cluster((1.0, 2.0, 3.0), 5), Cluster((9.0, 9.0, 9.0), 995)]
        records = records_from_clusters(clusters, 1000, min_frequency=SIMPLIFIED_MIN_FREQUENCY)

        assert len(records) == 1

    def test_centroids_are_rounded_and_sorted(self):
        clusters = [Cluster((0.4, 0.5, 254.6), 1), Cluster((100.2, 100.2, 100.2), 4)]
        records = records_from_clusters(clusters, 5)

        assert records[0].rgb == [100, 100, 100]
        assert records[1].rgb == [0, 1, 255]

    def test_no_samples_returns_empty(self):
        assert records_from_clusters([Cluster((1.0, 1.0, 1.0), 1)], 0) == []


class TestRecordsFromColorMap:
    """Test HTML/CSS tallies to color records"""

    def test_frequency_is_count_over_distinct_colors(self):
        records = records_from_color_map({"#ff0000": 3, "#00ff00": 1, "#0000ff": 2})

        assert [r.hex for r in records] == ["#ff0000", "#0000ff", "#00ff00"]
        assert records[0].frequency == pytest.approx(1.0)
        assert records[2].frequency == pytest.approx(1 / 3)

    def test_significant_white_is_appended_last(self):
        records = records_from_color_map({"#ffffff": 5, "#ff0000": 1, "#00ff00": 1})

        assert records[-1].hex == "#ffffff"
        assert records[-1].frequency == pytest.approx(5 / 3)

    def test_insignificant_black_is_dropped(self):
        color_map = {f"#0000{i:02x}": 1 for i in range(1, 12)}
        color_map["#000000"] = 1

        hexes = [r.hex for r in records_from_color_map(color_map)]
        assert "#000000" not in hexes
        assert len(hexes) == 11

    def test_empty_map_gives_default_palette(self):
        palette = palette_from_color_map({})

        assert [c.hex for c in palette.dominant] == ["#6366f1"]
        assert palette.dominant[0].frequency == 1.0
        assert palette.secondary == []
        assert palette.accent == []


class TestCategorization:
    """Test tiered and threshold policies"""

    def test_tiered_slices(self):
        records = _records(*[1.0 - i * 0.05 for i in range(10)])
        palette = categorize_tiered(records)

        assert len(palette.dominant) == 3
        assert len(palette.secondary) == 3
        assert len(palette.accent) == 2
        assert len(palette.all) == 10
        assert palette.dominant[0].frequency == 1.0

    def test_tiered_with_no_records_is_empty(self):
        palette = categorize_tiered([])
        assert palette.is_empty()
        assert palette.all == []

    def test_threshold_buckets_and_caps(self):
        records = _records(0.5, 0.4, 0.3, 0.2, 0.15, 0.08, 0.06, 0.04, 0.03, 0.02, 0.01)
        palette = categorize_by_threshold(records)

        assert [r.frequency for r in palette.dominant] == [0.5, 0.4, 0.3, 0.2]
        assert [r.frequency for r in palette.secondary] == [0.08, 0.06]
        assert [r.frequency for r in palette.accent] == [0.04, 0.03, 0.02]

    def test_threshold_backfill_may_repeat_dominant_records(self):
        records = _records(0.5, 0.3, 0.2, 0.15, 0.12)
        palette = categorize_by_threshold(records)

        assert len(palette.dominant) == 4
        assert palette.secondary == [records[1]]
        assert palette.accent == [records[2]]
        assert records[1] in palette.dominant
        assert records[2] in palette.dominant

    def test_threshold_defaults_when_nothing_to_backfill(self):
        palette = categorize_by_threshold([])

        assert palette.dominant[0].hex == "#6366f1"
        assert palette.secondary[0].hex == "#8b5cf6"
        assert palette.accent[0].hex == "#06b6d4"


class TestSanitizePalette:
    """Test validation of externally produced palettes"""

    def test_non_mapping_is_rejected(self):
        assert sanitize_palette(None) is None
        assert sanitize_palette("palette") is None
        assert sanitize_palette([1, 2, 3]) is None

    def test_missing_categories_get_default_dominant(self):
        palette = sanitize_palette({})

        assert [c.hex for c in palette.dominant] == ["#6366f1"]
        assert palette.secondary == []
        assert palette.accent == []

    def test_invalid_colors_are_dropped(self):
        candidate = {
            "dominant": [
                {"hex": "#GGGGGG", "rgb": [1, 2, 3], "hsl": [0, 0, 1], "frequency": 0.5},
                {"hex": "#010203", "rgb": [1, 2, 300], "hsl": [0, 0, 1], "frequency": 0.5},
                {"hex": "#010203", "rgb": [1, 2, 3], "hsl": [400, 0, 1], "frequency": 0.5},
                {"hex": "#010203", "rgb": [1, 2], "hsl": [0, 0, 1], "frequency": 0.5},
                {"hex": "#ABCDEF", "rgb": [171.4, 205, 239], "hsl": [210.2, 68, 80.6], "frequency": 0.5},
            ],
        }
        palette = sanitize_palette(candidate)

        assert len(palette.dominant) == 1
        color = palette.dominant[0]
        assert color.hex == "#abcdef"
        assert color.rgb == [171, 205, 239]
        assert color.hsl == [210, 68, 81]

    @pytest.mark.parametrize("raw, expected", [
        (0, 0.3),
        (-1, 0.3),
        ("high", 0.3),
        (None, 0.3),
        (2.5, 1.0),
        (0.001, 0.01),
        (0.42, 0.42),
    ])
    def test_frequency_is_clamped(self, raw, expected):
        color = {"hex": "#102030", "rgb": [16, 32, 48], "hsl": [210, 50, 13], "frequency": raw}
        palette = sanitize_palette({"dominant": [color]})

        assert palette.dominant[0].frequency == pytest.approx(expected)

    def test_categories_are_capped_at_five(self):
        colors = [r.to_dict() for r in _records(*[0.9] * 8)]
        palette = sanitize_palette({"dominant": colors, "secondary": colors, "accent": colors})

        assert len(palette.dominant) == 5
        assert len(palette.secondary) == 5
        assert len(palette.accent) == 5

    def test_accepts_palette_instances(self):
        record = ColorRecord.from_hex("#336699", 0.6)
        palette = sanitize_palette(Palette(dominant=[record], all=[record]))

        assert palette.dominant == [record]
        assert palette.all == [record]

    def test_all_defaults_to_concatenated_categories(self):
        colors = [r.to_dict() for r in _records(0.5, 0.2)]
        palette = sanitize_palette({"dominant": colors[:1], "accent": colors[1:]})

        assert [c.hex for c in palette.all] == [colors[0]["hex"], colors[1]["hex"]]

    def test_is_valid_color_rejects_booleans(self):
        assert not is_valid_color({"hex": "#000001", "rgb": [True, 0, 1], "hsl": [0, 0, 0]})
