"""Tests for breakpoint tables and the AQI engine.

Run with:
    pytest tests/air_quality/test_aqi.py -v
"""

import math

import pytest

from src.air_quality.aqi import AQIEngine, AQIResult, aggregate, index_for, is_measured
from src.air_quality.breakpoints import (
    AQI_CATEGORIES,
    BREAKPOINT_TABLES,
    POLLUTANTS,
    BreakpointSegment,
    category_for,
)


class TestBreakpointTables:
    """Tables are data: one per pollutant, ordered, starting at zero."""

    def test_every_pollutant_has_a_table(self):
        assert set(POLLUTANTS) == set(BREAKPOINT_TABLES)

    @pytest.mark.parametrize("pollutant", POLLUTANTS)
    def test_segments_are_monotonic(self, pollutant):
        segments = BREAKPOINT_TABLES[pollutant]
        assert segments[0].conc_low == 0
        assert segments[0].aqi_low == 0
        for prev, nxt in zip(segments, segments[1:]):
            assert prev.conc_high < nxt.conc_low
            assert prev.aqi_high < nxt.aqi_low

    @pytest.mark.parametrize("pollutant", POLLUTANTS)
    def test_segment_bounds_map_to_index_bounds(self, pollutant):
        """Each segment's upper concentration lands exactly on its upper index."""
        for segment in BREAKPOINT_TABLES[pollutant]:
            assert index_for(pollutant, segment.conc_high) == segment.aqi_high

    def test_segments_are_immutable(self):
        segment = BREAKPOINT_TABLES["pm25"][0]
        with pytest.raises(Exception):
            segment.aqi_high = 999


class TestIndexFor:
    """Piecewise-linear interpolation per pollutant."""

    def test_pm25_reference_points(self):
        assert index_for("pm25", 12.0) == 50
        assert index_for("pm25", 35.4) == 100
        assert index_for("pm25", 0) == 0

    def test_pm25_gap_between_segments_uses_next_segment(self):
        """12.05 sits between 12.0 and 12.1; it belongs to the 51-100 band."""
        assert index_for("pm25", 12.05) == 51

    def test_other_pollutants(self):
        assert index_for("pm10", 54) == 50
        assert index_for("o3", 70) == 100
        assert index_for("no2", 100) == 100
        assert index_for("so2", 75) == 100
        assert index_for("co", 4.4) == 50
        assert index_for("co", 9.4) == 100

    def test_extrapolates_beyond_last_segment(self):
        """Concentrations above the table reuse the last slope (no 500 cap)."""
        assert index_for("pm25", 500.4) == 500
        assert index_for("pm25", 600.0) > 500
        assert index_for("pm25", 800.0) > index_for("pm25", 600.0)

    def test_custom_table(self):
        engine = AQIEngine({"pm25": (BreakpointSegment(0, 10, 0, 100),)})
        assert engine.index_for("pm25", 5) == 50
        assert engine.index_for("pm25", 20) == 200


@pytest.mark.fail_loud
class TestIndexForInvalidInput:
    """Invalid inputs raise instead of producing a silent index."""

    def test_unknown_pollutant_raises(self):
        with pytest.raises(KeyError):
            index_for("nh3", 10)

    def test_negative_concentration_raises(self):
        with pytest.raises(ValueError):
            index_for("pm25", -1.0)

    def test_nan_concentration_raises(self):
        with pytest.raises(ValueError):
            index_for("pm25", math.nan)


class TestAggregate:
    """Overall AQI is the max of measured sub-indices."""

    def test_max_rule_not_average(self):
        result = aggregate({"pm25": 10.8, "o3": 63.9})
        assert result.sub_indices == {"pm25": 45, "o3": 80}
        assert result.aqi == 80
        assert result.dominant_pollutant == "o3"

    def test_all_absent_is_zero(self):
        result = aggregate({})
        assert result.aqi == 0
        assert result.sub_indices == {}
        assert result.dominant_pollutant is None
        assert result.category.label == "Good"

    def test_zero_none_and_nan_are_not_measured(self):
        result = aggregate({"pm25": 0.0, "o3": None, "pm10": math.nan, "co": 2.0})
        assert list(result.sub_indices) == ["co"]
        assert result.aqi == index_for("co", 2.0)

    def test_unknown_keys_ignored(self):
        result = aggregate({"nh3": 500.0, "pm25": 12.0})
        assert result.aqi == 50
        assert "nh3" not in result.sub_indices

    def test_result_to_dict(self):
        result = aggregate({"pm25": 35.4})
        payload = result.to_dict()
        assert payload["aqi"] == 100
        assert payload["category"] == "Moderate"
        assert payload["dominant_pollutant"] == "pm25"

    def test_result_is_frozen(self):
        result = AQIResult(aqi=10)
        with pytest.raises(Exception):
            result.aqi = 20

    def test_sub_indices_are_read_only(self):
        result = aggregate({"pm25": 80.0, "o3": 63.9})
        with pytest.raises(TypeError):
            result.sub_indices["pm25"] = 999
        with pytest.raises(TypeError):
            AQIResult(aqi=10, sub_indices={"co": 10}).sub_indices["co"] = 0
        assert result.dominant_pollutant == "pm25"

    def test_sub_indices_detached_from_caller_dict(self):
        sub = {"pm25": 45}
        result = AQIResult(aqi=45, sub_indices=sub)
        sub["pm25"] = 300
        assert result.sub_indices["pm25"] == 45
        assert result.to_dict()["sub_indices"] == {"pm25": 45}

    def test_is_measured(self):
        assert is_measured(0.1)
        assert not is_measured(0)
        assert not is_measured(-3)
        assert not is_measured(None)
        assert not is_measured("abc")


class TestCategories:
    """AQI bands used for labels and colours."""

    @pytest.mark.parametrize(
        "aqi,label",
        [
            (0, "Good"),
            (50, "Good"),
            (51, "Moderate"),
            (150, "Unhealthy for Sensitive Groups"),
            (200, "Unhealthy"),
            (300, "Very Unhealthy"),
            (301, "Hazardous"),
            (1200, "Hazardous"),
        ],
    )
    def test_category_for(self, aqi, label):
        assert category_for(aqi).label == label

    def test_categories_cover_contiguous_bands(self):
        for prev, nxt in zip(AQI_CATEGORIES, AQI_CATEGORIES[1:]):
            assert prev.aqi_high + 1 == nxt.aqi_low
