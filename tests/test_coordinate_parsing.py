# tests/test_coordinate_parsing.py
"""
Tests for coordinate parsing utilities.
"""

import pytest

from starxref.utils.coordinate_parsing import parse_position, parse_search_radius
from starxref.data.source import QueryPosition
from starxref.exceptions import ConfigurationError


class TestParsePosition:
    """Test the parse_position function."""

    def test_decimal_degrees(self):
        assert parse_position("10.684,41.269") == QueryPosition(10.684, 41.269)

    def test_whitespace_tolerated(self):
        assert parse_position("  83.822 , -5.391 ") == QueryPosition(83.822, -5.391)

    def test_sexagesimal(self):
        position = parse_position("02h31m49.09s,+89d15m50.8s")
        assert position.ra_deg == pytest.approx(37.954542, abs=1e-5)
        assert position.dec_deg == pytest.approx(89.264111, abs=1e-5)

    def test_sexagesimal_with_spaces(self):
        position = parse_position("05 35 17.3,-05 23 28")
        assert position.ra_deg == pytest.approx(83.822083, abs=1e-5)
        assert position.dec_deg == pytest.approx(-5.391111, abs=1e-5)

    @pytest.mark.parametrize("text", ["", "   ", "10.0", "1,2,3", "abc,def"])
    def test_invalid_format(self, text):
        with pytest.raises(ConfigurationError):
            parse_position(text)

    @pytest.mark.parametrize("text", ["361,0", "10,91", "-1,0"])
    def test_out_of_range(self, text):
        with pytest.raises(ConfigurationError):
            parse_position(text)


class TestParseSearchRadius:
    """Test the parse_search_radius function."""

    def test_valid(self):
        assert parse_search_radius("5") == 5.0
        assert parse_search_radius("0.5") == 0.5

    def test_zero_allowed(self):
        assert parse_search_radius("0") == 0.0

    @pytest.mark.parametrize("text", ["-1", "abc", "nan", "inf", "7200"])
    def test_invalid(self, text):
        with pytest.raises(ConfigurationError):
            parse_search_radius(text)
