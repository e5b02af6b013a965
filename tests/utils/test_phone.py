"""Tests for utils/phone.py - recipient phone normalisation."""

import pytest

from utils.phone import (
    digits_only,
    expected_length,
    format_phone,
    has_valid_length,
    normalize_country,
    same_number,
)


class TestNormalisation:

    @pytest.mark.parametrize("raw,expected", [
        ("600 123 456", "600123456"),
        ("(600)-123.456", "600123456"),
        ("", ""),
        (None, ""),
    ])
    def test_digits_only(self, raw, expected):
        assert digits_only(raw) == expected

    def test_country_strips_plus(self):
        assert normalize_country("+34") == "34"

    def test_known_country_length(self):
        assert expected_length("44") == 10

    def test_unknown_country_defaults_to_nine(self):
        assert expected_length("999") == 9

    def test_valid_length_ignores_separators(self):
        assert has_valid_length("34", "600 123 456") is True
        assert has_valid_length("34", "600 123 45") is False


class TestFormatPhone:

    def test_groups_by_country_pattern(self):
        assert format_phone("34", "600123456") == "600 123 456"
        assert format_phone("33", "612345678") == "6 12 34 56 78"

    def test_partial_input_groups_what_is_there(self):
        assert format_phone("34", "6001") == "600 1"

    def test_extra_digits_dropped(self):
        assert format_phone("34", "6001234567890") == "600 123 456"

    def test_empty(self):
        assert format_phone("34", "") == ""


class TestSameNumber:

    def test_matches_after_normalisation(self):
        assert same_number("+34", "600 123 456", "34", "600123456") is True

    def test_different_country_is_different_number(self):
        assert same_number("33", "600123456", "34", "600123456") is False

    def test_empty_phone_never_matches(self):
        assert same_number("34", "", "34", "") is False
