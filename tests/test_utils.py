"""
Unit tests for email validation and timestamp helpers.
"""

from datetime import timedelta

import pytest

from ses_email_api.utils import (
    format_offset,
    get_timestamp,
    is_valid_email,
    local_time,
    parse_utc_offset,
)


class TestIsValidEmail:
    """Email syntax validation."""

    @pytest.mark.parametrize("email", [
        "a@b.com",
        "first.last+tag@sub.example.co.uk",
        "user_name%x@example-mail.org",
    ])
    def test_valid_addresses(self, email):
        assert is_valid_email(email)

    @pytest.mark.parametrize("email", [
        "",
        "plainaddress",
        "@example.com",
        "user@",
        "user@example",
        "user@example..com",
        "user name@example.com",
        None,
    ])
    def test_invalid_addresses(self, email):
        assert not is_valid_email(email)

    def test_overlong_address_is_rejected(self):
        assert not is_valid_email("a" * 250 + "@b.com")


class TestGetTimestamp:
    """ISO-8601 timestamp normalization."""

    def test_keeps_millisecond_precision(self):
        assert get_timestamp("2023-01-01T00:00:00.123Z") == "2023-01-01T00:00:00.123Z"

    def test_converts_offsets_to_utc(self):
        assert get_timestamp("2023-01-01T07:00:00.000+07:00") == "2023-01-01T00:00:00.000Z"

    def test_pads_missing_milliseconds(self):
        assert get_timestamp("2023-06-15T10:20:30Z") == "2023-06-15T10:20:30.000Z"

    def test_treats_naive_time_as_utc(self):
        assert get_timestamp("2023-06-15T10:20:30.5") == "2023-06-15T10:20:30.500Z"

    def test_defaults_to_now(self):
        value = get_timestamp()
        assert len(value) == len("2023-01-01T00:00:00.000Z")
        assert value.endswith("Z")

    def test_rejects_garbage(self):
        with pytest.raises(ValueError):
            get_timestamp("yesterday")


class TestLocalTime:
    """Display time rendering in a fixed offset."""

    def test_renders_in_configured_offset(self):
        assert local_time("2023-01-01T00:00:00.000Z", "+07:00") == "01 Jan 2023, 07:00:00.000 +07:00"

    def test_negative_offset_crosses_date(self):
        assert local_time("2023-03-01T02:30:00.250Z", "-05:30") == "28 Feb 2023, 21:00:00.250 -05:30"

    def test_utc(self):
        assert local_time("2023-01-01T00:00:00.000Z", "Z") == "01 Jan 2023, 00:00:00.000 +00:00"


class TestParseUtcOffset:
    """UTC offset parsing."""

    @pytest.mark.parametrize("offset,expected", [
        ("+07:00", timedelta(hours=7)),
        ("-0530", -timedelta(hours=5, minutes=30)),
        ("+7", timedelta(hours=7)),
        ("10:00", timedelta(hours=10)),
        ("", timedelta(0)),
    ])
    def test_parses(self, offset, expected):
        assert parse_utc_offset(offset).utcoffset(None) == expected

    @pytest.mark.parametrize("offset", ["+25:00", "abc", "+07:0", "+07:99", "-0560"])
    def test_rejects_invalid(self, offset):
        with pytest.raises(ValueError):
            parse_utc_offset(offset)

    def test_format_round_trip(self):
        assert format_offset(parse_utc_offset("-03:30")) == "-03:30"
