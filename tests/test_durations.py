from datetime import timedelta

import pytest

from temporalkit.durations import format_duration, parse_duration


@pytest.mark.parametrize(
    "text",
    ["1h0m0s", "1m30s", "1.5s", "250ms", "-2h3m4.005s", "72h0m0s", "1.5ms", "10\u00b5s"],
)
def test_round_trip_of_canonical_text(text):
    assert format_duration(parse_duration(text)) == text


def test_days_are_twenty_four_hours():
    assert parse_duration("2d") == parse_duration("48h")
    assert parse_duration("2d") == timedelta(days=2)


def test_retention_values():
    assert parse_duration("24h") == timedelta(hours=24)
    assert parse_duration("3d") == parse_duration("72h")


def test_zero_forms():
    assert parse_duration("0") == parse_duration("0s")
    assert not parse_duration("-0")


def test_format_zero():
    assert format_duration(timedelta(0)) == "0s"


def test_format_hour_includes_lower_units():
    assert format_duration(timedelta(hours=1)) == "1h0m0s"


def test_format_fractional_seconds():
    assert format_duration(timedelta(milliseconds=1500)) == "1.5s"


def test_format_integer_nanoseconds():
    assert format_duration(parse_duration("90s") // timedelta(microseconds=1) * 1000) == format_duration(
        parse_duration("1m30s")
    )


def test_mixed_units_sum():
    assert parse_duration("1h30m") == parse_duration("90m")
    assert parse_duration("1.5h") == parse_duration("90m")


def test_sign_handling():
    assert parse_duration("-1h") == -parse_duration("1h")
    assert parse_duration("+1h") == parse_duration("1h")


@pytest.mark.parametrize("text", ["", "-", "abc", ".s", "1h."])
def test_invalid_duration(text):
    with pytest.raises(ValueError):
        parse_duration(text)


def test_missing_unit():
    with pytest.raises(ValueError, match="missing unit"):
        parse_duration("1")


def test_unknown_unit():
    with pytest.raises(ValueError, match="unknown unit"):
        parse_duration("1x")


def test_overflow():
    with pytest.raises(ValueError, match="invalid duration"):
        parse_duration("9999999999999h")


def test_format_rejects_other_types():
    with pytest.raises(TypeError):
        format_duration("1h")