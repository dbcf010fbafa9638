import pytest

from hwcheck.units import format_size, parse_duration, parse_size


def test_duration_plain_number_is_seconds():
    assert parse_duration("90") == 90


def test_duration_empty_is_zero():
    assert parse_duration("") == 0


def test_duration_minutes_match_seconds():
    assert parse_duration("1m") == parse_duration("60s")


def test_duration_hours_and_minutes_add_up():
    assert parse_duration("1h30m") == parse_duration("1h") + parse_duration("30m")


def test_duration_scales_linearly():
    assert parse_duration("10m") == 10 * parse_duration("1m")


def test_duration_rejects_garbage():
    with pytest.raises(ValueError):
        parse_duration("soon")


def test_size_units_are_binary_steps():
    assert parse_size("1M") == 1024 * parse_size("1K")
    assert parse_size("1G") == 1024 * parse_size("1M")


def test_size_plain_number():
    assert parse_size("512") == 512


def test_size_rate_with_suffix_matches_plain_prefix():
    assert parse_size("53.5 MB/s") == parse_size("53.5M")


def test_size_accepts_cyrillic_prefix_and_decimal_comma():
    assert parse_size("53,5 МБ/с") == parse_size("53.5 MB/s")


def test_size_empty_is_zero():
    assert parse_size("") == 0


def test_size_rejects_garbage():
    with pytest.raises(ValueError):
        parse_size("fast")


@pytest.mark.parametrize("value", [1.0, 700.0, 5000.0, 3.5e6, 1.2e9, 7.7e12])
def test_format_then_parse_round_trips(value):
    text = format_size(value, "B")
    assert parse_size(text) == pytest.approx(value, rel=0.05)


def test_format_keeps_suffix():
    assert format_size(parse_size("4M"), "B/s").endswith("MB/s")


def test_format_small_value_has_no_prefix():
    assert format_size(512, "B") == "512.0 B"