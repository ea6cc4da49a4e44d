from datetime import date

import pytest

from app.awass.utils import add_months, calculate_expiry, format_rupiah, parse_date, parse_positive_int


@pytest.mark.parametrize(
    "start, months, expected",
    [
        (date(2024, 1, 15), 1, date(2024, 2, 15)),
        (date(2024, 1, 31), 1, date(2024, 2, 29)),  # leap year
        (date(2023, 1, 31), 1, date(2023, 2, 28)),
        (date(2024, 8, 31), 1, date(2024, 9, 30)),
        (date(2024, 11, 30), 3, date(2025, 2, 28)),
        (date(2024, 2, 29), 12, date(2025, 2, 28)),
        (date(2024, 3, 1), 6, date(2024, 9, 1)),
    ],
)
def test_add_months_clamps_to_month_end(start, months, expected):
    assert add_months(start, months) == expected


def test_calculate_expiry_uses_plan_months():
    assert calculate_expiry(date(2024, 4, 5), 1) == date(2024, 5, 5)
    assert calculate_expiry(date(2024, 4, 5), 12) == date(2025, 4, 5)


def test_parse_date():
    assert parse_date("2024-02-29") == date(2024, 2, 29)
    assert parse_date(" ") is None
    assert parse_date(None) is None
    with pytest.raises(ValueError):
        parse_date("29/02/2024")


def test_parse_positive_int_falls_back():
    assert parse_positive_int("3", 1) == 3
    assert parse_positive_int("0", 20) == 20
    assert parse_positive_int("-5", 20) == 20
    assert parse_positive_int("abc", 20) == 20
    assert parse_positive_int(None, 20) == 20


def test_format_rupiah():
    assert format_rupiah(9_000_000) == "Rp 90.000"
    assert format_rupiah(75_000_000) == "Rp 750.000"
    assert format_rupiah(150) == "Rp 1,50"
    assert format_rupiah(0) == "Rp 0"
