from decimal import Decimal

import pytest

from portal.services.money import MAX_MINOR_UNITS, format_currency, to_minor_units


@pytest.mark.parametrize(
    "raw, cents",
    [
        ("19.99", 1999),
        (19.99, 1999),
        ("250", 25000),
        (250, 25000),
        ("0.125", 13),
        (" 1,234.5 ", 123450),
        (Decimal("0.01"), 1),
        ("0", 0),
    ],
)
def test_to_minor_units(raw, cents):
    assert to_minor_units(raw) == cents


@pytest.mark.parametrize("raw", [None, "", "   ", "abc", "-1", "-0.01", "NaN", "Infinity", True, "21474836.48", "1e12"])
def test_to_minor_units_rejects_bad_input(raw):
    with pytest.raises(ValueError):
        to_minor_units(raw)


def test_entered_amount_formats_back_unchanged():
    assert format_currency(to_minor_units("19.99")) == "$19.99"


@pytest.mark.parametrize(
    "cents, currency, expected",
    [
        (1999, "usd", "$19.99"),
        (25000, "USD", "$250.00"),
        (123456789, "usd", "$1,234,567.89"),
        (500, "eur", "€5.00"),
        (500, "gbp", "£5.00"),
        (1000, "jpy", "JPY 10.00"),
        (0, None, "$0.00"),
        (None, "usd", "$0.00"),
    ],
)
def test_format_currency(cents, currency, expected):
    assert format_currency(cents, currency) == expected


def test_largest_storable_amount_is_accepted():
    assert to_minor_units("21474836.47") == MAX_MINOR_UNITS
