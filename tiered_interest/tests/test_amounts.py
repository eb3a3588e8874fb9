import math

import pytest

from tiered_interest.core.amounts import format_amount, parse_amount


@pytest.mark.parametrize(
    "text, expected",
    [
        ("600000", 600000.0),
        ("5 Lakh", 500000.0),
        ("2.5 lakh", 250000.0),
        ("1.2 Crore", 12000000.0),
        ("Above ₹1.00 Lakh upto ₹5.00 Lakh", 500000.0),
        ("1,00,000", 100000.0),
        ("₹ 75,000.50", 75000.5),
        ("", 0.0),
        ("no digits here", 0.0),
        (None, 0.0),
        (1234.5, 1234.5),
        (42, 42.0),
    ],
)
def test_parse_amount(text, expected):
    assert math.isclose(parse_amount(text), expected)


@pytest.mark.parametrize(
    "value, expected",
    [
        (0, "0.00"),
        (999.5, "999.50"),
        (4000, "4,000.00"),
        (636500, "6,36,500.00"),
        (12345678.905, "1,23,45,678.91"),
        (-1500.25, "-1,500.25"),
    ],
)
def test_format_amount_numeric_uses_indian_grouping(value, expected):
    assert format_amount(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        (50000, "₹50000.00"),
        (100000, "₹1.00 Lakh"),
        (250000, "₹2.50 Lakh"),
        (10000000, "₹1.00 Crore"),
        (500000000, "₹50.00 Crore"),
    ],
)
def test_format_amount_text_uses_magnitude_words(value, expected):
    assert format_amount(value, "text") == expected


@pytest.mark.parametrize("style", ["numeric", "text"])
def test_unbounded_amount_renders_as_above(style):
    assert format_amount(math.inf, style) == "Above"
    assert format_amount(None, style) == "Above"
