import pytest

from webhook_chat.formatting import (
    bold_segments,
    format_currency,
    format_datetime,
    format_number,
    is_image_url,
    js_string,
    strip_think,
    to_number,
)


@pytest.mark.parametrize(
    "amount, currency, expected",
    [
        (-1234.5, "USD", "-$1,234.50"),
        (1234.5, None, "$1,234.50"),
        (0.005, "USD", "$0.01"),
        (10, "EUR", "€10.00"),
        (99.999, "GBP", "£100.00"),
        (5, "CHF", "CHF 5.00"),
        (5, "XYZ", "$5.00"),
        ("42", "USD", "$42.00"),
    ],
)
def test_format_currency(amount, currency, expected):
    assert format_currency(amount, currency) == expected


def test_format_currency_non_numeric_is_stringified():
    assert format_currency("n/a", "USD") == "n/a"
    assert format_currency(None, "USD") == "null"


def test_format_currency_non_finite():
    assert format_currency(float("nan"), "USD") == "nan"


def test_to_number_excludes_bools():
    assert to_number(True) is None
    assert to_number(" 3.5 ") == 3.5
    assert to_number("abc") is None


def test_format_number():
    assert format_number(1234567) == "1,234,567"
    assert format_number(1234.5) == "1,234.5"
    assert format_number(2.0) == "2"


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2024-03-05T14:07:09Z", "3/5/2024, 2:07:09 PM"),
        ("2024-03-05T00:00:00", "3/5/2024, 12:00:00 AM"),
        ("2024-03-05", "3/5/2024, 12:00:00 AM"),
        ("not a date", "not a date"),
    ],
)
def test_format_datetime(value, expected):
    assert format_datetime(value) == expected


def test_strip_think_removes_all_blocks():
    assert strip_think("<think>a</think>Hello <THINK>b\nc</THINK>world ") == "Hello world"


def test_strip_think_is_idempotent():
    once = strip_think("<think>x</think> text")
    assert strip_think(once) == once


def test_strip_think_nested_fragments():
    assert strip_think("<thi<think>x</think>nk>y</think>ok") == "ok"


def test_bold_segments():
    assert bold_segments("Total **$5** due") == [("Total ", False), ("$5", True), (" due", False)]
    assert bold_segments("plain") == [("plain", False)]


@pytest.mark.parametrize(
    "value, expected",
    [
        ("https://cdn.example.com/logo.PNG", True),
        ("https://example.com/avatar/123", True),
        ("profile_photo", True),
        ("https://example.com/page", False),
        (12, False),
    ],
)
def test_is_image_url(value, expected):
    assert is_image_url(value) is expected


def test_js_string():
    assert js_string(None) == "null"
    assert js_string(False) == "false"
    assert js_string(3.0) == "3"
    assert js_string({"a": [1, 2]}) == '{"a":[1,2]}'


@pytest.mark.parametrize(
    "amount, expected",
    [
        (1e30, "$1,000,000,000,000,000,000,000,000,000,000.00"),
        (-2.5e22, "-$25,000,000,000,000,000,000,000.00"),
        (10**25, "$10,000,000,000,000,000,000,000,000.00"),
    ],
)
def test_format_currency_large_amounts(amount, expected):
    assert format_currency(amount, "USD") == expected


def test_underscore_numbers_are_not_numeric():
    assert to_number("1_000") is None
    assert format_currency("1_000", "USD") == "1_000"
