"""Text and value formatting shared by the renderer and inspector."""

import json
import math
import re
from datetime import datetime
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Any

DEFAULT_CURRENCY = "USD"

# en-US display prefixes; codes without a narrow symbol are shown as "<CODE> ".
CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
    "CNY": "CN¥",
    "CAD": "CA$",
    "AUD": "A$",
    "NZD": "NZ$",
    "HKD": "HK$",
    "MXN": "MX$",
    "BRL": "R$",
    "KRW": "₩",
    "ILS": "₪",
    "VND": "₫",
    "PHP": "₱",
    "TWD": "NT$",
    "CHF": "CHF ",
    "SEK": "SEK ",
    "NOK": "NOK ",
    "DKK": "DKK ",
    "PLN": "PLN ",
    "CZK": "CZK ",
    "HUF": "HUF ",
    "ZAR": "ZAR ",
    "SGD": "SGD ",
    "AED": "AED ",
    "SAR": "SAR ",
    "TRY": "TRY ",
    "RUB": "RUB ",
    "NGN": "NGN ",
    "KES": "KES ",
    "EGP": "EGP ",
    "PKR": "PKR ",
    "THB": "THB ",
    "MYR": "MYR ",
    "IDR": "IDR ",
}

THINK_BLOCK = re.compile(r"<think>[\s\S]*?</think>", re.IGNORECASE)
BOLD_RUN = re.compile(r"\*\*(.+?)\*\*")
IMAGE_MARKERS = ("imageurl", "image_url", "avatar", "photo", "picture", "logourl")
IMAGE_EXTENSION = re.compile(r"\.(jpg|jpeg|png|gif|webp|svg)$", re.IGNORECASE)

# Wide enough to quantize any finite float to cents.
CURRENCY_CONTEXT = Context(prec=400, rounding=ROUND_HALF_UP)

DATE_FORMATS = (
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d",
    "%b %d, %Y %H:%M:%S",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %b %Y %H:%M:%S",
    "%d %b %Y",
    "%d %B %Y",
)


def to_number(value: Any) -> float | None:
    """Coerce ints, floats and numeric strings; None for anything else."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            return None
    if isinstance(value, str):
        if "_" in value:
            return None
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def is_numeric(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def format_currency(amount: Any, currency: str | None = DEFAULT_CURRENCY) -> str:
    """Format an amount as a grouped, 2-decimal, symbol-prefixed string.

    Absent or unknown currency codes fall back to USD. Values that are not
    numeric are returned as plain strings.
    """
    number = to_number(amount)
    if number is None or not math.isfinite(number):
        return js_string(amount)
    code = currency.strip().upper() if isinstance(currency, str) else ""
    symbol = CURRENCY_SYMBOLS.get(code, CURRENCY_SYMBOLS[DEFAULT_CURRENCY])
    quantized = Decimal(str(number)).quantize(Decimal("0.01"), context=CURRENCY_CONTEXT)
    sign = "-" if quantized < 0 else ""
    return f"{sign}{symbol}{abs(quantized):,.2f}"


def format_number(value: float | int) -> str:
    """Grouped number with at most three fraction digits."""
    if isinstance(value, int) or float(value).is_integer():
        return f"{int(value):,}"
    text = f"{value:,.3f}".rstrip("0").rstrip(".")
    return text


def parse_datetime(value: str) -> datetime | None:
    text = value.strip()
    if not text:
        return None
    iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return datetime.fromisoformat(iso)
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def format_datetime(value: Any) -> str:
    """Locale-style "M/D/YYYY, h:mm:ss AM" rendering; unparseable input is returned unchanged."""
    if not isinstance(value, str):
        return js_string(value)
    parsed = parse_datetime(value)
    if parsed is None:
        return value
    hour = parsed.hour % 12 or 12
    meridiem = "AM" if parsed.hour < 12 else "PM"
    return f"{parsed.month}/{parsed.day}/{parsed.year}, {hour}:{parsed.minute:02d}:{parsed.second:02d} {meridiem}"


def format_time(timestamp_ms: int) -> str:
    """Time of day for a message timestamp (epoch milliseconds)."""
    moment = datetime.fromtimestamp(timestamp_ms / 1000)
    hour = moment.hour % 12 or 12
    meridiem = "AM" if moment.hour < 12 else "PM"
    return f"{hour}:{moment.minute:02d}:{moment.second:02d} {meridiem}"


def strip_think(text: str) -> str:
    """Remove every <think>...</think> span and trim."""
    if not isinstance(text, str):
        return ""
    previous = None
    while previous != text:
        previous = text
        text = THINK_BLOCK.sub("", text)
    return text.strip()


def bold_segments(text: str) -> list[tuple[str, bool]]:
    """Split text into (segment, is_bold) pairs. Only **bold** is recognised."""
    segments = []
    position = 0
    for match in BOLD_RUN.finditer(text):
        if match.start() > position:
            segments.append((text[position:match.start()], False))
        segments.append((match.group(1), True))
        position = match.end()
    if position < len(text):
        segments.append((text[position:], False))
    return segments


def is_image_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    lower = value.lower()
    return any(marker in lower for marker in IMAGE_MARKERS) or bool(IMAGE_EXTENSION.search(lower))


def js_string(value: Any) -> str:
    """String coercion with JSON spellings for null, booleans and containers."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


def pretty_json(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)
