"""Utility functions for fooddesk."""

import math
import uuid
from datetime import date, datetime, timezone, tzinfo
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

CENT = Decimal("0.01")
ZERO = Decimal("0")


def utc_now() -> str:
    """Return current UTC time as ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def generate_id() -> str:
    """Generate a new record ID."""
    return str(uuid.uuid4())


def to_decimal(value: Any) -> Decimal:
    """
    Convert a wire value (int, float, str, Decimal, None) to Decimal.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not its binary
    expansion. None and empty strings count as zero.

    Raises:
        ValueError: If the value is not a finite number.
    """
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Not a number: {value!r}")
    else:
        raise ValueError(f"Not a number: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def quantize_money(value: Decimal) -> Decimal:
    """Round to 2 decimal places with HALF_UP."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def money_to_json(value: Decimal) -> float | int:
    """Serialize a Decimal amount as a JSON number."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def format_currency(value: Any) -> str:
    """Format an amount the way the storefront displays it, e.g. ฿40.00."""
    try:
        amount = to_decimal(value)
    except ValueError:
        amount = ZERO
    return f"฿{quantize_money(amount):.2f}"


def safe_int(value: Any) -> int:
    """Coerce a requested quantity to a finite integer (anything else is 0)."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            return 0
        return int(value)
    if isinstance(value, Decimal):
        return int(value) if value.is_finite() else 0
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 0
        return int(number) if math.isfinite(number) else 0
    return 0


def parse_instant(value: str) -> datetime:
    """
    Parse an ISO 8601 instant ("2024-01-01T07:00:00.000Z" or with an offset).

    Naive values are taken as UTC.
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_instant(moment: datetime) -> str:
    """Format an aware datetime as a UTC ISO instant with millisecond precision."""
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def local_date(value: str, tz: tzinfo) -> date:
    """Calendar date of an ISO instant in the given timezone."""
    return parse_instant(value).astimezone(tz).date()


def date_key(day: date) -> str:
    """Key used for per-day markers, e.g. 2024-01-01."""
    return day.isoformat()
