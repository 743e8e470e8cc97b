from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any, Iterable

from bizledger.time_utils import parse_iso_date, parse_iso_datetime

# Largest amount any money field accepts
MAX_AMOUNT = 9_999_999.99


class ValidationError(ValueError):
    """400-level input problem."""


def require_payload(payload: Any, allowed: Iterable[str] | None = None) -> dict:
    """Body must be a JSON object; optionally reject keys outside the allowlist."""
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    if allowed is not None:
        allowed = set(allowed)
        for key in payload:
            if key not in allowed:
                raise ValidationError(f"Field not allowed: {key}")
    return payload


def require_text(value: Any, field: str, *, max_length: int = 255, required: bool = True) -> str | None:
    if value is None:
        if required:
            raise ValidationError(f"{field} is required")
        return None
    text = str(value).strip()
    if not text:
        if required:
            raise ValidationError(f"{field} cannot be blank")
        return None
    if len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def _to_number(value: Any, field: str) -> float:
    # bool is an int subclass; "true" is never a price
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        stripped = value.strip().replace(",", ".")
        if not stripped:
            raise ValidationError(f"{field} must be a number")
        try:
            number = float(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if math.isnan(number) or math.isinf(number):
        raise ValidationError(f"{field} must be a finite number")
    return number


def parse_amount(value: Any, field: str = "amount", *, allow_zero: bool = True) -> float:
    """Non-negative money value (strictly positive when allow_zero=False)."""
    if value is None:
        raise ValidationError(f"{field} is required")
    number = _to_number(value, field)
    if number < 0 or (not allow_zero and number == 0):
        raise ValidationError(f"{field} must be {'>= 0' if allow_zero else '> 0'}")
    if number > MAX_AMOUNT:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT:,.2f}")
    return number


def parse_percent(value: Any, field: str, *, maximum: float | None = 100.0) -> float:
    """Percentage >= 0; capped at maximum (None for uncapped, e.g. profit margin)."""
    if value is None or value == "":
        return 0.0
    number = _to_number(value, field)
    if number < 0:
        raise ValidationError(f"{field} must be >= 0")
    if maximum is not None and number > maximum:
        raise ValidationError(f"{field} must be <= {maximum:g}")
    return number


def parse_quantity(value: Any, field: str = "quantity", *, allow_zero: bool = False) -> int:
    """
    Whole-unit quantity.

    Rejects decimals ("2.5"), scientific notation and booleans.
    """
    if value is None:
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        number = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{field} must be an integer, not a decimal")
        number = int(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped.lstrip("-").isdigit():
            raise ValidationError(f"{field} must be an integer")
        number = int(stripped)
    else:
        raise ValidationError(f"{field} must be an integer")

    if number < 0 or (not allow_zero and number == 0):
        raise ValidationError(f"{field} must be {'>= 0' if allow_zero else '> 0'}")
    return number


def parse_date(value: Any, field: str = "date", *, required: bool = True) -> date | None:
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return parse_iso_date(str(value))
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 date (YYYY-MM-DD)")


def parse_datetime(value: Any, field: str, *, required: bool = True) -> datetime | None:
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if isinstance(value, datetime):
        return value
    try:
        return parse_iso_datetime(str(value))
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")


def parse_bool(value: Any, field: str, *, default: bool | None = None) -> bool:
    if value is None:
        if default is None:
            raise ValidationError(f"{field} is required")
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "yes", "on"}:
            return True
        if lowered in {"false", "0", "no", "off"}:
            return False
    raise ValidationError(f"{field} must be a boolean")


def parse_choice(value: Any, field: str, choices: Iterable[str]) -> str:
    choices = tuple(choices)
    if value not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(choices)}")
    return value
