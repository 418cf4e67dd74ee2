from __future__ import annotations

import re
from datetime import date

from .errors import ValidationError

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_iso_date(value, field: str) -> date:
    """Accept a ``date`` or a ``YYYY-MM-DD`` string; anything else is invalid."""
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    if not ISO_DATE_RE.match(text):
        raise ValidationError(f"{field} must be YYYY-MM-DD")
    try:
        return date.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"{field} is not a valid date") from None


def require_text(value, field: str) -> str:
    text = (value or "").strip() if isinstance(value, str) or value is None else str(value).strip()
    if not text:
        raise ValidationError(f"{field} is required")
    return text


def check_int_range(value, field: str, low: int = 0, high: int | None = None) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer") from None
    if number < low or (high is not None and number > high):
        bound = f"between {low} and {high}" if high is not None else f">= {low}"
        raise ValidationError(f"{field} must be {bound}")
    return number
