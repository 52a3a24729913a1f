"""Shared validation utilities"""

import re
import unicodedata
from datetime import date, datetime, timezone
from typing import Optional

from .errors import BadRequestError

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

SLUG_MAX_LENGTH = 50


def validate_time(value: str) -> str:
    """
    Validate a 24-hour clock time.

    Args:
        value: Time string, e.g. "08:30"

    Returns:
        The same string

    Raises:
        ValueError: If the value is not HH:mm
    """
    if not isinstance(value, str) or not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:mm format")
    return value


def validate_date(value: str) -> str:
    """
    Validate a calendar date string.

    Raises:
        ValueError: If the value is not a real YYYY-MM-DD date
    """
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise ValueError("Date must be in YYYY-MM-DD format")
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError as e:
        raise ValueError("Date must be in YYYY-MM-DD format") from e
    return value


def parse_date(value: str) -> date:
    return datetime.strptime(validate_date(value), "%Y-%m-%d").date()


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO date or datetime into a naive UTC datetime"""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Strip everything except digits and a leading +.

    Raises:
        ValueError: If fewer than 10 digits remain
    """
    if not phone:
        return phone

    phone = phone.strip()
    prefix = "+" if phone.startswith("+") else ""
    digits = re.sub(r"\D", "", phone)

    if len(digits) < 10 or len(digits) > 15:
        raise ValueError("Phone number must have between 10 and 15 digits")

    return f"{prefix}{digits}"


def slugify(name: str) -> str:
    """Lowercase, accent-free, hyphen separated slug"""
    normalized = unicodedata.normalize("NFKD", name)
    ascii_only = normalized.encode("ascii", "ignore").decode("ascii").lower()
    slug = re.sub(r"[^a-z0-9]+", "-", ascii_only).strip("-")
    return slug[:SLUG_MAX_LENGTH].strip("-")


def parse_query_date(value: str, field: str = "date") -> date:
    """parse_date for query-string input; malformed values become a 400"""
    try:
        return parse_date(value)
    except ValueError as e:
        raise BadRequestError(f"{field} must be in YYYY-MM-DD format") from e
