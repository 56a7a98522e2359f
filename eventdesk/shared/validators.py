"""Shared validation utilities"""

import re
from typing import Any, Optional

from pydantic import BaseModel
from sqlalchemy import inspect as sa_inspect

# Same permissive shape used by the public submission endpoints
SIMPLE_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MAX_PAGE_SIZE = 500


def is_valid_email(email: Optional[str]) -> bool:
    return bool(email) and bool(SIMPLE_EMAIL_PATTERN.match(email.strip()))


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase, stripped email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()
    if not is_valid_email(email):
        raise ValueError("Invalid email format")
    return email


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize a phone number to E.164.

    Ten-digit numbers are treated as Indian mobiles (+91). Numbers already
    carrying a country code keep it.

    Raises:
        ValueError: If the number has too few or too many digits
    """
    if not phone:
        return phone

    digits = re.sub(r"\D", "", phone)

    if len(digits) == 10:
        return f"+91{digits}"
    if len(digits) == 12 and digits.startswith("91"):
        return f"+{digits}"
    if 8 <= len(digits) <= 15 and phone.strip().startswith("+"):
        return f"+{digits}"

    raise ValueError("Phone number must be 10 digits or include a country code")


def to_provider_number(phone: str) -> str:
    """Digits-only number with country code, as SMS/WhatsApp vendors expect"""
    digits = re.sub(r"\D", "", phone or "")
    if len(digits) == 10:
        digits = f"91{digits}"
    return digits


def clamp_pagination(page: Optional[int], limit: Optional[int], default_limit: int = 50) -> tuple[int, int]:
    """Return (page, limit) with page >= 1 and 1 <= limit <= MAX_PAGE_SIZE"""
    page = max(1, page or 1)
    limit = default_limit if limit is None else limit
    limit = min(max(1, limit), MAX_PAGE_SIZE)
    return page, limit


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (value or "").lower()).strip("-")
    return slug or "untitled"


def model_updates(data: BaseModel, instance, **dump_options) -> dict[str, Any]:
    """
    Fields the client set on a PATCH body, ready for setattr on the row.
    An explicit null for a column that cannot hold NULL is dropped.
    """
    columns = sa_inspect(type(instance)).columns
    updates = data.model_dump(exclude_unset=True, **dump_options)
    return {
        key: value
        for key, value in updates.items()
        if value is not None or key not in columns or columns[key].nullable
    }
