"""Human-readable identifiers for registrations, payments and abstracts"""

import random
import string
import time
from datetime import datetime
from typing import Optional

BASE36_ALPHABET = string.digits + string.ascii_uppercase


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def next_registration_number(settings=None, today: Optional[datetime] = None) -> str:
    """
    Registration number for a new registration.

    With customised ids the number is prefix + max(start, current + 1) + suffix
    and settings.current_registration_number is advanced (caller commits).
    Otherwise REG-YYYYMMDD-NNNN with a random four-digit tail.
    """
    if settings is not None and settings.customize_registration_id:
        start = settings.registration_start_number or 1
        current = settings.current_registration_number or 0
        number = max(start, current + 1)
        settings.current_registration_number = number
        return f"{settings.registration_prefix or ''}{number}{settings.registration_suffix or ''}"

    today = today or datetime.utcnow()
    return f"REG-{today.strftime('%Y%m%d')}-{random.randint(1000, 9999)}"


def generate_payment_number() -> str:
    stamp = to_base36(int(time.time() * 1000))
    tail = "".join(random.choices(BASE36_ALPHABET, k=4))
    return f"PAY-{stamp}-{tail}"


def format_abstract_number(year: int, sequence: int) -> str:
    return f"ABS-{year}-{sequence:03d}"
