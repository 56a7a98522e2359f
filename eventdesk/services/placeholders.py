"""
{{placeholder}} rendering for badges, certificates and outgoing messages
"""

import re
from datetime import date, datetime
from typing import Any, Optional

from ..config import APP_URL
from ..security_utils import escape_html

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")


def find_placeholders(text: Optional[str]) -> set[str]:
    if not text:
        return set()
    return set(PLACEHOLDER_PATTERN.findall(text))


def short_date(value: date) -> str:
    return f"{value.day} {value.strftime('%b')}"


def long_date(value: date) -> str:
    return f"{value.day} {value.strftime('%B')} {value.year}"


def format_event_dates(event) -> str:
    """'12 Jan - 14 Jan 2026', or '' when either date is missing"""
    if event is None or not event.start_date or not event.end_date:
        return ""
    return f"{short_date(event.start_date)} - {short_date(event.end_date)} {event.end_date.year}"


def verification_url(registration, base_url: Optional[str] = None) -> str:
    token = registration.checkin_token or registration.registration_number
    return f"{(base_url if base_url is not None else APP_URL).rstrip('/')}/v/{token}"


def registration_values(registration, event, base_url: Optional[str] = None, today: Optional[date] = None) -> dict[str, str]:
    """Every placeholder a badge or certificate can use, as strings"""
    addon_names = ", ".join(
        ra.addon.name for ra in (registration.addons or []) if ra.addon is not None and ra.addon.name
    )
    verify = verification_url(registration, base_url)
    issued = long_date(today or datetime.utcnow().date())

    return {
        "name": registration.attendee_name or "",
        "registration_number": registration.registration_number or "",
        "ticket_type": registration.ticket_type.name if registration.ticket_type else "",
        "email": registration.attendee_email or "",
        "phone": registration.attendee_phone or "",
        "institution": registration.attendee_institution or "",
        "designation": registration.attendee_designation or "",
        "event_name": event.name if event else "",
        "event_date": format_event_dates(event),
        "addons": addon_names,
        "checkin_token": registration.checkin_token or registration.registration_number or "",
        "verification_url": verify,
        "verify_url": verify,
        "checkin_url": verify,
        "issue_date": issued,
        "today": issued,
    }


def render_template_text(text: Optional[str], values: dict[str, Any]) -> str:
    """Replace known {{keys}}; unknown placeholders are left untouched"""
    if not text:
        return ""

    def replace(match):
        key = match.group(1)
        if key in values:
            return str(values[key] if values[key] is not None else "")
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(replace, text)


def message_context(registration, event) -> dict[str, str]:
    """Variables available to message templates and bulk sends"""
    venue = ", ".join(p for p in [event.venue_name, event.city] if p) if event else ""
    return {
        "name": registration.attendee_name or "",
        "registration_id": registration.registration_number or "",
        "event_name": event.name if event else "",
        "event_date": format_event_dates(event),
        "venue": venue,
        "ticket_type": registration.ticket_type.name if registration.ticket_type else "",
        "amount": f"{registration.total_amount:g}" if registration.total_amount is not None else "",
    }


def personalize_message(text: Optional[str], context: dict[str, Any], escape: bool = False) -> str:
    """Case-insensitive {{variable}} replacement; values are HTML-escaped for email bodies"""
    if not text:
        return text or ""
    lowered = {k.lower(): v for k, v in context.items()}

    def replace(match):
        key = match.group(1).lower()
        if key not in lowered:
            return match.group(0)
        value = lowered[key]
        return escape_html(value) if escape else ("" if value is None else str(value))

    return PLACEHOLDER_PATTERN.sub(replace, text)
