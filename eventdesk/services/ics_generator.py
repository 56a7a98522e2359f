"""iCalendar (.ics) generation for events and travel itineraries"""

import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

PRODID = "-//EventDesk//Event Calendar//EN"
HOTEL_CHECKIN_TIME = time(14, 0)
HOTEL_CHECKOUT_TIME = time(11, 0)


@dataclass
class CalendarEvent:
    title: str
    start: datetime
    end: datetime
    description: Optional[str] = None
    location: Optional[str] = None
    url: Optional[str] = None
    organizer: Optional[str] = None


def format_ics_datetime(value: datetime) -> str:
    """UTC YYYYMMDDTHHMMSSZ; naive datetimes are taken as UTC"""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y%m%dT%H%M%SZ")


def escape_ics_text(text: str) -> str:
    return text.replace("\\", "\\\\").replace(";", "\\;").replace(",", "\\,").replace("\n", "\\n")


def _vevent(event: CalendarEvent, stamp: datetime) -> list[str]:
    lines = [
        "BEGIN:VEVENT",
        f"UID:{uuid.uuid4().hex}@eventdesk",
        f"DTSTAMP:{format_ics_datetime(stamp)}",
        f"DTSTART:{format_ics_datetime(event.start)}",
        f"DTEND:{format_ics_datetime(event.end)}",
        f"SUMMARY:{escape_ics_text(event.title)}",
    ]
    if event.description:
        lines.append(f"DESCRIPTION:{escape_ics_text(event.description)}")
    if event.location:
        lines.append(f"LOCATION:{escape_ics_text(event.location)}")
    if event.url:
        lines.append(f"URL:{event.url}")
    if event.organizer:
        lines.append(f"ORGANIZER:mailto:{event.organizer}")
    lines += [
        "BEGIN:VALARM",
        "TRIGGER:-PT2H",
        "ACTION:DISPLAY",
        "DESCRIPTION:Reminder",
        "END:VALARM",
        "END:VEVENT",
    ]
    return lines


def generate_ics(events: list[CalendarEvent], calendar_name: Optional[str] = None) -> str:
    stamp = datetime.now(timezone.utc)
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
    ]
    if calendar_name:
        lines.append(f"X-WR-CALNAME:{escape_ics_text(calendar_name)}")
    for event in events:
        lines += _vevent(event, stamp)
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines)


def event_calendar_entry(event, url: Optional[str] = None) -> CalendarEvent:
    """All-day style entry spanning the event's dates (09:00 first day to 18:00 last day)"""
    start_day: date = event.start_date or datetime.utcnow().date()
    end_day: date = event.end_date or start_day
    location = ", ".join(p for p in [event.venue_name, event.city, event.state] if p)
    return CalendarEvent(
        title=event.name,
        start=datetime.combine(start_day, time(9, 0)),
        end=datetime.combine(end_day, time(18, 0)),
        description=event.description,
        location=location or None,
        url=url,
        organizer=event.contact_email,
    )


def _leg_event(booking, leg: str, guest_name: str) -> Optional[CalendarEvent]:
    departure = getattr(booking, f"{leg}_departure")
    if departure is None:
        return None
    arrival = getattr(booking, f"{leg}_arrival") or departure + timedelta(hours=2)
    carrier = getattr(booking, f"{leg}_carrier") or ""
    number = getattr(booking, f"{leg}_number") or ""
    origin = getattr(booking, f"{leg}_from") or ""
    destination = getattr(booking, f"{leg}_to") or ""
    pnr = getattr(booking, f"{leg}_pnr")

    description = f"{(booking.mode or 'travel').title()}: {carrier} {number}\nPassenger: {guest_name}\n"
    if pnr:
        description += f"PNR: {pnr}\n"
    description += f"From: {origin}\nTo: {destination}"

    return CalendarEvent(
        title=f"{carrier} {number}: {origin} → {destination}".strip(),
        start=departure,
        end=arrival,
        description=description,
        location=origin or None,
    )


def travel_itinerary_entries(booking, guest_name: str) -> list[CalendarEvent]:
    entries = []
    for leg in ("onward", "return"):
        entry = _leg_event(booking, leg, guest_name)
        if entry:
            entries.append(entry)

    if booking.hotel_name and booking.hotel_checkin and booking.hotel_checkout:
        description = f"Hotel: {booking.hotel_name}\nGuest: {guest_name}\n"
        if booking.hotel_confirmation:
            description += f"Confirmation: {booking.hotel_confirmation}\n"
        if booking.hotel_address:
            description += f"Address: {booking.hotel_address}\n"
        description += f"Check-in: {booking.hotel_checkin.isoformat()} (2:00 PM)\n"
        description += f"Check-out: {booking.hotel_checkout.isoformat()} (11:00 AM)"
        entries.append(
            CalendarEvent(
                title=f"Hotel: {booking.hotel_name}",
                start=datetime.combine(booking.hotel_checkin, HOTEL_CHECKIN_TIME),
                end=datetime.combine(booking.hotel_checkout, HOTEL_CHECKOUT_TIME),
                description=description,
                location=booking.hotel_address or booking.hotel_name,
            )
        )
    return entries
