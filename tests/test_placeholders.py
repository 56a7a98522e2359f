from datetime import date

from eventdesk.models import Event, Registration, TicketType
from eventdesk.services.placeholders import (
    find_placeholders,
    format_event_dates,
    message_context,
    personalize_message,
    registration_values,
    render_template_text,
)


def sample_event() -> Event:
    return Event(
        name="Cardiology Summit",
        start_date=date(2026, 1, 12),
        end_date=date(2026, 1, 14),
        venue_name="Convention Centre",
        city="Pune",
    )


def sample_registration() -> Registration:
    return Registration(
        registration_number="CARD100",
        attendee_name="Dr. Meera Rao",
        attendee_email="meera@example.com",
        attendee_institution="AIIMS",
        checkin_token="tok123",
        total_amount=1180.0,
        ticket_type=TicketType(name="Delegate"),
    )


def test_event_dates_span():
    assert format_event_dates(sample_event()) == "12 Jan - 14 Jan 2026"
    assert format_event_dates(Event(name="x", start_date=date(2026, 1, 12))) == ""


def test_registration_values_cover_badge_fields():
    values = registration_values(
        sample_registration(), sample_event(), base_url="https://eventdesk.test/", today=date(2026, 1, 14)
    )
    assert values["name"] == "Dr. Meera Rao"
    assert values["ticket_type"] == "Delegate"
    assert values["institution"] == "AIIMS"
    assert values["verification_url"] == "https://eventdesk.test/v/tok123"
    assert values["issue_date"] == "14 January 2026"
    assert values["addons"] == ""


def test_unknown_placeholders_are_left_untouched():
    text = "Hello {{name}}, see you at {{venue_hall}}"
    assert render_template_text(text, {"name": "Meera"}) == "Hello Meera, see you at {{venue_hall}}"


def test_find_placeholders():
    assert find_placeholders("{{name}} - {{institution}} {{name}}") == {"name", "institution"}
    assert find_placeholders(None) == set()


def test_personalize_message_is_case_insensitive_and_escapes():
    context = {"name": "<b>Meera</b>", "event_name": "Summit"}
    assert personalize_message("Hi {{NAME}} at {{Event_Name}}", context) == "Hi <b>Meera</b> at Summit"
    escaped = personalize_message("Hi {{name}}", context, escape=True)
    assert "<b>" not in escaped
    assert "Meera" in escaped


def test_message_context():
    context = message_context(sample_registration(), sample_event())
    assert context["registration_id"] == "CARD100"
    assert context["venue"] == "Convention Centre, Pune"
    assert context["amount"] == "1180"
