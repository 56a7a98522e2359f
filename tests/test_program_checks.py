from datetime import date, datetime, time
from types import SimpleNamespace

from eventdesk.models import Registration
from eventdesk.models_program import TravelBooking
from eventdesk.routes.travel import travel_stats
from eventdesk.services.badge_validator import validate_badge_run
from eventdesk.services.csv_export import build_csv
from eventdesk.services.ics_generator import CalendarEvent, escape_ics_text, generate_ics, travel_itinerary_entries
from eventdesk.services.program_import import (
    clean_phone,
    group_program_rows,
    guess_session_type,
    parse_program_date,
    parse_time_range,
    read_csv_rows,
    role_bucket,
)
from eventdesk.services.schedule_conflicts import analyze_program, split_names, to_minutes

DAY = date(2026, 1, 12)


def session(id, name, hall, start, end, speakers=None, chairpersons=None, moderators=None):
    return SimpleNamespace(
        id=id,
        session_name=name,
        hall=hall,
        session_date=DAY,
        start_time=start,
        end_time=end,
        speakers=speakers,
        chairpersons=chairpersons,
        moderators=moderators,
    )


# ── Program conflicts ─────────────────────────────────────────────────────────


def test_faculty_double_booked_across_halls():
    sessions = [
        session("s1", "Heart Failure", "Hall A", time(9, 0), time(10, 0), speakers="Dr. Rao, Dr. Shah"),
        session("s2", "Imaging", "Hall B", time(9, 30), time(10, 30), chairpersons="dr. rao"),
    ]
    result = analyze_program(sessions)
    assert result["summary"]["facultyWithConflicts"] == 1
    conflict = result["facultyConflicts"][0]
    assert conflict["faculty"] == "Dr. Rao"
    assert {s["id"] for s in conflict["sessions"]} == {"s1", "s2"}
    assert result["hallOverlaps"] == []


def test_same_hall_is_an_overlap_not_a_faculty_conflict():
    sessions = [
        session("s1", "Opening", "Hall A", time(9, 0), time(10, 0), speakers="Dr. Rao"),
        session("s2", "Keynote", "Hall A", time(9, 45), time(10, 30), speakers="Dr. Rao"),
    ]
    result = analyze_program(sessions)
    assert result["facultyConflicts"] == []
    assert len(result["hallOverlaps"]) == 1
    assert result["hallOverlaps"][0]["overlapMinutes"] == 15
    assert result["summary"]["hasConflicts"] is True


def test_back_to_back_sessions_do_not_conflict():
    sessions = [
        session("s1", "Part 1", "Hall A", time(9, 0), time(10, 0), speakers="Dr. Rao"),
        session("s2", "Part 2", "Hall B", time(10, 0), time(11, 0), speakers="Dr. Rao"),
    ]
    assert analyze_program(sessions)["summary"]["hasConflicts"] is False


def test_split_names_and_minutes():
    assert split_names(" Dr. A ,, Dr. B ") == ["Dr. A", "Dr. B"]
    assert to_minutes("09:30") == 570
    assert to_minutes(None) == 0


# ── Badge pre-flight ──────────────────────────────────────────────────────────


def test_badge_run_without_template_is_invalid():
    result = validate_badge_run(None, [])
    assert result["valid"] is False
    assert result["errors"][0]["field"] == "template"


def test_missing_names_block_generation():
    template = SimpleNamespace(
        template_data={
            "elements": [
                {"type": "text", "content": "{{name}}"},
                {"type": "text", "content": "{{institution}}"},
                {"type": "qr_code", "content": "{{checkin_token}}"},
            ]
        }
    )
    registrations = [
        Registration(registration_number="R1", attendee_name="Meera", attendee_institution="AIIMS"),
        Registration(registration_number="R2", attendee_name=" ", attendee_institution=None),
    ]
    result = validate_badge_run(template, registrations)
    assert result["valid"] is False
    assert result["stats"]["missingNames"] == 1
    assert result["stats"]["missingInstitutions"] == 1
    assert result["stats"]["registrationsWithIssues"] == 1
    assert result["stats"]["placeholdersUsed"] == ["checkin_token", "institution", "name"]
    assert any("missing institution" in w["message"] for w in result["warnings"])


def test_template_without_qr_code_only_warns():
    template = SimpleNamespace(template_data={"elements": [{"type": "text", "content": "{{name}}"}]})
    result = validate_badge_run(template, [Registration(registration_number="R1", attendee_name="Meera")])
    assert result["valid"] is True
    assert [w["message"] for w in result["warnings"]] == ["Template has no QR code"]


# ── CSV and calendar output ───────────────────────────────────────────────────


def test_csv_quotes_separators_and_formats_values():
    content = build_csv(["Name", "Notes", "Paid", "Tags"], [["Rao, Meera", 'said "hi"', True, ["a", "b"]]])
    lines = content.splitlines()
    assert lines[0] == "Name,Notes,Paid,Tags"
    assert lines[1] == '"Rao, Meera","said ""hi""",Yes,"a, b"'


def test_ics_escapes_text_and_uses_crlf():
    ics = generate_ics(
        [CalendarEvent(title="Summit; Day 1", start=datetime(2026, 1, 12, 9), end=datetime(2026, 1, 12, 18))],
        calendar_name="Summit",
    )
    assert ics.startswith("BEGIN:VCALENDAR\r\n")
    assert "SUMMARY:Summit\\; Day 1" in ics
    assert "DTSTART:20260112T090000Z" in ics
    assert ics.endswith("END:VCALENDAR")
    assert escape_ics_text("a,b\nc") == "a\\,b\\nc"


def test_itinerary_has_legs_and_hotel():
    booking = TravelBooking(
        mode="flight",
        onward_carrier="IndiGo",
        onward_number="6E 201",
        onward_from="DEL",
        onward_to="PNQ",
        onward_departure=datetime(2026, 1, 11, 8, 0),
        hotel_name="Hotel Orchid",
        hotel_checkin=date(2026, 1, 11),
        hotel_checkout=date(2026, 1, 14),
    )
    entries = travel_itinerary_entries(booking, "Meera")
    assert [e.title for e in entries] == ["IndiGo 6E 201: DEL → PNQ", "Hotel: Hotel Orchid"]
    # Arrival defaults to two hours after departure
    assert entries[0].end == datetime(2026, 1, 11, 10, 0)


# ── Travel stats ──────────────────────────────────────────────────────────────


def test_travel_completion_counts_four_tasks_per_guest():
    bookings = [
        TravelBooking(id_proof_submitted=True, onward_status="booked", return_status="confirmed", onward_cost=5000),
        TravelBooking(id_proof_submitted=False, onward_status=None, return_status="pending", hotel_required=True),
    ]
    stats = travel_stats(bookings)
    assert stats["total"] == 2
    assert stats["onwardBooked"] == 1
    assert stats["onwardPending"] == 1
    assert stats["idMissing"] == 1
    assert stats["hotelRequired"] == 1
    assert stats["flightCost"] == 5000
    assert stats["completion"] == 38


def test_travel_stats_empty():
    assert travel_stats([])["completion"] == 0


# ── Program import parsing ────────────────────────────────────────────────────


def test_program_dates_and_times():
    assert parse_program_date("Day 1 - 12.01.2026") == date(2026, 1, 12)
    assert parse_program_date("12/01/2026") == date(2026, 1, 12)
    assert parse_program_date("2026-01-12") == date(2026, 1, 12)
    assert parse_program_date("31.02.2026") is None
    assert parse_time_range("10:30 – 10:45") == (time(10, 30), time(10, 45))
    assert parse_time_range("10:30 - 10:00") == (time(10, 30), None)
    assert parse_time_range("14:00") == (time(14, 0), None)
    assert parse_time_range("TBA") == (None, None)


def test_session_type_and_roles_are_inferred():
    assert guess_session_type("Panel Discussion on Stents") == "panel"
    assert guess_session_type("Annual Oration") == "keynote"
    assert guess_session_type("Tea Break") == "break"
    assert guess_session_type("Steak dinner talk") == "lecture"
    assert guess_session_type("Case review", track="Exam Preparation") == "other"
    assert role_bucket("Co-ordinator") == "chairperson"
    assert role_bucket("Debater") == "panelist"
    assert role_bucket(None) == "speaker"
    assert clean_phone("98765-43210") == "+919876543210"
    assert clean_phone("") is None


def test_rows_for_one_session_are_merged():
    rows = read_csv_rows(
        "Date,Time,Hall,Topic,Name,Role\n"
        "12.01.2026,09:00 - 10:00,Hall A,Imaging,Dr. Rao,Speaker\n"
        "12.01.2026,09:00 - 10:00,hall a,imaging,Dr. Iyer,Moderator\n"
        ",,,,,\n"
        "12.01.2026,09:00 - 10:00,Hall A,Imaging,Dr. Sen,Presenter\n"
    )
    sessions, unusable = group_program_rows(rows)
    assert unusable == []
    (session,) = sessions
    assert session.speakers == ["Dr. Rao"]
    assert session.moderators == ["Dr. Iyer"]
    assert session.description == "Presenter: Dr. Sen"
    assert [p.role for p in session.people] == ["speaker", "moderator", "speaker"]
