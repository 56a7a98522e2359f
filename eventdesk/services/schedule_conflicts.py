"""
Program conflict detection

Two checks over an event's sessions:
- faculty double-booking: the same person on stage in two halls at once
- hall overlaps: two sessions in one hall whose times overlap

Sessions are compared pairwise after sorting by start time, so only adjacent
overlaps are reported per person/date and per hall/date.
"""

from collections import defaultdict
from datetime import time
from typing import Optional, Union

FACULTY_FIELDS = (("speakers", "Speaker"), ("chairpersons", "Chairperson"), ("moderators", "Moderator"))


def to_minutes(value: Optional[Union[time, str]]) -> int:
    if value is None or value == "":
        return 0
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    hours, minutes = str(value).split(":")[:2]
    return int(hours) * 60 + int(minutes)


def format_hhmm(value: Optional[Union[time, str]]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, time):
        return value.strftime("%H:%M")
    return str(value)[:5]


def split_names(value: Optional[str]) -> list[str]:
    return [name.strip() for name in (value or "").split(",") if name.strip()]


def _schedulable(session) -> bool:
    return bool(session.session_date and session.start_time is not None and session.end_time is not None)


def _session_summary(session, role: Optional[str] = None) -> dict:
    summary = {
        "id": session.id,
        "name": session.session_name,
        "hall": session.hall,
        "date": session.session_date.isoformat() if session.session_date else None,
        "startTime": format_hhmm(session.start_time),
        "endTime": format_hhmm(session.end_time),
    }
    if role:
        summary["role"] = role
    return summary


def build_faculty_schedule(sessions: list) -> tuple[dict[str, list[tuple]], dict[str, str]]:
    """
    Map lowercase faculty name -> [(session, role), ...] and
    lowercase name -> the first spelling seen, for display.
    """
    schedule: dict[str, list[tuple]] = defaultdict(list)
    display: dict[str, str] = {}

    for session in sessions:
        for field, role in FACULTY_FIELDS:
            for name in split_names(getattr(session, field, None)):
                key = name.lower()
                schedule[key].append((session, role))
                display.setdefault(key, name)

    return schedule, display


def find_faculty_conflicts(sessions: list) -> list[dict]:
    schedule, display = build_faculty_schedule([s for s in sessions if _schedulable(s)])
    conflicts = []

    for key, entries in schedule.items():
        by_date: dict = defaultdict(list)
        for session, role in entries:
            by_date[session.session_date].append((session, role))

        clashing: dict[str, dict] = {}
        for day_entries in by_date.values():
            ordered = sorted(day_entries, key=lambda item: to_minutes(item[0].start_time))
            for (current, current_role), (nxt, next_role) in zip(ordered, ordered[1:]):
                if to_minutes(current.end_time) > to_minutes(nxt.start_time) and current.hall != nxt.hall:
                    clashing.setdefault(current.id, _session_summary(current, current_role))
                    clashing.setdefault(nxt.id, _session_summary(nxt, next_role))

        if clashing:
            conflicts.append(
                {
                    "faculty": display[key],
                    "sessions": list(clashing.values()),
                    "count": len(clashing),
                }
            )

    conflicts.sort(key=lambda c: (-c["count"], c["faculty"].lower()))
    return conflicts


def find_hall_overlaps(sessions: list) -> list[dict]:
    by_hall: dict[tuple, list] = defaultdict(list)
    for session in sessions:
        if session.hall and _schedulable(session):
            by_hall[(session.session_date, session.hall)].append(session)

    overlaps = []
    for (day, hall), hall_sessions in sorted(by_hall.items(), key=lambda item: (item[0][0], item[0][1])):
        ordered = sorted(hall_sessions, key=lambda s: to_minutes(s.start_time))
        for current, nxt in zip(ordered, ordered[1:]):
            current_end = to_minutes(current.end_time)
            next_start = to_minutes(nxt.start_time)
            if current_end > next_start:
                overlaps.append(
                    {
                        "hall": hall,
                        "date": day.isoformat(),
                        "session1": {
                            "id": current.id,
                            "name": current.session_name,
                            "start": format_hhmm(current.start_time),
                            "end": format_hhmm(current.end_time),
                        },
                        "session2": {
                            "id": nxt.id,
                            "name": nxt.session_name,
                            "start": format_hhmm(nxt.start_time),
                            "end": format_hhmm(nxt.end_time),
                        },
                        "overlapMinutes": current_end - next_start,
                    }
                )

    return overlaps


def analyze_program(sessions: list) -> dict:
    faculty_conflicts = find_faculty_conflicts(sessions)
    hall_overlaps = find_hall_overlaps(sessions)
    return {
        "facultyConflicts": faculty_conflicts,
        "hallOverlaps": hall_overlaps,
        "summary": {
            "sessionsAnalyzed": len(sessions),
            "facultyWithConflicts": len(faculty_conflicts),
            "hallOverlaps": len(hall_overlaps),
            "hasConflicts": bool(faculty_conflicts or hall_overlaps),
        },
    }
