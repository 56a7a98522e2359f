"""
Program spreadsheet parsing

Accepts two layouts: the printed-program sheet with one row per person
(Date, Time, Hall, Session, Topic, Name, Role, Email, Mobile) and the
program export (Date, Start, End, Hall, Session, Type, Track, Speakers,
Chairpersons, Moderators). Rows for the same session are merged.
"""

import csv
import logging
import re
from dataclasses import dataclass, field
from datetime import date, time
from io import StringIO
from typing import Any, Optional

from .schedule_conflicts import split_names

logger = logging.getLogger(__name__)

DOTTED_DATE = re.compile(r"(\d{1,2})\.(\d{1,2})\.(\d{4})")
SLASHED_DATE = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})")
ISO_DATE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")
TIME_RANGE = re.compile(r"(\d{1,2}):(\d{2})\s*[-–]\s*(\d{1,2}):(\d{2})")
SINGLE_TIME = re.compile(r"(\d{1,2}):(\d{2})")

SESSION_TYPES = ("lecture", "panel", "workshop", "keynote", "break", "other")

SESSION_TYPE_KEYWORDS = [
    ("panel", ("panel", "discussion")),
    ("keynote", ("keynote", "oration")),
    ("workshop", ("workshop",)),
    ("break", ("break", "lunch", "tea")),
]


@dataclass
class ImportedPerson:
    name: str
    role: str
    email: Optional[str] = None
    phone: Optional[str] = None


@dataclass
class ImportedSession:
    session_name: str
    session_date: date
    start_time: time
    end_time: Optional[time]
    hall: Optional[str]
    track: Optional[str]
    session_type: str
    speakers: list[str] = field(default_factory=list)
    chairpersons: list[str] = field(default_factory=list)
    moderators: list[str] = field(default_factory=list)
    panelists: list[str] = field(default_factory=list)
    presenters: list[str] = field(default_factory=list)
    people: list[ImportedPerson] = field(default_factory=list)

    @property
    def key(self) -> tuple:
        return (self.session_date, self.start_time, (self.hall or "").lower(), self.session_name.lower())

    @property
    def description(self) -> Optional[str]:
        parts = [f"Panelist: {p}" for p in self.panelists] + [f"Presenter: {p}" for p in self.presenters]
        return "; ".join(parts) or None


def read_csv_rows(text: str) -> list[dict[str, Any]]:
    reader = csv.DictReader(StringIO(text.lstrip("\ufeff")))
    return [row for row in reader if any((v or "").strip() for v in row.values() if isinstance(v, str))]


def parse_program_date(value: Optional[str]) -> Optional[date]:
    """DD.MM.YYYY, DD/MM/YYYY or YYYY-MM-DD"""
    value = (value or "").strip()
    for pattern in (DOTTED_DATE, SLASHED_DATE):
        match = pattern.search(value)
        if match:
            day, month, year = (int(g) for g in match.groups())
            return _safe_date(year, month, day)
    match = ISO_DATE.search(value)
    if match:
        year, month, day = (int(g) for g in match.groups())
        return _safe_date(year, month, day)
    return None


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _safe_time(hours: str, minutes: str) -> Optional[time]:
    try:
        return time(int(hours), int(minutes))
    except ValueError:
        return None


def parse_time_range(value: Optional[str]) -> tuple[Optional[time], Optional[time]]:
    """"10:30 - 10:45" gives both ends; a single time gives only the start"""
    value = (value or "").strip()
    match = TIME_RANGE.search(value)
    if match:
        start_h, start_m, end_h, end_m = match.groups()
        start, end = _safe_time(start_h, start_m), _safe_time(end_h, end_m)
        if start and end and end <= start:
            end = None
        return start, end
    match = SINGLE_TIME.search(value)
    if match:
        return _safe_time(*match.groups()), None
    return None, None


def _mentions(text: str, words: tuple) -> bool:
    return any(re.search(rf"\b{w}", text) for w in words)


def guess_session_type(topic: str, track: Optional[str] = None) -> str:
    topic = topic.lower()
    for session_type, words in SESSION_TYPE_KEYWORDS:
        if _mentions(topic, words):
            return session_type
    if "exam" in (track or "").lower() or _mentions(topic, ("exam", "inaug", "opening", "live", "surgery")):
        return "other"
    return "lecture"


def role_bucket(role: Optional[str]) -> str:
    role = (role or "").lower()
    if "chair" in role or "coordinator" in role or "co-ordinator" in role:
        return "chairperson"
    if "moderator" in role:
        return "moderator"
    if "panel" in role or "debat" in role or "arbitrator" in role:
        return "panelist"
    if "presenter" in role:
        return "presenter"
    return "speaker"


def clean_phone(value: Optional[str]) -> Optional[str]:
    phone = re.sub(r"[^0-9+]", "", value or "")
    if len(phone) == 10 and not phone.startswith("+"):
        phone = "+91" + phone
    return phone or None


def _cells(row: dict[str, Any]) -> dict[str, str]:
    return {
        str(k).strip().lower(): str(v).strip()
        for k, v in row.items()
        if k is not None and v is not None and str(v).strip()
    }


def _first(cells: dict[str, str], *names: str) -> Optional[str]:
    for name in names:
        if cells.get(name):
            return cells[name]
    return None


def _contact(cells: dict[str, str], *words: str) -> Optional[str]:
    for key, value in cells.items():
        if any(w in key for w in words):
            return value
    return None


def _add_name(names: list[str], name: str) -> None:
    if name not in names:
        names.append(name)


def group_program_rows(rows: list[dict[str, Any]]) -> tuple[list[ImportedSession], list[int]]:
    """
    Merge spreadsheet rows into sessions.
    Returns the sessions in first-seen order and the spreadsheet row numbers
    (header is row 1) that lacked a topic, a date or a start time.
    """
    sessions: dict[tuple, ImportedSession] = {}
    unusable: list[int] = []

    for index, row in enumerate(rows):
        cells = _cells(row)
        has_topic_column = "topic" in cells
        topic = _first(cells, "topic", "session name") or (None if has_topic_column else cells.get("session"))
        track = _first(cells, "track") or (cells.get("session") if has_topic_column else None)
        session_date = parse_program_date(cells.get("date"))
        if "start" in cells:
            start_time, _ = parse_time_range(cells.get("start"))
            end_time, _ = parse_time_range(cells.get("end"))
            if start_time and end_time and end_time <= start_time:
                end_time = None
        else:
            start_time, end_time = parse_time_range(_first(cells, "time", "starting time"))

        if not topic or not session_date or not start_time:
            unusable.append(index + 2)
            continue

        hall = _first(cells, "hall", "venue")
        session_type = (cells.get("type") or "").lower()
        candidate = ImportedSession(
            session_name=topic,
            session_date=session_date,
            start_time=start_time,
            end_time=end_time,
            hall=hall,
            track=track,
            session_type=session_type if session_type in SESSION_TYPES else guess_session_type(topic, track),
        )
        session = sessions.setdefault(candidate.key, candidate)
        if session.end_time is None and end_time is not None:
            session.end_time = end_time

        for column in ("speakers", "chairpersons", "moderators"):
            for name in split_names(cells.get(column)):
                _add_name(getattr(session, column), name)

        person = _first(cells, "name", "full name", "speaker")
        if person:
            role = role_bucket(cells.get("role"))
            bucket = {
                "chairperson": session.chairpersons,
                "moderator": session.moderators,
                "panelist": session.panelists,
                "presenter": session.presenters,
            }.get(role, session.speakers)
            _add_name(bucket, person)
            session.people.append(
                ImportedPerson(
                    name=person,
                    role="speaker" if role == "presenter" else role,
                    email=(_contact(cells, "email") or "").lower() or None,
                    phone=clean_phone(_contact(cells, "mobile", "phone")),
                )
            )

    return list(sessions.values()), unusable
