"""Program service - Sessions, faculty invitations and responses, conflict checks"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...email_service import EmailError, send_faculty_invitation
from ...models import Event
from ...models_program import FacultyAssignment, ProgramSession
from ...security_utils import generate_secure_token
from ...services.csv_export import csv_response
from ...services.program_import import group_program_rows, read_csv_rows
from ...services.schedule_conflicts import FACULTY_FIELDS, analyze_program, format_hhmm, split_names
from ...shared.validators import model_updates
from ..communications.repository import CommunicationsRepository
from .repository import ProgramRepository
from .schemas import (
    AssignmentCreate,
    AssignmentUpdate,
    FacultyResponseRequest,
    ProgramImportRequest,
    SessionCreate,
    SessionUpdate,
)

logger = logging.getLogger(__name__)

INVITABLE_STATUSES = ("pending", "invited")
RESPONSE_STATUSES = ("confirmed", "declined", "change_requested")

EXPORT_HEADERS = [
    "Date",
    "Start",
    "End",
    "Hall",
    "Session",
    "Type",
    "Track",
    "Speakers",
    "Chairpersons",
    "Moderators",
]


def session_time_range(session: Optional[ProgramSession]) -> str:
    if session is None or session.start_time is None:
        return ""
    if session.end_time is None:
        return format_hhmm(session.start_time)
    return f"{format_hhmm(session.start_time)} - {format_hhmm(session.end_time)}"


def faculty_session_rows(assignments: list[FacultyAssignment]) -> list[dict]:
    """Session lines for the invitation and reminder emails"""
    rows = []
    for assignment in assignments:
        session = assignment.session
        rows.append(
            {
                "session_name": session.session_name if session else (assignment.topic_title or "To be announced"),
                "role": assignment.role,
                "date": session.session_date.strftime("%d %b %Y") if session and session.session_date else "",
                "time": session_time_range(session),
                "hall": session.hall if session else None,
            }
        )
    return rows


def session_summary(session: Optional[ProgramSession]) -> Optional[dict]:
    if session is None:
        return None
    return {
        "id": session.id,
        "session_name": session.session_name,
        "session_type": session.session_type,
        "session_date": session.session_date,
        "start_time": format_hhmm(session.start_time),
        "end_time": format_hhmm(session.end_time),
        "hall": session.hall,
        "track": session.track,
    }


class ProgramService:
    """Service layer for program business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ProgramRepository()

    def get_event(self, event_id: str) -> Event:
        event = self.repo.get_event(self.db, event_id)
        if not event:
            raise HTTPException(status_code=404, detail="Event not found")
        return event

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    @staticmethod
    def check_times(start_time, end_time) -> None:
        if start_time is not None and end_time is not None and end_time <= start_time:
            raise HTTPException(status_code=400, detail="End time must be after start time")

    def list_sessions(self, event_id: str, session_date: Optional[date], hall: Optional[str]) -> list[ProgramSession]:
        return self.repo.list_sessions(self.db, event_id, session_date, hall)

    def get_session(self, event_id: str, session_id: str) -> ProgramSession:
        session = self.repo.get_session(self.db, event_id, session_id)
        if not session:
            raise HTTPException(status_code=404, detail="Session not found")
        return session

    def create_session(self, event_id: str, data: SessionCreate) -> ProgramSession:
        self.get_event(event_id)
        self.check_times(data.start_time, data.end_time)
        session = ProgramSession(event_id=event_id, **data.model_dump())
        self.db.add(session)
        self.db.commit()
        self.db.refresh(session)
        return session

    def update_session(self, event_id: str, session_id: str, data: SessionUpdate) -> ProgramSession:
        session = self.get_session(event_id, session_id)
        updates = model_updates(data, session)
        self.check_times(updates.get("start_time", session.start_time), updates.get("end_time", session.end_time))
        for key, value in updates.items():
            setattr(session, key, value)
        self.db.commit()
        self.db.refresh(session)
        return session

    def delete_session(self, event_id: str, session_id: str) -> None:
        self.db.delete(self.get_session(event_id, session_id))
        self.db.commit()

    # ------------------------------------------------------------------
    # Faculty assignments
    # ------------------------------------------------------------------

    def list_assignments(
        self, event_id: str, status: Optional[str], role: Optional[str], session_id: Optional[str]
    ) -> list[FacultyAssignment]:
        return self.repo.list_assignments(self.db, event_id, status, role, session_id)

    def get_assignment(self, event_id: str, assignment_id: str) -> FacultyAssignment:
        assignment = self.repo.get_assignment(self.db, event_id, assignment_id)
        if not assignment:
            raise HTTPException(status_code=404, detail="Faculty assignment not found")
        return assignment

    def create_assignment(self, event_id: str, data: AssignmentCreate) -> FacultyAssignment:
        self.get_event(event_id)
        if data.session_id:
            self.get_session(event_id, data.session_id)
        assignment = FacultyAssignment(
            event_id=event_id, invitation_token=generate_secure_token(), **data.model_dump()
        )
        self.db.add(assignment)
        self.db.commit()
        self.db.refresh(assignment)
        return assignment

    def update_assignment(self, event_id: str, assignment_id: str, data: AssignmentUpdate) -> FacultyAssignment:
        assignment = self.get_assignment(event_id, assignment_id)
        updates = model_updates(data, assignment)
        if updates.get("session_id"):
            self.get_session(event_id, updates["session_id"])
        for key, value in updates.items():
            setattr(assignment, key, value)
        self.db.commit()
        self.db.refresh(assignment)
        return assignment

    def delete_assignment(self, event_id: str, assignment_id: str) -> None:
        self.db.delete(self.get_assignment(event_id, assignment_id))
        self.db.commit()

    def sync_assignments(self, event_id: str) -> dict:
        """Create pending assignments for every name on the printed program that has none yet"""
        self.get_event(event_id)
        existing = self.repo.list_assignments(self.db, event_id)
        seen = {(a.faculty_name.lower(), a.session_id, a.role) for a in existing}
        contacts = {}
        for a in existing:
            if a.faculty_email or a.faculty_phone:
                contacts.setdefault(a.faculty_name.lower(), (a.faculty_email, a.faculty_phone))

        created = 0
        for session in self.repo.list_sessions(self.db, event_id):
            for field, label in FACULTY_FIELDS:
                role = label.lower()
                for name in split_names(getattr(session, field)):
                    key = (name.lower(), session.id, role)
                    if key in seen:
                        continue
                    seen.add(key)
                    email, phone = contacts.get(name.lower(), (None, None))
                    self.db.add(
                        FacultyAssignment(
                            event_id=event_id,
                            session_id=session.id,
                            faculty_name=name,
                            faculty_email=email,
                            faculty_phone=phone,
                            role=role,
                            status="pending",
                            invitation_token=generate_secure_token(),
                        )
                    )
                    created += 1

        self.db.commit()
        logger.info(f"🔄 Synced faculty for event {event_id}: {created} assignment(s) created")
        return {"created": created}

    async def send_invitations(self, event_id: str, assignment_ids: Optional[list[str]] = None) -> dict:
        """One email per faculty member listing all of their selected sessions"""
        event = self.get_event(event_id)
        assignments = self.repo.list_assignments(self.db, event_id, assignment_ids=assignment_ids)

        grouped: dict[str, list[FacultyAssignment]] = {}
        skipped = 0
        for assignment in assignments:
            if assignment.status not in INVITABLE_STATUSES or not assignment.faculty_email:
                skipped += 1
                continue
            grouped.setdefault(assignment.faculty_email.lower(), []).append(assignment)

        settings = CommunicationsRepository.get_settings(self.db, event_id)
        sent = failed = 0
        errors = []
        for email, person_assignments in grouped.items():
            try:
                await send_faculty_invitation(
                    to=email,
                    faculty_name=person_assignments[0].faculty_name,
                    event_name=event.name,
                    sessions=faculty_session_rows(person_assignments),
                    token=person_assignments[0].invitation_token,
                    settings=settings,
                )
            except EmailError as e:
                logger.error(f"❌ Faculty invitation to {email} failed: {e}")
                failed += 1
                errors.append({"email": email, "error": str(e)})
                continue

            now = datetime.utcnow()
            for assignment in person_assignments:
                assignment.status = "invited"
                assignment.invitation_sent_at = now
            sent += 1

        self.db.commit()
        logger.info(f"📧 Faculty invitations for event {event_id}: sent {sent}, failed {failed}, skipped {skipped}")
        return {"sent": sent, "failed": failed, "skipped": skipped, "errors": errors}

    # ------------------------------------------------------------------
    # Public responses
    # ------------------------------------------------------------------

    def _assignment_for_token(self, token: str) -> FacultyAssignment:
        assignment = self.repo.get_by_token(self.db, token)
        if not assignment:
            raise HTTPException(status_code=404, detail="Invitation not found")
        return assignment

    def get_response_view(self, token: str) -> dict:
        assignment = self._assignment_for_token(token)
        event = self.get_event(assignment.event_id)
        person = self.repo.person_assignments(self.db, assignment)
        return {
            "faculty": {
                "name": assignment.faculty_name,
                "email": assignment.faculty_email,
                "phone": assignment.faculty_phone,
            },
            "event": {
                "id": event.id,
                "name": event.name,
                "start_date": event.start_date,
                "end_date": event.end_date,
                "venue_name": event.venue_name,
                "city": event.city,
            },
            "assignments": [
                {
                    "id": a.id,
                    "role": a.role,
                    "status": a.status,
                    "topic_title": a.topic_title,
                    "response_notes": a.response_notes,
                    "change_request_details": a.change_request_details,
                    "responded_at": a.responded_at,
                    "session": session_summary(a.session),
                }
                for a in person
            ],
        }

    @staticmethod
    def _apply_response(assignment: FacultyAssignment, status: str, note: Optional[str], now: datetime) -> None:
        assignment.status = status
        assignment.responded_at = now
        if note:
            if status == "declined":
                assignment.response_notes = note
            elif status == "change_requested":
                assignment.change_request_details = note

    def respond(self, token: str, data: FacultyResponseRequest) -> dict:
        assignment = self._assignment_for_token(token)
        person = self.repo.person_assignments(self.db, assignment)
        now = datetime.utcnow()
        updated = 0

        if data.global_response:
            if data.global_response not in RESPONSE_STATUSES:
                raise HTTPException(status_code=400, detail=f"Invalid response: {data.global_response}")
            note = data.notes if isinstance(data.notes, str) else None
            for a in person:
                self._apply_response(a, data.global_response, note, now)
                updated += 1
        elif data.responses:
            invalid = [s for s in data.responses.values() if s not in RESPONSE_STATUSES]
            if invalid:
                raise HTTPException(status_code=400, detail=f"Invalid response: {invalid[0]}")
            notes = data.notes if isinstance(data.notes, dict) else {}
            by_id = {a.id: a for a in person}
            for assignment_id, status in data.responses.items():
                target = by_id.get(assignment_id)
                if target is None:
                    continue
                self._apply_response(target, status, notes.get(assignment_id), now)
                updated += 1
        else:
            raise HTTPException(status_code=400, detail="Provide globalResponse or responses")

        self.db.commit()
        logger.info(f"🗳️ {assignment.faculty_name} responded to {updated} assignment(s)")
        return {"updated": updated}

    # ------------------------------------------------------------------
    # Analysis and export
    # ------------------------------------------------------------------

    def conflicts(self, event_id: str) -> dict:
        self.get_event(event_id)
        return analyze_program(self.repo.list_sessions(self.db, event_id))

    def import_program(self, event_id: str, data: ProgramImportRequest) -> dict:
        self.get_event(event_id)
        rows = read_csv_rows(data.csv_text) if data.csv_text else data.rows
        if not rows:
            raise HTTPException(status_code=400, detail="CSV file is empty")

        parsed, unusable = group_program_rows(rows)
        if not parsed:
            raise HTTPException(
                status_code=400, detail="No valid sessions found in CSV. Please check the date and time format."
            )

        if data.clear_existing:
            for session in self.repo.list_sessions(self.db, event_id):
                self.db.delete(session)
            self.db.flush()
            existing_keys = set()
        else:
            existing_keys = {
                (s.session_date, s.start_time, (s.hall or "").lower(), s.session_name.lower())
                for s in self.repo.list_sessions(self.db, event_id)
            }

        imported, skipped, assignments_created = 0, 0, 0
        for item in parsed:
            if item.key in existing_keys:
                skipped += 1
                continue
            existing_keys.add(item.key)
            session = ProgramSession(
                event_id=event_id,
                session_name=item.session_name,
                session_type=item.session_type,
                session_date=item.session_date,
                start_time=item.start_time,
                end_time=item.end_time,
                hall=item.hall,
                track=item.track,
                speakers=", ".join(item.speakers) or None,
                chairpersons=", ".join(item.chairpersons) or None,
                moderators=", ".join(item.moderators) or None,
                description=item.description,
            )
            self.db.add(session)
            self.db.flush()
            imported += 1

            if not data.create_assignments:
                continue
            seen = set()
            for person in item.people:
                key = (person.name.lower(), person.role)
                if key in seen or not (person.email or person.phone):
                    continue
                seen.add(key)
                self.db.add(
                    FacultyAssignment(
                        event_id=event_id,
                        session_id=session.id,
                        faculty_name=person.name,
                        faculty_email=person.email,
                        faculty_phone=person.phone,
                        role=person.role,
                        status="pending",
                        invitation_token=generate_secure_token(),
                    )
                )
                assignments_created += 1

        self.db.commit()
        logger.info(
            f"📥 Program import for event {event_id}: {imported} session(s) created, "
            f"{skipped} duplicate(s), {len(unusable)} unusable row(s)"
        )
        return {
            "imported": imported,
            "skipped_duplicates": skipped,
            "total_rows": len(rows),
            "unique_sessions": len(parsed),
            "unusable_rows": unusable,
            "assignments_created": assignments_created,
        }

    def export_program_csv(self, event_id: str):
        event = self.get_event(event_id)
        rows = [
            [
                s.session_date,
                format_hhmm(s.start_time),
                format_hhmm(s.end_time),
                s.hall,
                s.session_name,
                s.session_type,
                s.track,
                s.speakers,
                s.chairpersons,
                s.moderators,
            ]
            for s in self.repo.list_sessions(self.db, event_id)
        ]
        return csv_response(f"program_{event.slug}", EXPORT_HEADERS, rows)
