"""Program repository - Database operations for sessions and faculty assignments"""

from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Event
from ...models_program import FacultyAssignment, ProgramSession


class ProgramRepository:
    """Repository for program database operations"""

    @staticmethod
    def get_event(db: Session, event_id: str) -> Optional[Event]:
        return db.query(Event).filter(Event.id == event_id).first()

    @staticmethod
    def list_sessions(
        db: Session, event_id: str, session_date: Optional[date] = None, hall: Optional[str] = None
    ) -> list[ProgramSession]:
        query = db.query(ProgramSession).filter(ProgramSession.event_id == event_id)
        if session_date:
            query = query.filter(ProgramSession.session_date == session_date)
        if hall:
            query = query.filter(ProgramSession.hall == hall)
        return query.order_by(
            ProgramSession.session_date, ProgramSession.start_time, ProgramSession.sort_order
        ).all()

    @staticmethod
    def get_session(db: Session, event_id: str, session_id: str) -> Optional[ProgramSession]:
        return (
            db.query(ProgramSession)
            .filter(ProgramSession.id == session_id, ProgramSession.event_id == event_id)
            .first()
        )

    @staticmethod
    def list_assignments(
        db: Session,
        event_id: str,
        status: Optional[str] = None,
        role: Optional[str] = None,
        session_id: Optional[str] = None,
        assignment_ids: Optional[list[str]] = None,
    ) -> list[FacultyAssignment]:
        query = db.query(FacultyAssignment).filter(FacultyAssignment.event_id == event_id)
        if status:
            query = query.filter(FacultyAssignment.status == status)
        if role:
            query = query.filter(FacultyAssignment.role == role)
        if session_id:
            query = query.filter(FacultyAssignment.session_id == session_id)
        if assignment_ids:
            query = query.filter(FacultyAssignment.id.in_(assignment_ids))
        return query.order_by(FacultyAssignment.faculty_name, FacultyAssignment.created_at).all()

    @staticmethod
    def get_assignment(db: Session, event_id: str, assignment_id: str) -> Optional[FacultyAssignment]:
        return (
            db.query(FacultyAssignment)
            .filter(FacultyAssignment.id == assignment_id, FacultyAssignment.event_id == event_id)
            .first()
        )

    @staticmethod
    def get_by_token(db: Session, token: str) -> Optional[FacultyAssignment]:
        return db.query(FacultyAssignment).filter(FacultyAssignment.invitation_token == token).first()

    @staticmethod
    def person_assignments(db: Session, assignment: FacultyAssignment) -> list[FacultyAssignment]:
        """Every assignment in the event for the same person: by email when known, else by name"""
        query = db.query(FacultyAssignment).filter(FacultyAssignment.event_id == assignment.event_id)
        if assignment.faculty_email:
            query = query.filter(func.lower(FacultyAssignment.faculty_email) == assignment.faculty_email.lower())
        else:
            query = query.filter(func.lower(FacultyAssignment.faculty_name) == assignment.faculty_name.lower())
        return query.order_by(FacultyAssignment.created_at).all()
