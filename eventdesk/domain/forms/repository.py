"""Form repository - Database operations for forms, fields and submissions"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from ...models_forms import Form, FormField, FormSubmission


class FormRepository:
    """Repository for form database operations"""

    @staticmethod
    def list_forms(
        db: Session, event_ids: Optional[list[str]], event_id: Optional[str] = None, status: Optional[str] = None
    ) -> list[Form]:
        """event_ids restricts to forms of those events (plus event-less forms); None means no restriction"""
        query = db.query(Form)
        if event_ids is not None:
            query = query.filter((Form.event_id.is_(None)) | (Form.event_id.in_(event_ids)))
        if event_id:
            query = query.filter(Form.event_id == event_id)
        if status:
            query = query.filter(Form.status == status)
        return query.order_by(Form.created_at.desc()).all()

    @staticmethod
    def get_form(db: Session, form_id: str) -> Optional[Form]:
        return db.query(Form).filter(Form.id == form_id).first()

    @staticmethod
    def get_by_slug(db: Session, slug: str) -> Optional[Form]:
        return db.query(Form).filter(Form.slug == slug).first()

    @staticmethod
    def slug_exists(db: Session, slug: str) -> bool:
        return db.query(Form.id).filter(Form.slug == slug).first() is not None

    @staticmethod
    def get_field(db: Session, form_id: str, field_id: str) -> Optional[FormField]:
        return db.query(FormField).filter(FormField.id == field_id, FormField.form_id == form_id).first()

    @staticmethod
    def max_sort_order(db: Session, form_id: str) -> int:
        value = db.query(func.max(FormField.sort_order)).filter(FormField.form_id == form_id).scalar()
        return value if value is not None else -1

    @staticmethod
    def count_submissions(db: Session, form_id: str) -> int:
        return db.query(func.count(FormSubmission.id)).filter(FormSubmission.form_id == form_id).scalar() or 0

    @staticmethod
    def has_submitted(db: Session, form_id: str, email: str) -> bool:
        return (
            db.query(FormSubmission.id)
            .filter(FormSubmission.form_id == form_id, func.lower(FormSubmission.submitter_email) == email.lower())
            .first()
            is not None
        )

    @staticmethod
    def submissions_query(db: Session, form_id: str, status: Optional[str] = None) -> Query:
        query = db.query(FormSubmission).filter(FormSubmission.form_id == form_id)
        if status:
            query = query.filter(FormSubmission.status == status)
        return query

    @staticmethod
    def get_submission(db: Session, submission_id: str) -> Optional[FormSubmission]:
        return db.query(FormSubmission).filter(FormSubmission.id == submission_id).first()
