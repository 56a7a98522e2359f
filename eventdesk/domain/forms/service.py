"""Form service - Form builder and public submission validation"""

import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Event, TeamMember
from ...models_forms import LAYOUT_FIELD_TYPES, Form, FormField, FormSubmission
from ...services.csv_export import csv_response
from ...shared.validators import clamp_pagination, is_valid_email, model_updates, slugify
from .repository import FormRepository
from .schemas import FieldReorderRequest, FormCreate, FormFieldCreate, FormFieldUpdate, FormSubmitRequest, FormUpdate

logger = logging.getLogger(__name__)

TEXT_FIELD_TYPES = ("text", "email", "phone", "textarea")
CHOICE_FIELD_TYPES = ("select", "radio")
MULTI_CHOICE_FIELD_TYPES = ("multiselect", "checkbox")


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def option_values(field: FormField) -> set[str]:
    return {str(option.get("value")) for option in (field.options or []) if isinstance(option, dict)}


def _number(value: float) -> str:
    return f"{value:g}"


def validate_field_value(field: FormField, value: Any) -> Optional[str]:
    """Error message for a non-empty response value, or None when it is acceptable"""
    label = field.label

    if field.field_type == "email":
        if not isinstance(value, str) or not is_valid_email(value):
            return f"{label} must be a valid email address"

    if field.field_type == "number":
        if isinstance(value, bool):
            return f"{label} must be a number"
        try:
            number = float(value)
        except (TypeError, ValueError):
            return f"{label} must be a number"
        if field.min_value is not None and number < field.min_value:
            return f"{label} must be at least {_number(field.min_value)}"
        if field.max_value is not None and number > field.max_value:
            return f"{label} must be at most {_number(field.max_value)}"

    if field.field_type in TEXT_FIELD_TYPES and isinstance(value, str):
        length = len(value.strip())
        if field.min_length is not None and length < field.min_length:
            return f"{label} must be at least {field.min_length} characters"
        if field.max_length is not None and length > field.max_length:
            return f"{label} must be at most {field.max_length} characters"
        if field.pattern:
            try:
                if not re.fullmatch(field.pattern, value.strip()):
                    return f"{label} has an invalid format"
            except re.error:
                logger.warning(f"⚠️ Field {field.id} has an invalid pattern: {field.pattern}")

    if field.field_type in CHOICE_FIELD_TYPES:
        allowed = option_values(field)
        if allowed and str(value) not in allowed:
            return f"{label} has an invalid option"

    if field.field_type in MULTI_CHOICE_FIELD_TYPES and isinstance(value, list):
        allowed = option_values(field)
        if allowed and any(str(v) not in allowed for v in value):
            return f"{label} has an invalid option"

    return None


def display_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return str(value)


async def notify_form_submission(submission_id: str) -> None:
    """BackgroundTasks entry point: submitter confirmation plus organiser notification"""
    from ...database import SessionLocal
    from ...email_service import EmailError, send_form_confirmation, send_form_notification

    db = SessionLocal()
    try:
        submission = db.query(FormSubmission).filter(FormSubmission.id == submission_id).first()
        if submission is None:
            return
        form = submission.form

        if submission.submitter_email:
            try:
                await send_form_confirmation(
                    submission.submitter_email, submission.submitter_name, form.name, form.success_message
                )
            except EmailError as e:
                logger.warning(f"⚠️ Form confirmation to {submission.submitter_email} not sent: {e}")

        if form.notify_on_submission and form.notification_emails:
            answers = [
                (field.label, display_value(submission.responses.get(field.id)))
                for field in form.fields
                if field.field_type not in LAYOUT_FIELD_TYPES
            ]
            try:
                await send_form_notification(list(form.notification_emails), form.name, answers, form.id)
            except EmailError as e:
                logger.warning(f"⚠️ Form notification for {form.slug} not sent: {e}")
    finally:
        db.close()


class FormService:
    """Service layer for forms business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = FormRepository()

    # ------------------------------------------------------------------
    # Forms
    # ------------------------------------------------------------------

    def get_form(self, form_id: str, member: Optional[TeamMember] = None) -> Form:
        form = self.repo.get_form(self.db, form_id)
        if not form:
            raise HTTPException(status_code=404, detail="Form not found")
        if member is not None and form.event_id and not member.can_access_event(form.event_id):
            raise HTTPException(status_code=403, detail="You do not have access to this event")
        return form

    def list_forms(self, member: TeamMember, event_id: Optional[str], status: Optional[str]) -> list[Form]:
        event_ids = None if member.is_admin or not member.event_ids else list(member.event_ids)
        return self.repo.list_forms(self.db, event_ids, event_id, status)

    def unique_slug(self, name: str) -> str:
        base = slugify(name)
        slug, counter = base, 1
        while self.repo.slug_exists(self.db, slug):
            slug = f"{base}-{counter}"
            counter += 1
        return slug

    def create_form(self, data: FormCreate, member: TeamMember) -> Form:
        if data.event_id:
            if not self.db.query(Event.id).filter(Event.id == data.event_id).first():
                raise HTTPException(status_code=404, detail="Event not found")
            if not member.can_access_event(data.event_id):
                raise HTTPException(status_code=403, detail="You do not have access to this event")

        values = data.model_dump()
        values["submission_deadline"] = self._naive(values.get("submission_deadline"))
        form = Form(slug=self.unique_slug(data.name), created_by=member.id, **values)
        self.db.add(form)
        self.db.commit()
        self.db.refresh(form)
        logger.info(f"📝 Form '{form.name}' created ({form.slug})")
        return form

    def update_form(self, form_id: str, data: FormUpdate, member: TeamMember) -> Form:
        form = self.get_form(form_id, member)
        for key, value in model_updates(data, form).items():
            if key == "submission_deadline":
                value = self._naive(value)
            setattr(form, key, value)
        self.db.commit()
        self.db.refresh(form)
        return form

    def delete_form(self, form_id: str, member: TeamMember) -> None:
        form = self.get_form(form_id, member)
        self.db.delete(form)
        self.db.commit()
        logger.info(f"🗑️ Form {form.slug} deleted by {member.email}")

    @staticmethod
    def _naive(value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------

    def get_field(self, form_id: str, field_id: str) -> FormField:
        field = self.repo.get_field(self.db, form_id, field_id)
        if not field:
            raise HTTPException(status_code=404, detail="Field not found")
        return field

    @staticmethod
    def _check_field(values: dict) -> None:
        min_length, max_length = values.get("min_length"), values.get("max_length")
        if min_length is not None and max_length is not None and min_length > max_length:
            raise HTTPException(status_code=400, detail="Minimum length cannot exceed maximum length")
        min_value, max_value = values.get("min_value"), values.get("max_value")
        if min_value is not None and max_value is not None and min_value > max_value:
            raise HTTPException(status_code=400, detail="Minimum value cannot exceed maximum value")
        if values.get("field_type") in CHOICE_FIELD_TYPES + ("multiselect",) and not values.get("options"):
            raise HTTPException(status_code=400, detail="Choice fields need at least one option")

    def add_field(self, form_id: str, data: FormFieldCreate, member: TeamMember) -> FormField:
        self.get_form(form_id, member)
        values = data.model_dump()
        self._check_field(values)
        if values["sort_order"] is None:
            values["sort_order"] = self.repo.max_sort_order(self.db, form_id) + 1

        field = FormField(form_id=form_id, **values)
        self.db.add(field)
        self.db.commit()
        self.db.refresh(field)
        return field

    def update_field(self, form_id: str, field_id: str, data: FormFieldUpdate, member: TeamMember) -> FormField:
        self.get_form(form_id, member)
        field = self.get_field(form_id, field_id)
        updates = model_updates(data, field)
        merged = {
            key: updates.get(key, getattr(field, key))
            for key in ("field_type", "options", "min_length", "max_length", "min_value", "max_value")
        }
        self._check_field(merged)
        for key, value in updates.items():
            setattr(field, key, value)
        self.db.commit()
        self.db.refresh(field)
        return field

    def delete_field(self, form_id: str, field_id: str, member: TeamMember) -> None:
        self.get_form(form_id, member)
        self.db.delete(self.get_field(form_id, field_id))
        self.db.commit()

    def reorder_fields(self, form_id: str, data: FieldReorderRequest, member: TeamMember) -> list[FormField]:
        form = self.get_form(form_id, member)
        fields = {field.id: field for field in form.fields}
        unknown = [field_id for field_id in data.field_ids if field_id not in fields]
        if unknown:
            raise HTTPException(status_code=400, detail=f"Unknown field ids: {', '.join(unknown)}")

        for order, field_id in enumerate(data.field_ids):
            fields[field_id].sort_order = order
        # Fields left out keep their relative order after the listed ones
        remaining = sorted((f for f in fields.values() if f.id not in data.field_ids), key=lambda f: f.sort_order)
        for order, field in enumerate(remaining, start=len(data.field_ids)):
            field.sort_order = order

        self.db.commit()
        self.db.refresh(form)
        return sorted(form.fields, key=lambda f: f.sort_order)

    # ------------------------------------------------------------------
    # Public
    # ------------------------------------------------------------------

    def get_public_form(self, slug: str) -> Form:
        form = self.repo.get_by_slug(self.db, slug)
        if not form or form.status != "published":
            raise HTTPException(status_code=404, detail="Form not found")
        return form

    def submit(self, slug: str, data: FormSubmitRequest, ip_address: Optional[str], user_agent: Optional[str]) -> FormSubmission:
        form = self.repo.get_by_slug(self.db, slug)
        if not form:
            raise HTTPException(status_code=404, detail="Form not found")

        if form.status != "published":
            raise HTTPException(status_code=400, detail="This form is not accepting submissions")
        if form.submission_deadline and datetime.utcnow() > form.submission_deadline:
            raise HTTPException(status_code=400, detail="Submission deadline has passed")
        if form.max_submissions and self.repo.count_submissions(self.db, form.id) >= form.max_submissions:
            raise HTTPException(status_code=400, detail="This form has reached its maximum submissions")

        email = (data.submitter_email or "").strip().lower() or None
        if email and not is_valid_email(email):
            raise HTTPException(status_code=400, detail="Invalid email address")
        if form.requires_auth and not email:
            raise HTTPException(status_code=400, detail="An email address is required for this form")
        if email and not form.allow_multiple_submissions and self.repo.has_submitted(self.db, form.id, email):
            raise HTTPException(status_code=409, detail="You have already submitted this form")

        input_fields = [f for f in form.fields if f.field_type not in LAYOUT_FIELD_TYPES]
        missing = [f.label for f in input_fields if f.is_required and is_empty(data.responses.get(f.id))]
        if missing:
            raise HTTPException(status_code=400, detail=f"Missing required fields: {', '.join(missing)}")

        responses = {}
        for field in input_fields:
            value = data.responses.get(field.id)
            if is_empty(value):
                continue
            error = validate_field_value(field, value)
            if error:
                raise HTTPException(status_code=400, detail=error)
            responses[field.id] = value.strip() if isinstance(value, str) else value

        submission = FormSubmission(
            form_id=form.id,
            submitter_email=email,
            submitter_name=(data.submitter_name or "").strip() or None,
            responses=responses,
            ip_address=ip_address,
            user_agent=(user_agent or "")[:500] or None,
        )
        self.db.add(submission)
        self.db.commit()
        self.db.refresh(submission)
        logger.info(f"📥 Submission {submission.id} received for form {form.slug}")
        return submission

    # ------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------

    def list_submissions(
        self, form_id: str, member: TeamMember, status: Optional[str], page: Optional[int], limit: Optional[int]
    ) -> dict:
        self.get_form(form_id, member)
        page, limit = clamp_pagination(page, limit)
        query = self.repo.submissions_query(self.db, form_id, status)
        total = query.count()
        rows = query.order_by(FormSubmission.submitted_at.desc()).offset((page - 1) * limit).limit(limit).all()
        return {
            "data": rows,
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": math.ceil(total / limit) if total else 0,
        }

    def update_submission_status(self, submission_id: str, status: str, member: TeamMember) -> FormSubmission:
        submission = self.repo.get_submission(self.db, submission_id)
        if not submission:
            raise HTTPException(status_code=404, detail="Submission not found")
        self.get_form(submission.form_id, member)
        submission.status = status
        self.db.commit()
        self.db.refresh(submission)
        return submission

    def export_submissions_csv(self, form_id: str, member: TeamMember):
        form = self.get_form(form_id, member)
        input_fields = [f for f in form.fields if f.field_type not in LAYOUT_FIELD_TYPES]
        headers = ["Submitted At", "Name", "Email", "Status"] + [f.label for f in input_fields]

        submissions = self.repo.submissions_query(self.db, form.id).order_by(FormSubmission.submitted_at).all()
        rows = [
            [s.submitted_at, s.submitter_name, s.submitter_email, s.status]
            + [display_value((s.responses or {}).get(f.id)) for f in input_fields]
            for s in submissions
        ]
        return csv_response(f"form_{form.slug}_submissions", headers, rows)
