"""Abstract service - Submission rules, peer review and committee decisions"""

import logging
import math
from datetime import datetime, timezone
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Event, TeamMember
from ...models_abstracts import Abstract, AbstractAuthor, AbstractCategory, AbstractReview, AbstractSettings
from ...services.csv_export import csv_response
from ...services.numbering import format_abstract_number
from ...shared.validators import clamp_pagination, is_valid_email, model_updates
from .repository import AbstractRepository
from .schemas import (
    AbstractAuthorInput,
    AbstractCategoryCreate,
    AbstractCategoryUpdate,
    AbstractDetailResponse,
    AbstractListItem,
    AbstractSettingsUpdate,
    AbstractSubmit,
    AbstractUpdate,
    DecisionRequest,
    ReviewCreate,
)

logger = logging.getLogger(__name__)

DEFAULT_WORD_LIMIT = 300
EDITABLE_STATUSES = ("submitted", "revision_requested")
NOTIFY_DECISIONS = ("accepted", "rejected", "revision_requested", "redirected")
SCORE_FIELDS = {
    "score_originality": "Originality score",
    "score_methodology": "Methodology score",
    "score_relevance": "Relevance score",
    "score_clarity": "Clarity score",
}

EXPORT_HEADERS = [
    "Abstract Number",
    "Title",
    "Category",
    "Presentation Type",
    "Presenting Author",
    "Email",
    "Affiliation",
    "Co-authors",
    "Keywords",
    "Word Count",
    "Status",
    "Accepted As",
    "Reviews",
    "Average Score",
    "Submitted At",
]


def count_words(text: Optional[str]) -> int:
    return len((text or "").split())


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def overall_score(review: AbstractReview) -> Optional[float]:
    scores = [getattr(review, field) for field in SCORE_FIELDS if getattr(review, field) is not None]
    if not scores:
        return None
    return round(sum(scores) / len(scores), 1)


async def notify_abstract(abstract_id: str, decision: Optional[str] = None) -> None:
    """
    BackgroundTasks entry point: "submission received" when decision is None,
    otherwise the decision email. Opens its own session.
    """
    from ...database import SessionLocal
    from ...email_service import EmailError, send_abstract_decision, send_abstract_received
    from ..communications.repository import CommunicationsRepository

    db = SessionLocal()
    try:
        abstract = db.query(Abstract).filter(Abstract.id == abstract_id).first()
        if abstract is None:
            return
        event = db.query(Event).filter(Event.id == abstract.event_id).first()
        settings = CommunicationsRepository.get_settings(db, abstract.event_id)
        try:
            if decision is None:
                await send_abstract_received(abstract, event, settings)
            else:
                category_name = abstract.category.name if abstract.category else None
                await send_abstract_decision(abstract, event, decision, category_name, settings)
        except EmailError as e:
            logger.warning(f"⚠️ Abstract email for {abstract.abstract_number} not sent: {e}")
    finally:
        db.close()


class AbstractService:
    """Service layer for abstract business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AbstractRepository()

    def get_event(self, event_id: str) -> Event:
        event = self.repo.get_event(self.db, event_id)
        if not event:
            raise HTTPException(status_code=404, detail="Event not found")
        return event

    # ------------------------------------------------------------------
    # Categories and settings
    # ------------------------------------------------------------------

    def list_categories(self, event_id: str) -> list[AbstractCategory]:
        return self.repo.list_categories(self.db, event_id)

    def get_category(self, event_id: str, category_id: str) -> AbstractCategory:
        category = self.repo.get_category(self.db, event_id, category_id)
        if not category:
            raise HTTPException(status_code=404, detail="Category not found")
        return category

    def create_category(self, event_id: str, data: AbstractCategoryCreate) -> AbstractCategory:
        self.get_event(event_id)
        category = AbstractCategory(event_id=event_id, **data.model_dump())
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        return category

    def update_category(self, event_id: str, category_id: str, data: AbstractCategoryUpdate) -> AbstractCategory:
        category = self.get_category(event_id, category_id)
        for key, value in model_updates(data, category).items():
            setattr(category, key, value)
        self.db.commit()
        self.db.refresh(category)
        return category

    def delete_category(self, event_id: str, category_id: str) -> None:
        category = self.get_category(event_id, category_id)
        if self.db.query(Abstract.id).filter(Abstract.category_id == category.id).first():
            raise HTTPException(status_code=400, detail="Category has abstracts; deactivate it instead")
        self.db.delete(category)
        self.db.commit()

    def get_settings(self, event_id: str) -> AbstractSettings:
        self.get_event(event_id)
        settings = self.repo.get_or_create_settings(self.db, event_id)
        self.db.commit()
        return settings

    def update_settings(self, event_id: str, data: AbstractSettingsUpdate) -> AbstractSettings:
        self.get_event(event_id)
        settings = self.repo.get_or_create_settings(self.db, event_id)
        for key, value in model_updates(data, settings).items():
            if key in ("submission_opens_at", "submission_deadline"):
                value = as_naive_utc(value)
            setattr(settings, key, value)
        self.db.commit()
        self.db.refresh(settings)
        return settings

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def _next_abstract_number(self, event_id: str) -> str:
        year = datetime.utcnow().year
        sequence = self.repo.count_event_abstracts(self.db, event_id) + 1
        number = format_abstract_number(year, sequence)
        while self.repo.abstract_number_exists(self.db, number):
            sequence += 1
            number = format_abstract_number(year, sequence)
        return number

    def _set_authors(
        self,
        abstract: Abstract,
        authors: list[AbstractAuthorInput],
        presenting_name: str,
        presenting_email: str,
        presenting_affiliation: Optional[str],
    ) -> None:
        """Replace the author list; the presenting author is always included"""
        rows = [
            AbstractAuthor(
                name=a.name.strip(),
                email=a.email.strip().lower() if a.email else None,
                affiliation=a.affiliation,
                is_presenting=a.is_presenting,
            )
            for a in authors
        ]

        presenting = next((r for r in rows if r.email and r.email == presenting_email.lower()), None)
        if presenting is None:
            presenting = next((r for r in rows if r.name.lower() == presenting_name.lower()), None)
        if presenting is None:
            presenting = AbstractAuthor(
                name=presenting_name, email=presenting_email.lower(), affiliation=presenting_affiliation
            )
            rows.insert(0, presenting)

        for row in rows:
            row.is_presenting = row is presenting
        for order, row in enumerate(rows, start=1):
            row.author_order = order

        abstract.authors = rows

    def submit_abstract(self, event_id: str, data: AbstractSubmit) -> Abstract:
        self.get_event(event_id)

        title = (data.title or "").strip()
        text = (data.abstract_text or "").strip()
        author_name = (data.presenting_author_name or "").strip()
        author_email = (data.presenting_author_email or "").strip().lower()
        if not title or not text or not author_name or not author_email:
            raise HTTPException(
                status_code=400,
                detail="Title, abstract text, presenting author name and email are required",
            )
        if not is_valid_email(author_email):
            raise HTTPException(status_code=400, detail="Invalid email address")

        settings = self.repo.get_settings(self.db, event_id)
        now = datetime.utcnow()
        if settings is not None:
            if settings.submission_opens_at and now < settings.submission_opens_at:
                raise HTTPException(status_code=400, detail="Abstract submissions are not yet open")
            if settings.submission_deadline and now > settings.submission_deadline:
                raise HTTPException(status_code=400, detail="Submission deadline has passed")
            allowed = settings.allowed_presentation_types or []
            if allowed and data.presentation_type != "either" and data.presentation_type not in allowed:
                raise HTTPException(
                    status_code=400, detail=f"Presentation type must be one of: {', '.join(allowed)}"
                )

        if data.category_id:
            category = self.repo.get_category(self.db, event_id, data.category_id)
            if not category or not category.is_active:
                raise HTTPException(status_code=400, detail="Invalid category")

        word_limit = settings.word_limit if settings is not None else DEFAULT_WORD_LIMIT
        word_count = count_words(text)
        if word_count > word_limit:
            raise HTTPException(status_code=400, detail=f"Abstract exceeds word limit of {word_limit} words")

        if settings is not None and settings.max_submissions_per_person:
            existing = self.repo.count_author_submissions(self.db, event_id, author_email)
            if existing >= settings.max_submissions_per_person:
                raise HTTPException(
                    status_code=400,
                    detail=f"Maximum of {settings.max_submissions_per_person} submissions per person reached",
                )

        registration_id = None
        if settings is not None and settings.require_registration:
            registration = self.repo.confirmed_registration(self.db, event_id, author_email)
            if registration is None:
                raise HTTPException(
                    status_code=403, detail="A confirmed registration is required to submit an abstract"
                )
            registration_id = registration.id

        abstract = Abstract(
            abstract_number=self._next_abstract_number(event_id),
            event_id=event_id,
            category_id=data.category_id,
            title=title,
            abstract_text=text,
            keywords=[k.strip() for k in data.keywords if k.strip()],
            presentation_type=data.presentation_type,
            presenting_author_name=author_name,
            presenting_author_email=author_email,
            presenting_author_affiliation=data.presenting_author_affiliation,
            presenting_author_phone=data.presenting_author_phone,
            registration_id=registration_id,
            status="submitted",
            word_count=word_count,
        )
        self._set_authors(abstract, data.authors, author_name, author_email, data.presenting_author_affiliation)
        self.db.add(abstract)
        self.db.commit()
        self.db.refresh(abstract)

        logger.info(f"📝 Abstract {abstract.abstract_number} submitted for event {event_id} by {author_email}")
        return abstract

    # ------------------------------------------------------------------
    # Reading and author edits
    # ------------------------------------------------------------------

    def list_abstracts(
        self,
        event_id: str,
        status: Optional[str],
        category_id: Optional[str],
        search: Optional[str],
        page: Optional[int],
        limit: Optional[int],
    ) -> dict:
        page, limit = clamp_pagination(page, limit)
        query = self.repo.filtered_query(self.db, event_id, status, category_id, search)
        total = query.count()
        abstracts = query.order_by(Abstract.submitted_at.desc()).offset((page - 1) * limit).limit(limit).all()
        summaries = self.repo.review_summaries(self.db, [a.id for a in abstracts])

        data = []
        for abstract in abstracts:
            count, average = summaries.get(abstract.id, (0, None))
            item = AbstractListItem.model_validate(abstract)
            item.category_name = abstract.category.name if abstract.category else None
            item.review_count = count
            item.average_score = average
            data.append(item)

        return {
            "data": data,
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": math.ceil(total / limit) if total else 0,
        }

    def get_abstract(self, abstract_id: str) -> Abstract:
        abstract = self.repo.get_abstract(self.db, abstract_id)
        if not abstract:
            raise HTTPException(status_code=404, detail="Abstract not found")
        return abstract

    def abstract_detail(self, abstract: Abstract, include_private: bool) -> AbstractDetailResponse:
        detail = AbstractDetailResponse.model_validate(abstract)
        if not include_private:
            for review in detail.reviews:
                review.comments_private = None
        return detail

    def _check_author(self, abstract: Abstract, member: Optional[TeamMember], author_email: Optional[str]) -> None:
        """Team members with event access, or the presenting author by email"""
        if member is not None:
            if not member.can_access_event(abstract.event_id):
                raise HTTPException(status_code=403, detail="You do not have access to this event")
            return
        if not author_email or author_email.strip().lower() != abstract.presenting_author_email.lower():
            raise HTTPException(status_code=403, detail="Only the presenting author can change this abstract")

    def update_abstract(
        self, abstract_id: str, data: AbstractUpdate, member: Optional[TeamMember]
    ) -> Abstract:
        abstract = self.get_abstract(abstract_id)
        self._check_author(abstract, member, data.author_email)
        if abstract.status not in EDITABLE_STATUSES:
            raise HTTPException(status_code=400, detail=f"Abstracts with status '{abstract.status}' cannot be edited")

        updates = model_updates(data, abstract, exclude={"author_email", "authors"})
        if "abstract_text" in updates:
            text = (updates["abstract_text"] or "").strip()
            if not text:
                raise HTTPException(status_code=400, detail="Abstract text cannot be empty")
            settings = self.repo.get_settings(self.db, abstract.event_id)
            word_limit = settings.word_limit if settings is not None else DEFAULT_WORD_LIMIT
            word_count = count_words(text)
            if word_count > word_limit:
                raise HTTPException(status_code=400, detail=f"Abstract exceeds word limit of {word_limit} words")
            updates["abstract_text"] = text
            abstract.word_count = word_count

        if updates.get("category_id"):
            category = self.repo.get_category(self.db, abstract.event_id, updates["category_id"])
            if not category or not category.is_active:
                raise HTTPException(status_code=400, detail="Invalid category")

        for key, value in updates.items():
            setattr(abstract, key, value)

        if data.authors is not None:
            self._set_authors(
                abstract,
                data.authors,
                abstract.presenting_author_name,
                abstract.presenting_author_email,
                abstract.presenting_author_affiliation,
            )

        if abstract.status == "revision_requested" and member is None:
            abstract.status = "submitted"

        self.db.commit()
        self.db.refresh(abstract)
        return abstract

    def withdraw_abstract(self, abstract_id: str, member: Optional[TeamMember], author_email: Optional[str]) -> Abstract:
        abstract = self.get_abstract(abstract_id)
        self._check_author(abstract, member, author_email)
        if abstract.status == "withdrawn":
            raise HTTPException(status_code=400, detail="Abstract is already withdrawn")
        if abstract.status in ("accepted", "rejected"):
            raise HTTPException(status_code=400, detail="Decided abstracts cannot be withdrawn")

        abstract.status = "withdrawn"
        self.db.commit()
        self.db.refresh(abstract)
        logger.info(f"↩️ Abstract {abstract.abstract_number} withdrawn")
        return abstract

    # ------------------------------------------------------------------
    # Review and decisions
    # ------------------------------------------------------------------

    def add_review(self, abstract_id: str, data: ReviewCreate, member: TeamMember) -> AbstractReview:
        abstract = self.get_abstract(abstract_id)
        if not member.can_access_event(abstract.event_id):
            raise HTTPException(status_code=403, detail="You do not have access to this event")
        if abstract.status == "withdrawn":
            raise HTTPException(status_code=400, detail="Withdrawn abstracts cannot be reviewed")

        settings = self.repo.get_settings(self.db, abstract.event_id)
        if settings is not None and not settings.review_enabled:
            raise HTTPException(status_code=400, detail="Reviews are disabled for this event")

        scores = {}
        for field, label in SCORE_FIELDS.items():
            value = getattr(data, field)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 10:
                raise HTTPException(status_code=400, detail=f"{label} must be a whole number from 1 to 10")
            scores[field] = value

        reviewer_email = (data.reviewer_email or member.email).strip().lower()
        review = self.repo.get_review_by(self.db, abstract.id, reviewer_email)
        if review is None:
            review = AbstractReview(abstract_id=abstract.id, reviewer_email=reviewer_email)
            self.db.add(review)

        review.reviewer_name = data.reviewer_name or member.name
        for field in SCORE_FIELDS:
            setattr(review, field, scores.get(field))
        review.overall_score = overall_score(review)
        review.recommendation = data.recommendation
        review.comments_to_author = data.comments_to_author
        review.comments_private = data.comments_private
        review.reviewed_at = datetime.utcnow()

        if abstract.status == "submitted":
            abstract.status = "under_review"

        self.db.commit()
        self.db.refresh(review)
        logger.info(f"🧑‍⚖️ Review by {reviewer_email} on {abstract.abstract_number}: {review.overall_score}")
        return review

    def apply_decision(self, abstract: Abstract, data: DecisionRequest, member: TeamMember) -> bool:
        """
        Apply a decision without committing.
        Returns True when the author should be emailed.
        """
        if abstract.status == "withdrawn":
            raise HTTPException(status_code=400, detail="Withdrawn abstracts cannot be decided")

        if data.decision == "redirected":
            target = self.repo.redirect_target(self.db, abstract.event_id, abstract.category_id)
            if target is None:
                raise HTTPException(status_code=400, detail="No category available to redirect this abstract to")
            abstract.redirected_from_category_id = abstract.category_id
            abstract.category_id = target.id
            abstract.category = target
            abstract.status = "accepted"
            if data.accepted_as:
                abstract.accepted_as = data.accepted_as
        elif data.decision == "accepted":
            abstract.status = "accepted"
            if data.accepted_as:
                abstract.accepted_as = data.accepted_as
            elif abstract.presentation_type != "either":
                abstract.accepted_as = abstract.presentation_type
        elif data.decision == "revision_requested":
            abstract.status = "revision_requested"
            abstract.accepted_as = None
        else:
            abstract.status = data.decision

        abstract.decision_notes = data.notes
        abstract.decision_date = datetime.utcnow()
        abstract.decided_by = member.email
        return data.decision in NOTIFY_DECISIONS

    def decide(self, abstract_id: str, data: DecisionRequest, member: TeamMember) -> tuple[Abstract, bool]:
        abstract = self.get_abstract(abstract_id)
        if not member.can_access_event(abstract.event_id):
            raise HTTPException(status_code=403, detail="You do not have access to this event")

        notify = self.apply_decision(abstract, data, member)
        self.db.commit()
        self.db.refresh(abstract)
        logger.info(f"⚖️ {member.email} set {abstract.abstract_number} to {data.decision}")
        return abstract, notify

    def bulk_decide(self, event_id: str, abstract_ids: list[str], data: DecisionRequest, member: TeamMember) -> dict:
        """Returns {updated, failed, errors, notify_ids}"""
        updated = 0
        errors = []
        notify_ids = []
        for abstract_id in abstract_ids:
            abstract = self.repo.get_abstract(self.db, abstract_id)
            if abstract is None or abstract.event_id != event_id:
                errors.append({"abstract_id": abstract_id, "error": "Abstract not found"})
                continue
            try:
                if self.apply_decision(abstract, data, member):
                    notify_ids.append(abstract.id)
            except HTTPException as e:
                errors.append({"abstract_id": abstract_id, "error": e.detail})
                continue
            self.db.flush()
            updated += 1

        self.db.commit()
        logger.info(f"⚖️ Bulk {data.decision} on event {event_id}: {updated} updated, {len(errors)} failed")
        return {"updated": updated, "failed": len(errors), "errors": errors, "notify_ids": notify_ids}

    def export_abstracts_csv(self, event_id: str):
        event = self.get_event(event_id)
        abstracts = self.repo.filtered_query(self.db, event_id).order_by(Abstract.abstract_number).all()
        summaries = self.repo.review_summaries(self.db, [a.id for a in abstracts])

        rows = []
        for a in abstracts:
            count, average = summaries.get(a.id, (0, None))
            co_authors = [author.name for author in a.authors if not author.is_presenting]
            rows.append(
                [
                    a.abstract_number,
                    a.title,
                    a.category.name if a.category else "",
                    a.presentation_type,
                    a.presenting_author_name,
                    a.presenting_author_email,
                    a.presenting_author_affiliation,
                    co_authors,
                    a.keywords or [],
                    a.word_count,
                    a.status,
                    a.accepted_as,
                    count,
                    average,
                    a.submitted_at,
                ]
            )
        return csv_response(f"abstracts_{event.slug}", EXPORT_HEADERS, rows)
