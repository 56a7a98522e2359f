"""Abstract repository - Database operations for abstracts, categories and reviews"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from ...models import Event, Registration
from ...models_abstracts import Abstract, AbstractCategory, AbstractReview, AbstractSettings


class AbstractRepository:
    """Repository for abstract database operations"""

    @staticmethod
    def get_event(db: Session, event_id: str) -> Optional[Event]:
        return db.query(Event).filter(Event.id == event_id).first()

    @staticmethod
    def list_categories(db: Session, event_id: str) -> list[AbstractCategory]:
        return (
            db.query(AbstractCategory)
            .filter(AbstractCategory.event_id == event_id)
            .order_by(AbstractCategory.sort_order, AbstractCategory.name)
            .all()
        )

    @staticmethod
    def get_category(db: Session, event_id: str, category_id: str) -> Optional[AbstractCategory]:
        return (
            db.query(AbstractCategory)
            .filter(AbstractCategory.id == category_id, AbstractCategory.event_id == event_id)
            .first()
        )

    @staticmethod
    def redirect_target(db: Session, event_id: str, exclude_category_id: Optional[str]) -> Optional[AbstractCategory]:
        """Active, non-award category with the highest sort order"""
        query = db.query(AbstractCategory).filter(
            AbstractCategory.event_id == event_id,
            AbstractCategory.is_active.is_(True),
            AbstractCategory.is_award_category.is_(False),
        )
        if exclude_category_id:
            query = query.filter(AbstractCategory.id != exclude_category_id)
        return query.order_by(AbstractCategory.sort_order.desc()).first()

    @staticmethod
    def get_settings(db: Session, event_id: str) -> Optional[AbstractSettings]:
        return db.query(AbstractSettings).filter(AbstractSettings.event_id == event_id).first()

    @staticmethod
    def get_or_create_settings(db: Session, event_id: str) -> AbstractSettings:
        settings = db.query(AbstractSettings).filter(AbstractSettings.event_id == event_id).first()
        if settings is None:
            settings = AbstractSettings(event_id=event_id)
            db.add(settings)
            db.flush()
        return settings

    @staticmethod
    def get_abstract(db: Session, abstract_id: str) -> Optional[Abstract]:
        return db.query(Abstract).filter(Abstract.id == abstract_id).first()

    @staticmethod
    def count_event_abstracts(db: Session, event_id: str) -> int:
        return db.query(func.count(Abstract.id)).filter(Abstract.event_id == event_id).scalar() or 0

    @staticmethod
    def abstract_number_exists(db: Session, abstract_number: str) -> bool:
        return db.query(Abstract.id).filter(Abstract.abstract_number == abstract_number).first() is not None

    @staticmethod
    def count_author_submissions(db: Session, event_id: str, email: str) -> int:
        return (
            db.query(func.count(Abstract.id))
            .filter(
                Abstract.event_id == event_id,
                func.lower(Abstract.presenting_author_email) == email.lower(),
                Abstract.status != "withdrawn",
            )
            .scalar()
            or 0
        )

    @staticmethod
    def confirmed_registration(db: Session, event_id: str, email: str) -> Optional[Registration]:
        return (
            db.query(Registration)
            .filter(
                Registration.event_id == event_id,
                func.lower(Registration.attendee_email) == email.lower(),
                Registration.status == "confirmed",
            )
            .first()
        )

    @staticmethod
    def filtered_query(
        db: Session,
        event_id: str,
        status: Optional[str] = None,
        category_id: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Query:
        query = db.query(Abstract).filter(Abstract.event_id == event_id)
        if status:
            query = query.filter(Abstract.status == status)
        if category_id:
            query = query.filter(Abstract.category_id == category_id)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Abstract.title.ilike(pattern),
                    Abstract.abstract_number.ilike(pattern),
                    Abstract.presenting_author_name.ilike(pattern),
                    Abstract.presenting_author_email.ilike(pattern),
                )
            )
        return query

    @staticmethod
    def review_summaries(db: Session, abstract_ids: list[str]) -> dict[str, tuple[int, Optional[float]]]:
        """abstract_id -> (review count, mean overall score)"""
        if not abstract_ids:
            return {}
        rows = (
            db.query(AbstractReview.abstract_id, func.count(AbstractReview.id), func.avg(AbstractReview.overall_score))
            .filter(AbstractReview.abstract_id.in_(abstract_ids))
            .group_by(AbstractReview.abstract_id)
            .all()
        )
        return {
            abstract_id: (count, round(float(avg), 1) if avg is not None else None)
            for abstract_id, count, avg in rows
        }

    @staticmethod
    def get_review_by(db: Session, abstract_id: str, reviewer_email: str) -> Optional[AbstractReview]:
        return (
            db.query(AbstractReview)
            .filter(
                AbstractReview.abstract_id == abstract_id,
                func.lower(AbstractReview.reviewer_email) == reviewer_email.lower(),
            )
            .first()
        )
