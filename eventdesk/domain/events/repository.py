"""Event repository - Database operations for events"""

from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from ...models import (
    BadgeTemplate,
    CertificateTemplate,
    CheckinList,
    CheckinRecord,
    DiscountCode,
    Event,
    EventSettings,
    Payment,
    Registration,
    RegistrationAddon,
    TeamMember,
)
from ...models_abstracts import Abstract, AbstractAuthor, AbstractCategory, AbstractReview, AbstractSettings
from ...models_communications import CommunicationSettings, MessageLog, MessageTemplate
from ...models_forms import Form
from ...models_program import FacultyAssignment, ProgramSession, TravelBooking


class EventRepository:
    """Repository for event database operations"""

    @staticmethod
    def list_events(
        db: Session, member: TeamMember, status: Optional[str] = None, search: Optional[str] = None
    ) -> list[Event]:
        query = db.query(Event)
        if not member.is_admin and member.event_ids:
            query = query.filter(Event.id.in_(member.event_ids))
        if status:
            query = query.filter(Event.status == status)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Event.name.ilike(pattern), Event.short_name.ilike(pattern)))
        return query.order_by(Event.start_date.desc(), Event.created_at.desc()).all()

    @staticmethod
    def get_event(db: Session, event_id: str) -> Optional[Event]:
        return db.query(Event).filter(Event.id == event_id).first()

    @staticmethod
    def slug_exists(db: Session, slug: str) -> bool:
        return db.query(Event.id).filter(Event.slug == slug).first() is not None

    @staticmethod
    def get_or_create_settings(db: Session, event: Event) -> EventSettings:
        if event.settings is None:
            event.settings = EventSettings(event_id=event.id)
            db.flush()
        return event.settings

    @staticmethod
    def delete_event_tree(db: Session, event: Event) -> None:
        """Delete an event and every row that belongs to it (no commit)"""
        event_id = event.id

        list_ids = select(CheckinList.id).where(CheckinList.event_id == event_id)
        db.query(CheckinRecord).filter(CheckinRecord.checkin_list_id.in_(list_ids)).delete(
            synchronize_session=False
        )
        db.query(CheckinList).filter(CheckinList.event_id == event_id).delete(synchronize_session=False)
        db.query(BadgeTemplate).filter(BadgeTemplate.event_id == event_id).delete(synchronize_session=False)
        db.query(CertificateTemplate).filter(CertificateTemplate.event_id == event_id).delete(
            synchronize_session=False
        )

        abstract_ids = select(Abstract.id).where(Abstract.event_id == event_id)
        db.query(AbstractReview).filter(AbstractReview.abstract_id.in_(abstract_ids)).delete(
            synchronize_session=False
        )
        db.query(AbstractAuthor).filter(AbstractAuthor.abstract_id.in_(abstract_ids)).delete(
            synchronize_session=False
        )
        db.query(Abstract).filter(Abstract.event_id == event_id).delete(synchronize_session=False)
        db.query(AbstractCategory).filter(AbstractCategory.event_id == event_id).delete(synchronize_session=False)
        db.query(AbstractSettings).filter(AbstractSettings.event_id == event_id).delete(synchronize_session=False)

        for form in db.query(Form).filter(Form.event_id == event_id).all():
            db.delete(form)

        db.query(FacultyAssignment).filter(FacultyAssignment.event_id == event_id).delete(
            synchronize_session=False
        )
        db.query(ProgramSession).filter(ProgramSession.event_id == event_id).delete(synchronize_session=False)

        db.query(CommunicationSettings).filter(CommunicationSettings.event_id == event_id).delete(
            synchronize_session=False
        )
        db.query(MessageTemplate).filter(MessageTemplate.event_id == event_id).delete(synchronize_session=False)
        db.query(MessageLog).filter(MessageLog.event_id == event_id).delete(synchronize_session=False)
        db.query(Payment).filter(Payment.event_id == event_id).delete(synchronize_session=False)

        registration_ids = select(Registration.id).where(Registration.event_id == event_id)
        db.query(RegistrationAddon).filter(RegistrationAddon.registration_id.in_(registration_ids)).delete(
            synchronize_session=False
        )
        db.query(TravelBooking).filter(TravelBooking.registration_id.in_(registration_ids)).delete(
            synchronize_session=False
        )
        db.query(Registration).filter(Registration.event_id == event_id).delete(synchronize_session=False)
        db.query(DiscountCode).filter(DiscountCode.event_id == event_id).delete(synchronize_session=False)

        db.expire(event)
        db.delete(event)
