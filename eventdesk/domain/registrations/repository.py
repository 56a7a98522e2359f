"""Registration repository - Database operations for registrations"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from ...models import Addon, DiscountCode, Event, Payment, Registration, TicketType


class RegistrationRepository:
    """Repository for registration database operations"""

    @staticmethod
    def get_event(db: Session, event_id: str) -> Optional[Event]:
        return db.query(Event).filter(Event.id == event_id).first()

    @staticmethod
    def get_registration(db: Session, registration_id: str) -> Optional[Registration]:
        return db.query(Registration).filter(Registration.id == registration_id).first()

    @staticmethod
    def get_ticket(db: Session, event_id: str, ticket_type_id: str) -> Optional[TicketType]:
        return (
            db.query(TicketType)
            .filter(TicketType.id == ticket_type_id, TicketType.event_id == event_id)
            .first()
        )

    @staticmethod
    def list_tickets(db: Session, event_id: str) -> list[TicketType]:
        return (
            db.query(TicketType)
            .filter(TicketType.event_id == event_id)
            .order_by(TicketType.sort_order, TicketType.created_at)
            .all()
        )

    @staticmethod
    def get_active_addon(db: Session, event_id: str, addon_id: str) -> Optional[Addon]:
        return (
            db.query(Addon)
            .filter(Addon.id == addon_id, Addon.event_id == event_id, Addon.is_active.is_(True))
            .first()
        )

    @staticmethod
    def get_discount_code(db: Session, event_id: str, code: str) -> Optional[DiscountCode]:
        return (
            db.query(DiscountCode)
            .filter(DiscountCode.event_id == event_id, DiscountCode.code == code.strip().upper())
            .first()
        )

    @staticmethod
    def registration_number_exists(db: Session, number: str) -> bool:
        return db.query(Registration.id).filter(Registration.registration_number == number).first() is not None

    @staticmethod
    def event_emails(db: Session, event_id: str) -> set[str]:
        rows = db.query(Registration.attendee_email).filter(Registration.event_id == event_id).all()
        return {email.lower() for (email,) in rows if email}

    @staticmethod
    def get_payment(db: Session, registration: Registration) -> Optional[Payment]:
        query = db.query(Payment)
        if registration.payment_id:
            return query.filter(Payment.id == registration.payment_id).first()
        return query.filter(Payment.registration_id == registration.id).order_by(Payment.created_at.desc()).first()

    @staticmethod
    def filtered_query(
        db: Session,
        event_id: str,
        status: Optional[str] = None,
        ticket_type_id: Optional[str] = None,
        payment_status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Query:
        query = db.query(Registration).filter(Registration.event_id == event_id)
        if status:
            query = query.filter(Registration.status == status)
        if ticket_type_id:
            query = query.filter(Registration.ticket_type_id == ticket_type_id)
        if payment_status:
            query = query.filter(Registration.payment_status == payment_status)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Registration.attendee_name.ilike(pattern),
                    Registration.attendee_email.ilike(pattern),
                    Registration.registration_number.ilike(pattern),
                )
            )
        return query

    @staticmethod
    def count_by(db: Session, event_id: str, column) -> dict[str, int]:
        rows = (
            db.query(column, func.count(Registration.id))
            .filter(Registration.event_id == event_id)
            .group_by(column)
            .all()
        )
        return {key: count for key, count in rows}

    @staticmethod
    def completed_revenue(db: Session, event_id: str) -> float:
        total = (
            db.query(func.coalesce(func.sum(Registration.total_amount), 0))
            .filter(Registration.event_id == event_id, Registration.payment_status == "completed")
            .scalar()
        )
        return round(float(total or 0), 2)

    @staticmethod
    def get_payment_by_id(db: Session, payment_id: str) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.id == payment_id).first()

    @staticmethod
    def payment_registrations(db: Session, payment: Payment) -> list[Registration]:
        query = db.query(Registration).filter(Registration.event_id == payment.event_id)
        if payment.registration_id:
            query = query.filter(
                or_(Registration.payment_id == payment.id, Registration.id == payment.registration_id)
            )
        else:
            query = query.filter(Registration.payment_id == payment.id)
        return query.all()
