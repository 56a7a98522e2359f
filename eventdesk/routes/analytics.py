import logging
from datetime import datetime, time

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth import get_current_user, require_event_access
from ..database import get_db
from ..domain.events.repository import EventRepository
from ..domain.registrations.repository import RegistrationRepository
from ..models import CheckinList, Registration, TeamMember, TicketType
from ..models_abstracts import Abstract
from ..models_communications import MessageLog
from ..models_program import FacultyAssignment
from .checkin import eligible_registrations, records_by_registration

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Analytics"])


def count_by_status(db: Session, model, event_id: str) -> dict[str, int]:
    rows = db.query(model.status, func.count(model.id)).filter(model.event_id == event_id).group_by(model.status).all()
    return {status: count for status, count in rows}


def ticket_sales(db: Session, event_id: str) -> list[dict]:
    revenue_rows = (
        db.query(Registration.ticket_type_id, func.coalesce(func.sum(Registration.total_amount), 0))
        .filter(Registration.event_id == event_id, Registration.payment_status == "completed")
        .group_by(Registration.ticket_type_id)
        .all()
    )
    revenue = {ticket_id: round(float(amount), 2) for ticket_id, amount in revenue_rows}

    tickets = db.query(TicketType).filter(TicketType.event_id == event_id).order_by(TicketType.sort_order).all()
    return [
        {
            "id": ticket.id,
            "name": ticket.name,
            "sold": ticket.quantity_sold,
            "total": ticket.quantity_total,
            "revenue": revenue.get(ticket.id, 0),
        }
        for ticket in tickets
    ]


def checkin_summary(db: Session, event_id: str) -> dict:
    lists = db.query(CheckinList).filter(CheckinList.event_id == event_id, CheckinList.is_active.is_(True)).all()
    eligible = checked_in = 0
    for checkin_list in lists:
        registrations = eligible_registrations(db, checkin_list)
        records = records_by_registration(db, checkin_list)
        eligible += len(registrations)
        checked_in += sum(1 for r in registrations if r.id in records and records[r.id].is_checked_in)

    return {
        "lists": len(lists),
        "eligible": eligible,
        "checkedIn": checked_in,
        "percentage": round(checked_in / eligible * 100) if eligible else 0,
    }


@router.get("/events/{event_id}/dashboard")
async def event_dashboard(
    event_id: str,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    today_start = datetime.combine(datetime.utcnow().date(), time.min)
    by_status = RegistrationRepository.count_by(db, event_id, Registration.status)
    today = (
        db.query(func.count(Registration.id))
        .filter(Registration.event_id == event_id, Registration.created_at >= today_start)
        .scalar()
    )

    return {
        "registrations": {
            "total": sum(by_status.values()),
            "byStatus": by_status,
            "today": today or 0,
        },
        "revenue": RegistrationRepository.completed_revenue(db, event_id),
        "tickets": ticket_sales(db, event_id),
        "checkin": checkin_summary(db, event_id),
        "abstracts": count_by_status(db, Abstract, event_id),
        "faculty": count_by_status(db, FacultyAssignment, event_id),
        "messages": count_by_status(db, MessageLog, event_id),
    }


@router.get("/dashboard")
async def overview_dashboard(
    current_user: TeamMember = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Per-event summary across every event the member can see"""
    events = EventRepository.list_events(db, current_user)
    rows = []
    for event in events:
        by_status = RegistrationRepository.count_by(db, event.id, Registration.status)
        rows.append(
            {
                "id": event.id,
                "name": event.name,
                "status": event.status,
                "start_date": event.start_date,
                "registrations": sum(by_status.values()),
                "confirmed": by_status.get("confirmed", 0),
                "revenue": RegistrationRepository.completed_revenue(db, event.id),
            }
        )

    return {
        "events": rows,
        "totals": {
            "events": len(rows),
            "registrations": sum(r["registrations"] for r in rows),
            "confirmed": sum(r["confirmed"] for r in rows),
            "revenue": round(sum(r["revenue"] for r in rows), 2),
        },
    }
