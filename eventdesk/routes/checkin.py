"""
Check-in lists, attendee scanning and live check-in stats
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..auth import require_event_access
from ..database import get_db
from ..domain.communications.service import run_auto_send
from ..models import CheckinList, CheckinRecord, Registration, TeamMember
from ..schemas import (
    BulkCheckinRequest,
    CheckinListCreate,
    CheckinListResponse,
    CheckinListUpdate,
    CheckinRequest,
    MessageResponse,
)
from ..shared.validators import model_updates

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events/{event_id}", tags=["Check-in"])


def get_list_or_404(db: Session, event_id: str, list_id: str) -> CheckinList:
    checkin_list = db.query(CheckinList).filter(CheckinList.id == list_id, CheckinList.event_id == event_id).first()
    if not checkin_list:
        raise HTTPException(status_code=404, detail="Check-in list not found")
    return checkin_list


def is_eligible(registration: Registration, checkin_list: CheckinList) -> bool:
    """Confirmed, holding one of the list's tickets and (when restricted) one of its addons"""
    if registration.status != "confirmed":
        return False
    if checkin_list.ticket_type_ids and registration.ticket_type_id not in checkin_list.ticket_type_ids:
        return False
    if checkin_list.addon_ids:
        held = {ra.addon_id for ra in registration.addons}
        if not held.intersection(checkin_list.addon_ids):
            return False
    return True


def eligible_registrations(db: Session, checkin_list: CheckinList) -> list[Registration]:
    query = db.query(Registration).filter(
        Registration.event_id == checkin_list.event_id, Registration.status == "confirmed"
    )
    if checkin_list.ticket_type_ids:
        query = query.filter(Registration.ticket_type_id.in_(checkin_list.ticket_type_ids))
    return [r for r in query.order_by(Registration.attendee_name).all() if is_eligible(r, checkin_list)]


def records_by_registration(db: Session, checkin_list: CheckinList) -> dict[str, CheckinRecord]:
    records = db.query(CheckinRecord).filter(CheckinRecord.checkin_list_id == checkin_list.id).all()
    return {record.registration_id: record for record in records}


def find_registration(db: Session, event_id: str, data: CheckinRequest) -> Registration:
    query = db.query(Registration).filter(Registration.event_id == event_id)
    if data.registration_id:
        query = query.filter(Registration.id == data.registration_id)
    elif data.registration_number:
        query = query.filter(Registration.registration_number == data.registration_number.strip())
    elif data.checkin_token:
        query = query.filter(Registration.checkin_token == data.checkin_token.strip())
    else:
        raise HTTPException(status_code=400, detail="Provide registration_id, registration_number or checkin_token")

    registration = query.first()
    if not registration:
        raise HTTPException(status_code=404, detail="Registration not found")
    return registration


def apply_checkin(
    db: Session, checkin_list: CheckinList, registration: Registration, action: str, operator: str
) -> tuple[str, bool]:
    """
    Apply a check-in action; returns (result, first_checkin).
    Does not commit.
    """
    if registration.status != "confirmed":
        raise HTTPException(status_code=400, detail="Registration is not confirmed")
    if not is_eligible(registration, checkin_list):
        raise HTTPException(status_code=400, detail="This registration is not valid for this check-in list")

    record = (
        db.query(CheckinRecord)
        .filter(CheckinRecord.checkin_list_id == checkin_list.id, CheckinRecord.registration_id == registration.id)
        .first()
    )
    currently_in = record is not None and record.is_checked_in

    if action == "toggle":
        action = "check_out" if currently_in else "check_in"

    now = datetime.utcnow()
    if action == "check_in":
        if currently_in:
            return "already_checked_in", False
        if record is None:
            db.add(
                CheckinRecord(
                    checkin_list_id=checkin_list.id,
                    registration_id=registration.id,
                    checked_in_at=now,
                    checked_in_by=operator,
                )
            )
            return "checked_in", True
        if record.checked_in_at is not None and not checkin_list.allow_multiple_checkins:
            raise HTTPException(status_code=400, detail="Re-entry is not allowed for this check-in list")
        record.checked_in_at = now
        record.checked_in_by = operator
        record.checked_out_at = None
        record.checked_out_by = None
        return "checked_in", False

    if not currently_in:
        return "already_checked_out", False
    record.checked_out_at = now
    record.checked_out_by = operator
    return "checked_out", False


# ============================================================================
# CHECK-IN LISTS
# ============================================================================


@router.get("/checkin-lists", response_model=list[CheckinListResponse])
async def list_checkin_lists(
    event_id: str,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    return db.query(CheckinList).filter(CheckinList.event_id == event_id).order_by(CheckinList.created_at).all()


@router.post("/checkin-lists", response_model=CheckinListResponse)
async def create_checkin_list(
    event_id: str,
    data: CheckinListCreate,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    checkin_list = CheckinList(event_id=event_id, **data.model_dump())
    db.add(checkin_list)
    db.commit()
    db.refresh(checkin_list)
    return checkin_list


@router.get("/checkin-lists/{list_id}", response_model=CheckinListResponse)
async def get_checkin_list(
    event_id: str,
    list_id: str,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    return get_list_or_404(db, event_id, list_id)


@router.patch("/checkin-lists/{list_id}", response_model=CheckinListResponse)
async def update_checkin_list(
    event_id: str,
    list_id: str,
    data: CheckinListUpdate,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    checkin_list = get_list_or_404(db, event_id, list_id)
    for key, value in model_updates(data, checkin_list).items():
        setattr(checkin_list, key, value)
    db.commit()
    db.refresh(checkin_list)
    return checkin_list


@router.delete("/checkin-lists/{list_id}", response_model=MessageResponse)
async def delete_checkin_list(
    event_id: str,
    list_id: str,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    db.delete(get_list_or_404(db, event_id, list_id))
    db.commit()
    return {"message": "Check-in list deleted"}


@router.get("/checkin-lists/{list_id}/attendees")
async def list_checkin_attendees(
    event_id: str,
    list_id: str,
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None, pattern="^(checked_in|not_checked_in)$"),
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    """Eligible attendees for the list with their current check-in state"""
    checkin_list = get_list_or_404(db, event_id, list_id)
    records = records_by_registration(db, checkin_list)
    needle = (search or "").strip().lower()

    attendees = []
    for registration in eligible_registrations(db, checkin_list):
        if needle and not any(
            needle in (value or "").lower()
            for value in (registration.attendee_name, registration.attendee_email, registration.registration_number)
        ):
            continue

        record = records.get(registration.id)
        checked_in = record is not None and record.is_checked_in
        if status == "checked_in" and not checked_in:
            continue
        if status == "not_checked_in" and checked_in:
            continue

        attendees.append(
            {
                "registration_id": registration.id,
                "registration_number": registration.registration_number,
                "name": registration.attendee_name,
                "email": registration.attendee_email,
                "ticket_type": registration.ticket_type.name if registration.ticket_type else None,
                "checked_in": checked_in,
                "checked_in_at": record.checked_in_at if record else None,
                "checked_out_at": record.checked_out_at if record else None,
            }
        )
    return {"data": attendees, "total": len(attendees)}


@router.get("/checkin-lists/{list_id}/stats")
async def checkin_list_stats(
    event_id: str,
    list_id: str,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    checkin_list = get_list_or_404(db, event_id, list_id)
    registrations = eligible_registrations(db, checkin_list)
    records = records_by_registration(db, checkin_list)

    by_ticket: dict[str, dict] = {}
    checked_in_total = 0
    for registration in registrations:
        record = records.get(registration.id)
        checked_in = record is not None and record.is_checked_in
        checked_in_total += checked_in

        key = registration.ticket_type_id or "none"
        entry = by_ticket.setdefault(
            key,
            {
                "ticket_type_id": registration.ticket_type_id,
                "name": registration.ticket_type.name if registration.ticket_type else "No ticket",
                "total": 0,
                "checkedIn": 0,
            },
        )
        entry["total"] += 1
        entry["checkedIn"] += checked_in

    total = len(registrations)
    return {
        "total": total,
        "checkedIn": checked_in_total,
        "notCheckedIn": total - checked_in_total,
        "percentage": round(checked_in_total / total * 100) if total else 0,
        "byTicketType": list(by_ticket.values()),
    }


# ============================================================================
# SCANNING
# ============================================================================


@router.post("/checkin")
async def check_in_attendee(
    event_id: str,
    data: CheckinRequest,
    background_tasks: BackgroundTasks,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    checkin_list = get_list_or_404(db, event_id, data.checkin_list_id)
    if not checkin_list.is_active:
        raise HTTPException(status_code=400, detail="This check-in list is not active")

    registration = find_registration(db, event_id, data)
    result, first_checkin = apply_checkin(db, checkin_list, registration, data.action, current_user.email)
    db.commit()

    if first_checkin:
        background_tasks.add_task(run_auto_send, "on_checkin", registration.id)
    logger.info(f"🎫 {registration.registration_number} {result} on list {checkin_list.name}")

    return {
        "result": result,
        "registration": {
            "id": registration.id,
            "registration_number": registration.registration_number,
            "name": registration.attendee_name,
            "ticket_type": registration.ticket_type.name if registration.ticket_type else None,
        },
    }


@router.patch("/checkin/bulk")
async def bulk_check_in(
    event_id: str,
    data: BulkCheckinRequest,
    background_tasks: BackgroundTasks,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    checkin_list = get_list_or_404(db, event_id, data.checkin_list_id)
    if not checkin_list.is_active:
        raise HTTPException(status_code=400, detail="This check-in list is not active")

    results = []
    for registration_id in data.registration_ids:
        registration = (
            db.query(Registration)
            .filter(Registration.id == registration_id, Registration.event_id == event_id)
            .first()
        )
        if registration is None:
            results.append({"registration_id": registration_id, "result": "not_found"})
            continue
        try:
            result, first_checkin = apply_checkin(db, checkin_list, registration, data.action, current_user.email)
        except HTTPException as e:
            results.append({"registration_id": registration_id, "result": "error", "error": e.detail})
            continue
        db.flush()
        if first_checkin:
            background_tasks.add_task(run_auto_send, "on_checkin", registration.id)
        results.append({"registration_id": registration_id, "result": result})

    db.commit()
    return {"processed": len(results), "results": results}
