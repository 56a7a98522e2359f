"""
Faculty and guest travel desk: bookings, arrival board and itineraries
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ..auth import ensure_event_access, get_current_user, require_event_access
from ..database import get_db
from ..domain.communications.repository import CommunicationsRepository
from ..email_service import EmailError, send_travel_itinerary
from ..models import Registration, TeamMember
from ..models_program import TravelBooking
from ..schemas import MessageResponse, TravelBookingResponse, TravelBookingUpdate, TravelGuestResponse
from ..services.ics_generator import generate_ics, travel_itinerary_entries
from ..shared.validators import model_updates

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Travel"])

BOOKED_STATUSES = ("booked", "confirmed")


def is_booked(status: Optional[str]) -> bool:
    return status in BOOKED_STATUSES


def is_pending(status: Optional[str]) -> bool:
    return status is None or status == "pending"


def get_registration_for_member(db: Session, registration_id: str, member: TeamMember) -> Registration:
    registration = db.query(Registration).filter(Registration.id == registration_id).first()
    if not registration:
        raise HTTPException(status_code=404, detail="Registration not found")
    ensure_event_access(member, registration.event_id)
    return registration


def event_bookings(db: Session, event_id: str) -> list[TravelBooking]:
    return (
        db.query(TravelBooking)
        .join(Registration, TravelBooking.registration_id == Registration.id)
        .filter(Registration.event_id == event_id)
        .order_by(Registration.attendee_name)
        .all()
    )


def guest_row(booking: TravelBooking) -> dict:
    registration = booking.registration
    return {
        "registration_id": registration.id,
        "registration_number": registration.registration_number,
        "name": registration.attendee_name,
        "email": registration.attendee_email,
        "phone": registration.attendee_phone,
        "travel": booking,
    }


def arrival_time(booking: TravelBooking) -> Optional[datetime]:
    """Booked onward departure, falling back to the requested arrival date"""
    if booking.onward_departure:
        return booking.onward_departure
    if booking.arrival_date:
        return datetime.combine(booking.arrival_date, time.min)
    return None


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.strftime("%d %b %Y, %I:%M %p") if value else None


def itinerary_legs(booking: TravelBooking) -> list[dict]:
    legs = []
    for leg, label in (("onward", "Onward journey"), ("return", "Return journey")):
        if not is_booked(getattr(booking, f"{leg}_status")):
            continue
        legs.append(
            {
                "label": label,
                "carrier": getattr(booking, f"{leg}_carrier"),
                "number": getattr(booking, f"{leg}_number"),
                "pnr": getattr(booking, f"{leg}_pnr"),
                "from": getattr(booking, f"{leg}_from"),
                "to": getattr(booking, f"{leg}_to"),
                "departure": _format_datetime(getattr(booking, f"{leg}_departure")),
                "arrival": _format_datetime(getattr(booking, f"{leg}_arrival")),
            }
        )
    return legs


def itinerary_hotel(booking: TravelBooking) -> Optional[dict]:
    if not is_booked(booking.hotel_status):
        return None
    return {
        "name": booking.hotel_name,
        "address": booking.hotel_address,
        "confirmation": booking.hotel_confirmation,
        "checkin": booking.hotel_checkin.strftime("%d %b %Y") if booking.hotel_checkin else None,
        "checkout": booking.hotel_checkout.strftime("%d %b %Y") if booking.hotel_checkout else None,
    }


def travel_stats(bookings: list[TravelBooking]) -> dict:
    total = len(bookings)
    stats = {
        "total": total,
        "onwardPending": sum(1 for b in bookings if is_pending(b.onward_status)),
        "onwardBooked": sum(1 for b in bookings if is_booked(b.onward_status)),
        "returnPending": sum(1 for b in bookings if is_pending(b.return_status)),
        "returnBooked": sum(1 for b in bookings if is_booked(b.return_status)),
        "hotelRequired": sum(1 for b in bookings if b.hotel_required),
        "hotelBooked": sum(1 for b in bookings if is_booked(b.hotel_status)),
        "idMissing": sum(1 for b in bookings if not b.id_proof_submitted),
        "vouchersSent": sum(1 for b in bookings if b.voucher_sent_at),
        "flightCost": round(sum((b.onward_cost or 0) + (b.return_cost or 0) for b in bookings), 2),
        "hotelCost": round(sum(b.hotel_cost or 0 for b in bookings), 2),
    }

    # Four tasks per guest: id proof, onward, return, voucher
    done = total - stats["idMissing"] + stats["onwardBooked"] + stats["returnBooked"] + stats["vouchersSent"]
    stats["completion"] = round(done / (total * 4) * 100) if total else 0
    return stats


@router.get("/events/{event_id}/travel", response_model=list[TravelGuestResponse])
async def list_travel_guests(
    event_id: str,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    return [guest_row(booking) for booking in event_bookings(db, event_id)]


@router.get("/events/{event_id}/travel/stats")
async def get_travel_stats(
    event_id: str,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    return travel_stats(event_bookings(db, event_id))


@router.get("/events/{event_id}/travel/arrivals", response_model=list[TravelGuestResponse])
async def upcoming_arrivals(
    event_id: str,
    days: int = Query(7, ge=1, le=90),
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    today = date.today()
    horizon = today + timedelta(days=days)

    upcoming = []
    for booking in event_bookings(db, event_id):
        when = arrival_time(booking)
        if when and today <= when.date() <= horizon:
            upcoming.append((when, booking))

    upcoming.sort(key=lambda item: item[0])
    return [guest_row(booking) for _, booking in upcoming]


@router.put("/registrations/{registration_id}/travel", response_model=TravelBookingResponse)
async def upsert_travel_booking(
    registration_id: str,
    data: TravelBookingUpdate,
    current_user: TeamMember = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registration = get_registration_for_member(db, registration_id, current_user)

    booking = registration.travel
    if booking is None:
        booking = TravelBooking(registration_id=registration.id)
        db.add(booking)

    for key, value in model_updates(data, booking).items():
        if key == "mode" and value is None:
            continue
        setattr(booking, key, value)

    db.commit()
    db.refresh(booking)
    logger.info(f"✈️ Travel updated for {registration.registration_number} by {current_user.email}")
    return booking


@router.post("/registrations/{registration_id}/travel/send-itinerary", response_model=MessageResponse)
async def send_itinerary(
    registration_id: str,
    current_user: TeamMember = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registration = get_registration_for_member(db, registration_id, current_user)
    booking = registration.travel
    if booking is None:
        raise HTTPException(status_code=404, detail="No travel booking for this registration")

    legs = itinerary_legs(booking)
    hotel = itinerary_hotel(booking)
    if not legs and not hotel:
        raise HTTPException(status_code=400, detail="Nothing has been booked for this guest yet")

    guest_name = registration.attendee_name or registration.attendee_email
    event = registration.event
    ics_content = generate_ics(travel_itinerary_entries(booking, guest_name), calendar_name=f"{event.name} travel")

    try:
        await send_travel_itinerary(
            to=registration.attendee_email,
            guest_name=guest_name,
            event_name=event.name,
            legs=legs,
            hotel=hotel,
            ics_content=ics_content,
            settings=CommunicationsRepository.get_settings(db, event.id),
        )
    except EmailError as e:
        logger.error(f"❌ Itinerary email to {registration.attendee_email} failed: {e}")
        raise HTTPException(status_code=502, detail="Failed to send itinerary email") from e

    booking.voucher_sent_at = datetime.utcnow()
    db.commit()
    return {"message": f"Itinerary sent to {registration.attendee_email}"}


@router.get("/registrations/{registration_id}/travel/itinerary.ics")
async def download_itinerary(
    registration_id: str,
    current_user: TeamMember = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registration = get_registration_for_member(db, registration_id, current_user)
    if registration.travel is None:
        raise HTTPException(status_code=404, detail="No travel booking for this registration")

    guest_name = registration.attendee_name or registration.attendee_email
    content = generate_ics(
        travel_itinerary_entries(registration.travel, guest_name),
        calendar_name=f"{registration.event.name} travel",
    )
    return Response(
        content=content,
        media_type="text/calendar",
        headers={"Content-Disposition": f'attachment; filename="itinerary-{registration.registration_number}.ics"'},
    )
