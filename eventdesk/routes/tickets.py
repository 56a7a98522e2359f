"""
Ticket types, discount codes and addons for an event
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import require_event_access
from ..database import get_db
from ..models import Addon, DiscountCode, Registration, RegistrationAddon, TeamMember, TicketType
from ..rate_limiter import public_rate_limit
from ..schemas import (
    AddonCreate,
    AddonResponse,
    AddonUpdate,
    DiscountCodeCreate,
    DiscountCodeResponse,
    DiscountCodeUpdate,
    DiscountValidateRequest,
    DiscountValidateResponse,
    MessageResponse,
    TicketTypeCreate,
    TicketTypeResponse,
    TicketTypeUpdate,
)
from ..services.pricing import calculate_discount, is_discount_applicable
from ..shared.validators import model_updates

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events/{event_id}", tags=["Tickets"])


def get_ticket_or_404(db: Session, event_id: str, ticket_id: str) -> TicketType:
    ticket = db.query(TicketType).filter(TicketType.id == ticket_id, TicketType.event_id == event_id).first()
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket type not found")
    return ticket


def get_code_or_404(db: Session, event_id: str, code_id: str) -> DiscountCode:
    code = db.query(DiscountCode).filter(DiscountCode.id == code_id, DiscountCode.event_id == event_id).first()
    if not code:
        raise HTTPException(status_code=404, detail="Discount code not found")
    return code


def get_addon_or_404(db: Session, event_id: str, addon_id: str) -> Addon:
    addon = db.query(Addon).filter(Addon.id == addon_id, Addon.event_id == event_id).first()
    if not addon:
        raise HTTPException(status_code=404, detail="Addon not found")
    return addon


def check_order_limits(min_per_order: int, max_per_order: int) -> None:
    if min_per_order > max_per_order:
        raise HTTPException(status_code=400, detail="Minimum per order cannot exceed maximum per order")


# ============================================================================
# TICKET TYPES
# ============================================================================


@router.get("/tickets", response_model=list[TicketTypeResponse])
async def list_ticket_types(
    event_id: str,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    return (
        db.query(TicketType)
        .filter(TicketType.event_id == event_id)
        .order_by(TicketType.sort_order, TicketType.created_at)
        .all()
    )


@router.post("/tickets", response_model=TicketTypeResponse)
async def create_ticket_type(
    event_id: str,
    data: TicketTypeCreate,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    check_order_limits(data.min_per_order, data.max_per_order)
    ticket = TicketType(event_id=event_id, **data.model_dump())
    db.add(ticket)
    db.commit()
    db.refresh(ticket)
    logger.info(f"🎟️ Ticket type '{ticket.name}' created for event {event_id}")
    return ticket


@router.patch("/tickets/{ticket_id}", response_model=TicketTypeResponse)
async def update_ticket_type(
    event_id: str,
    ticket_id: str,
    data: TicketTypeUpdate,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    ticket = get_ticket_or_404(db, event_id, ticket_id)
    updates = model_updates(data, ticket)
    check_order_limits(
        updates.get("min_per_order", ticket.min_per_order), updates.get("max_per_order", ticket.max_per_order)
    )
    for key, value in updates.items():
        setattr(ticket, key, value)
    db.commit()
    db.refresh(ticket)
    return ticket


@router.delete("/tickets/{ticket_id}", response_model=MessageResponse)
async def delete_ticket_type(
    event_id: str,
    ticket_id: str,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    ticket = get_ticket_or_404(db, event_id, ticket_id)
    if db.query(Registration.id).filter(Registration.ticket_type_id == ticket.id).first():
        raise HTTPException(status_code=400, detail="Cannot delete a ticket type that has registrations")
    db.delete(ticket)
    db.commit()
    return {"message": "Ticket type deleted"}


# ============================================================================
# DISCOUNT CODES
# ============================================================================


@router.get("/discount-codes", response_model=list[DiscountCodeResponse])
async def list_discount_codes(
    event_id: str,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    return (
        db.query(DiscountCode)
        .filter(DiscountCode.event_id == event_id)
        .order_by(DiscountCode.created_at.desc())
        .all()
    )


@router.post("/discount-codes", response_model=DiscountCodeResponse)
async def create_discount_code(
    event_id: str,
    data: DiscountCodeCreate,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    if data.discount_type == "percentage" and data.discount_value > 100:
        raise HTTPException(status_code=400, detail="Percentage discounts cannot exceed 100")

    code = DiscountCode(event_id=event_id, **data.model_dump())
    db.add(code)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise HTTPException(status_code=409, detail=f"Discount code {data.code} already exists") from e
    db.refresh(code)
    return code


@router.patch("/discount-codes/{code_id}", response_model=DiscountCodeResponse)
async def update_discount_code(
    event_id: str,
    code_id: str,
    data: DiscountCodeUpdate,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    code = get_code_or_404(db, event_id, code_id)
    for key, value in model_updates(data, code).items():
        setattr(code, key, value)
    db.commit()
    db.refresh(code)
    return code


@router.delete("/discount-codes/{code_id}", response_model=MessageResponse)
async def delete_discount_code(
    event_id: str,
    code_id: str,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    code = get_code_or_404(db, event_id, code_id)
    db.query(Registration).filter(Registration.discount_code_id == code.id).update(
        {"discount_code_id": None}, synchronize_session=False
    )
    db.delete(code)
    db.commit()
    return {"message": "Discount code deleted"}


@router.post(
    "/discount-codes/validate",
    response_model=DiscountValidateResponse,
    dependencies=[Depends(public_rate_limit)],
)
async def validate_discount_code(event_id: str, data: DiscountValidateRequest, db: Session = Depends(get_db)):
    """Public: preview a code's discount for a ticket and quantity"""
    ticket = get_ticket_or_404(db, event_id, data.ticket_type_id)
    code = (
        db.query(DiscountCode)
        .filter(DiscountCode.event_id == event_id, DiscountCode.code == data.code.strip().upper())
        .first()
    )

    if not is_discount_applicable(code, ticket.id):
        return {"valid": False, "discount_amount": 0, "discount_type": None, "message": "Invalid or expired discount code"}

    amount = calculate_discount(
        round(ticket.price * data.quantity, 2), code.discount_type, code.discount_value, code.max_discount_amount
    )
    return {
        "valid": True,
        "discount_amount": amount,
        "discount_type": code.discount_type,
        "message": f"Discount of {amount:.2f} applied",
    }


# ============================================================================
# ADDONS
# ============================================================================


@router.get("/addons", response_model=list[AddonResponse])
async def list_addons(
    event_id: str,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    return db.query(Addon).filter(Addon.event_id == event_id).order_by(Addon.sort_order).all()


@router.post("/addons", response_model=AddonResponse)
async def create_addon(
    event_id: str,
    data: AddonCreate,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    addon = Addon(event_id=event_id, **data.model_dump())
    db.add(addon)
    db.commit()
    db.refresh(addon)
    return addon


@router.patch("/addons/{addon_id}", response_model=AddonResponse)
async def update_addon(
    event_id: str,
    addon_id: str,
    data: AddonUpdate,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    addon = get_addon_or_404(db, event_id, addon_id)
    for key, value in model_updates(data, addon).items():
        setattr(addon, key, value)
    db.commit()
    db.refresh(addon)
    return addon


@router.delete("/addons/{addon_id}", response_model=MessageResponse)
async def delete_addon(
    event_id: str,
    addon_id: str,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    addon = get_addon_or_404(db, event_id, addon_id)
    if db.query(RegistrationAddon.id).filter(RegistrationAddon.addon_id == addon.id).first():
        raise HTTPException(status_code=400, detail="Cannot delete an addon that has been purchased; deactivate it instead")
    db.delete(addon)
    db.commit()
    return {"message": "Addon deleted"}
