"""
Badge templates, pre-flight validation and PDF badge generation
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ..auth import require_event_access
from ..database import get_db
from ..models import BadgeTemplate, Event, Registration, TeamMember
from ..rate_limiter import bulk_rate_limit
from ..schemas import (
    BadgeGenerateRequest,
    BadgeTemplateCreate,
    BadgeTemplateResponse,
    BadgeTemplateUpdate,
    BadgeValidateRequest,
    GeneratedDocumentResponse,
    MessageResponse,
)
from ..services.badge_validator import validate_badge_run
from ..services.document_renderer import render_badges
from ..services.storage import StorageError, upload_pdf
from ..shared.validators import model_updates

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events/{event_id}", tags=["Badges"])


def get_event_or_404(db: Session, event_id: str) -> Event:
    event = db.query(Event).filter(Event.id == event_id).first()
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


def get_template_or_404(db: Session, event_id: str, template_id: str) -> BadgeTemplate:
    template = (
        db.query(BadgeTemplate).filter(BadgeTemplate.id == template_id, BadgeTemplate.event_id == event_id).first()
    )
    if not template:
        raise HTTPException(status_code=404, detail="Badge template not found")
    return template


def confirmed_registrations(
    db: Session,
    event_id: str,
    registration_ids: Optional[list[str]] = None,
    ticket_type_ids: Optional[list[str]] = None,
) -> list[Registration]:
    query = db.query(Registration).filter(Registration.event_id == event_id, Registration.status == "confirmed")
    if registration_ids:
        query = query.filter(Registration.id.in_(registration_ids))
    if ticket_type_ids:
        query = query.filter(Registration.ticket_type_id.in_(ticket_type_ids))
    return query.order_by(Registration.registration_number).all()


def pdf_download(pdf_bytes: bytes, filename: str) -> Response:
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def store_document(pdf_bytes: bytes, kind: str, event_id: str, count: int) -> dict:
    """Upload a generated PDF to R2; returns {url, count}"""
    key = f"{kind}/{event_id}/{uuid.uuid4().hex}.pdf"
    try:
        url = upload_pdf(pdf_bytes, key)
    except StorageError as e:
        raise HTTPException(status_code=502, detail="Failed to store generated document") from e
    return {"url": url, "count": count}


def clear_other_defaults(db: Session, template: BadgeTemplate) -> None:
    db.query(BadgeTemplate).filter(
        BadgeTemplate.event_id == template.event_id,
        BadgeTemplate.id != template.id,
        BadgeTemplate.is_default.is_(True),
    ).update({"is_default": False}, synchronize_session=False)


# ============================================================================
# TEMPLATES
# ============================================================================


@router.get("/badge-templates", response_model=list[BadgeTemplateResponse])
async def list_badge_templates(
    event_id: str,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    return (
        db.query(BadgeTemplate)
        .filter(BadgeTemplate.event_id == event_id)
        .order_by(BadgeTemplate.is_default.desc(), BadgeTemplate.created_at)
        .all()
    )


@router.post("/badge-templates", response_model=BadgeTemplateResponse)
async def create_badge_template(
    event_id: str,
    data: BadgeTemplateCreate,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    get_event_or_404(db, event_id)
    template = BadgeTemplate(event_id=event_id, **data.model_dump())
    db.add(template)
    db.flush()
    if template.is_default:
        clear_other_defaults(db, template)
    db.commit()
    db.refresh(template)
    logger.info(f"🪪 Badge template '{template.name}' created for event {event_id}")
    return template


@router.get("/badge-templates/{template_id}", response_model=BadgeTemplateResponse)
async def get_badge_template(
    event_id: str,
    template_id: str,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    return get_template_or_404(db, event_id, template_id)


@router.patch("/badge-templates/{template_id}", response_model=BadgeTemplateResponse)
async def update_badge_template(
    event_id: str,
    template_id: str,
    data: BadgeTemplateUpdate,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    template = get_template_or_404(db, event_id, template_id)
    for key, value in model_updates(data, template).items():
        setattr(template, key, value)
    if template.is_default:
        clear_other_defaults(db, template)
    db.commit()
    db.refresh(template)
    return template


@router.delete("/badge-templates/{template_id}", response_model=MessageResponse)
async def delete_badge_template(
    event_id: str,
    template_id: str,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    db.delete(get_template_or_404(db, event_id, template_id))
    db.commit()
    return {"message": "Badge template deleted"}


# ============================================================================
# VALIDATION AND GENERATION
# ============================================================================


@router.post("/badges/validate")
async def validate_badges(
    event_id: str,
    data: BadgeValidateRequest,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    """Check a template and the registrations it would print for before generating"""
    template = None
    if data.template_id:
        template = (
            db.query(BadgeTemplate)
            .filter(BadgeTemplate.id == data.template_id, BadgeTemplate.event_id == event_id)
            .first()
        )

    registrations = confirmed_registrations(db, event_id, data.registration_ids, data.ticket_type_ids)
    return validate_badge_run(template, registrations)


@router.post("/badges/generate", dependencies=[Depends(bulk_rate_limit)])
async def generate_badges(
    event_id: str,
    data: BadgeGenerateRequest,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    template = get_template_or_404(db, event_id, data.template_id)
    registrations = confirmed_registrations(db, event_id, data.registration_ids, template.ticket_type_ids or None)
    if not registrations:
        raise HTTPException(status_code=400, detail="No confirmed registrations to print badges for")

    pdf_bytes = render_badges(template, registrations, event)
    logger.info(f"✅ {current_user.email} generated {len(registrations)} badge(s) for event {event_id}")

    if data.store:
        return GeneratedDocumentResponse(**store_document(pdf_bytes, "badges", event_id, len(registrations)))
    return pdf_download(pdf_bytes, f"badges-{event.slug}.pdf")
