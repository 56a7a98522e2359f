"""
Certificate templates, bulk generation, emailing and public download/verification
"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..auth import require_event_access
from ..database import get_db
from ..domain.communications.service import run_auto_send
from ..models import CertificateTemplate, CheckinRecord, Registration, TeamMember
from ..rate_limiter import bulk_rate_limit, public_rate_limit
from ..schemas import (
    CertificateGenerateRequest,
    CertificateTemplateCreate,
    CertificateTemplateResponse,
    CertificateTemplateUpdate,
    GeneratedDocumentResponse,
    MessageResponse,
    QueuedJobResponse,
)
from ..services.document_renderer import render_certificates
from ..shared.validators import model_updates
from ..worker import enqueue_task
from .badges import confirmed_registrations, get_event_or_404, pdf_download, store_document

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Certificates"])


def get_template_or_404(db: Session, event_id: str, template_id: str) -> CertificateTemplate:
    template = (
        db.query(CertificateTemplate)
        .filter(CertificateTemplate.id == template_id, CertificateTemplate.event_id == event_id)
        .first()
    )
    if not template:
        raise HTTPException(status_code=404, detail="Certificate template not found")
    return template


def has_checked_in(db: Session, registration_id: str) -> bool:
    return (
        db.query(CheckinRecord.id)
        .filter(CheckinRecord.registration_id == registration_id, CheckinRecord.checked_in_at.isnot(None))
        .first()
        is not None
    )


def can_download_certificate(db: Session, registration: Registration) -> bool:
    """Confirmed attendees who checked in at least once; everyone confirmed once the event is completed"""
    if registration.status != "confirmed":
        return False
    if registration.event.status == "completed":
        return True
    return has_checked_in(db, registration.id)


# ============================================================================
# TEMPLATES
# ============================================================================


@router.get("/events/{event_id}/certificate-templates", response_model=list[CertificateTemplateResponse])
async def list_certificate_templates(
    event_id: str,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    return (
        db.query(CertificateTemplate)
        .filter(CertificateTemplate.event_id == event_id)
        .order_by(CertificateTemplate.created_at)
        .all()
    )


@router.post("/events/{event_id}/certificate-templates", response_model=CertificateTemplateResponse)
async def create_certificate_template(
    event_id: str,
    data: CertificateTemplateCreate,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    get_event_or_404(db, event_id)
    template = CertificateTemplate(event_id=event_id, **data.model_dump())
    db.add(template)
    db.commit()
    db.refresh(template)
    logger.info(f"📜 Certificate template '{template.name}' created for event {event_id}")
    return template


@router.get("/events/{event_id}/certificate-templates/{template_id}", response_model=CertificateTemplateResponse)
async def get_certificate_template(
    event_id: str,
    template_id: str,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    return get_template_or_404(db, event_id, template_id)


@router.patch("/events/{event_id}/certificate-templates/{template_id}", response_model=CertificateTemplateResponse)
async def update_certificate_template(
    event_id: str,
    template_id: str,
    data: CertificateTemplateUpdate,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    template = get_template_or_404(db, event_id, template_id)
    for key, value in model_updates(data, template).items():
        setattr(template, key, value)
    db.commit()
    db.refresh(template)
    return template


@router.delete("/events/{event_id}/certificate-templates/{template_id}", response_model=MessageResponse)
async def delete_certificate_template(
    event_id: str,
    template_id: str,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    db.delete(get_template_or_404(db, event_id, template_id))
    db.commit()
    return {"message": "Certificate template deleted"}


# ============================================================================
# GENERATION AND DELIVERY
# ============================================================================


@router.post("/events/{event_id}/certificates/generate", dependencies=[Depends(bulk_rate_limit)])
async def generate_certificates(
    event_id: str,
    data: CertificateGenerateRequest,
    background_tasks: BackgroundTasks,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    template = get_template_or_404(db, event_id, data.template_id)
    registrations = confirmed_registrations(db, event_id, data.registration_ids)
    if not registrations:
        raise HTTPException(status_code=400, detail="No confirmed registrations to generate certificates for")

    pdf_bytes = render_certificates(template, registrations, event)
    for registration in registrations:
        background_tasks.add_task(run_auto_send, "on_certificate_ready", registration.id)
    logger.info(f"✅ {current_user.email} generated {len(registrations)} certificate(s) for event {event_id}")

    if data.store:
        return GeneratedDocumentResponse(**store_document(pdf_bytes, "certificates", event_id, len(registrations)))
    return pdf_download(pdf_bytes, f"certificates-{event.slug}.pdf")


@router.post("/events/{event_id}/certificates/email", response_model=QueuedJobResponse)
async def email_certificates(
    event_id: str,
    data: CertificateGenerateRequest,
    current_user: TeamMember = Depends(require_event_access),
    db: Session = Depends(get_db),
):
    """Queue one certificate email per confirmed registration"""
    get_template_or_404(db, event_id, data.template_id)
    job_id = await enqueue_task("email_certificates_task", event_id, data.template_id, data.registration_ids)
    return {"queued": job_id is not None, "job_id": job_id}


# ============================================================================
# PUBLIC
# ============================================================================


@router.get("/certificates/{registration_number}/download", dependencies=[Depends(public_rate_limit)])
async def download_certificate(
    registration_number: str,
    template_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    registration = db.query(Registration).filter(Registration.registration_number == registration_number).first()
    if not registration:
        raise HTTPException(status_code=404, detail="Registration not found")

    if not can_download_certificate(db, registration):
        raise HTTPException(status_code=403, detail="Certificate is not available for this registration yet")

    query = db.query(CertificateTemplate).filter(
        CertificateTemplate.event_id == registration.event_id, CertificateTemplate.is_active.is_(True)
    )
    if template_id:
        query = query.filter(CertificateTemplate.id == template_id)
    template = query.order_by(CertificateTemplate.created_at).first()
    if not template:
        raise HTTPException(status_code=404, detail="No certificate template is available for this event")

    pdf_bytes = render_certificates(template, [registration], registration.event)
    return pdf_download(pdf_bytes, f"certificate-{registration.registration_number}.pdf")


@router.get("/v/{token}", dependencies=[Depends(public_rate_limit)])
async def verify_registration(token: str, db: Session = Depends(get_db)):
    """Verify a badge or certificate by its check-in token or registration number"""
    registration = (
        db.query(Registration)
        .filter(or_(Registration.checkin_token == token, Registration.registration_number == token))
        .first()
    )
    if not registration:
        return {"valid": False}

    return {
        "valid": True,
        "attendee_name": registration.attendee_name,
        "event_name": registration.event.name,
        "registration_number": registration.registration_number,
        "ticket_type": registration.ticket_type.name if registration.ticket_type else None,
        "status": registration.status,
    }
