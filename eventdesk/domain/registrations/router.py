"""Registration router - Public sign-up plus admin listing, payment and import endpoints"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response
from sqlalchemy.orm import Session

from ...auth import ensure_event_access, get_current_user, require_admin, require_event_access
from ...database import get_db
from ...models import TeamMember
from ...rate_limiter import public_rate_limit
from .schemas import (
    ManualVerificationRequest,
    ManualVerificationResult,
    RegistrationCreate,
    RegistrationImportRequest,
    RegistrationImportResult,
    RegistrationPage,
    RegistrationResponse,
    RegistrationUpdate,
)
from .service import RegistrationService, notify_registration

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Registrations"])


def get_registration_service(db: Session = Depends(get_db)) -> RegistrationService:
    """Dependency injection for RegistrationService"""
    return RegistrationService(db)


# ============================================================================
# EVENT-SCOPED ENDPOINTS
# ============================================================================


@router.post(
    "/events/{event_id}/registrations",
    response_model=RegistrationResponse,
    dependencies=[Depends(public_rate_limit)],
)
async def create_registration(
    event_id: str,
    data: RegistrationCreate,
    background_tasks: BackgroundTasks,
    service: RegistrationService = Depends(get_registration_service),
):
    """Public registration; confirmation and auto-send messages go out after the response"""
    registration = service.create_registration(event_id, data)
    background_tasks.add_task(notify_registration, registration.id, "on_registration", True)
    return registration


@router.get("/events/{event_id}/registrations", response_model=RegistrationPage)
async def list_registrations(
    event_id: str,
    status: Optional[str] = Query(None),
    ticket_type_id: Optional[str] = Query(None),
    payment_status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    current_user: TeamMember = Depends(require_event_access),
    service: RegistrationService = Depends(get_registration_service),
):
    return service.list_registrations(event_id, status, ticket_type_id, payment_status, search, page, limit)


@router.get("/events/{event_id}/registrations/export")
async def export_registrations(
    event_id: str,
    status: Optional[str] = Query(None),
    ticket_type_id: Optional[str] = Query(None),
    payment_status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    current_user: TeamMember = Depends(require_event_access),
    service: RegistrationService = Depends(get_registration_service),
):
    return service.export_registrations_csv(event_id, status, ticket_type_id, payment_status, search)


@router.get("/events/{event_id}/registrations/stats")
async def registration_stats(
    event_id: str,
    current_user: TeamMember = Depends(require_event_access),
    service: RegistrationService = Depends(get_registration_service),
):
    return service.get_stats(event_id)


@router.post("/events/{event_id}/registrations/import", response_model=RegistrationImportResult)
async def import_registrations(
    event_id: str,
    data: RegistrationImportRequest,
    background_tasks: BackgroundTasks,
    current_user: TeamMember = Depends(require_admin),
    service: RegistrationService = Depends(get_registration_service),
):
    """Bulk import from a parsed spreadsheet"""
    ensure_event_access(current_user, event_id)
    result = service.import_registrations(event_id, data)

    notify_ids = result.pop("notify_ids")
    for registration_id in notify_ids:
        background_tasks.add_task(notify_registration, registration_id, "on_registration", True)
    result["notifications_queued"] = len(notify_ids)
    return result


# ============================================================================
# SINGLE REGISTRATION
# ============================================================================


@router.get("/registrations/{registration_id}", response_model=RegistrationResponse)
async def get_registration(
    registration_id: str,
    current_user: TeamMember = Depends(get_current_user),
    service: RegistrationService = Depends(get_registration_service),
):
    registration = service.get_registration(registration_id)
    ensure_event_access(current_user, registration.event_id)
    return registration


@router.patch("/registrations/{registration_id}", response_model=RegistrationResponse)
async def update_registration(
    registration_id: str,
    data: RegistrationUpdate,
    current_user: TeamMember = Depends(get_current_user),
    service: RegistrationService = Depends(get_registration_service),
):
    ensure_event_access(current_user, service.get_registration(registration_id).event_id)
    return service.update_registration(registration_id, data)


@router.post("/registrations/{registration_id}/confirm", response_model=RegistrationResponse)
async def confirm_registration(
    registration_id: str,
    background_tasks: BackgroundTasks,
    current_user: TeamMember = Depends(get_current_user),
    service: RegistrationService = Depends(get_registration_service),
):
    """Mark as paid; fires on_payment templates and the confirmation email"""
    ensure_event_access(current_user, service.get_registration(registration_id).event_id)
    registration = service.confirm_registration(registration_id)
    background_tasks.add_task(notify_registration, registration.id, "on_payment", True)
    return registration


@router.post("/registrations/{registration_id}/cancel", response_model=RegistrationResponse)
async def cancel_registration(
    registration_id: str,
    current_user: TeamMember = Depends(get_current_user),
    service: RegistrationService = Depends(get_registration_service),
):
    ensure_event_access(current_user, service.get_registration(registration_id).event_id)
    return service.cancel_registration(registration_id)


@router.get("/registrations/{registration_id}/receipt")
async def download_receipt(
    registration_id: str,
    current_user: TeamMember = Depends(get_current_user),
    service: RegistrationService = Depends(get_registration_service),
):
    """Registration receipt as a PDF download"""
    ensure_event_access(current_user, service.get_registration(registration_id).event_id)
    registration, content = service.receipt_pdf(registration_id)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="Receipt-{registration.registration_number}.pdf"'},
    )


# ============================================================================
# PAYMENTS
# ============================================================================


@router.post("/payments/{payment_id}/verify-manual", response_model=ManualVerificationResult)
async def verify_payment_manually(
    payment_id: str,
    data: ManualVerificationRequest,
    background_tasks: BackgroundTasks,
    current_user: TeamMember = Depends(get_current_user),
    service: RegistrationService = Depends(get_registration_service),
):
    """Mark a pending payment completed and confirm the registrations it paid for"""
    ensure_event_access(current_user, service.get_payment(payment_id).event_id)
    result = service.verify_manual_payment(payment_id, data, current_user.email)
    for registration_id in result.get("registrations_confirmed", []):
        background_tasks.add_task(notify_registration, registration_id, "on_payment", True)
    return result
