"""Form router - Form builder for staff plus public form rendering and submission"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import TeamMember
from ...rate_limiter import get_client_ip, public_rate_limit
from ...schemas import MessageResponse
from .schemas import (
    FieldReorderRequest,
    FormCreate,
    FormDetailResponse,
    FormFieldCreate,
    FormFieldResponse,
    FormFieldUpdate,
    FormResponse,
    FormSubmissionResponse,
    FormSubmitRequest,
    FormUpdate,
    PublicFormResponse,
    SubmissionPage,
    SubmissionStatusUpdate,
    SubmitResult,
)
from .service import FormService, notify_form_submission

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Forms"])


def get_form_service(db: Session = Depends(get_db)) -> FormService:
    """Dependency injection for FormService"""
    return FormService(db)


# ============================================================================
# FORMS
# ============================================================================


@router.get("/forms", response_model=list[FormResponse])
async def list_forms(
    event_id: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    current_user: TeamMember = Depends(get_current_user),
    service: FormService = Depends(get_form_service),
):
    return service.list_forms(current_user, event_id, status)


@router.post("/forms", response_model=FormDetailResponse)
async def create_form(
    data: FormCreate,
    current_user: TeamMember = Depends(get_current_user),
    service: FormService = Depends(get_form_service),
):
    return service.create_form(data, current_user)


@router.patch("/forms/submissions/{submission_id}", response_model=FormSubmissionResponse)
async def update_submission_status(
    submission_id: str,
    data: SubmissionStatusUpdate,
    current_user: TeamMember = Depends(get_current_user),
    service: FormService = Depends(get_form_service),
):
    return service.update_submission_status(submission_id, data.status, current_user)


@router.get("/forms/{form_id}", response_model=FormDetailResponse)
async def get_form(
    form_id: str,
    current_user: TeamMember = Depends(get_current_user),
    service: FormService = Depends(get_form_service),
):
    return service.get_form(form_id, current_user)


@router.patch("/forms/{form_id}", response_model=FormDetailResponse)
async def update_form(
    form_id: str,
    data: FormUpdate,
    current_user: TeamMember = Depends(get_current_user),
    service: FormService = Depends(get_form_service),
):
    return service.update_form(form_id, data, current_user)


@router.delete("/forms/{form_id}", response_model=MessageResponse)
async def delete_form(
    form_id: str,
    current_user: TeamMember = Depends(get_current_user),
    service: FormService = Depends(get_form_service),
):
    service.delete_form(form_id, current_user)
    return {"message": "Form deleted"}


# ============================================================================
# FIELDS
# ============================================================================


@router.post("/forms/{form_id}/fields", response_model=FormFieldResponse)
async def add_field(
    form_id: str,
    data: FormFieldCreate,
    current_user: TeamMember = Depends(get_current_user),
    service: FormService = Depends(get_form_service),
):
    return service.add_field(form_id, data, current_user)


@router.post("/forms/{form_id}/fields/reorder", response_model=list[FormFieldResponse])
async def reorder_fields(
    form_id: str,
    data: FieldReorderRequest,
    current_user: TeamMember = Depends(get_current_user),
    service: FormService = Depends(get_form_service),
):
    return service.reorder_fields(form_id, data, current_user)


@router.patch("/forms/{form_id}/fields/{field_id}", response_model=FormFieldResponse)
async def update_field(
    form_id: str,
    field_id: str,
    data: FormFieldUpdate,
    current_user: TeamMember = Depends(get_current_user),
    service: FormService = Depends(get_form_service),
):
    return service.update_field(form_id, field_id, data, current_user)


@router.delete("/forms/{form_id}/fields/{field_id}", response_model=MessageResponse)
async def delete_field(
    form_id: str,
    field_id: str,
    current_user: TeamMember = Depends(get_current_user),
    service: FormService = Depends(get_form_service),
):
    service.delete_field(form_id, field_id, current_user)
    return {"message": "Field deleted"}


# ============================================================================
# SUBMISSIONS
# ============================================================================


@router.get("/forms/{form_id}/submissions", response_model=SubmissionPage)
async def list_submissions(
    form_id: str,
    status: Optional[str] = Query(None),
    page: Optional[int] = Query(1),
    limit: Optional[int] = Query(50),
    current_user: TeamMember = Depends(get_current_user),
    service: FormService = Depends(get_form_service),
):
    return service.list_submissions(form_id, current_user, status, page, limit)


@router.get("/forms/{form_id}/submissions/export")
async def export_submissions(
    form_id: str,
    current_user: TeamMember = Depends(get_current_user),
    service: FormService = Depends(get_form_service),
):
    return service.export_submissions_csv(form_id, current_user)


# ============================================================================
# PUBLIC
# ============================================================================


@router.get("/public/forms/{slug}", response_model=PublicFormResponse)
async def get_public_form(slug: str, service: FormService = Depends(get_form_service)):
    return service.get_public_form(slug)


@router.post(
    "/public/forms/{slug}/submit",
    response_model=SubmitResult,
    dependencies=[Depends(public_rate_limit)],
)
async def submit_form(
    slug: str,
    data: FormSubmitRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    service: FormService = Depends(get_form_service),
):
    submission = service.submit(slug, data, get_client_ip(request), request.headers.get("user-agent"))
    background_tasks.add_task(notify_form_submission, submission.id)
    form = submission.form
    return {
        "submission_id": submission.id,
        "success_message": form.success_message,
        "redirect_url": form.redirect_url,
    }
