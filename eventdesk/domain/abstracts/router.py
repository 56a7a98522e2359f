"""Abstract router - Public submission plus committee review and decision endpoints"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, get_optional_user, require_event_access
from ...database import get_db
from ...models import TeamMember
from ...rate_limiter import public_rate_limit
from ...schemas import MessageResponse
from .schemas import (
    AbstractCategoryCreate,
    AbstractCategoryResponse,
    AbstractCategoryUpdate,
    AbstractDetailResponse,
    AbstractPage,
    AbstractResponse,
    AbstractSettingsResponse,
    AbstractSettingsUpdate,
    AbstractSubmit,
    AbstractUpdate,
    AbstractWithdrawRequest,
    BulkDecisionRequest,
    BulkDecisionResult,
    DecisionRequest,
    ReviewCreate,
    ReviewResponse,
)
from .service import AbstractService, notify_abstract

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Abstracts"])


def get_abstract_service(db: Session = Depends(get_db)) -> AbstractService:
    """Dependency injection for AbstractService"""
    return AbstractService(db)


# ============================================================================
# CATEGORIES AND SETTINGS
# ============================================================================


@router.get("/events/{event_id}/abstract-categories", response_model=list[AbstractCategoryResponse])
async def list_categories(
    event_id: str,
    current_user: TeamMember = Depends(require_event_access),
    service: AbstractService = Depends(get_abstract_service),
):
    return service.list_categories(event_id)


@router.post("/events/{event_id}/abstract-categories", response_model=AbstractCategoryResponse)
async def create_category(
    event_id: str,
    data: AbstractCategoryCreate,
    current_user: TeamMember = Depends(require_event_access),
    service: AbstractService = Depends(get_abstract_service),
):
    return service.create_category(event_id, data)


@router.patch("/events/{event_id}/abstract-categories/{category_id}", response_model=AbstractCategoryResponse)
async def update_category(
    event_id: str,
    category_id: str,
    data: AbstractCategoryUpdate,
    current_user: TeamMember = Depends(require_event_access),
    service: AbstractService = Depends(get_abstract_service),
):
    return service.update_category(event_id, category_id, data)


@router.delete("/events/{event_id}/abstract-categories/{category_id}", response_model=MessageResponse)
async def delete_category(
    event_id: str,
    category_id: str,
    current_user: TeamMember = Depends(require_event_access),
    service: AbstractService = Depends(get_abstract_service),
):
    service.delete_category(event_id, category_id)
    return {"message": "Category deleted"}


@router.get("/events/{event_id}/abstract-settings", response_model=AbstractSettingsResponse)
async def get_abstract_settings(
    event_id: str,
    current_user: TeamMember = Depends(require_event_access),
    service: AbstractService = Depends(get_abstract_service),
):
    return service.get_settings(event_id)


@router.put("/events/{event_id}/abstract-settings", response_model=AbstractSettingsResponse)
async def update_abstract_settings(
    event_id: str,
    data: AbstractSettingsUpdate,
    current_user: TeamMember = Depends(require_event_access),
    service: AbstractService = Depends(get_abstract_service),
):
    return service.update_settings(event_id, data)


# ============================================================================
# EVENT-SCOPED ENDPOINTS
# ============================================================================


@router.post(
    "/events/{event_id}/abstracts",
    response_model=AbstractResponse,
    dependencies=[Depends(public_rate_limit)],
)
async def submit_abstract(
    event_id: str,
    data: AbstractSubmit,
    background_tasks: BackgroundTasks,
    service: AbstractService = Depends(get_abstract_service),
):
    """Public submission; the acknowledgement email goes out after the response"""
    abstract = service.submit_abstract(event_id, data)
    background_tasks.add_task(notify_abstract, abstract.id)
    return abstract


@router.get("/events/{event_id}/abstracts", response_model=AbstractPage)
async def list_abstracts(
    event_id: str,
    status: Optional[str] = Query(None),
    category_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: Optional[int] = Query(1),
    limit: Optional[int] = Query(50),
    current_user: TeamMember = Depends(require_event_access),
    service: AbstractService = Depends(get_abstract_service),
):
    return service.list_abstracts(event_id, status, category_id, search, page, limit)


@router.get("/events/{event_id}/abstracts/export")
async def export_abstracts(
    event_id: str,
    current_user: TeamMember = Depends(require_event_access),
    service: AbstractService = Depends(get_abstract_service),
):
    return service.export_abstracts_csv(event_id)


@router.post("/events/{event_id}/abstracts/bulk-decision", response_model=BulkDecisionResult)
async def bulk_decision(
    event_id: str,
    data: BulkDecisionRequest,
    background_tasks: BackgroundTasks,
    current_user: TeamMember = Depends(require_event_access),
    service: AbstractService = Depends(get_abstract_service),
):
    result = service.bulk_decide(event_id, data.abstract_ids, data, current_user)
    for abstract_id in result.pop("notify_ids"):
        background_tasks.add_task(notify_abstract, abstract_id, data.decision)
    return result


# ============================================================================
# SINGLE ABSTRACT
# ============================================================================


@router.get("/abstracts/{abstract_id}", response_model=AbstractDetailResponse)
async def get_abstract(
    abstract_id: str,
    current_user: Optional[TeamMember] = Depends(get_optional_user),
    service: AbstractService = Depends(get_abstract_service),
):
    """Private reviewer comments are only shown to team members"""
    abstract = service.get_abstract(abstract_id)
    include_private = current_user is not None and current_user.can_access_event(abstract.event_id)
    return service.abstract_detail(abstract, include_private)


@router.patch("/abstracts/{abstract_id}", response_model=AbstractResponse)
async def update_abstract(
    abstract_id: str,
    data: AbstractUpdate,
    current_user: Optional[TeamMember] = Depends(get_optional_user),
    service: AbstractService = Depends(get_abstract_service),
):
    return service.update_abstract(abstract_id, data, current_user)


@router.post("/abstracts/{abstract_id}/withdraw", response_model=AbstractResponse)
async def withdraw_abstract(
    abstract_id: str,
    data: Optional[AbstractWithdrawRequest] = None,
    current_user: Optional[TeamMember] = Depends(get_optional_user),
    service: AbstractService = Depends(get_abstract_service),
):
    return service.withdraw_abstract(abstract_id, current_user, data.author_email if data else None)


@router.post("/abstracts/{abstract_id}/reviews", response_model=ReviewResponse)
async def add_review(
    abstract_id: str,
    data: ReviewCreate,
    current_user: TeamMember = Depends(get_current_user),
    service: AbstractService = Depends(get_abstract_service),
):
    return service.add_review(abstract_id, data, current_user)


@router.post("/abstracts/{abstract_id}/decision", response_model=AbstractResponse)
async def decide_abstract(
    abstract_id: str,
    data: DecisionRequest,
    background_tasks: BackgroundTasks,
    current_user: TeamMember = Depends(get_current_user),
    service: AbstractService = Depends(get_abstract_service),
):
    abstract, notify = service.decide(abstract_id, data, current_user)
    if notify:
        background_tasks.add_task(notify_abstract, abstract.id, data.decision)
    return abstract
