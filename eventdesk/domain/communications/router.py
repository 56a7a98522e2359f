"""Communications router - Provider settings, message templates, sends and logs"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_event_access
from ...database import get_db
from ...models import TeamMember
from ...rate_limiter import bulk_rate_limit
from ...services.sms_service import get_sms_info
from ...worker import enqueue_task
from .schemas import (
    CommunicationSettingsUpdate,
    MessageLogPage,
    MessageTemplateCreate,
    MessageTemplateResponse,
    MessageTemplateUpdate,
    QueuedResponse,
    SendMessageRequest,
    SendMessageResponse,
    TestMessageRequest,
)
from .service import CommunicationService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Communications"])


def get_communication_service(db: Session = Depends(get_db)) -> CommunicationService:
    """Dependency injection for CommunicationService"""
    return CommunicationService(db)


# ============================================================================
# PROVIDER SETTINGS
# ============================================================================


@router.get("/events/{event_id}/communications/settings")
async def get_communication_settings(
    event_id: str,
    current_user: TeamMember = Depends(require_event_access),
    service: CommunicationService = Depends(get_communication_service),
):
    """Provider settings with secrets masked"""
    return service.get_settings_view(event_id)


@router.put("/events/{event_id}/communications/settings")
async def update_communication_settings(
    event_id: str,
    data: CommunicationSettingsUpdate,
    current_user: TeamMember = Depends(require_event_access),
    service: CommunicationService = Depends(get_communication_service),
):
    return service.update_settings(event_id, data)


@router.post("/events/{event_id}/communications/test")
async def send_test_message(
    event_id: str,
    data: TestMessageRequest,
    current_user: TeamMember = Depends(require_event_access),
    service: CommunicationService = Depends(get_communication_service),
):
    """Send a test message through the configured provider"""
    return await service.send_test(event_id, data.channel, data.recipient)


# ============================================================================
# MESSAGE TEMPLATES
# ============================================================================


@router.get("/events/{event_id}/message-templates", response_model=list[MessageTemplateResponse])
async def list_message_templates(
    event_id: str,
    current_user: TeamMember = Depends(require_event_access),
    service: CommunicationService = Depends(get_communication_service),
):
    return service.list_templates(event_id)


@router.post("/events/{event_id}/message-templates", response_model=MessageTemplateResponse)
async def create_message_template(
    event_id: str,
    data: MessageTemplateCreate,
    current_user: TeamMember = Depends(require_event_access),
    service: CommunicationService = Depends(get_communication_service),
):
    return service.create_template(event_id, data)


@router.post("/events/{event_id}/message-templates/seed")
async def seed_message_templates(
    event_id: str,
    current_user: TeamMember = Depends(require_event_access),
    service: CommunicationService = Depends(get_communication_service),
):
    """Add the default templates that are not present yet"""
    return service.seed_templates(event_id)


@router.get("/events/{event_id}/message-templates/{template_id}", response_model=MessageTemplateResponse)
async def get_message_template(
    event_id: str,
    template_id: str,
    current_user: TeamMember = Depends(require_event_access),
    service: CommunicationService = Depends(get_communication_service),
):
    return service.get_template(event_id, template_id)


@router.patch("/events/{event_id}/message-templates/{template_id}", response_model=MessageTemplateResponse)
async def update_message_template(
    event_id: str,
    template_id: str,
    data: MessageTemplateUpdate,
    current_user: TeamMember = Depends(require_event_access),
    service: CommunicationService = Depends(get_communication_service),
):
    return service.update_template(event_id, template_id, data)


@router.delete("/events/{event_id}/message-templates/{template_id}")
async def delete_message_template(
    event_id: str,
    template_id: str,
    current_user: TeamMember = Depends(require_event_access),
    service: CommunicationService = Depends(get_communication_service),
):
    return service.delete_template(event_id, template_id)


# ============================================================================
# SENDING
# ============================================================================


@router.post(
    "/events/{event_id}/communications/send",
    response_model=SendMessageResponse,
    dependencies=[Depends(bulk_rate_limit)],
)
async def send_messages(
    event_id: str,
    data: SendMessageRequest,
    current_user: TeamMember = Depends(require_event_access),
    service: CommunicationService = Depends(get_communication_service),
):
    """Send a personalised message to the selected registrations"""
    logger.info(f"📨 {current_user.email} sending {data.channel} to {len(data.recipient_ids)} recipient(s)")
    return await service.send_bulk(event_id, data)


@router.post(
    "/events/{event_id}/communications/send-async",
    response_model=QueuedResponse,
    dependencies=[Depends(bulk_rate_limit)],
)
async def send_messages_async(
    event_id: str,
    data: SendMessageRequest,
    current_user: TeamMember = Depends(require_event_access),
    service: CommunicationService = Depends(get_communication_service),
):
    """Validate now, deliver from the worker"""
    service.validate_send(event_id, data)
    job_id = await enqueue_task("send_bulk_message_task", event_id, data.model_dump())
    return {"queued": job_id is not None, "job_id": job_id}


@router.get("/events/{event_id}/communications/logs", response_model=MessageLogPage)
async def list_message_logs(
    event_id: str,
    channel: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    current_user: TeamMember = Depends(require_event_access),
    service: CommunicationService = Depends(get_communication_service),
):
    return service.list_logs(event_id, channel, status, page, limit)


@router.get("/communications/sms-info")
async def sms_info(message: str = Query("")):
    """Length, segment count and encoding for an SMS body"""
    return get_sms_info(message)
