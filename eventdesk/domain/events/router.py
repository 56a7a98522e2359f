"""Event router - FastAPI endpoints for event operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin, require_event_access
from ...database import get_db
from ...models import TeamMember
from .schemas import (
    EventCreate,
    EventResponse,
    EventSettingsResponse,
    EventSettingsUpdate,
    EventUpdate,
)
from .service import EventService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["Events"])


def get_event_service(db: Session = Depends(get_db)) -> EventService:
    """Dependency injection for EventService"""
    return EventService(db)


@router.get("", response_model=list[EventResponse])
async def list_events(
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    current_user: TeamMember = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    """Events visible to the current member"""
    return service.list_events(current_user, status, search)


@router.get("/export")
async def export_events_csv(
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    current_user: TeamMember = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    return service.export_events_csv(current_user, status, search)


@router.post("", response_model=EventResponse)
async def create_event(
    data: EventCreate,
    current_user: TeamMember = Depends(require_admin),
    service: EventService = Depends(get_event_service),
):
    return service.create_event(data, current_user)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: str,
    current_user: TeamMember = Depends(require_event_access),
    service: EventService = Depends(get_event_service),
):
    return service.get_event(event_id)


@router.patch("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: str,
    data: EventUpdate,
    current_user: TeamMember = Depends(require_event_access),
    service: EventService = Depends(get_event_service),
):
    return service.update_event(event_id, data)


@router.delete("/{event_id}")
async def delete_event(
    event_id: str,
    current_user: TeamMember = Depends(require_admin),
    service: EventService = Depends(get_event_service),
):
    """Delete the event with all of its registrations, templates and logs"""
    return service.delete_event(event_id, current_user)


@router.post("/{event_id}/duplicate", response_model=EventResponse)
async def duplicate_event(
    event_id: str,
    current_user: TeamMember = Depends(require_event_access),
    service: EventService = Depends(get_event_service),
):
    return service.duplicate_event(event_id, current_user)


@router.get("/{event_id}/settings", response_model=EventSettingsResponse)
async def get_event_settings(
    event_id: str,
    current_user: TeamMember = Depends(require_event_access),
    service: EventService = Depends(get_event_service),
):
    return service.get_settings(event_id)


@router.put("/{event_id}/settings", response_model=EventSettingsResponse)
async def update_event_settings(
    event_id: str,
    data: EventSettingsUpdate,
    current_user: TeamMember = Depends(require_event_access),
    service: EventService = Depends(get_event_service),
):
    return service.update_settings(event_id, data)


@router.get("/{event_id}/calendar.ics")
async def download_event_calendar(
    event_id: str,
    current_user: TeamMember = Depends(require_event_access),
    service: EventService = Depends(get_event_service),
):
    return service.calendar_file(event_id)
