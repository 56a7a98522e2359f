"""Program router - Sessions, faculty assignments, invitations and conflict checks"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_event_access
from ...database import get_db
from ...models import TeamMember
from ...rate_limiter import bulk_rate_limit, public_rate_limit
from ...schemas import MessageResponse
from .schemas import (
    AssignmentCreate,
    AssignmentResponse,
    AssignmentUpdate,
    FacultyResponseRequest,
    ProgramImportRequest,
    ProgramImportResult,
    SendInvitationsRequest,
    SendInvitationsResult,
    SessionCreate,
    SessionResponse,
    SessionUpdate,
    SyncResult,
)
from .service import ProgramService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Program"])


def get_program_service(db: Session = Depends(get_db)) -> ProgramService:
    """Dependency injection for ProgramService"""
    return ProgramService(db)


# ============================================================================
# SESSIONS
# ============================================================================


@router.get("/events/{event_id}/sessions", response_model=list[SessionResponse])
async def list_sessions(
    event_id: str,
    session_date: Optional[date] = Query(None, alias="date"),
    hall: Optional[str] = Query(None),
    current_user: TeamMember = Depends(require_event_access),
    service: ProgramService = Depends(get_program_service),
):
    return service.list_sessions(event_id, session_date, hall)


@router.post("/events/{event_id}/sessions", response_model=SessionResponse)
async def create_session(
    event_id: str,
    data: SessionCreate,
    current_user: TeamMember = Depends(require_event_access),
    service: ProgramService = Depends(get_program_service),
):
    return service.create_session(event_id, data)


@router.get("/events/{event_id}/sessions/{session_id}", response_model=SessionResponse)
async def get_session(
    event_id: str,
    session_id: str,
    current_user: TeamMember = Depends(require_event_access),
    service: ProgramService = Depends(get_program_service),
):
    return service.get_session(event_id, session_id)


@router.patch("/events/{event_id}/sessions/{session_id}", response_model=SessionResponse)
async def update_session(
    event_id: str,
    session_id: str,
    data: SessionUpdate,
    current_user: TeamMember = Depends(require_event_access),
    service: ProgramService = Depends(get_program_service),
):
    return service.update_session(event_id, session_id, data)


@router.delete("/events/{event_id}/sessions/{session_id}", response_model=MessageResponse)
async def delete_session(
    event_id: str,
    session_id: str,
    current_user: TeamMember = Depends(require_event_access),
    service: ProgramService = Depends(get_program_service),
):
    service.delete_session(event_id, session_id)
    return {"message": "Session deleted"}


# ============================================================================
# FACULTY ASSIGNMENTS
# ============================================================================


@router.get("/events/{event_id}/faculty-assignments", response_model=list[AssignmentResponse])
async def list_assignments(
    event_id: str,
    status: Optional[str] = Query(None),
    role: Optional[str] = Query(None),
    session_id: Optional[str] = Query(None),
    current_user: TeamMember = Depends(require_event_access),
    service: ProgramService = Depends(get_program_service),
):
    return service.list_assignments(event_id, status, role, session_id)


@router.post("/events/{event_id}/faculty-assignments", response_model=AssignmentResponse)
async def create_assignment(
    event_id: str,
    data: AssignmentCreate,
    current_user: TeamMember = Depends(require_event_access),
    service: ProgramService = Depends(get_program_service),
):
    return service.create_assignment(event_id, data)


@router.post("/events/{event_id}/faculty-assignments/sync", response_model=SyncResult)
async def sync_assignments(
    event_id: str,
    current_user: TeamMember = Depends(require_event_access),
    service: ProgramService = Depends(get_program_service),
):
    return service.sync_assignments(event_id)


@router.post(
    "/events/{event_id}/faculty-assignments/send-invitations",
    response_model=SendInvitationsResult,
    dependencies=[Depends(bulk_rate_limit)],
)
async def send_invitations(
    event_id: str,
    data: Optional[SendInvitationsRequest] = None,
    current_user: TeamMember = Depends(require_event_access),
    service: ProgramService = Depends(get_program_service),
):
    return await service.send_invitations(event_id, data.assignment_ids if data else None)


@router.patch("/events/{event_id}/faculty-assignments/{assignment_id}", response_model=AssignmentResponse)
async def update_assignment(
    event_id: str,
    assignment_id: str,
    data: AssignmentUpdate,
    current_user: TeamMember = Depends(require_event_access),
    service: ProgramService = Depends(get_program_service),
):
    return service.update_assignment(event_id, assignment_id, data)


@router.delete("/events/{event_id}/faculty-assignments/{assignment_id}", response_model=MessageResponse)
async def delete_assignment(
    event_id: str,
    assignment_id: str,
    current_user: TeamMember = Depends(require_event_access),
    service: ProgramService = Depends(get_program_service),
):
    service.delete_assignment(event_id, assignment_id)
    return {"message": "Faculty assignment deleted"}


# ============================================================================
# PROGRAM ANALYSIS
# ============================================================================


@router.get("/events/{event_id}/program/conflicts")
async def program_conflicts(
    event_id: str,
    current_user: TeamMember = Depends(require_event_access),
    service: ProgramService = Depends(get_program_service),
):
    return service.conflicts(event_id)


@router.get("/events/{event_id}/program/export")
async def export_program(
    event_id: str,
    current_user: TeamMember = Depends(require_event_access),
    service: ProgramService = Depends(get_program_service),
):
    return service.export_program_csv(event_id)


@router.post(
    "/events/{event_id}/program/import",
    response_model=ProgramImportResult,
    dependencies=[Depends(bulk_rate_limit)],
)
async def import_program(
    event_id: str,
    data: ProgramImportRequest,
    current_user: TeamMember = Depends(require_event_access),
    service: ProgramService = Depends(get_program_service),
):
    """Create sessions from a program spreadsheet; existing sessions are skipped unless cleared"""
    logger.info(f"📥 {current_user.email} importing program for event {event_id}")
    return service.import_program(event_id, data)


# ============================================================================
# PUBLIC FACULTY RESPONSE
# ============================================================================


@router.get("/respond/{token}", dependencies=[Depends(public_rate_limit)])
async def get_invitation(token: str, service: ProgramService = Depends(get_program_service)):
    return service.get_response_view(token)


@router.post("/respond/{token}", dependencies=[Depends(public_rate_limit)])
async def respond_to_invitation(
    token: str,
    data: FacultyResponseRequest,
    service: ProgramService = Depends(get_program_service),
):
    return service.respond(token, data)
