"""Program domain schemas - Pydantic models for validation"""

from datetime import date, datetime, time
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...shared.validators import validate_email, validate_phone

SessionType = Literal["lecture", "panel", "workshop", "keynote", "break", "other"]
FacultyRole = Literal["speaker", "chairperson", "moderator", "panelist"]
AssignmentStatus = Literal["pending", "invited", "confirmed", "declined", "change_requested", "cancelled"]


class SessionCreate(BaseModel):
    session_name: str = Field(..., min_length=1, max_length=500)
    session_type: SessionType = "lecture"
    session_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    hall: Optional[str] = None
    speakers: Optional[str] = None
    chairpersons: Optional[str] = None
    moderators: Optional[str] = None
    description: Optional[str] = None
    track: Optional[str] = None
    sort_order: int = 0


class SessionUpdate(BaseModel):
    session_name: Optional[str] = Field(None, min_length=1, max_length=500)
    session_type: Optional[SessionType] = None
    session_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    hall: Optional[str] = None
    speakers: Optional[str] = None
    chairpersons: Optional[str] = None
    moderators: Optional[str] = None
    description: Optional[str] = None
    track: Optional[str] = None
    sort_order: Optional[int] = None


class SessionResponse(SessionCreate):
    id: str
    event_id: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AssignmentCreate(BaseModel):
    session_id: Optional[str] = None
    faculty_name: str = Field(..., min_length=1, max_length=255)
    faculty_email: Optional[str] = None
    faculty_phone: Optional[str] = None
    role: FacultyRole = "speaker"
    status: AssignmentStatus = "pending"
    topic_title: Optional[str] = None

    @field_validator("faculty_email")
    @classmethod
    def validate_faculty_email(cls, v):
        return validate_email(v)

    @field_validator("faculty_phone")
    @classmethod
    def validate_faculty_phone(cls, v):
        return validate_phone(v)


class AssignmentUpdate(BaseModel):
    session_id: Optional[str] = None
    faculty_name: Optional[str] = Field(None, min_length=1, max_length=255)
    faculty_email: Optional[str] = None
    faculty_phone: Optional[str] = None
    role: Optional[FacultyRole] = None
    status: Optional[AssignmentStatus] = None
    topic_title: Optional[str] = None

    @field_validator("faculty_email")
    @classmethod
    def validate_faculty_email(cls, v):
        return validate_email(v)

    @field_validator("faculty_phone")
    @classmethod
    def validate_faculty_phone(cls, v):
        return validate_phone(v)


class AssignmentResponse(BaseModel):
    id: str
    event_id: str
    session_id: Optional[str] = None
    faculty_name: str
    faculty_email: Optional[str] = None
    faculty_phone: Optional[str] = None
    role: str
    status: str
    invitation_token: str
    invitation_sent_at: Optional[datetime] = None
    reminder_count: int = 0
    last_reminder_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    response_notes: Optional[str] = None
    change_request_details: Optional[str] = None
    topic_title: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SyncResult(BaseModel):
    created: int


class SendInvitationsRequest(BaseModel):
    assignment_ids: Optional[list[str]] = None


class SendInvitationsResult(BaseModel):
    sent: int
    failed: int
    skipped: int
    errors: list[dict] = []


class FacultyResponseRequest(BaseModel):
    """Either one globalResponse for every session, or per-assignment responses and notes"""

    model_config = ConfigDict(populate_by_name=True)

    global_response: Optional[str] = Field(None, alias="globalResponse")
    responses: Optional[dict[str, str]] = None
    notes: Optional[Union[str, dict[str, str]]] = None


class ProgramImportRequest(BaseModel):
    """Spreadsheet rows keyed by header, or the raw CSV text"""

    rows: list[dict[str, Any]] = []
    csv_text: Optional[str] = None
    clear_existing: bool = False
    create_assignments: bool = True


class ProgramImportResult(BaseModel):
    imported: int
    skipped_duplicates: int
    total_rows: int
    unique_sessions: int
    unusable_rows: list[int] = []
    assignments_created: int = 0
