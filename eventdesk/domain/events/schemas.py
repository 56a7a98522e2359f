"""Event domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_email

EventType = Literal["conference", "workshop", "seminar", "webinar", "meetup", "other"]
EventStatus = Literal["draft", "setup", "active", "completed", "cancelled"]


class EventBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    short_name: Optional[str] = None
    description: Optional[str] = None
    event_type: EventType = "conference"
    status: EventStatus = "draft"
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    venue_name: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = "India"
    timezone: str = "Asia/Kolkata"
    registration_open: bool = True
    max_attendees: Optional[int] = Field(None, ge=1)
    contact_email: Optional[str] = None
    logo_url: Optional[str] = None

    @field_validator("contact_email")
    @classmethod
    def validate_contact_email(cls, v):
        return validate_email(v)


class EventCreate(EventBase):
    pass


class EventUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    short_name: Optional[str] = None
    description: Optional[str] = None
    event_type: Optional[EventType] = None
    status: Optional[EventStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    venue_name: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    timezone: Optional[str] = None
    registration_open: Optional[bool] = None
    max_attendees: Optional[int] = Field(None, ge=1)
    contact_email: Optional[str] = None
    logo_url: Optional[str] = None

    @field_validator("contact_email")
    @classmethod
    def validate_contact_email(cls, v):
        return validate_email(v)


class EventResponse(EventBase):
    id: str
    slug: str
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EventSettingsUpdate(BaseModel):
    customize_registration_id: Optional[bool] = None
    registration_prefix: Optional[str] = Field(None, max_length=50)
    registration_start_number: Optional[int] = Field(None, ge=0)
    registration_suffix: Optional[str] = Field(None, max_length=50)
    allow_multiple_ticket_types: Optional[bool] = None
    require_approval: Optional[bool] = None
    webhook_url: Optional[str] = None


class EventSettingsResponse(BaseModel):
    event_id: str
    customize_registration_id: bool
    registration_prefix: Optional[str] = None
    registration_start_number: int
    registration_suffix: Optional[str] = None
    current_registration_number: int
    allow_multiple_ticket_types: bool
    require_approval: bool
    webhook_url: Optional[str] = None

    class Config:
        from_attributes = True
