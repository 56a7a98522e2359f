from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .shared.validators import validate_email, validate_phone

TeamRole = Literal["super_admin", "admin", "event_admin", "staff"]
BadgeSize = Literal["4x3", "3x4", "4x6", "3.5x2", "A6"]
CertificateSize = Literal[
    "A4-landscape", "A4-portrait", "Letter-landscape", "Letter-portrait", "A3-landscape", "A3-portrait"
]
CheckinAction = Literal["check_in", "check_out", "toggle"]
BookingStatus = Literal["pending", "booked", "confirmed", "cancelled"]


class MessageResponse(BaseModel):
    message: str


# Auth and team schemas
class MagicLinkRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return validate_email(v)


class VerifyTokenRequest(BaseModel):
    token: str = Field(..., min_length=10)


class TeamMemberCreate(BaseModel):
    email: str
    name: Optional[str] = None
    phone: Optional[str] = None
    role: TeamRole = "staff"
    event_ids: List[str] = []

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def normalize_phone(cls, v):
        return validate_phone(v)


class TeamMemberUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[TeamRole] = None
    event_ids: Optional[List[str]] = None
    is_active: Optional[bool] = None

    @field_validator("phone")
    @classmethod
    def normalize_phone(cls, v):
        return validate_phone(v)


class TeamMemberResponse(BaseModel):
    id: str
    email: str
    name: Optional[str]
    phone: Optional[str]
    role: str
    event_ids: List[str]
    is_active: bool
    is_admin: bool
    can_manage_team: bool = False
    last_login_at: Optional[datetime]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    member: TeamMemberResponse


# Ticket, discount code and addon schemas
class TicketTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: float = Field(0, ge=0)
    currency: str = "INR"
    quantity_total: Optional[int] = Field(None, ge=0)
    min_per_order: int = Field(1, ge=1)
    max_per_order: int = Field(10, ge=1)
    sale_start_date: Optional[datetime] = None
    sale_end_date: Optional[datetime] = None
    status: Literal["draft", "active", "paused", "sold_out", "expired"] = "draft"
    is_hidden: bool = False
    requires_approval: bool = False
    tax_percentage: float = Field(18, ge=0, le=100)
    sort_order: int = 0


class TicketTypeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = None
    quantity_total: Optional[int] = Field(None, ge=0)
    min_per_order: Optional[int] = Field(None, ge=1)
    max_per_order: Optional[int] = Field(None, ge=1)
    sale_start_date: Optional[datetime] = None
    sale_end_date: Optional[datetime] = None
    status: Optional[Literal["draft", "active", "paused", "sold_out", "expired"]] = None
    is_hidden: Optional[bool] = None
    requires_approval: Optional[bool] = None
    tax_percentage: Optional[float] = Field(None, ge=0, le=100)
    sort_order: Optional[int] = None


class TicketTypeResponse(TicketTypeCreate):
    id: str
    event_id: str
    quantity_sold: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DiscountCodeCreate(BaseModel):
    code: str = Field(..., min_length=2, max_length=50)
    description: Optional[str] = None
    discount_type: Literal["percentage", "fixed"] = "percentage"
    discount_value: float = Field(..., gt=0)
    max_discount_amount: Optional[float] = Field(None, ge=0)
    max_uses: Optional[int] = Field(None, ge=1)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    applies_to_ticket_ids: List[str] = []
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def uppercase_code(cls, v):
        return v.strip().upper()


class DiscountCodeUpdate(BaseModel):
    description: Optional[str] = None
    discount_type: Optional[Literal["percentage", "fixed"]] = None
    discount_value: Optional[float] = Field(None, gt=0)
    max_discount_amount: Optional[float] = Field(None, ge=0)
    max_uses: Optional[int] = Field(None, ge=1)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    applies_to_ticket_ids: Optional[List[str]] = None
    is_active: Optional[bool] = None


class DiscountCodeResponse(DiscountCodeCreate):
    id: str
    event_id: str
    current_uses: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DiscountValidateRequest(BaseModel):
    code: str
    ticket_type_id: str
    quantity: int = Field(1, ge=1)


class DiscountValidateResponse(BaseModel):
    valid: bool
    discount_amount: float = 0
    discount_type: Optional[str] = None
    message: str


class AddonCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: float = Field(0, ge=0)
    max_quantity: int = Field(1, ge=1)
    is_active: bool = True
    sort_order: int = 0


class AddonUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    max_quantity: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None


class AddonResponse(AddonCreate):
    id: str
    event_id: str

    class Config:
        from_attributes = True


# Check-in schemas
class CheckinListCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    ticket_type_ids: List[str] = []
    addon_ids: List[str] = []
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    allow_multiple_checkins: bool = True
    is_active: bool = True


class CheckinListUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    ticket_type_ids: Optional[List[str]] = None
    addon_ids: Optional[List[str]] = None
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    allow_multiple_checkins: Optional[bool] = None
    is_active: Optional[bool] = None


class CheckinListResponse(CheckinListCreate):
    id: str
    event_id: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CheckinRequest(BaseModel):
    """Identify the attendee by id, printed registration number or scanned QR token"""

    checkin_list_id: str
    registration_id: Optional[str] = None
    registration_number: Optional[str] = None
    checkin_token: Optional[str] = None
    action: CheckinAction = "check_in"


class BulkCheckinRequest(BaseModel):
    checkin_list_id: str
    registration_ids: List[str] = Field(..., min_length=1)
    action: CheckinAction = "check_in"


# Badge and certificate schemas
class BadgeTemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    size: BadgeSize = "4x3"
    template_data: Dict[str, Any] = {"elements": []}
    ticket_type_ids: List[str] = []
    is_default: bool = False


class BadgeTemplateUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    size: Optional[BadgeSize] = None
    template_data: Optional[Dict[str, Any]] = None
    ticket_type_ids: Optional[List[str]] = None
    is_default: Optional[bool] = None


class BadgeTemplateResponse(BadgeTemplateCreate):
    id: str
    event_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BadgeValidateRequest(BaseModel):
    template_id: Optional[str] = None
    ticket_type_ids: Optional[List[str]] = None
    registration_ids: Optional[List[str]] = None


class BadgeGenerateRequest(BaseModel):
    template_id: str
    registration_ids: Optional[List[str]] = None
    store: bool = False


class CertificateTemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    size: CertificateSize = "A4-landscape"
    background_url: Optional[str] = None
    template_data: Dict[str, Any] = {"elements": []}
    is_active: bool = True


class CertificateTemplateUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    size: Optional[CertificateSize] = None
    background_url: Optional[str] = None
    template_data: Optional[Dict[str, Any]] = None
    is_active: Optional[bool] = None


class CertificateTemplateResponse(CertificateTemplateCreate):
    id: str
    event_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CertificateGenerateRequest(BaseModel):
    template_id: str
    registration_ids: Optional[List[str]] = None
    store: bool = False


class GeneratedDocumentResponse(BaseModel):
    url: str
    count: int


class QueuedJobResponse(BaseModel):
    queued: bool
    job_id: Optional[str] = None


# Travel schemas
class TravelBookingUpdate(BaseModel):
    mode: Optional[Literal["flight", "train", "self"]] = None
    arrival_date: Optional[date] = None
    departure_date: Optional[date] = None
    from_city: Optional[str] = None
    id_proof_submitted: Optional[bool] = None
    hotel_required: Optional[bool] = None
    pickup_required: Optional[bool] = None
    drop_required: Optional[bool] = None

    onward_status: Optional[BookingStatus] = None
    onward_pnr: Optional[str] = None
    onward_carrier: Optional[str] = None
    onward_number: Optional[str] = None
    onward_from: Optional[str] = None
    onward_to: Optional[str] = None
    onward_departure: Optional[datetime] = None
    onward_arrival: Optional[datetime] = None
    onward_cost: Optional[float] = Field(None, ge=0)

    return_status: Optional[BookingStatus] = None
    return_pnr: Optional[str] = None
    return_carrier: Optional[str] = None
    return_number: Optional[str] = None
    return_from: Optional[str] = None
    return_to: Optional[str] = None
    return_departure: Optional[datetime] = None
    return_arrival: Optional[datetime] = None
    return_cost: Optional[float] = Field(None, ge=0)

    hotel_status: Optional[BookingStatus] = None
    hotel_name: Optional[str] = None
    hotel_address: Optional[str] = None
    hotel_confirmation: Optional[str] = None
    hotel_checkin: Optional[date] = None
    hotel_checkout: Optional[date] = None
    hotel_cost: Optional[float] = Field(None, ge=0)

    pickup_details: Optional[str] = None
    drop_details: Optional[str] = None


class TravelBookingResponse(TravelBookingUpdate):
    id: str
    registration_id: str
    voucher_sent_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TravelGuestResponse(BaseModel):
    registration_id: str
    registration_number: str
    name: Optional[str]
    email: str
    phone: Optional[str]
    travel: TravelBookingResponse
