"""Registration domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_email, validate_phone

PaymentMethod = Literal["free", "cash", "bank_transfer", "online", "razorpay"]


class RegistrationAddonInput(BaseModel):
    addon_id: str
    quantity: int = Field(1, ge=1)


class RegistrationCreate(BaseModel):
    """Public registration form payload"""

    ticket_type_id: str
    quantity: int = 1
    attendee_name: str = Field(..., min_length=1, max_length=255)
    attendee_email: str
    attendee_phone: Optional[str] = None
    attendee_institution: Optional[str] = None
    attendee_designation: Optional[str] = None
    attendee_city: Optional[str] = None
    attendee_state: Optional[str] = None
    attendee_country: Optional[str] = None
    discount_code: Optional[str] = None
    payment_method: PaymentMethod = "online"
    addons: list[RegistrationAddonInput] = []
    custom_fields: dict[str, Any] = {}

    @field_validator("attendee_email")
    @classmethod
    def validate_attendee_email(cls, v):
        return validate_email(v)

    @field_validator("attendee_phone")
    @classmethod
    def validate_attendee_phone(cls, v):
        return validate_phone(v)


class RegistrationUpdate(BaseModel):
    attendee_name: Optional[str] = Field(None, min_length=1, max_length=255)
    attendee_email: Optional[str] = None
    attendee_phone: Optional[str] = None
    attendee_institution: Optional[str] = None
    attendee_designation: Optional[str] = None
    attendee_city: Optional[str] = None
    attendee_state: Optional[str] = None
    attendee_country: Optional[str] = None
    notes: Optional[str] = None
    custom_fields: Optional[dict[str, Any]] = None

    @field_validator("attendee_email")
    @classmethod
    def validate_attendee_email(cls, v):
        return validate_email(v)

    @field_validator("attendee_phone")
    @classmethod
    def validate_attendee_phone(cls, v):
        return validate_phone(v)


class RegistrationAddonResponse(BaseModel):
    addon_id: str
    quantity: int
    unit_price: float
    total_price: float

    class Config:
        from_attributes = True


class RegistrationResponse(BaseModel):
    id: str
    registration_number: str
    event_id: str
    ticket_type_id: Optional[str] = None
    attendee_name: Optional[str] = None
    attendee_email: str
    attendee_phone: Optional[str] = None
    attendee_institution: Optional[str] = None
    attendee_designation: Optional[str] = None
    attendee_city: Optional[str] = None
    attendee_state: Optional[str] = None
    attendee_country: Optional[str] = None
    quantity: int
    unit_price: float
    tax_amount: float
    discount_amount: float
    total_amount: float
    status: str
    payment_status: str
    payment_id: Optional[str] = None
    checkin_token: Optional[str] = None
    custom_fields: dict[str, Any] = {}
    notes: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    addons: list[RegistrationAddonResponse] = []

    class Config:
        from_attributes = True


class RegistrationPage(BaseModel):
    data: list[RegistrationResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class RegistrationImportRequest(BaseModel):
    """Rows as parsed from the organiser's spreadsheet; keys prefixed "q:" become custom fields"""

    ticket_type_id: Optional[str] = None
    status: Literal["confirmed", "pending"] = "confirmed"
    rows: list[dict[str, Any]]


class ImportedRow(BaseModel):
    row: int
    registration_id: str
    registration_number: str
    name: str
    email: str


class RegistrationImportResult(BaseModel):
    success: int
    failed: int
    skipped: int
    errors: list[str]
    created: list[ImportedRow]
    notifications_queued: int


class ManualVerificationRequest(BaseModel):
    """Staff confirmation that money arrived outside the checkout flow"""

    reference: Optional[str] = Field(None, max_length=100)
    amount_received: Optional[float] = Field(None, ge=0)
    note: Optional[str] = None


class ManualVerificationResult(BaseModel):
    status: str
    verified: bool
    message: str
    payment_id: str
    reference: Optional[str] = None
    completed_at: Optional[datetime] = None
    registrations_confirmed: list[str] = []
    amount_mismatch: bool = False
    warning: Optional[str] = None
