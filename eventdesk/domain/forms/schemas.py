"""Form domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_email

FormType = Literal["general", "registration", "feedback", "survey", "application"]
FormStatus = Literal["draft", "published", "archived"]
FieldType = Literal[
    "text",
    "email",
    "number",
    "phone",
    "textarea",
    "select",
    "multiselect",
    "checkbox",
    "radio",
    "date",
    "time",
    "file",
    "heading",
    "paragraph",
    "divider",
]
SubmissionStatus = Literal["pending", "reviewed", "approved", "rejected"]


class FieldOption(BaseModel):
    value: str
    label: str


class FormCreate(BaseModel):
    event_id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    form_type: FormType = "general"
    status: FormStatus = "draft"
    allow_multiple_submissions: bool = False
    requires_auth: bool = False
    submit_button_text: str = "Submit"
    success_message: Optional[str] = "Thank you for your submission!"
    redirect_url: Optional[str] = None
    submission_deadline: Optional[datetime] = None
    max_submissions: Optional[int] = Field(None, ge=1)
    notify_on_submission: bool = True
    notification_emails: list[str] = []

    @field_validator("notification_emails")
    @classmethod
    def validate_notification_emails(cls, v):
        return [validate_email(email) for email in v if email and email.strip()]


class FormUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    form_type: Optional[FormType] = None
    status: Optional[FormStatus] = None
    allow_multiple_submissions: Optional[bool] = None
    requires_auth: Optional[bool] = None
    submit_button_text: Optional[str] = None
    success_message: Optional[str] = None
    redirect_url: Optional[str] = None
    submission_deadline: Optional[datetime] = None
    max_submissions: Optional[int] = Field(None, ge=1)
    notify_on_submission: Optional[bool] = None
    notification_emails: Optional[list[str]] = None

    @field_validator("notification_emails")
    @classmethod
    def validate_notification_emails(cls, v):
        if v is None:
            return v
        return [validate_email(email) for email in v if email and email.strip()]


class FormFieldCreate(BaseModel):
    field_type: FieldType
    label: str = Field(..., min_length=1, max_length=500)
    placeholder: Optional[str] = None
    help_text: Optional[str] = None
    is_required: bool = False
    min_length: Optional[int] = Field(None, ge=0)
    max_length: Optional[int] = Field(None, ge=1)
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    pattern: Optional[str] = None
    options: list[FieldOption] = []
    sort_order: Optional[int] = None
    width: Literal["full", "half"] = "full"


class FormFieldUpdate(BaseModel):
    field_type: Optional[FieldType] = None
    label: Optional[str] = Field(None, min_length=1, max_length=500)
    placeholder: Optional[str] = None
    help_text: Optional[str] = None
    is_required: Optional[bool] = None
    min_length: Optional[int] = Field(None, ge=0)
    max_length: Optional[int] = Field(None, ge=1)
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    pattern: Optional[str] = None
    options: Optional[list[FieldOption]] = None
    sort_order: Optional[int] = None
    width: Optional[Literal["full", "half"]] = None


class FormFieldResponse(BaseModel):
    id: str
    form_id: str
    field_type: str
    label: str
    placeholder: Optional[str] = None
    help_text: Optional[str] = None
    is_required: bool
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    pattern: Optional[str] = None
    options: list[dict] = []
    sort_order: int
    width: str

    class Config:
        from_attributes = True


class FieldReorderRequest(BaseModel):
    field_ids: list[str] = Field(..., min_length=1)


class FormResponse(BaseModel):
    id: str
    event_id: Optional[str] = None
    name: str
    slug: str
    description: Optional[str] = None
    form_type: str
    status: str
    allow_multiple_submissions: bool
    requires_auth: bool
    submit_button_text: str
    success_message: Optional[str] = None
    redirect_url: Optional[str] = None
    submission_deadline: Optional[datetime] = None
    max_submissions: Optional[int] = None
    notify_on_submission: bool
    notification_emails: list[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FormDetailResponse(FormResponse):
    fields: list[FormFieldResponse] = []


class PublicFormResponse(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    form_type: str
    submit_button_text: str
    success_message: Optional[str] = None
    redirect_url: Optional[str] = None
    submission_deadline: Optional[datetime] = None
    requires_auth: bool
    fields: list[FormFieldResponse] = []

    class Config:
        from_attributes = True


class FormSubmitRequest(BaseModel):
    responses: dict[str, Any] = {}
    submitter_email: Optional[str] = None
    submitter_name: Optional[str] = None


class FormSubmissionResponse(BaseModel):
    id: str
    form_id: str
    submitter_email: Optional[str] = None
    submitter_name: Optional[str] = None
    responses: dict[str, Any] = {}
    status: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    submitted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SubmissionPage(BaseModel):
    data: list[FormSubmissionResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class SubmissionStatusUpdate(BaseModel):
    status: SubmissionStatus


class SubmitResult(BaseModel):
    submission_id: str
    success_message: Optional[str] = None
    redirect_url: Optional[str] = None
