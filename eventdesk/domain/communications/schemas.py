"""Communications domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

MessageChannel = Literal["email", "whatsapp", "sms"]
TemplateChannel = Literal["email", "whatsapp", "sms", "all"]
TriggerType = Literal["on_registration", "on_payment", "on_checkin", "on_certificate_ready", "days_before_event"]


class ChannelsEnabled(BaseModel):
    email: bool = True
    whatsapp: bool = False
    sms: bool = False
    webhook: bool = False


class CommunicationSettingsUpdate(BaseModel):
    """Secrets may be sent back masked ("••••1234"); masked values keep the stored secret"""

    email_provider: Optional[str] = None
    email_from_name: Optional[str] = None
    email_from_address: Optional[str] = None
    smtp_host: Optional[str] = None
    smtp_port: Optional[int] = None
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: Optional[bool] = None

    whatsapp_provider: Optional[str] = None
    whatsapp_phone_number_id: Optional[str] = None
    whatsapp_access_token: Optional[str] = None
    whatsapp_api_key: Optional[str] = None
    whatsapp_api_url: Optional[str] = None

    sms_provider: Optional[str] = None
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_phone_number: Optional[str] = None
    msg91_auth_key: Optional[str] = None
    msg91_template_id: Optional[str] = None
    textlocal_api_key: Optional[str] = None
    sms_sender_id: Optional[str] = None

    webhook_url: Optional[str] = None
    webhook_secret: Optional[str] = None

    channels_enabled: Optional[ChannelsEnabled] = None


class TestMessageRequest(BaseModel):
    channel: MessageChannel
    recipient: str = Field(..., min_length=3)


class MessageTemplateBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    channel: TemplateChannel = "email"
    email_subject: Optional[str] = None
    email_body: Optional[str] = None
    message_body: Optional[str] = None
    variables: list[str] = []
    auto_send: bool = False
    trigger_type: Optional[TriggerType] = None
    trigger_value: Optional[int] = None
    is_active: bool = True


class MessageTemplateCreate(MessageTemplateBase):
    pass


class MessageTemplateUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    channel: Optional[TemplateChannel] = None
    email_subject: Optional[str] = None
    email_body: Optional[str] = None
    message_body: Optional[str] = None
    variables: Optional[list[str]] = None
    auto_send: Optional[bool] = None
    trigger_type: Optional[TriggerType] = None
    trigger_value: Optional[int] = None
    is_active: Optional[bool] = None


class MessageTemplateResponse(MessageTemplateBase):
    id: str
    event_id: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SendMessageRequest(BaseModel):
    channel: str
    recipient_ids: list[str]
    subject: Optional[str] = None
    message: Optional[str] = None
    template_id: Optional[str] = None

    @field_validator("channel")
    @classmethod
    def validate_channel(cls, v):
        # Checked here rather than with Literal so a bad channel is a 400, not a 422
        return (v or "").strip().lower()


class SendError(BaseModel):
    recipient: str
    error: str


class SendMessageResponse(BaseModel):
    sent: int
    failed: int
    errors: list[SendError] = []


class QueuedResponse(BaseModel):
    queued: bool
    job_id: Optional[str] = None


class MessageLogResponse(BaseModel):
    id: str
    event_id: str
    registration_id: Optional[str] = None
    template_id: Optional[str] = None
    channel: str
    recipient: str
    recipient_name: Optional[str] = None
    subject: Optional[str] = None
    message_body: Optional[str] = None
    status: str
    provider: Optional[str] = None
    provider_message_id: Optional[str] = None
    error_message: Optional[str] = None
    sent_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MessageLogPage(BaseModel):
    data: list[MessageLogResponse]
    total: int
    page: int
    limit: int
    total_pages: int
