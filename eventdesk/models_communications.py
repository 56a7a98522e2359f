from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from .database import Base
from .models import generate_id


def default_channels():
    return {"email": True, "whatsapp": False, "sms": False, "webhook": False}


class CommunicationSettings(Base):
    __tablename__ = "communication_settings"

    id = Column(String(36), primary_key=True, default=generate_id)
    event_id = Column(String(36), ForeignKey("events.id"), unique=True, nullable=False)

    # Email
    email_provider = Column(String(20), default="default", nullable=False)  # default, smtp, resend
    email_from_name = Column(String(255), nullable=True)
    email_from_address = Column(String(255), nullable=True)
    smtp_host = Column(String(255), nullable=True)
    smtp_port = Column(Integer, nullable=True)
    smtp_username = Column(String(255), nullable=True)
    smtp_password = Column(Text, nullable=True)  # Encrypted
    smtp_use_tls = Column(Boolean, default=True, nullable=False)

    # WhatsApp
    whatsapp_provider = Column(String(20), nullable=True)  # meta, twilio, interakt, wati
    whatsapp_phone_number_id = Column(String(100), nullable=True)
    whatsapp_access_token = Column(Text, nullable=True)  # Encrypted
    whatsapp_api_key = Column(Text, nullable=True)  # Encrypted
    whatsapp_api_url = Column(String(500), nullable=True)

    # SMS
    sms_provider = Column(String(20), nullable=True)  # twilio, msg91, textlocal
    twilio_account_sid = Column(String(100), nullable=True)
    twilio_auth_token = Column(Text, nullable=True)  # Encrypted
    twilio_phone_number = Column(String(50), nullable=True)
    msg91_auth_key = Column(Text, nullable=True)  # Encrypted
    msg91_template_id = Column(String(100), nullable=True)
    textlocal_api_key = Column(Text, nullable=True)  # Encrypted
    sms_sender_id = Column(String(20), nullable=True)

    webhook_url = Column(String(500), nullable=True)
    webhook_secret = Column(Text, nullable=True)  # Encrypted

    channels_enabled = Column(JSON, default=default_channels, nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class MessageTemplate(Base):
    __tablename__ = "message_templates"

    id = Column(String(36), primary_key=True, default=generate_id)
    event_id = Column(String(36), ForeignKey("events.id"), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    channel = Column(String(20), default="email", nullable=False)  # email, whatsapp, sms, all
    email_subject = Column(String(500), nullable=True)
    email_body = Column(Text, nullable=True)
    message_body = Column(Text, nullable=True)
    variables = Column(JSON, default=list, nullable=False)
    auto_send = Column(Boolean, default=False, nullable=False)
    trigger_type = Column(String(30), nullable=True)
    trigger_value = Column(Integer, nullable=True)  # Days before event for days_before_event
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class MessageLog(Base):
    __tablename__ = "message_logs"

    id = Column(String(36), primary_key=True, default=generate_id)
    event_id = Column(String(36), ForeignKey("events.id"), index=True, nullable=False)
    registration_id = Column(String(36), nullable=True)
    template_id = Column(String(36), nullable=True)
    channel = Column(String(20), nullable=False)
    recipient = Column(String(255), nullable=False)
    recipient_name = Column(String(255), nullable=True)
    subject = Column(String(500), nullable=True)
    message_body = Column(Text, nullable=True)
    status = Column(String(20), default="pending", nullable=False)  # sent, failed, pending
    provider = Column(String(30), nullable=True)
    provider_message_id = Column(String(255), nullable=True)
    error_message = Column(Text, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
