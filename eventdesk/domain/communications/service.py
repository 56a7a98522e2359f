"""Communications service - Provider settings, templates, bulk sends and auto-send triggers"""

import logging
import math
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...email_service import EmailError, is_email_configured, send_broadcast_email, smtp_configured
from ...models import Event, Registration
from ...models_communications import CommunicationSettings, MessageTemplate, default_channels
from ...security_utils import encrypt_credential, is_masked, mask_secret, sanitize_html
from ...services.placeholders import message_context, personalize_message
from ...services.sms_service import SMS_PROVIDERS, SendResult, is_sms_configured, send_sms
from ...services.webhook_service import post_webhook
from ...services.whatsapp_service import WHATSAPP_PROVIDERS, is_whatsapp_configured, send_whatsapp
from ...shared.validators import clamp_pagination, model_updates
from .repository import CommunicationsRepository
from .schemas import (
    CommunicationSettingsUpdate,
    MessageTemplateCreate,
    MessageTemplateUpdate,
    SendMessageRequest,
)

logger = logging.getLogger(__name__)

EMAIL_PROVIDERS = ("default", "smtp", "resend")
SEND_CHANNELS = ("email", "whatsapp", "sms")

SECRET_FIELDS = (
    "smtp_password",
    "whatsapp_access_token",
    "whatsapp_api_key",
    "twilio_auth_token",
    "msg91_auth_key",
    "textlocal_api_key",
    "webhook_secret",
)

SETTINGS_FIELDS = (
    "email_provider",
    "email_from_name",
    "email_from_address",
    "smtp_host",
    "smtp_port",
    "smtp_username",
    "smtp_password",
    "smtp_use_tls",
    "whatsapp_provider",
    "whatsapp_phone_number_id",
    "whatsapp_access_token",
    "whatsapp_api_key",
    "whatsapp_api_url",
    "sms_provider",
    "twilio_account_sid",
    "twilio_auth_token",
    "twilio_phone_number",
    "msg91_auth_key",
    "msg91_template_id",
    "textlocal_api_key",
    "sms_sender_id",
    "webhook_url",
    "webhook_secret",
)

DEFAULT_TEMPLATES = [
    {
        "name": "Registration Confirmation",
        "description": "Sent after a registration is confirmed",
        "channel": "email",
        "email_subject": "You're registered for {{event_name}}, {{name}}",
        "email_body": (
            "Dear {{name}},\n\nYour registration for {{event_name}} is confirmed.\n\n"
            "Registration ID: {{registration_id}}\nTicket: {{ticket_type}}\n"
            "Date: {{event_date}}\nVenue: {{venue}}\n\nWe look forward to seeing you."
        ),
        "message_body": None,
        "variables": ["name", "event_name", "registration_id", "ticket_type", "event_date", "venue"],
        "trigger_type": "on_registration",
        "trigger_value": None,
    },
    {
        "name": "Payment Receipt",
        "description": "Sent when a payment is marked complete",
        "channel": "email",
        "email_subject": "Payment received - {{event_name}}",
        "email_body": (
            "Dear {{name}},\n\nWe have received your payment of {{amount}} for {{event_name}}.\n\n"
            "Registration ID: {{registration_id}}\nTicket: {{ticket_type}}"
        ),
        "message_body": None,
        "variables": ["name", "amount", "event_name", "registration_id", "ticket_type"],
        "trigger_type": "on_payment",
        "trigger_value": None,
    },
    {
        "name": "Event Reminder",
        "description": "Reminder sent the day before the event",
        "channel": "all",
        "email_subject": "Tomorrow: {{event_name}}",
        "email_body": (
            "Dear {{name}},\n\n{{event_name}} starts tomorrow.\n\nDate: {{event_date}}\nVenue: {{venue}}\n"
            "Please carry a photo ID and your registration ID ({{registration_id}})."
        ),
        "message_body": "Reminder: {{event_name}} starts tomorrow at {{venue}}. Reg ID: {{registration_id}}",
        "variables": ["name", "event_name", "event_date", "venue", "registration_id"],
        "trigger_type": "days_before_event",
        "trigger_value": 1,
    },
    {
        "name": "Certificate Ready",
        "description": "Sent when certificates have been generated",
        "channel": "email",
        "email_subject": "Your certificate for {{event_name}} is ready",
        "email_body": (
            "Dear {{name}},\n\nThank you for attending {{event_name}}. "
            "Your certificate is now available for download."
        ),
        "message_body": None,
        "variables": ["name", "event_name"],
        "trigger_type": "on_certificate_ready",
        "trigger_value": None,
    },
]


def channels_enabled(settings: Optional[CommunicationSettings]) -> dict:
    channels = default_channels()
    if settings is not None and isinstance(settings.channels_enabled, dict):
        channels.update(settings.channels_enabled)
    return channels


def provider_name(channel: str, settings: Optional[CommunicationSettings]) -> str:
    if channel == "email":
        return "smtp" if smtp_configured(settings) else "resend"
    if channel == "whatsapp":
        return settings.whatsapp_provider if is_whatsapp_configured(settings) else "dev"
    return settings.sms_provider if is_sms_configured(settings) else "dev"


def registration_trigger_context(registration: Registration, event: Event) -> dict:
    """Recipient details plus the message variables for one registration"""
    return {
        "event_id": event.id,
        "registration_id": registration.id,
        "recipient_email": registration.attendee_email,
        "recipient_phone": registration.attendee_phone,
        "recipient_name": registration.attendee_name or "",
        "variables": message_context(registration, event),
    }


async def deliver_message(
    channel: str,
    settings: Optional[CommunicationSettings],
    email: Optional[str],
    phone: Optional[str],
    subject: Optional[str],
    body: str,
) -> SendResult:
    """Send one already-personalised message on one channel"""
    if channel == "email":
        if not email:
            return SendResult(False, error="No email address")
        try:
            response = await send_broadcast_email(email, subject or "", body, settings=settings)
        except EmailError as e:
            return SendResult(False, error=str(e))
        message_id = response.get("id") if isinstance(response, dict) else None
        return SendResult(True, message_id=message_id)
    if channel == "whatsapp":
        return await send_whatsapp(settings, phone, body)
    return await send_sms(settings, phone, body)


async def trigger_auto_send(
    db: Session, trigger_type: str, context: dict, trigger_value: Optional[int] = None
) -> dict:
    """
    Fire every active auto-send template for the event and trigger.
    A template channel of "all" fans out to email, whatsapp and sms; a channel
    is skipped when the recipient lacks that contact or the template lacks a body.
    """
    repo = CommunicationsRepository()
    event_id = context["event_id"]
    templates = repo.find_auto_send_templates(db, event_id, trigger_type, trigger_value)
    if not templates:
        return {"sent": 0, "failed": 0, "templates": []}

    settings = repo.get_settings(db, event_id)
    variables = context.get("variables", {})
    sent = failed = 0
    names = []

    for template in templates:
        names.append(template.name)
        channels = list(SEND_CHANNELS) if template.channel == "all" else [template.channel]

        for channel in channels:
            if channel == "email":
                if not (context.get("recipient_email") and template.email_subject):
                    continue
                recipient = context["recipient_email"]
                subject = personalize_message(template.email_subject, variables)
                body = personalize_message(sanitize_html(template.email_body or ""), variables, escape=True)
            else:
                if not (context.get("recipient_phone") and template.message_body):
                    continue
                recipient = context["recipient_phone"]
                subject = None
                body = personalize_message(template.message_body, variables)

            result = await deliver_message(
                channel, settings, context.get("recipient_email"), context.get("recipient_phone"), subject, body
            )
            repo.add_log(
                db,
                event_id=event_id,
                registration_id=context.get("registration_id"),
                template_id=template.id,
                channel=channel,
                recipient=recipient,
                recipient_name=context.get("recipient_name"),
                subject=subject,
                message_body=body,
                status="sent" if result.success else "failed",
                provider=provider_name(channel, settings),
                provider_message_id=result.message_id,
                error_message=result.error,
            )
            if result.success:
                sent += 1
            else:
                failed += 1

    db.commit()
    logger.info(f"📨 Auto-send {trigger_type} for event {event_id}: sent {sent}, failed {failed}, templates {names}")
    return {"sent": sent, "failed": failed, "templates": names}


async def run_auto_send(trigger_type: str, registration_id: str) -> None:
    """BackgroundTasks entry point; uses its own session since the request's is closed"""
    from ...database import SessionLocal

    db = SessionLocal()
    try:
        registration = db.query(Registration).filter(Registration.id == registration_id).first()
        if registration is None:
            return
        await trigger_auto_send(db, trigger_type, registration_trigger_context(registration, registration.event))
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Auto-send {trigger_type} failed for registration {registration_id}: {e}")
    finally:
        db.close()


class CommunicationService:
    """Service layer for communications business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CommunicationsRepository()

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def get_settings_view(self, event_id: str) -> dict:
        settings = self.repo.get_settings(self.db, event_id)
        if settings is None:
            view = {field: None for field in SETTINGS_FIELDS}
            view.update({"email_provider": "default", "smtp_use_tls": True})
        else:
            view = {field: getattr(settings, field) for field in SETTINGS_FIELDS}
            for field in SECRET_FIELDS:
                view[field] = mask_secret(getattr(settings, field))

        view["event_id"] = event_id
        view["channels_enabled"] = channels_enabled(settings)
        view["email_configured"] = is_email_configured(settings)
        view["whatsapp_configured"] = is_whatsapp_configured(settings)
        view["sms_configured"] = is_sms_configured(settings)
        return view

    def update_settings(self, event_id: str, data: CommunicationSettingsUpdate) -> dict:
        updates = data.model_dump(exclude_unset=True)

        if updates.get("email_provider") and updates["email_provider"] not in EMAIL_PROVIDERS:
            raise HTTPException(status_code=400, detail=f"Unknown email provider: {updates['email_provider']}")
        if updates.get("whatsapp_provider") and updates["whatsapp_provider"] not in WHATSAPP_PROVIDERS:
            raise HTTPException(status_code=400, detail=f"Unknown WhatsApp provider: {updates['whatsapp_provider']}")
        if updates.get("sms_provider") and updates["sms_provider"] not in SMS_PROVIDERS:
            raise HTTPException(status_code=400, detail=f"Unknown SMS provider: {updates['sms_provider']}")

        settings = self.repo.get_or_create_settings(self.db, event_id)

        for field, value in updates.items():
            if field == "channels_enabled":
                if value is not None:
                    settings.channels_enabled = {**channels_enabled(settings), **value}
                continue
            if field in SECRET_FIELDS:
                if is_masked(value):
                    continue
                value = encrypt_credential(value) if value else None
            elif value == "":
                value = None
            setattr(settings, field, value)

        self.db.commit()
        logger.info(f"✅ Communication settings updated for event {event_id}")
        return self.get_settings_view(event_id)

    async def send_test(self, event_id: str, channel: str, recipient: str) -> dict:
        settings = self.repo.get_settings(self.db, event_id)
        if channel == "email":
            subject = "EventDesk test email"
            body = "This is a test message from EventDesk. Your email settings are working."
        else:
            subject = None
            body = "This is a test message from EventDesk."

        result = await deliver_message(channel, settings, recipient, recipient, subject, body)
        self.repo.add_log(
            self.db,
            event_id=event_id,
            channel=channel,
            recipient=recipient,
            subject=subject,
            message_body=body,
            status="sent" if result.success else "failed",
            provider=provider_name(channel, settings),
            provider_message_id=result.message_id,
            error_message=result.error,
        )
        self.db.commit()
        return {"success": result.success, "message_id": result.message_id, "error": result.error}

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def list_templates(self, event_id: str) -> list[MessageTemplate]:
        return self.repo.list_templates(self.db, event_id)

    def get_template(self, event_id: str, template_id: str) -> MessageTemplate:
        template = self.repo.get_template(self.db, event_id, template_id)
        if not template:
            raise HTTPException(status_code=404, detail="Template not found")
        return template

    def create_template(self, event_id: str, data: MessageTemplateCreate) -> MessageTemplate:
        template = MessageTemplate(event_id=event_id, **data.model_dump())
        self.db.add(template)
        self.db.commit()
        self.db.refresh(template)
        return template

    def update_template(self, event_id: str, template_id: str, data: MessageTemplateUpdate) -> MessageTemplate:
        template = self.get_template(event_id, template_id)
        for key, value in model_updates(data, template).items():
            setattr(template, key, value)
        self.db.commit()
        self.db.refresh(template)
        return template

    def delete_template(self, event_id: str, template_id: str) -> dict:
        template = self.get_template(event_id, template_id)
        self.db.delete(template)
        self.db.commit()
        return {"message": "Template deleted"}

    def seed_templates(self, event_id: str) -> dict:
        existing = self.repo.template_names(self.db, event_id)
        created = []
        for template in DEFAULT_TEMPLATES:
            if template["name"] in existing:
                continue
            self.db.add(MessageTemplate(event_id=event_id, auto_send=False, is_active=True, **template))
            created.append(template["name"])
        self.db.commit()
        logger.info(f"🌱 Seeded {len(created)} message template(s) for event {event_id}")
        return {"created": created, "skipped": len(DEFAULT_TEMPLATES) - len(created)}

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    def validate_send(self, event_id: str, data: SendMessageRequest) -> CommunicationSettings:
        if data.channel not in SEND_CHANNELS:
            raise HTTPException(status_code=400, detail="Channel must be one of: email, whatsapp, sms")
        if not data.recipient_ids:
            raise HTTPException(status_code=400, detail="At least one recipient is required")

        settings = self.repo.get_settings(self.db, event_id)
        if not channels_enabled(settings).get(data.channel):
            raise HTTPException(status_code=400, detail=f"The {data.channel} channel is not enabled for this event")
        return settings

    async def send_bulk(self, event_id: str, data: SendMessageRequest) -> dict:
        settings = self.validate_send(event_id, data)

        subject, body = data.subject, data.message
        if data.template_id:
            template = self.get_template(event_id, data.template_id)
            if data.channel == "email":
                subject = template.email_subject or subject
                body = template.email_body or body
            else:
                body = template.message_body or body

        if not body:
            raise HTTPException(status_code=400, detail="Message body is required")
        if data.channel == "email":
            if not subject:
                raise HTTPException(status_code=400, detail="Subject is required for email")
            body = sanitize_html(body)

        event = self.db.query(Event).filter(Event.id == event_id).first()
        registrations = self.repo.get_event_registrations(self.db, event_id, data.recipient_ids)
        provider = provider_name(data.channel, settings)
        sent, failed, errors = 0, 0, []

        for registration in registrations:
            variables = message_context(registration, event)
            personal_body = personalize_message(body, variables, escape=data.channel == "email")
            personal_subject = personalize_message(subject, variables) if subject else None
            recipient = (
                registration.attendee_email if data.channel == "email" else registration.attendee_phone
            ) or registration.attendee_name or registration.registration_number

            result = await deliver_message(
                data.channel,
                settings,
                registration.attendee_email,
                registration.attendee_phone,
                personal_subject,
                personal_body,
            )
            self.repo.add_log(
                self.db,
                event_id=event_id,
                registration_id=registration.id,
                template_id=data.template_id,
                channel=data.channel,
                recipient=recipient,
                recipient_name=registration.attendee_name,
                subject=personal_subject,
                message_body=personal_body,
                status="sent" if result.success else "failed",
                provider=provider,
                provider_message_id=result.message_id,
                error_message=result.error,
            )
            if result.success:
                sent += 1
            else:
                failed += 1
                errors.append({"recipient": recipient, "error": result.error or "Unknown error"})

        self.db.commit()
        logger.info(f"📨 Bulk {data.channel} for event {event_id}: sent {sent}, failed {failed}")

        if settings is not None and channels_enabled(settings).get("webhook") and settings.webhook_url:
            await post_webhook(
                settings.webhook_url,
                "messages.sent",
                {"event_id": event_id, "channel": data.channel, "sent": sent, "failed": failed},
                secret=settings.webhook_secret,
            )

        return {"sent": sent, "failed": failed, "errors": errors}

    def list_logs(
        self,
        event_id: str,
        channel: Optional[str],
        status: Optional[str],
        page: Optional[int],
        limit: Optional[int],
    ) -> dict:
        page, limit = clamp_pagination(page, limit)
        rows, total = self.repo.list_logs(self.db, event_id, channel, status, (page - 1) * limit, limit)
        return {
            "data": rows,
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": math.ceil(total / limit) if total else 0,
        }
