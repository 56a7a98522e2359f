"""
Unified Email Service using an event's custom SMTP or Resend (fallback)
Provides email functionality using MJML templates for responsive design
"""

import logging
import smtplib
import ssl
from datetime import datetime
from email import encoders
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional, Union

import resend
from cryptography.fernet import InvalidToken
from mjml import mjml_to_html

from .config import APP_URL, EMAIL_FROM_ADDRESS, FRONTEND_URL, MAGIC_LINK_MAX_AGE, RESEND_API_KEY
from .email_templates import (
    abstract_decision_template,
    abstract_received_template,
    broadcast_template,
    certificate_ready_template,
    faculty_invitation_template,
    form_submission_confirmation_template,
    form_submission_notification_template,
    magic_link_template,
    registration_confirmation_template,
    travel_itinerary_template,
)
from .security_utils import decrypt_credential

logger = logging.getLogger(__name__)

# Initialize Resend as fallback
resend.api_key = RESEND_API_KEY


class EmailError(Exception):
    """Raised when an email could not be compiled or delivered"""


def smtp_configured(settings) -> bool:
    return bool(
        settings is not None
        and settings.email_provider == "smtp"
        and settings.smtp_host
        and settings.smtp_username
        and settings.smtp_password
    )


def is_email_configured(settings=None) -> bool:
    return smtp_configured(settings) or bool(RESEND_API_KEY)


def get_sender_email(settings=None) -> str:
    """
    Sender address, in priority order:
    1. The event's configured from name/address
    2. EventDesk default address
    """
    if settings is not None and settings.email_from_address:
        name = settings.email_from_name or "EventDesk"
        return f"{name} <{settings.email_from_address}>"
    return EMAIL_FROM_ADDRESS


def send_via_custom_smtp(
    settings,
    to: list[str],
    subject: str,
    html_content: str,
    from_address: str,
    attachments: Optional[list[dict]] = None,
) -> dict:
    """Send email via the event's SMTP server"""
    host = settings.smtp_host
    port = settings.smtp_port or 587
    use_tls = settings.smtp_use_tls if settings.smtp_use_tls is not None else True

    try:
        password = decrypt_credential(settings.smtp_password)
    except InvalidToken as e:
        raise EmailError("Stored SMTP password could not be decrypted") from e

    msg = MIMEMultipart("mixed")
    msg["Subject"] = subject
    msg["From"] = from_address
    msg["To"] = ", ".join(to)
    msg.attach(MIMEText(html_content, "html"))

    for attachment in attachments or []:
        part = MIMEBase(*attachment.get("content_type", "application/octet-stream").split("/", 1))
        part.set_payload(attachment["content"])
        encoders.encode_base64(part)
        part.add_header("Content-Disposition", f'attachment; filename="{attachment["filename"]}"')
        msg.attach(part)

    try:
        if port == 465:
            context = ssl.create_default_context()
            server = smtplib.SMTP_SSL(host, port, context=context, timeout=30)
        else:
            server = smtplib.SMTP(host, port, timeout=30)
            if use_tls:
                context = ssl.create_default_context()
                server.starttls(context=context)

        server.login(settings.smtp_username, password)
        server.sendmail(from_address.split("<")[-1].rstrip(">"), to, msg.as_string())
        server.quit()
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"❌ Custom SMTP send failed via {host}: {e}")
        raise EmailError(f"Custom SMTP failed: {e}") from e

    logger.info(f"✅ Custom SMTP email sent successfully via {host}")
    return {"id": f"smtp-{datetime.utcnow().timestamp()}", "success": True}


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise EmailError(f"Failed to compile MJML template: {e}") from e

    if isinstance(result, dict):
        errors, html_content = result.get("errors"), result.get("html", "")
    else:
        errors, html_content = getattr(result, "errors", None), getattr(result, "html", str(result))
    if errors:
        logger.warning(f"MJML compilation warnings: {errors}")
    return html_content


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
    settings=None,
    attachments: Optional[list[dict]] = None,
) -> dict:
    """
    Send an email using the event's SMTP (if configured) or Resend (fallback)

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address
        settings: Optional CommunicationSettings for custom SMTP
        attachments: Optional list of {"filename", "content" (bytes), "content_type"}

    Returns:
        Send response dict with an "id"
    """
    if not is_email_configured(settings):
        logger.error("❌ No email service configured - RESEND_API_KEY missing and no custom SMTP")
        raise EmailError("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)

    recipients = [to] if isinstance(to, str) else list(to)
    sender = from_address or get_sender_email(settings)

    if smtp_configured(settings):
        try:
            logger.info(f"📧 Sending email via custom SMTP: {settings.smtp_host}")
            return send_via_custom_smtp(
                settings=settings,
                to=recipients,
                subject=subject,
                html_content=html_content,
                from_address=sender,
                attachments=attachments,
            )
        except EmailError as e:
            logger.warning(f"⚠️ Custom SMTP failed, falling back to Resend: {e}")

    if not RESEND_API_KEY:
        raise EmailError("Custom SMTP failed and Resend is not configured")

    email_data = {
        "from": sender,
        "to": recipients,
        "subject": subject,
        "html": html_content,
    }
    if attachments:
        email_data["attachments"] = [
            {"filename": attachment["filename"], "content": list(attachment["content"])}
            for attachment in attachments
        ]

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(email_data)
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise EmailError(f"Failed to send email: {e}") from e

    logger.info(f"✅ Email sent successfully via Resend: {response}")
    return response


# ============================================
# Pre-built emails
# ============================================


async def send_magic_link_email(to: str, name: Optional[str], token: str) -> dict:
    login_url = f"{FRONTEND_URL.rstrip('/')}/auth/verify?token={token}"
    return await send_email(
        to=to,
        subject="Your EventDesk sign-in link",
        mjml_content=magic_link_template(name, login_url, MAGIC_LINK_MAX_AGE // 60),
    )


async def send_registration_confirmation(registration, event, settings=None) -> dict:
    from .services.placeholders import format_event_dates, verification_url

    venue = ", ".join(p for p in [event.venue_name, event.city] if p)
    amount = f"{registration.total_amount:.2f}" if registration.total_amount else "Free"
    mjml_content = registration_confirmation_template(
        attendee_name=registration.attendee_name or "there",
        event_name=event.name,
        registration_number=registration.registration_number,
        ticket_name=registration.ticket_type.name if registration.ticket_type else None,
        event_dates=format_event_dates(event),
        venue=venue,
        amount=amount,
        verification_url=verification_url(registration, APP_URL),
    )
    return await send_email(
        to=registration.attendee_email,
        subject=f"Registration confirmed: {event.name} ({registration.registration_number})",
        mjml_content=mjml_content,
        settings=settings,
    )


async def send_faculty_invitation(
    to: str,
    faculty_name: str,
    event_name: str,
    sessions: list[dict],
    token: str,
    settings=None,
    is_reminder: bool = False,
) -> dict:
    respond_url = f"{FRONTEND_URL.rstrip('/')}/respond/{token}"
    subject = f"{'Reminder: ' if is_reminder else ''}Faculty invitation - {event_name}"
    return await send_email(
        to=to,
        subject=subject,
        mjml_content=faculty_invitation_template(faculty_name, event_name, sessions, respond_url, is_reminder),
        settings=settings,
    )


async def send_abstract_received(abstract, event, settings=None) -> dict:
    return await send_email(
        to=abstract.presenting_author_email,
        subject=f"Abstract received: {abstract.abstract_number}",
        mjml_content=abstract_received_template(
            abstract.presenting_author_name, event.name, abstract.abstract_number, abstract.title
        ),
        settings=settings,
    )


async def send_abstract_decision(abstract, event, decision: str, category_name: Optional[str] = None, settings=None) -> dict:
    return await send_email(
        to=abstract.presenting_author_email,
        subject=f"Abstract {abstract.abstract_number}: decision for {event.name}",
        mjml_content=abstract_decision_template(
            author_name=abstract.presenting_author_name,
            event_name=event.name,
            abstract_number=abstract.abstract_number,
            title=abstract.title,
            decision=decision,
            notes=abstract.decision_notes,
            accepted_as=abstract.accepted_as,
            category_name=category_name,
        ),
        settings=settings,
    )


async def send_certificate_email(registration, event, pdf_bytes: bytes, settings=None) -> dict:
    download_url = f"{APP_URL.rstrip('/')}/certificates/{registration.registration_number}/download"
    return await send_email(
        to=registration.attendee_email,
        subject=f"Your certificate - {event.name}",
        mjml_content=certificate_ready_template(registration.attendee_name or "Participant", event.name, download_url),
        settings=settings,
        attachments=[
            {
                "filename": f"certificate-{registration.registration_number}.pdf",
                "content": pdf_bytes,
                "content_type": "application/pdf",
            }
        ],
    )


async def send_travel_itinerary(
    to: str,
    guest_name: str,
    event_name: str,
    legs: list[dict],
    hotel: Optional[dict],
    ics_content: str,
    settings=None,
) -> dict:
    return await send_email(
        to=to,
        subject=f"Travel itinerary - {event_name}",
        mjml_content=travel_itinerary_template(guest_name, event_name, legs, hotel),
        settings=settings,
        attachments=[
            {"filename": "itinerary.ics", "content": ics_content.encode(), "content_type": "text/calendar"}
        ],
    )


async def send_form_confirmation(to: str, name: Optional[str], form_name: str, success_message: Optional[str]) -> dict:
    return await send_email(
        to=to,
        subject=f"We received your response - {form_name}",
        mjml_content=form_submission_confirmation_template(name, form_name, success_message),
    )


async def send_form_notification(to: list[str], form_name: str, answers: list[tuple[str, str]], form_id: str) -> dict:
    admin_url = f"{FRONTEND_URL.rstrip('/')}/forms/{form_id}/submissions"
    return await send_email(
        to=to,
        subject=f"New submission: {form_name}",
        mjml_content=form_submission_notification_template(form_name, answers, admin_url),
    )


async def send_broadcast_email(to: str, subject: str, body_html: str, settings=None) -> dict:
    return await send_email(
        to=to,
        subject=subject,
        mjml_content=broadcast_template(subject, body_html),
        settings=settings,
    )


async def deliver_in_background(send, *args, **kwargs) -> None:
    """BackgroundTasks entry point: run a send_* coroutine and log instead of raising"""
    try:
        await send(*args, **kwargs)
    except EmailError as e:
        logger.warning(f"⚠️ Background email {getattr(send, '__name__', send)} not sent: {e}")
