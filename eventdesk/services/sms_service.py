"""
SMS Service
Sends text messages through the provider configured on an event's
communication settings (Twilio, MSG91 or TextLocal)
"""

import logging
import math
import re
import uuid
from dataclasses import dataclass
from typing import Optional

import httpx
from cryptography.fernet import InvalidToken

from ..security_utils import decrypt_credential
from ..shared.validators import to_provider_number

logger = logging.getLogger(__name__)

SMS_PROVIDERS = ("twilio", "msg91", "textlocal")

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"
MSG91_FLOW_URL = "https://control.msg91.com/api/v5/flow/"
TEXTLOCAL_SEND_URL = "https://api.textlocal.in/send/"

GSM_PATTERN = re.compile(r"^[\x20-\x7E\n\r]*$")

REQUEST_TIMEOUT = 15.0


@dataclass
class SendResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


def _secret(value: Optional[str]) -> Optional[str]:
    return decrypt_credential(value) if value else None


def is_sms_configured(settings) -> bool:
    if settings is None or not settings.sms_provider:
        return False
    if settings.sms_provider == "twilio":
        return bool(settings.twilio_account_sid and settings.twilio_auth_token and settings.twilio_phone_number)
    if settings.sms_provider == "msg91":
        return bool(settings.msg91_auth_key and settings.sms_sender_id)
    if settings.sms_provider == "textlocal":
        return bool(settings.textlocal_api_key and settings.sms_sender_id)
    return False


def get_sms_info(message: str) -> dict:
    """Length and segment count; GSM-7 fits 160 (153 multipart), anything else is UCS-2 at 70 (67)"""
    message = message or ""
    is_gsm = bool(GSM_PATTERN.match(message))
    single, multipart = (160, 153) if is_gsm else (70, 67)
    length = len(message)

    if length == 0:
        segments = 0
    elif length <= single:
        segments = 1
    else:
        segments = math.ceil(length / multipart)

    return {
        "length": length,
        "segments": segments,
        "encoding": "GSM-7" if is_gsm else "UCS-2",
        "charsPerSegment": single if segments <= 1 else multipart,
    }


async def _send_via_twilio(client: httpx.AsyncClient, settings, number: str, message: str) -> SendResult:
    sid = settings.twilio_account_sid
    response = await client.post(
        TWILIO_MESSAGES_URL.format(sid=sid),
        data={"From": settings.twilio_phone_number, "To": f"+{number}", "Body": message},
        auth=(sid, _secret(settings.twilio_auth_token)),
    )
    result = response.json()
    if response.is_success and result.get("sid"):
        return SendResult(True, message_id=result["sid"])
    return SendResult(False, error=result.get("message") or "Failed to send SMS")


async def _send_via_msg91(client: httpx.AsyncClient, settings, number: str, message: str) -> SendResult:
    response = await client.post(
        MSG91_FLOW_URL,
        headers={"authkey": _secret(settings.msg91_auth_key)},
        json={
            "template_id": settings.msg91_template_id,
            "sender": settings.sms_sender_id,
            "short_url": "0",
            "mobiles": number,
            "message": message,
        },
    )
    result = response.json()
    if response.is_success and result.get("type") == "success":
        return SendResult(True, message_id=result.get("request_id"))
    return SendResult(False, error=result.get("message") or "Failed to send SMS")


async def _send_via_textlocal(client: httpx.AsyncClient, settings, number: str, message: str) -> SendResult:
    response = await client.post(
        TEXTLOCAL_SEND_URL,
        data={
            "apikey": _secret(settings.textlocal_api_key),
            "numbers": number,
            "sender": settings.sms_sender_id,
            "message": message,
        },
    )
    result = response.json()
    if response.is_success and result.get("status") == "success":
        batch_id = result.get("batch_id")
        return SendResult(True, message_id=str(batch_id) if batch_id is not None else None)
    errors = result.get("errors") or []
    error = errors[0].get("message") if errors else None
    return SendResult(False, error=error or "Failed to send SMS")


PROVIDER_SENDERS = {
    "twilio": _send_via_twilio,
    "msg91": _send_via_msg91,
    "textlocal": _send_via_textlocal,
}


async def send_sms(settings, to_phone: Optional[str], message: str) -> SendResult:
    """
    Send one SMS.

    Without a configured provider the message is only logged and a
    dev-sms-* id is returned, so local setups behave like a real send.
    """
    if not to_phone:
        return SendResult(False, error="No phone number")

    number = to_provider_number(to_phone)

    if not is_sms_configured(settings):
        message_id = f"dev-sms-{uuid.uuid4().hex[:8]}"
        logger.info(f"📱 [dev mode] SMS to {number}: {message[:80]}")
        return SendResult(True, message_id=message_id)

    sender = PROVIDER_SENDERS[settings.sms_provider]
    try:
        async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT) as client:
            result = await sender(client, settings, number, message)
    except (httpx.HTTPError, ValueError, InvalidToken) as e:
        logger.error(f"❌ SMS via {settings.sms_provider} failed for {number}: {e}")
        return SendResult(False, error=str(e))

    if result.success:
        logger.info(f"✅ SMS sent via {settings.sms_provider} to {number}: {result.message_id}")
    else:
        logger.warning(f"⚠️ SMS via {settings.sms_provider} rejected for {number}: {result.error}")
    return result
