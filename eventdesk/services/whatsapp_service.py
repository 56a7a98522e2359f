"""
WhatsApp Service
Text messages through Meta Cloud API, Twilio, Interakt or WATI
"""

import logging
import uuid
from typing import Optional

import httpx
from cryptography.fernet import InvalidToken

from ..security_utils import decrypt_credential
from ..shared.validators import to_provider_number
from .sms_service import REQUEST_TIMEOUT, TWILIO_MESSAGES_URL, SendResult

logger = logging.getLogger(__name__)

WHATSAPP_PROVIDERS = ("meta", "twilio", "interakt", "wati")

META_MESSAGES_URL = "https://graph.facebook.com/v18.0/{phone_number_id}/messages"
INTERAKT_MESSAGE_URL = "https://api.interakt.ai/v1/public/message/"
WATI_DEFAULT_API_URL = "https://live-server.wati.io"


def is_whatsapp_configured(settings) -> bool:
    if settings is None or not settings.whatsapp_provider:
        return False
    provider = settings.whatsapp_provider
    if provider == "meta":
        return bool(settings.whatsapp_phone_number_id and settings.whatsapp_access_token)
    if provider == "twilio":
        return bool(settings.twilio_account_sid and settings.twilio_auth_token and settings.twilio_phone_number)
    if provider in ("interakt", "wati"):
        return bool(settings.whatsapp_api_key)
    return False


async def _send_via_meta(client: httpx.AsyncClient, settings, number: str, message: str) -> SendResult:
    response = await client.post(
        META_MESSAGES_URL.format(phone_number_id=settings.whatsapp_phone_number_id),
        headers={"Authorization": f"Bearer {decrypt_credential(settings.whatsapp_access_token)}"},
        json={"messaging_product": "whatsapp", "to": number, "type": "text", "text": {"body": message}},
    )
    result = response.json()
    messages = result.get("messages") or []
    if response.is_success and messages and messages[0].get("id"):
        return SendResult(True, message_id=messages[0]["id"])
    error = (result.get("error") or {}).get("message")
    return SendResult(False, error=error or "Failed to send message")


async def _send_via_twilio(client: httpx.AsyncClient, settings, number: str, message: str) -> SendResult:
    sid = settings.twilio_account_sid
    sender = settings.twilio_phone_number
    if not sender.startswith("+"):
        sender = f"+{sender}"
    response = await client.post(
        TWILIO_MESSAGES_URL.format(sid=sid),
        data={"From": f"whatsapp:{sender}", "To": f"whatsapp:+{number}", "Body": message},
        auth=(sid, decrypt_credential(settings.twilio_auth_token)),
    )
    result = response.json()
    if response.is_success and result.get("sid"):
        return SendResult(True, message_id=result["sid"])
    return SendResult(False, error=result.get("message") or "Failed to send message")


async def _send_via_interakt(client: httpx.AsyncClient, settings, number: str, message: str) -> SendResult:
    # Interakt wants the national number separately from the country code
    national = number[2:] if number.startswith("91") and len(number) == 12 else number
    response = await client.post(
        INTERAKT_MESSAGE_URL,
        headers={"Authorization": f"Basic {decrypt_credential(settings.whatsapp_api_key)}"},
        json={
            "countryCode": "+91",
            "phoneNumber": national,
            "callbackData": "eventdesk",
            "type": "Text",
            "data": {"message": message},
        },
    )
    result = response.json()
    if response.is_success and (result.get("result") or result.get("id")):
        return SendResult(True, message_id=result.get("id"))
    return SendResult(False, error=result.get("message") or "Failed to send message")


async def _send_via_wati(client: httpx.AsyncClient, settings, number: str, message: str) -> SendResult:
    base_url = (settings.whatsapp_api_url or WATI_DEFAULT_API_URL).rstrip("/")
    response = await client.post(
        f"{base_url}/api/v1/sendSessionMessage/{number}",
        params={"messageText": message},
        headers={"Authorization": f"Bearer {decrypt_credential(settings.whatsapp_api_key)}"},
    )
    result = response.json()
    if response.is_success and result.get("result"):
        message_id = result.get("messageId") or result.get("id")
        return SendResult(True, message_id=str(message_id) if message_id else None)
    return SendResult(False, error=result.get("message") or result.get("info") or "Failed to send message")


PROVIDER_SENDERS = {
    "meta": _send_via_meta,
    "twilio": _send_via_twilio,
    "interakt": _send_via_interakt,
    "wati": _send_via_wati,
}


async def send_whatsapp(settings, to_phone: Optional[str], message: str) -> SendResult:
    if not to_phone:
        return SendResult(False, error="No phone number")

    number = to_provider_number(to_phone)

    if not is_whatsapp_configured(settings):
        message_id = f"dev-whatsapp-{uuid.uuid4().hex[:8]}"
        logger.info(f"💬 [dev mode] WhatsApp to {number}: {message[:80]}")
        return SendResult(True, message_id=message_id)

    provider = settings.whatsapp_provider
    try:
        async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT) as client:
            result = await PROVIDER_SENDERS[provider](client, settings, number, message)
    except (httpx.HTTPError, ValueError, InvalidToken) as e:
        logger.error(f"❌ WhatsApp via {provider} failed for {number}: {e}")
        return SendResult(False, error=str(e))

    if result.success:
        logger.info(f"✅ WhatsApp sent via {provider} to {number}: {result.message_id}")
    else:
        logger.warning(f"⚠️ WhatsApp via {provider} rejected for {number}: {result.error}")
    return result
