"""
Outgoing webhooks
Signed JSON notifications to an organiser-configured URL
"""

import json
import logging
from datetime import datetime
from typing import Any, Optional

import httpx
from cryptography.fernet import InvalidToken

from ..security_utils import decrypt_credential, sign_webhook_payload

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Webhook-Signature"
WEBHOOK_TIMEOUT = 10.0


def build_webhook_body(event_type: str, data: dict[str, Any]) -> bytes:
    payload = {"event": event_type, "timestamp": datetime.utcnow().isoformat() + "Z", **data}
    return json.dumps(payload, default=str, separators=(",", ":")).encode()


async def post_webhook(url: Optional[str], event_type: str, data: dict[str, Any], secret: Optional[str] = None) -> bool:
    """
    POST a webhook; returns whether the receiver accepted it.
    Failures are logged, never raised.
    """
    if not url:
        return False

    body = build_webhook_body(event_type, data)
    headers = {"Content-Type": "application/json", "User-Agent": "EventDesk-Webhooks/1.0"}

    if secret:
        try:
            headers[SIGNATURE_HEADER] = sign_webhook_payload(body, decrypt_credential(secret))
        except InvalidToken:
            logger.error(f"❌ Webhook secret for {url} could not be decrypted; sending unsigned")

    try:
        async with httpx.AsyncClient(timeout=WEBHOOK_TIMEOUT) as client:
            response = await client.post(url, content=body, headers=headers)
    except httpx.HTTPError as e:
        logger.warning(f"⚠️ Webhook {event_type} to {url} failed: {e}")
        return False

    if response.is_success:
        logger.info(f"✅ Webhook {event_type} delivered to {url}")
        return True

    logger.warning(f"⚠️ Webhook {event_type} to {url} returned HTTP {response.status_code}")
    return False
