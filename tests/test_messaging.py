import hashlib
import hmac
import json
from datetime import date
from types import SimpleNamespace

import httpx
import pytest

from eventdesk.models import BadgeTemplate, Event, Registration, TicketType
from eventdesk.security_utils import encrypt_credential, mask_secret
from eventdesk.services import sms_service, whatsapp_service
from eventdesk.services.document_renderer import apply_text_case, hex_to_rgb, render_badges
from eventdesk.services.sms_service import get_sms_info, send_sms
from eventdesk.services.webhook_service import SIGNATURE_HEADER, post_webhook
from eventdesk.services.whatsapp_service import send_whatsapp
from eventdesk.worker import WorkerSettings

REAL_ASYNC_CLIENT = httpx.AsyncClient


def provider_settings(**overrides) -> SimpleNamespace:
    values = {
        "sms_provider": None,
        "twilio_account_sid": None,
        "twilio_auth_token": None,
        "twilio_phone_number": None,
        "msg91_auth_key": None,
        "msg91_template_id": None,
        "textlocal_api_key": None,
        "sms_sender_id": None,
        "whatsapp_provider": None,
        "whatsapp_phone_number_id": None,
        "whatsapp_access_token": None,
        "whatsapp_api_key": None,
        "whatsapp_api_url": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def mock_client(handler):
    return REAL_ASYNC_CLIENT(transport=httpx.MockTransport(handler))


# ── SMS ───────────────────────────────────────────────────────────────────────


def test_sms_segments():
    assert get_sms_info("") == {"length": 0, "segments": 0, "encoding": "GSM-7", "charsPerSegment": 160}
    assert get_sms_info("a" * 160)["segments"] == 1
    assert get_sms_info("a" * 161)["segments"] == 2
    unicode_info = get_sms_info("नमस्ते" * 15)
    assert unicode_info["encoding"] == "UCS-2"
    assert unicode_info["segments"] == 2
    assert unicode_info["charsPerSegment"] == 67


@pytest.mark.asyncio
async def test_unconfigured_sms_is_logged_only():
    result = await send_sms(provider_settings(), "98765 43210", "Hello")
    assert result.success
    assert result.message_id.startswith("dev-sms-")

    result = await send_sms(provider_settings(), None, "Hello")
    assert not result.success


@pytest.mark.asyncio
async def test_twilio_sms_request():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = request.content.decode()
        seen["auth"] = request.headers["authorization"]
        return httpx.Response(201, json={"sid": "SM123"})

    settings = provider_settings(
        sms_provider="twilio",
        twilio_account_sid="AC1",
        twilio_auth_token=encrypt_credential("secret-token"),
        twilio_phone_number="+15550001111",
    )
    async with mock_client(handler) as client:
        result = await sms_service._send_via_twilio(client, settings, "919876543210", "Hi")

    assert result.success
    assert result.message_id == "SM123"
    assert seen["url"] == "https://api.twilio.com/2010-04-01/Accounts/AC1/Messages.json"
    assert "To=%2B919876543210" in seen["body"]
    assert seen["auth"].startswith("Basic ")


@pytest.mark.asyncio
async def test_textlocal_error_is_reported():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "failure", "errors": [{"message": "Invalid sender"}]})

    settings = provider_settings(
        sms_provider="textlocal", textlocal_api_key=encrypt_credential("key"), sms_sender_id="EVDESK"
    )
    async with mock_client(handler) as client:
        result = await sms_service._send_via_textlocal(client, settings, "919876543210", "Hi")

    assert not result.success
    assert result.error == "Invalid sender"


@pytest.mark.asyncio
async def test_transport_failure_becomes_send_result(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(httpx, "AsyncClient", lambda **kwargs: mock_client(handler))
    settings = provider_settings(
        sms_provider="msg91", msg91_auth_key=encrypt_credential("key"), sms_sender_id="EVDESK"
    )
    result = await send_sms(settings, "9876543210", "Hi")
    assert not result.success
    assert "connection refused" in result.error


# ── WhatsApp ──────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_meta_whatsapp_request():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["json"] = json.loads(request.content)
        seen["auth"] = request.headers["authorization"]
        return httpx.Response(200, json={"messages": [{"id": "wamid.1"}]})

    settings = provider_settings(
        whatsapp_provider="meta",
        whatsapp_phone_number_id="1234",
        whatsapp_access_token=encrypt_credential("meta-token"),
    )
    async with mock_client(handler) as client:
        result = await whatsapp_service._send_via_meta(client, settings, "919876543210", "Hello")

    assert result.success
    assert result.message_id == "wamid.1"
    assert seen["url"] == "https://graph.facebook.com/v18.0/1234/messages"
    assert seen["json"]["text"] == {"body": "Hello"}
    assert seen["auth"] == "Bearer meta-token"


@pytest.mark.asyncio
async def test_interakt_sends_national_number():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["json"] = json.loads(request.content)
        return httpx.Response(200, json={"result": True, "id": "ik-1"})

    settings = provider_settings(whatsapp_provider="interakt", whatsapp_api_key=encrypt_credential("key"))
    async with mock_client(handler) as client:
        result = await whatsapp_service._send_via_interakt(client, settings, "919876543210", "Hello")

    assert result.success
    assert seen["json"]["phoneNumber"] == "9876543210"
    assert seen["json"]["countryCode"] == "+91"


@pytest.mark.asyncio
async def test_unconfigured_whatsapp_is_logged_only():
    result = await send_whatsapp(provider_settings(whatsapp_provider="wati"), "9876543210", "Hello")
    assert result.success
    assert result.message_id.startswith("dev-whatsapp-")


# ── Webhooks ──────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_webhook_is_signed(monkeypatch):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = request.content
        seen["signature"] = request.headers[SIGNATURE_HEADER]
        return httpx.Response(204)

    monkeypatch.setattr(httpx, "AsyncClient", lambda **kwargs: mock_client(handler))
    delivered = await post_webhook(
        "https://hooks.example.com/eventdesk",
        "registration.created",
        {"registration_number": "CARD100"},
        secret=encrypt_credential("whsec"),
    )

    assert delivered
    assert json.loads(seen["body"])["event"] == "registration.created"
    expected = hmac.new(b"whsec", seen["body"], hashlib.sha256).hexdigest()
    assert seen["signature"] == expected


@pytest.mark.asyncio
async def test_webhook_without_url_is_skipped():
    assert await post_webhook(None, "registration.created", {}) is False


def test_mask_secret():
    assert mask_secret(encrypt_credential("sk_live_abcdef1234")) == "••••1234"
    assert mask_secret(None) is None


# ── PDF rendering ─────────────────────────────────────────────────────────────


def test_text_helpers():
    assert hex_to_rgb("#ff0000") == (1.0, 0.0, 0.0)
    assert hex_to_rgb("not-a-colour") == (0.0, 0.0, 0.0)
    assert apply_text_case("dr. meera rao", "capitalize") == "Dr. Meera Rao"
    assert apply_text_case("Meera", "uppercase") == "MEERA"


def test_badges_render_to_pdf():
    event = Event(name="Cardiology Summit", start_date=date(2026, 1, 12), end_date=date(2026, 1, 14))
    template = BadgeTemplate(id="tpl-1", name="Default", size="4x3", template_data={"elements": []})
    registrations = [
        Registration(
            registration_number=f"CARD10{i}",
            attendee_name=f"Attendee {i}",
            checkin_token=f"token-{i}",
            ticket_type=TicketType(name="Delegate"),
        )
        for i in range(2)
    ]

    content = render_badges(template, registrations, event, base_url="https://eventdesk.test")
    assert content.startswith(b"%PDF")


# ── Background worker ─────────────────────────────────────────────────────────


def test_message_jobs_are_not_retried():
    assert WorkerSettings.max_tries == 1
