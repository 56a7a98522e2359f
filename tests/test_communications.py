import importlib

import pytest
from httpx import AsyncClient

# The package re-exports the APIRouter under the same name as its module
communications_router = importlib.import_module("eventdesk.domain.communications.router")


# ── Provider settings ─────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_default_settings(client: AsyncClient, auth_headers: dict, event):
    response = await client.get(f"/events/{event.id}/communications/settings", headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["email_provider"] == "default"
    assert body["channels_enabled"] == {"email": True, "whatsapp": False, "sms": False, "webhook": False}
    assert body["sms_configured"] is False


@pytest.mark.asyncio
async def test_secrets_are_masked_and_kept(client: AsyncClient, auth_headers: dict, event):
    url = f"/events/{event.id}/communications/settings"
    response = await client.put(
        url,
        json={"sms_provider": "textlocal", "textlocal_api_key": "tl_key_98765", "sms_sender_id": "EVDESK"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["textlocal_api_key"] == "••••8765"
    assert response.json()["sms_configured"] is True

    # Sending the masked value back leaves the stored key alone
    response = await client.put(url, json={"textlocal_api_key": "••••8765"}, headers=auth_headers)
    assert response.json()["textlocal_api_key"] == "••••8765"


@pytest.mark.asyncio
async def test_unknown_provider_is_rejected(client: AsyncClient, auth_headers: dict, event):
    response = await client.put(
        f"/events/{event.id}/communications/settings", json={"sms_provider": "pigeon"}, headers=auth_headers
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Unknown SMS provider: pigeon"


@pytest.mark.asyncio
async def test_settings_require_auth(client: AsyncClient, event):
    response = await client.get(f"/events/{event.id}/communications/settings")
    assert response.status_code in (401, 403)


# ── Templates ─────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_seed_templates_once(client: AsyncClient, auth_headers: dict, event):
    url = f"/events/{event.id}/message-templates/seed"

    response = await client.post(url, headers=auth_headers)
    assert response.status_code == 200
    assert "Registration Confirmation" in response.json()["created"]
    assert response.json()["skipped"] == 0

    response = await client.post(url, headers=auth_headers)
    assert response.json() == {"created": [], "skipped": 4}

    response = await client.get(f"/events/{event.id}/message-templates", headers=auth_headers)
    assert len(response.json()) == 4


# ── Sending ───────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_disabled_channel_is_rejected(client: AsyncClient, auth_headers: dict, event, make_registration):
    registration = make_registration()
    url = f"/events/{event.id}/communications/send"

    response = await client.post(
        url, json={"channel": "sms", "recipient_ids": [registration.id], "message": "Hi"}, headers=auth_headers
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "The sms channel is not enabled for this event"

    response = await client.post(
        url, json={"channel": "fax", "recipient_ids": [registration.id], "message": "Hi"}, headers=auth_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_email_needs_subject(client: AsyncClient, auth_headers: dict, event, make_registration):
    registration = make_registration()
    response = await client.post(
        f"/events/{event.id}/communications/send",
        json={"channel": "email", "recipient_ids": [registration.id], "message": "Hello"},
        headers=auth_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_email_failure_is_reported_and_logged(
    client: AsyncClient, auth_headers: dict, event, make_registration
):
    registration = make_registration(attendee_email="meera@example.com")

    # No email provider is configured in tests
    response = await client.post(
        f"/events/{event.id}/communications/send",
        json={"channel": "email", "recipient_ids": [registration.id], "subject": "Hi", "message": "Hello"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert (body["sent"], body["failed"]) == (0, 1)
    assert body["errors"][0]["recipient"] == "meera@example.com"

    response = await client.get(
        f"/events/{event.id}/communications/logs", params={"status": "failed"}, headers=auth_headers
    )
    assert response.json()["total"] == 1
    assert response.json()["data"][0]["channel"] == "email"


@pytest.mark.asyncio
async def test_sms_send_is_personalised(client: AsyncClient, auth_headers: dict, event, make_registration):
    registration = make_registration(attendee_name="Dr. Meera Rao", attendee_phone="9876543210")
    other = make_registration()

    await client.put(
        f"/events/{event.id}/communications/settings",
        json={"channels_enabled": {"email": True, "sms": True}},
        headers=auth_headers,
    )
    response = await client.post(
        f"/events/{event.id}/communications/send",
        json={"channel": "sms", "recipient_ids": [registration.id], "message": "Hello {{name}}, see you soon"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json() == {"sent": 1, "failed": 0, "errors": []}

    response = await client.get(f"/events/{event.id}/communications/logs", headers=auth_headers)
    logs = response.json()["data"]
    assert len(logs) == 1
    assert logs[0]["registration_id"] != other.id
    assert logs[0]["message_body"] == "Hello Dr. Meera Rao, see you soon"
    assert logs[0]["status"] == "sent"
    assert logs[0]["provider"] == "dev"


@pytest.mark.asyncio
async def test_send_async_reports_queue_state(
    client: AsyncClient, auth_headers: dict, event, make_registration, monkeypatch
):
    queued = []

    async def fake_enqueue(function_name, *args):
        queued.append((function_name, args))
        return "job-1"

    monkeypatch.setattr(communications_router, "enqueue_task", fake_enqueue)
    registration = make_registration()

    response = await client.post(
        f"/events/{event.id}/communications/send-async",
        json={"channel": "email", "recipient_ids": [registration.id], "subject": "Hi", "message": "Hello"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["queued"] is True
    assert queued[0][0] == "send_bulk_message_task"
    assert queued[0][1][0] == event.id


@pytest.mark.asyncio
async def test_sms_info_endpoint(client: AsyncClient):
    response = await client.get("/communications/sms-info", params={"message": "a" * 161})
    assert response.status_code == 200
    assert response.json()["segments"] == 2
