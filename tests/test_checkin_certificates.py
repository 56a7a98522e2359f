import pytest
from httpx import AsyncClient

from eventdesk.models import CertificateTemplate

NAME_ELEMENT = {"type": "text", "content": "{{name}}", "x": 100, "y": 200, "width": 600, "height": 60, "fontSize": 32}


async def create_list(client: AsyncClient, auth_headers: dict, event, **overrides) -> dict:
    payload = {"name": "Main Hall"}
    payload.update(overrides)
    response = await client.post(f"/events/{event.id}/checkin-lists", json=payload, headers=auth_headers)
    assert response.status_code == 200
    return response.json()


# ── Check-in ──────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_scan_check_in_then_toggle_out(client: AsyncClient, auth_headers: dict, event, make_registration):
    registration = make_registration()
    checkin_list = await create_list(client, auth_headers, event)
    scan = {"checkin_list_id": checkin_list["id"], "checkin_token": registration.checkin_token}

    response = await client.post(f"/events/{event.id}/checkin", json=scan, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["result"] == "checked_in"
    assert response.json()["registration"]["registration_number"] == registration.registration_number

    response = await client.post(f"/events/{event.id}/checkin", json=scan, headers=auth_headers)
    assert response.json()["result"] == "already_checked_in"

    response = await client.post(f"/events/{event.id}/checkin", json={**scan, "action": "toggle"}, headers=auth_headers)
    assert response.json()["result"] == "checked_out"

    response = await client.post(
        f"/events/{event.id}/checkin", json={**scan, "action": "check_out"}, headers=auth_headers
    )
    assert response.json()["result"] == "already_checked_out"


@pytest.mark.asyncio
async def test_re_entry_blocked_when_list_disallows_it(client: AsyncClient, auth_headers: dict, event, make_registration):
    registration = make_registration()
    checkin_list = await create_list(client, auth_headers, event, allow_multiple_checkins=False)
    scan = {"checkin_list_id": checkin_list["id"], "registration_number": registration.registration_number}

    await client.post(f"/events/{event.id}/checkin", json=scan, headers=auth_headers)
    await client.post(f"/events/{event.id}/checkin", json={**scan, "action": "check_out"}, headers=auth_headers)
    response = await client.post(f"/events/{event.id}/checkin", json=scan, headers=auth_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_unconfirmed_and_unidentified_scans_are_rejected(
    client: AsyncClient, auth_headers: dict, event, make_registration
):
    pending = make_registration(status="pending")
    checkin_list = await create_list(client, auth_headers, event)

    response = await client.post(
        f"/events/{event.id}/checkin",
        json={"checkin_list_id": checkin_list["id"], "registration_id": pending.id},
        headers=auth_headers,
    )
    assert response.status_code == 400

    response = await client.post(
        f"/events/{event.id}/checkin", json={"checkin_list_id": checkin_list["id"]}, headers=auth_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_restricted_to_other_ticket(client: AsyncClient, auth_headers: dict, event, make_registration):
    registration = make_registration()
    checkin_list = await create_list(client, auth_headers, event, ticket_type_ids=["vip-only"])
    response = await client.post(
        f"/events/{event.id}/checkin",
        json={"checkin_list_id": checkin_list["id"], "registration_id": registration.id},
        headers=auth_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_bulk_check_in_and_stats(client: AsyncClient, auth_headers: dict, event, make_registration):
    first = make_registration()
    second = make_registration()
    make_registration()
    checkin_list = await create_list(client, auth_headers, event)

    response = await client.patch(
        f"/events/{event.id}/checkin/bulk",
        json={"checkin_list_id": checkin_list["id"], "registration_ids": [first.id, second.id, "missing"]},
        headers=auth_headers,
    )
    assert response.status_code == 200
    results = {r["registration_id"]: r["result"] for r in response.json()["results"]}
    assert results == {first.id: "checked_in", second.id: "checked_in", "missing": "not_found"}

    response = await client.get(f"/events/{event.id}/checkin-lists/{checkin_list['id']}/stats", headers=auth_headers)
    stats = response.json()
    assert (stats["total"], stats["checkedIn"], stats["notCheckedIn"]) == (3, 2, 1)
    assert stats["percentage"] == 67
    assert stats["byTicketType"][0]["name"] == "Delegate"

    response = await client.get(
        f"/events/{event.id}/checkin-lists/{checkin_list['id']}/attendees",
        params={"status": "not_checked_in"},
        headers=auth_headers,
    )
    assert response.json()["total"] == 1


@pytest.mark.asyncio
async def test_inactive_list_rejects_scans(client: AsyncClient, auth_headers: dict, event, make_registration):
    registration = make_registration()
    checkin_list = await create_list(client, auth_headers, event, is_active=False)
    response = await client.post(
        f"/events/{event.id}/checkin",
        json={"checkin_list_id": checkin_list["id"], "registration_id": registration.id},
        headers=auth_headers,
    )
    assert response.status_code == 400


# ── Badges and certificates ───────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_badge_validation_reports_missing_names(client: AsyncClient, auth_headers: dict, event, make_registration):
    make_registration(attendee_name=None)
    response = await client.post(
        f"/events/{event.id}/badge-templates",
        json={"name": "Delegate badge", "template_data": {"elements": [NAME_ELEMENT]}},
        headers=auth_headers,
    )
    template_id = response.json()["id"]

    response = await client.post(
        f"/events/{event.id}/badges/validate", json={"template_id": template_id}, headers=auth_headers
    )
    assert response.status_code == 200
    body = response.json()
    assert body["valid"] is False
    assert body["stats"]["missingNames"] == 1


@pytest.mark.asyncio
async def test_certificate_requires_attendance(client: AsyncClient, auth_headers: dict, db, event, make_registration):
    registration = make_registration(attendee_name="Dr. Meera Rao")
    db.add(CertificateTemplate(event_id=event.id, name="Attendance", template_data={"elements": [NAME_ELEMENT]}))
    db.commit()

    response = await client.get(f"/certificates/{registration.registration_number}/download")
    assert response.status_code == 403

    checkin_list = await create_list(client, auth_headers, event)
    await client.post(
        f"/events/{event.id}/checkin",
        json={"checkin_list_id": checkin_list["id"], "registration_id": registration.id},
        headers=auth_headers,
    )

    response = await client.get(f"/certificates/{registration.registration_number}/download")
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")


@pytest.mark.asyncio
async def test_completed_event_certificates_need_no_check_in(client: AsyncClient, db, event, make_registration):
    registration = make_registration()
    event.status = "completed"
    db.add(CertificateTemplate(event_id=event.id, name="Attendance", template_data={"elements": [NAME_ELEMENT]}))
    db.commit()

    response = await client.get(f"/certificates/{registration.registration_number}/download")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_verify_link(client: AsyncClient, event, make_registration):
    registration = make_registration(attendee_name="Dr. Meera Rao")

    response = await client.get(f"/v/{registration.checkin_token}")
    assert response.json() == {
        "valid": True,
        "attendee_name": "Dr. Meera Rao",
        "event_name": "Cardiology Summit 2026",
        "registration_number": registration.registration_number,
        "ticket_type": "Delegate",
        "status": "confirmed",
    }

    response = await client.get("/v/unknown-token")
    assert response.json() == {"valid": False}


@pytest.mark.asyncio
async def test_certificate_email_is_queued(client: AsyncClient, auth_headers: dict, db, event, monkeypatch):
    template = CertificateTemplate(event_id=event.id, name="Attendance", template_data={"elements": []})
    db.add(template)
    db.commit()

    calls = []

    async def fake_enqueue(name, *args):
        calls.append((name, args))
        return "job-1"

    monkeypatch.setattr("eventdesk.routes.certificates.enqueue_task", fake_enqueue)
    response = await client.post(
        f"/events/{event.id}/certificates/email", json={"template_id": template.id}, headers=auth_headers
    )
    assert response.status_code == 200
    assert response.json() == {"queued": True, "job_id": "job-1"}
    assert calls == [("email_certificates_task", (event.id, template.id, None))]
