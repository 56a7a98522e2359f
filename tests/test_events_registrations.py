from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient

from eventdesk.models import DiscountCode, TeamMember, TicketType
from eventdesk.security_utils import create_jwt_token


# ── Auth and access ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_invalid_token_is_rejected(client: AsyncClient, tables):
    response = await client.get("/events", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_magic_link_response_does_not_reveal_membership(client: AsyncClient, admin):
    known = await client.post("/auth/magic-link", json={"email": admin.email})
    unknown = await client.post("/auth/magic-link", json={"email": "nobody@example.com"})
    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()


@pytest.mark.asyncio
async def test_staff_only_see_assigned_events(client: AsyncClient, db, event):
    staff = TeamMember(email="staff@example.com", role="staff", event_ids=["some-other-event"])
    db.add(staff)
    db.commit()
    headers = {"Authorization": f"Bearer {create_jwt_token({'sub': staff.id})}"}

    response = await client.get(f"/events/{event.id}", headers=headers)
    assert response.status_code == 403

    response = await client.get("/events", headers=headers)
    assert response.status_code == 200
    assert response.json() == []


# ── Events ────────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_create_event_generates_unique_slugs(client: AsyncClient, auth_headers: dict):
    payload = {"name": "Neuro Update 2026", "start_date": "2026-02-01", "end_date": "2026-02-02"}
    first = await client.post("/events", json=payload, headers=auth_headers)
    second = await client.post("/events", json=payload, headers=auth_headers)
    assert first.status_code == second.status_code == 200
    assert first.json()["slug"] == "neuro-update-2026"
    assert second.json()["slug"] == "neuro-update-2026-1"


@pytest.mark.asyncio
async def test_event_end_date_cannot_precede_start(client: AsyncClient, auth_headers: dict):
    response = await client.post(
        "/events",
        json={"name": "Backwards", "start_date": "2026-02-02", "end_date": "2026-02-01"},
        headers=auth_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_duplicate_event_copies_tickets_as_draft(client: AsyncClient, auth_headers: dict, event, ticket):
    response = await client.post(f"/events/{event.id}/duplicate", headers=auth_headers)
    assert response.status_code == 200
    copy = response.json()
    assert copy["name"] == "Cardiology Summit 2026 (Copy)"
    assert copy["status"] == "draft"

    response = await client.get(f"/events/{copy['id']}/tickets", headers=auth_headers)
    assert [t["name"] for t in response.json()] == ["Delegate"]


@pytest.mark.asyncio
async def test_event_calendar_download(client: AsyncClient, auth_headers: dict, event):
    response = await client.get(f"/events/{event.id}/calendar.ics", headers=auth_headers)
    assert response.status_code == 200
    assert "SUMMARY:Cardiology Summit 2026" in response.text


# ── Registrations ─────────────────────────────────────────────────────────────


def registration_payload(ticket, **overrides) -> dict:
    payload = {
        "ticket_type_id": ticket.id,
        "attendee_name": "Dr. Meera Rao",
        "attendee_email": "meera@example.com",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_paid_registration_starts_pending(client: AsyncClient, event, ticket):
    response = await client.post(f"/events/{event.id}/registrations", json=registration_payload(ticket))
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "pending"
    assert body["payment_status"] == "pending"
    assert body["tax_amount"] == 180
    assert body["total_amount"] == 1180


@pytest.mark.asyncio
async def test_free_ticket_confirms_immediately(client: AsyncClient, db, event):
    free = TicketType(event_id=event.id, name="Student", price=0, status="active")
    db.add(free)
    db.commit()

    response = await client.post(f"/events/{event.id}/registrations", json=registration_payload(free))
    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"
    assert response.json()["payment_status"] == "free"

    db.refresh(free)
    assert free.quantity_sold == 1


@pytest.mark.asyncio
async def test_discount_code_is_applied_and_counted(client: AsyncClient, db, event, ticket):
    code = DiscountCode(event_id=event.id, code="EARLY", discount_type="fixed", discount_value=100)
    db.add(code)
    db.commit()

    response = await client.post(
        f"/events/{event.id}/registrations", json=registration_payload(ticket, discount_code="EARLY")
    )
    assert response.status_code == 200
    assert response.json()["discount_amount"] == 100
    assert response.json()["total_amount"] == 1080

    db.refresh(code)
    assert code.current_uses == 1


@pytest.mark.asyncio
async def test_registration_rejected_when_closed(client: AsyncClient, db, event, ticket):
    event.registration_open = False
    db.commit()
    response = await client.post(f"/events/{event.id}/registrations", json=registration_payload(ticket))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_sold_out_ticket_is_rejected(client: AsyncClient, db, event, ticket):
    ticket.quantity_sold = ticket.quantity_total
    db.commit()
    response = await client.post(f"/events/{event.id}/registrations", json=registration_payload(ticket))
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_confirm_then_cancel_tracks_tickets_sold(client: AsyncClient, auth_headers: dict, db, event, ticket):
    created = await client.post(f"/events/{event.id}/registrations", json=registration_payload(ticket))
    registration_id = created.json()["id"]

    response = await client.post(f"/registrations/{registration_id}/confirm", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["payment_status"] == "completed"
    db.refresh(ticket)
    assert ticket.quantity_sold == 1

    response = await client.post(f"/registrations/{registration_id}/confirm", headers=auth_headers)
    assert response.status_code == 400

    response = await client.post(f"/registrations/{registration_id}/cancel", headers=auth_headers)
    assert response.status_code == 200
    db.refresh(ticket)
    assert ticket.quantity_sold == 0


@pytest.mark.asyncio
async def test_import_reports_failed_and_skipped_rows(client: AsyncClient, auth_headers: dict, event, ticket):
    rows = [
        {"name": "Asha", "email": "asha@example.com", "q:Diet": "veg"},
        {"name": "", "email": "blank@example.com"},
        {"name": "Bad Email", "email": "not-an-email"},
        {"name": "Asha Again", "email": "ASHA@example.com"},
    ]
    response = await client.post(
        f"/events/{event.id}/registrations/import", json={"rows": rows}, headers=auth_headers
    )
    assert response.status_code == 200
    body = response.json()
    assert (body["success"], body["failed"], body["skipped"]) == (1, 2, 1)
    assert "Row 3: Name and email are required" in body["errors"]

    listing = await client.get(f"/events/{event.id}/registrations", headers=auth_headers)
    imported = listing.json()["data"][0]
    assert imported["custom_fields"] == {"Diet": "veg"}
    assert imported["status"] == "confirmed"


@pytest.mark.asyncio
async def test_registration_stats_revenue_counts_completed_payments(
    client: AsyncClient, auth_headers: dict, event, make_registration
):
    make_registration(total_amount=1180, payment_status="completed")
    make_registration(total_amount=500, payment_status="pending", status="pending")

    response = await client.get(f"/events/{event.id}/registrations/stats", headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert body["byStatus"] == {"confirmed": 1, "pending": 1}
    assert body["totalRevenue"] == 1180


@pytest.mark.asyncio
async def test_ticket_sale_window_is_enforced(client: AsyncClient, db, event, ticket):
    ticket.sale_end_date = datetime.utcnow() - timedelta(days=30)
    db.commit()
    response = await client.post(f"/events/{event.id}/registrations", json=registration_payload(ticket))
    assert response.status_code == 400
    assert response.json()["detail"] == "This ticket type is not available"

    ticket.sale_end_date = None
    ticket.sale_start_date = datetime.utcnow() + timedelta(days=3)
    db.commit()
    response = await client.post(f"/events/{event.id}/registrations", json=registration_payload(ticket))
    assert response.status_code == 400

    ticket.sale_start_date = datetime.utcnow() - timedelta(days=1)
    ticket.sale_end_date = datetime.utcnow() + timedelta(days=1)
    db.commit()
    response = await client.post(f"/events/{event.id}/registrations", json=registration_payload(ticket))
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_free_registration_held_for_approval(client: AsyncClient, db, event):
    free = TicketType(event_id=event.id, name="Faculty", price=0, status="active", requires_approval=True)
    db.add(free)
    db.commit()

    response = await client.post(f"/events/{event.id}/registrations", json=registration_payload(free))
    body = response.json()
    assert (body["status"], body["payment_status"]) == ("pending", "free")
    assert body["confirmed_at"] is None

    db.refresh(free)
    assert free.quantity_sold == 0


@pytest.mark.asyncio
async def test_import_fills_ticket_inventory_exactly(client: AsyncClient, auth_headers: dict, db, event):
    limited = TicketType(event_id=event.id, name="Limited", price=0, status="active", quantity_total=2)
    db.add(limited)
    db.commit()

    rows = [{"name": f"Guest {i}", "email": f"guest{i}@example.com", "ticket": "Limited"} for i in range(3)]
    response = await client.post(
        f"/events/{event.id}/registrations/import", json={"rows": rows}, headers=auth_headers
    )
    body = response.json()
    assert (body["success"], body["failed"]) == (2, 1)
    assert body["errors"] == ["Row 4: Ticket 'Limited' is sold out"]

    db.refresh(limited)
    assert limited.quantity_sold == 2


@pytest.mark.asyncio
async def test_pending_import_still_respects_inventory(client: AsyncClient, auth_headers: dict, db, event):
    limited = TicketType(event_id=event.id, name="Limited", price=500, status="active", quantity_total=2)
    db.add(limited)
    db.commit()

    rows = [{"name": f"Guest {i}", "email": f"guest{i}@example.com"} for i in range(3)]
    response = await client.post(
        f"/events/{event.id}/registrations/import",
        json={"rows": rows, "status": "pending", "ticket_type_id": limited.id},
        headers=auth_headers,
    )
    assert (response.json()["success"], response.json()["failed"]) == (2, 1)
    db.refresh(limited)
    assert limited.quantity_sold == 0


# ── Ticket updates ────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_ticket_patch_ignores_null_for_required_columns(client: AsyncClient, auth_headers: dict, event, ticket):
    url = f"/events/{event.id}/tickets/{ticket.id}"

    response = await client.patch(url, json={"max_per_order": None, "name": "Delegate (Early)"}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["max_per_order"] == 10
    assert response.json()["name"] == "Delegate (Early)"

    # Nullable columns can still be cleared
    response = await client.patch(url, json={"quantity_total": None}, headers=auth_headers)
    assert response.json()["quantity_total"] is None

    response = await client.patch(url, json={"min_per_order": 20}, headers=auth_headers)
    assert response.status_code == 400


# ── Payments and receipts ─────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_manual_payment_verification(client: AsyncClient, auth_headers: dict, db, event, ticket):
    created = await client.post(
        f"/events/{event.id}/registrations", json=registration_payload(ticket, payment_method="bank_transfer")
    )
    registration = created.json()
    url = f"/payments/{registration['payment_id']}/verify-manual"

    response = await client.post(url, json={}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "no_reference"
    assert response.json()["verified"] is False

    response = await client.post(
        url, json={"reference": "UTR123456", "amount_received": 1100, "note": "NEFT"}, headers=auth_headers
    )
    body = response.json()
    assert body["verified"] is True
    assert body["registrations_confirmed"] == [registration["id"]]
    assert body["amount_mismatch"] is True

    response = await client.get(f"/registrations/{registration['id']}", headers=auth_headers)
    assert (response.json()["status"], response.json()["payment_status"]) == ("confirmed", "completed")
    db.refresh(ticket)
    assert ticket.quantity_sold == 1

    response = await client.post(url, json={"reference": "UTR123456"}, headers=auth_headers)
    assert response.json()["status"] == "already_completed"
    db.refresh(ticket)
    assert ticket.quantity_sold == 1


@pytest.mark.asyncio
async def test_manual_verification_unknown_payment(client: AsyncClient, auth_headers: dict):
    response = await client.post("/payments/missing/verify-manual", json={"reference": "X"}, headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_receipt_download(client: AsyncClient, auth_headers: dict, event, ticket):
    created = await client.post(f"/events/{event.id}/registrations", json=registration_payload(ticket))
    registration = created.json()

    response = await client.get(f"/registrations/{registration['id']}/receipt", headers=auth_headers)
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")
    assert registration["registration_number"] in response.headers["content-disposition"]

    response = await client.get(f"/registrations/{registration['id']}/receipt")
    assert response.status_code in (401, 403)
