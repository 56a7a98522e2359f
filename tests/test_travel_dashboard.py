from datetime import date, datetime, time, timedelta

import pytest
from httpx import AsyncClient

FLIGHT = {
    "mode": "flight",
    "id_proof_submitted": True,
    "onward_status": "booked",
    "onward_carrier": "IndiGo",
    "onward_number": "6E 201",
    "onward_from": "DEL",
    "onward_to": "PNQ",
    "onward_departure": "2026-01-11T08:00:00",
    "onward_cost": 5400,
}


# ── Travel desk ───────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_travel_booking_upsert_and_stats(client: AsyncClient, auth_headers: dict, event, make_registration):
    registration = make_registration(attendee_name="Dr. Meera Rao")
    url = f"/registrations/{registration.id}/travel"

    response = await client.put(url, json={"mode": "flight", "hotel_required": True}, headers=auth_headers)
    assert response.status_code == 200
    response = await client.put(url, json=FLIGHT, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["hotel_required"] is True

    response = await client.get(f"/events/{event.id}/travel", headers=auth_headers)
    guests = response.json()
    assert [g["name"] for g in guests] == ["Dr. Meera Rao"]

    response = await client.get(f"/events/{event.id}/travel/stats", headers=auth_headers)
    stats = response.json()
    assert (stats["total"], stats["onwardBooked"], stats["returnPending"]) == (1, 1, 1)
    assert stats["flightCost"] == 5400
    assert stats["completion"] == 50


@pytest.mark.asyncio
async def test_itinerary_download_and_email(client: AsyncClient, auth_headers: dict, make_registration):
    registration = make_registration(attendee_name="Dr. Meera Rao")
    base = f"/registrations/{registration.id}/travel"

    response = await client.get(f"{base}/itinerary.ics", headers=auth_headers)
    assert response.status_code == 404

    await client.put(base, json={"mode": "train"}, headers=auth_headers)
    response = await client.post(f"{base}/send-itinerary", headers=auth_headers)
    assert response.status_code == 400

    await client.put(base, json=FLIGHT, headers=auth_headers)
    response = await client.get(f"{base}/itinerary.ics", headers=auth_headers)
    assert response.status_code == 200
    assert "SUMMARY:IndiGo 6E 201: DEL → PNQ" in response.text

    # No email provider is configured in tests
    response = await client.post(f"{base}/send-itinerary", headers=auth_headers)
    assert response.status_code == 502


# ── Dashboards ────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_event_dashboard(client: AsyncClient, auth_headers: dict, event, ticket, make_registration):
    make_registration()
    make_registration(status="pending", payment_status="pending")

    response = await client.get(f"/events/{event.id}/dashboard", headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["registrations"]["total"] == 2
    assert body["registrations"]["byStatus"] == {"confirmed": 1, "pending": 1}
    assert body["revenue"] == 1180
    assert body["tickets"][0]["revenue"] == 1180
    assert body["checkin"] == {"lists": 0, "eligible": 0, "checkedIn": 0, "percentage": 0}


@pytest.mark.asyncio
async def test_overview_dashboard_totals(client: AsyncClient, auth_headers: dict, event, make_registration):
    make_registration()
    response = await client.get("/dashboard", headers=auth_headers)
    assert response.status_code == 200
    totals = response.json()["totals"]
    assert (totals["events"], totals["registrations"], totals["confirmed"]) == (1, 1, 1)
    assert totals["revenue"] == 1180


@pytest.mark.asyncio
async def test_upcoming_arrivals_window(client: AsyncClient, auth_headers: dict, event, make_registration):
    today = date.today()
    bookings = {
        "Dr. Later": {"mode": "train", "arrival_date": (today + timedelta(days=3)).isoformat()},
        # A booked departure takes precedence over the requested arrival date
        "Dr. Sooner": {
            "mode": "flight",
            "arrival_date": (today + timedelta(days=5)).isoformat(),
            "onward_departure": datetime.combine(today + timedelta(days=1), time(9, 30)).isoformat(),
        },
        "Dr. Far": {"mode": "flight", "arrival_date": (today + timedelta(days=20)).isoformat()},
        "Dr. Gone": {"mode": "self", "arrival_date": (today - timedelta(days=1)).isoformat()},
    }
    for name, booking in bookings.items():
        registration = make_registration(attendee_name=name)
        response = await client.put(f"/registrations/{registration.id}/travel", json=booking, headers=auth_headers)
        assert response.status_code == 200
    make_registration(attendee_name="Dr. No Travel")

    url = f"/events/{event.id}/travel/arrivals"
    response = await client.get(url, headers=auth_headers)
    assert response.status_code == 200
    assert [g["name"] for g in response.json()] == ["Dr. Sooner", "Dr. Later"]

    response = await client.get(url, params={"days": 30}, headers=auth_headers)
    assert [g["name"] for g in response.json()] == ["Dr. Sooner", "Dr. Later", "Dr. Far"]

    response = await client.get(url, params={"days": 0}, headers=auth_headers)
    assert response.status_code == 422
