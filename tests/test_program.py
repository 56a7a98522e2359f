import pytest
from httpx import AsyncClient

SESSION = {
    "session_name": "Heart Failure Update",
    "session_date": "2026-01-12",
    "start_time": "09:00:00",
    "end_time": "10:00:00",
    "hall": "Hall A",
    "speakers": "Dr. Rao, Dr. Shah",
    "chairpersons": "Dr. Iyer",
}


async def create_session(client: AsyncClient, auth_headers: dict, event, **overrides) -> dict:
    response = await client.post(f"/events/{event.id}/sessions", json={**SESSION, **overrides}, headers=auth_headers)
    assert response.status_code == 200
    return response.json()


# ── Sessions ──────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_session_end_must_follow_start(client: AsyncClient, auth_headers: dict, event):
    response = await client.post(
        f"/events/{event.id}/sessions", json={**SESSION, "end_time": "09:00:00"}, headers=auth_headers
    )
    assert response.status_code == 400

    session = await create_session(client, auth_headers, event)
    response = await client.patch(
        f"/events/{event.id}/sessions/{session['id']}", json={"start_time": "11:00:00"}, headers=auth_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_conflicts_endpoint(client: AsyncClient, auth_headers: dict, event):
    await create_session(client, auth_headers, event)
    await create_session(
        client,
        auth_headers,
        event,
        session_name="Imaging",
        hall="Hall B",
        start_time="09:30:00",
        end_time="10:30:00",
        speakers="Dr. Rao",
        chairpersons=None,
    )

    response = await client.get(f"/events/{event.id}/program/conflicts", headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["summary"]["hasConflicts"] is True
    assert [c["faculty"] for c in body["facultyConflicts"]] == ["Dr. Rao"]


# ── Faculty assignments ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_sync_creates_assignments_once(client: AsyncClient, auth_headers: dict, event):
    await create_session(client, auth_headers, event)
    url = f"/events/{event.id}/faculty-assignments"

    response = await client.post(f"{url}/sync", headers=auth_headers)
    assert response.json() == {"created": 3}
    response = await client.post(f"{url}/sync", headers=auth_headers)
    assert response.json() == {"created": 0}

    response = await client.get(url, headers=auth_headers)
    roles = sorted((a["faculty_name"], a["role"]) for a in response.json())
    assert roles == [("Dr. Iyer", "chairperson"), ("Dr. Rao", "speaker"), ("Dr. Shah", "speaker")]
    assert all(a["status"] == "pending" for a in response.json())


@pytest.mark.asyncio
async def test_invitations_without_email_provider_are_reported(client: AsyncClient, auth_headers: dict, event):
    url = f"/events/{event.id}/faculty-assignments"
    await client.post(url, json={"faculty_name": "Dr. Rao", "faculty_email": "rao@example.com"}, headers=auth_headers)
    await client.post(url, json={"faculty_name": "Dr. Shah"}, headers=auth_headers)

    response = await client.post(f"{url}/send-invitations", json={}, headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert (body["sent"], body["failed"], body["skipped"]) == (0, 1, 1)
    assert body["errors"][0]["email"] == "rao@example.com"


# ── Public responses ──────────────────────────────────────────────────────────


async def invite_twice(client: AsyncClient, auth_headers: dict, event) -> list[dict]:
    first = await create_session(client, auth_headers, event)
    second = await create_session(
        client, auth_headers, event, session_name="Valve Disease", start_time="14:00:00", end_time="15:00:00"
    )
    url = f"/events/{event.id}/faculty-assignments"
    assignments = []
    for session in (first, second):
        response = await client.post(
            url,
            json={"session_id": session["id"], "faculty_name": "Dr. Rao", "faculty_email": "rao@example.com"},
            headers=auth_headers,
        )
        assignments.append(response.json())
    return assignments


@pytest.mark.asyncio
async def test_response_page_lists_all_sessions_for_the_person(client: AsyncClient, auth_headers: dict, event):
    assignments = await invite_twice(client, auth_headers, event)

    response = await client.get(f"/respond/{assignments[0]['invitation_token']}")
    assert response.status_code == 200
    body = response.json()
    assert body["faculty"]["name"] == "Dr. Rao"
    assert body["event"]["name"] == "Cardiology Summit 2026"
    assert len(body["assignments"]) == 2

    response = await client.get("/respond/not-a-token")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_global_response_applies_to_every_session(client: AsyncClient, auth_headers: dict, event):
    assignments = await invite_twice(client, auth_headers, event)
    token = assignments[1]["invitation_token"]

    response = await client.post(f"/respond/{token}", json={"globalResponse": "declined", "notes": "Travelling"})
    assert response.json() == {"updated": 2}

    response = await client.get(f"/events/{event.id}/faculty-assignments", headers=auth_headers)
    assert {(a["status"], a["response_notes"]) for a in response.json()} == {("declined", "Travelling")}


@pytest.mark.asyncio
async def test_per_session_responses(client: AsyncClient, auth_headers: dict, event):
    first, second = await invite_twice(client, auth_headers, event)

    response = await client.post(
        f"/respond/{first['invitation_token']}",
        json={
            "responses": {first["id"]: "confirmed", second["id"]: "change_requested"},
            "notes": {second["id"]: "Afternoon slot please"},
        },
    )
    assert response.json() == {"updated": 2}

    response = await client.get(f"/events/{event.id}/faculty-assignments", headers=auth_headers)
    by_id = {a["id"]: a for a in response.json()}
    assert by_id[first["id"]]["status"] == "confirmed"
    assert by_id[second["id"]]["change_request_details"] == "Afternoon slot please"


@pytest.mark.asyncio
async def test_invalid_responses_are_rejected(client: AsyncClient, auth_headers: dict, event):
    first, _ = await invite_twice(client, auth_headers, event)
    url = f"/respond/{first['invitation_token']}"

    response = await client.post(url, json={"globalResponse": "maybe"})
    assert response.status_code == 400
    response = await client.post(url, json={"responses": {first["id"]: "later"}})
    assert response.status_code == 400
    response = await client.post(url, json={})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_program_export(client: AsyncClient, auth_headers: dict, event):
    await create_session(client, auth_headers, event)
    response = await client.get(f"/events/{event.id}/program/export", headers=auth_headers)
    assert response.status_code == 200
    assert response.text.splitlines()[0].startswith("Date,Start,End,Hall,Session")
    assert "Heart Failure Update" in response.text


# ── Program import ────────────────────────────────────────────────────────────

PRINTED_PROGRAM = [
    {"Date": "12.01.2026", "Time": "09:00 - 10:00", "Hall": "Hall A", "Session": "Cardiology",
     "Topic": "Heart Failure Update", "Name": "Dr. Rao", "Role": "Speaker",
     "Email": "Rao@Example.com", "Mobile": "98765 43210"},
    {"Date": "12.01.2026", "Time": "09:00 - 10:00", "Hall": "Hall A", "Session": "Cardiology",
     "Topic": "Heart Failure Update", "Name": "Dr. Iyer", "Role": "Chairperson", "Email": "", "Mobile": ""},
    {"Date": "12.01.2026", "Time": "10:00 - 11:00", "Hall": "Hall A", "Session": "Cardiology",
     "Topic": "Panel Discussion: Stents", "Name": "Dr. Shah", "Role": "Panelist", "Mobile": "9876500000"},
    {"Date": "", "Time": "11:00", "Hall": "Hall A", "Session": "Cardiology", "Topic": "Lunch"},
]


@pytest.mark.asyncio
async def test_import_printed_program(client: AsyncClient, auth_headers: dict, event):
    response = await client.post(
        f"/events/{event.id}/program/import", json={"rows": PRINTED_PROGRAM}, headers=auth_headers
    )
    assert response.status_code == 200
    assert response.json() == {
        "imported": 2,
        "skipped_duplicates": 0,
        "total_rows": 4,
        "unique_sessions": 2,
        "unusable_rows": [5],
        "assignments_created": 2,
    }

    response = await client.get(f"/events/{event.id}/sessions", headers=auth_headers)
    lecture, panel = response.json()
    assert (lecture["session_name"], lecture["session_type"], lecture["track"]) == (
        "Heart Failure Update", "lecture", "Cardiology"
    )
    assert (lecture["start_time"], lecture["end_time"]) == ("09:00:00", "10:00:00")
    assert (lecture["speakers"], lecture["chairpersons"]) == ("Dr. Rao", "Dr. Iyer")
    assert panel["session_type"] == "panel"
    assert panel["description"] == "Panelist: Dr. Shah"

    # Only people with an email or phone get an assignment
    response = await client.get(f"/events/{event.id}/faculty-assignments", headers=auth_headers)
    assignments = {a["faculty_name"]: a for a in response.json()}
    assert set(assignments) == {"Dr. Rao", "Dr. Shah"}
    assert assignments["Dr. Rao"]["faculty_email"] == "rao@example.com"
    assert assignments["Dr. Rao"]["faculty_phone"] == "+919876543210"
    assert assignments["Dr. Shah"]["role"] == "panelist"


@pytest.mark.asyncio
async def test_reimport_skips_existing_sessions(client: AsyncClient, auth_headers: dict, event):
    url = f"/events/{event.id}/program/import"
    await client.post(url, json={"rows": PRINTED_PROGRAM}, headers=auth_headers)

    response = await client.post(url, json={"rows": PRINTED_PROGRAM}, headers=auth_headers)
    assert (response.json()["imported"], response.json()["skipped_duplicates"]) == (0, 2)

    response = await client.post(url, json={"rows": PRINTED_PROGRAM, "clear_existing": True}, headers=auth_headers)
    assert (response.json()["imported"], response.json()["skipped_duplicates"]) == (2, 0)

    response = await client.get(f"/events/{event.id}/sessions", headers=auth_headers)
    assert len(response.json()) == 2
    response = await client.get(f"/events/{event.id}/faculty-assignments", headers=auth_headers)
    assert len(response.json()) == 2


@pytest.mark.asyncio
async def test_import_program_export_csv(client: AsyncClient, auth_headers: dict, event):
    csv_text = (
        "\ufeffDate,Start,End,Hall,Session,Type,Speakers\n"
        '2026-01-13,14:00,15:00,Hall B,Opening Address,keynote,"Dr. Rao, Dr. Shah"\n'
    )
    response = await client.post(
        f"/events/{event.id}/program/import", json={"csv_text": csv_text}, headers=auth_headers
    )
    assert response.status_code == 200
    assert response.json()["imported"] == 1
    assert response.json()["assignments_created"] == 0

    response = await client.get(f"/events/{event.id}/sessions", headers=auth_headers)
    (session,) = response.json()
    assert (session["session_name"], session["session_type"], session["hall"]) == (
        "Opening Address", "keynote", "Hall B"
    )
    assert session["speakers"] == "Dr. Rao, Dr. Shah"


@pytest.mark.asyncio
async def test_import_rejects_unusable_files(client: AsyncClient, auth_headers: dict, event):
    url = f"/events/{event.id}/program/import"
    response = await client.post(url, json={"rows": []}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "CSV file is empty"

    response = await client.post(url, json={"rows": [{"Topic": "Orphan talk", "Time": "09:00"}]}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["detail"].startswith("No valid sessions found")
