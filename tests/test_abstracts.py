from datetime import datetime

import pytest
from httpx import AsyncClient

from eventdesk.models_abstracts import AbstractCategory, AbstractSettings

AUTHOR_EMAIL = "meera@example.com"


def submission(**overrides) -> dict:
    payload = {
        "title": "Outcomes of early PCI in rural centres",
        "abstract_text": "We reviewed 120 patients treated across four district hospitals.",
        "keywords": ["PCI", " rural ", ""],
        "presentation_type": "oral",
        "presenting_author_name": "Dr. Meera Rao",
        "presenting_author_email": AUTHOR_EMAIL,
        "presenting_author_affiliation": "AIIMS",
        "authors": [{"name": "Dr. Vikram Shah", "email": "vikram@example.com"}],
    }
    payload.update(overrides)
    return payload


async def submit(client: AsyncClient, event, **overrides) -> dict:
    response = await client.post(f"/events/{event.id}/abstracts", json=submission(**overrides))
    assert response.status_code == 200
    return response.json()


# ── Submission ────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_submission_is_numbered_per_year(client: AsyncClient, event):
    year = datetime.utcnow().year
    first = await submit(client, event)
    second = await submit(client, event, presenting_author_email="vikram@example.com")

    assert first["abstract_number"] == f"ABS-{year}-001"
    assert second["abstract_number"] == f"ABS-{year}-002"
    assert first["status"] == "submitted"
    assert first["keywords"] == ["PCI", "rural"]
    assert first["word_count"] == 9


@pytest.mark.asyncio
async def test_submission_requires_core_fields(client: AsyncClient, event):
    response = await client.post(f"/events/{event.id}/abstracts", json=submission(title="  "))
    assert response.status_code == 400

    response = await client.post(
        f"/events/{event.id}/abstracts", json=submission(presenting_author_email="not-an-email")
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_default_word_limit(client: AsyncClient, event):
    response = await client.post(f"/events/{event.id}/abstracts", json=submission(abstract_text="word " * 301))
    assert response.status_code == 400
    assert response.json()["detail"] == "Abstract exceeds word limit of 300 words"


@pytest.mark.asyncio
async def test_settings_enforce_deadline_and_registration(client: AsyncClient, db, event, make_registration):
    settings = AbstractSettings(event_id=event.id, require_registration=True)
    db.add(settings)
    db.commit()

    response = await client.post(f"/events/{event.id}/abstracts", json=submission())
    assert response.status_code == 403

    registration = make_registration(attendee_email=AUTHOR_EMAIL)
    abstract = await submit(client, event)
    assert abstract["registration_id"] == registration.id

    settings.submission_deadline = datetime(2020, 1, 1)
    db.commit()
    response = await client.post(f"/events/{event.id}/abstracts", json=submission())
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_presenting_author_is_listed_first(client: AsyncClient, event):
    abstract = await submit(client, event)
    response = await client.get(f"/abstracts/{abstract['id']}")
    authors = response.json()["authors"]
    assert [(a["name"], a["is_presenting"]) for a in authors] == [
        ("Dr. Meera Rao", True),
        ("Dr. Vikram Shah", False),
    ]
    assert [a["author_order"] for a in authors] == [1, 2]


@pytest.mark.asyncio
async def test_committee_listing(client: AsyncClient, auth_headers: dict, event):
    await submit(client, event)
    await submit(client, event, title="Imaging in heart failure", presenting_author_email="vikram@example.com")

    response = await client.get(f"/events/{event.id}/abstracts", params={"search": "imaging"}, headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["data"][0]["title"] == "Imaging in heart failure"
    assert body["data"][0]["review_count"] == 0


# ── Author edits ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_only_presenting_author_can_edit(client: AsyncClient, event):
    abstract = await submit(client, event)

    response = await client.patch(f"/abstracts/{abstract['id']}", json={"title": "Hijacked"})
    assert response.status_code == 403

    response = await client.patch(
        f"/abstracts/{abstract['id']}", json={"title": "Revised title", "author_email": "MEERA@example.com"}
    )
    assert response.status_code == 200
    assert response.json()["title"] == "Revised title"


@pytest.mark.asyncio
async def test_withdraw_once(client: AsyncClient, event):
    abstract = await submit(client, event)
    url = f"/abstracts/{abstract['id']}/withdraw"

    response = await client.post(url, json={"author_email": AUTHOR_EMAIL})
    assert response.status_code == 200
    assert response.json()["status"] == "withdrawn"

    response = await client.post(url, json={"author_email": AUTHOR_EMAIL})
    assert response.status_code == 400


# ── Review and decisions ──────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_review_scores_and_status(client: AsyncClient, auth_headers: dict, event):
    abstract = await submit(client, event)
    url = f"/abstracts/{abstract['id']}/reviews"

    response = await client.post(url, json={"score_originality": 11}, headers=auth_headers)
    assert response.status_code == 400
    response = await client.post(url, json={"score_originality": 7.5}, headers=auth_headers)
    assert response.status_code == 400

    review = {
        "score_originality": 8,
        "score_methodology": 7,
        "score_relevance": 9,
        "recommendation": "accept",
        "comments_private": "Strong candidate for the plenary",
    }
    response = await client.post(url, json=review, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["overall_score"] == 8.0
    assert response.json()["reviewer_email"] == "admin@example.com"

    # Same reviewer again updates the existing review
    response = await client.post(url, json={**review, "score_relevance": 6}, headers=auth_headers)
    assert response.json()["overall_score"] == 7.0

    staff_view = await client.get(f"/abstracts/{abstract['id']}", headers=auth_headers)
    assert staff_view.json()["status"] == "under_review"
    assert len(staff_view.json()["reviews"]) == 1
    assert staff_view.json()["reviews"][0]["comments_private"] == "Strong candidate for the plenary"

    public_view = await client.get(f"/abstracts/{abstract['id']}")
    assert public_view.json()["reviews"][0]["comments_private"] is None


@pytest.mark.asyncio
async def test_accept_uses_requested_presentation_type(client: AsyncClient, auth_headers: dict, event):
    abstract = await submit(client, event, presentation_type="poster")
    response = await client.post(
        f"/abstracts/{abstract['id']}/decision", json={"decision": "accepted"}, headers=auth_headers
    )
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "accepted"
    assert body["accepted_as"] == "poster"
    assert body["decided_by"] == "admin@example.com"

    # Decided abstracts stay decided
    response = await client.post(f"/abstracts/{abstract['id']}/withdraw", json={"author_email": AUTHOR_EMAIL})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_redirect_moves_to_best_other_category(client: AsyncClient, auth_headers: dict, db, event):
    original = AbstractCategory(event_id=event.id, name="Best Paper Award", is_award_category=True, sort_order=9)
    general = AbstractCategory(event_id=event.id, name="Free Papers", sort_order=5)
    posters = AbstractCategory(event_id=event.id, name="Posters", sort_order=1)
    db.add_all([original, general, posters])
    db.commit()

    abstract = await submit(client, event, category_id=original.id)
    response = await client.post(
        f"/abstracts/{abstract['id']}/decision", json={"decision": "redirected"}, headers=auth_headers
    )
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "accepted"
    assert body["category_id"] == general.id
    assert body["redirected_from_category_id"] == original.id


@pytest.mark.asyncio
async def test_redirect_without_target_category_fails(client: AsyncClient, auth_headers: dict, event):
    abstract = await submit(client, event)
    response = await client.post(
        f"/abstracts/{abstract['id']}/decision", json={"decision": "redirected"}, headers=auth_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_bulk_decision_reports_failures(client: AsyncClient, auth_headers: dict, event):
    first = await submit(client, event)
    withdrawn = await submit(client, event, presenting_author_email="vikram@example.com")
    await client.post(f"/abstracts/{withdrawn['id']}/withdraw", json={"author_email": "vikram@example.com"})

    response = await client.post(
        f"/events/{event.id}/abstracts/bulk-decision",
        json={"abstract_ids": [first["id"], withdrawn["id"], "missing"], "decision": "rejected"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert (body["updated"], body["failed"]) == (1, 2)
    assert {"abstract_id": "missing", "error": "Abstract not found"} in body["errors"]

    response = await client.get(f"/abstracts/{first['id']}", headers=auth_headers)
    assert response.json()["status"] == "rejected"


@pytest.mark.asyncio
async def test_export_lists_co_authors(client: AsyncClient, auth_headers: dict, event):
    await submit(client, event)
    response = await client.get(f"/events/{event.id}/abstracts/export", headers=auth_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "Dr. Vikram Shah" in response.text
