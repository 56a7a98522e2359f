import pytest
from httpx import AsyncClient

from eventdesk.domain.forms.service import display_value, is_empty, validate_field_value
from eventdesk.models_forms import FormField


def field(field_type, **overrides) -> FormField:
    return FormField(id="f1", label="Answer", field_type=field_type, **overrides)


# ── Field validation ──────────────────────────────────────────────────────────


def test_email_field_rejects_invalid_address():
    assert validate_field_value(field("email"), "not-an-email") == "Answer must be a valid email address"
    assert validate_field_value(field("email"), "meera@example.com") is None


def test_number_field_bounds():
    f = field("number", min_value=1, max_value=10)
    assert validate_field_value(f, "0") == "Answer must be at least 1"
    assert validate_field_value(f, 11) == "Answer must be at most 10"
    assert validate_field_value(f, True) == "Answer must be a number"
    assert validate_field_value(f, "7.5") is None


def test_text_length_and_pattern():
    f = field("text", min_length=3, max_length=5, pattern=r"[A-Z]+")
    assert validate_field_value(f, "AB") == "Answer must be at least 3 characters"
    assert validate_field_value(f, "ABCDEF") == "Answer must be at most 5 characters"
    assert validate_field_value(f, "abc") == "Answer has an invalid format"
    assert validate_field_value(f, " ABC ") is None


def test_choice_fields_only_accept_declared_options():
    options = [{"value": "veg", "label": "Veg"}, {"value": "non_veg", "label": "Non-veg"}]
    assert validate_field_value(field("select", options=options), "vegan") == "Answer has an invalid option"
    assert validate_field_value(field("multiselect", options=options), ["veg", "x"]) == "Answer has an invalid option"
    assert validate_field_value(field("multiselect", options=options), ["veg", "non_veg"]) is None


def test_empty_and_display_values():
    assert is_empty("  ")
    assert is_empty([])
    assert not is_empty(0)
    assert display_value(["a", "b"]) == "a, b"
    assert display_value(False) == "No"


# ── Builder and public submission ─────────────────────────────────────────────


async def create_published_form(client: AsyncClient, auth_headers: dict, **form_overrides) -> tuple[dict, dict]:
    payload = {"name": "Speaker Feedback", "status": "published"}
    payload.update(form_overrides)
    response = await client.post("/forms", json=payload, headers=auth_headers)
    assert response.status_code == 200
    form = response.json()

    response = await client.post(
        f"/forms/{form['id']}/fields",
        json={"field_type": "number", "label": "Rating", "is_required": True, "min_value": 1, "max_value": 5},
        headers=auth_headers,
    )
    assert response.status_code == 200
    return form, response.json()


@pytest.mark.asyncio
async def test_form_endpoints_require_auth(client: AsyncClient):
    response = await client.get("/forms")
    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_public_submission_flow(client: AsyncClient, auth_headers: dict):
    form, rating = await create_published_form(client, auth_headers)

    response = await client.get(f"/public/forms/{form['slug']}")
    assert response.status_code == 200
    assert [f["label"] for f in response.json()["fields"]] == ["Rating"]

    response = await client.post(f"/public/forms/{form['slug']}/submit", json={"responses": {}})
    assert response.status_code == 400
    assert "Rating" in response.json()["detail"]

    response = await client.post(
        f"/public/forms/{form['slug']}/submit",
        json={"responses": {rating["id"]: 9}, "submitter_email": "meera@example.com"},
    )
    assert response.status_code == 400

    response = await client.post(
        f"/public/forms/{form['slug']}/submit",
        json={"responses": {rating["id"]: 4}, "submitter_email": "Meera@Example.com"},
    )
    assert response.status_code == 200
    assert response.json()["success_message"] == "Thank you for your submission!"

    # One submission per email unless the form allows more
    response = await client.post(
        f"/public/forms/{form['slug']}/submit",
        json={"responses": {rating["id"]: 5}, "submitter_email": "meera@example.com"},
    )
    assert response.status_code == 409

    response = await client.get(f"/forms/{form['id']}/submissions", headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["data"][0]["submitter_email"] == "meera@example.com"


@pytest.mark.asyncio
async def test_draft_form_is_hidden_from_public(client: AsyncClient, auth_headers: dict):
    form, _ = await create_published_form(client, auth_headers, status="draft")
    response = await client.get(f"/public/forms/{form['slug']}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_requires_auth_form_needs_an_email(client: AsyncClient, auth_headers: dict):
    form, rating = await create_published_form(client, auth_headers, requires_auth=True)
    response = await client.post(f"/public/forms/{form['slug']}/submit", json={"responses": {rating["id"]: 3}})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_submission_export_is_csv(client: AsyncClient, auth_headers: dict):
    form, rating = await create_published_form(client, auth_headers)
    await client.post(f"/public/forms/{form['slug']}/submit", json={"responses": {rating["id"]: 5}})

    response = await client.get(f"/forms/{form['id']}/submissions/export", headers=auth_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "Rating" in response.text.splitlines()[0]
