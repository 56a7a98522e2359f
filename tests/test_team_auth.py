import importlib

import pytest
from httpx import AsyncClient

from eventdesk.models import TeamMember
from eventdesk.security_utils import create_jwt_token, generate_timed_token

auth_routes = importlib.import_module("eventdesk.routes.auth")


def login_token(member: TeamMember) -> str:
    return generate_timed_token({"member_id": member.id, "email": member.email}, salt="magic-link")


# ── Magic-link sign in ────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_verify_exchanges_link_for_access_token(client: AsyncClient, admin):
    assert admin.last_login_at is None

    response = await client.post("/auth/verify", json={"token": login_token(admin)})
    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["member"]["email"] == "admin@example.com"
    assert body["member"]["last_login_at"] is not None

    me = await client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["id"] == admin.id


@pytest.mark.asyncio
async def test_tampered_link_is_rejected(client: AsyncClient, admin):
    response = await client.post("/auth/verify", json={"token": login_token(admin) + "x"})
    assert response.status_code == 401

    other_salt = generate_timed_token({"member_id": admin.id}, salt="password-reset")
    response = await client.post("/auth/verify", json={"token": other_salt})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_expired_link_is_rejected(client: AsyncClient, admin, monkeypatch):
    monkeypatch.setattr(auth_routes, "MAGIC_LINK_MAX_AGE", -1)
    response = await client.post("/auth/verify", json={"token": login_token(admin)})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid or expired login link"


@pytest.mark.asyncio
async def test_deactivated_member_cannot_sign_in(client: AsyncClient, db, admin):
    admin.is_active = False
    db.commit()
    response = await client.post("/auth/verify", json={"token": login_token(admin)})
    assert response.status_code == 401


# ── Team members ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_create_team_member(client: AsyncClient, auth_headers: dict):
    response = await client.post(
        "/team-members", json={"email": " Ravi@Example.com ", "name": "Ravi", "role": "staff"}, headers=auth_headers
    )
    assert response.status_code == 200
    assert response.json()["email"] == "ravi@example.com"
    assert response.json()["is_admin"] is False

    response = await client.post("/team-members", json={"email": "ravi@example.com"}, headers=auth_headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_unknown_role_is_rejected(client: AsyncClient, auth_headers: dict):
    response = await client.post(
        "/team-members", json={"email": "ravi@example.com", "role": "owner"}, headers=auth_headers
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_admin_cannot_remove_themselves(client: AsyncClient, auth_headers: dict, db, admin):
    response = await client.delete(f"/team-members/{admin.id}", headers=auth_headers)
    assert response.status_code == 400

    staff = TeamMember(email="staff@example.com", role="staff")
    db.add(staff)
    db.commit()
    response = await client.delete(f"/team-members/{staff.id}", headers=auth_headers)
    assert response.status_code == 200

    response = await client.get("/team-members", headers=auth_headers)
    assert [m["email"] for m in response.json()] == ["admin@example.com"]


@pytest.mark.asyncio
async def test_team_management_needs_admin(client: AsyncClient, db):
    staff = TeamMember(email="staff@example.com", role="staff")
    db.add(staff)
    db.commit()
    headers = {"Authorization": f"Bearer {create_jwt_token({'sub': staff.id})}"}

    response = await client.get("/team-members", headers=headers)
    assert response.status_code == 403
    response = await client.post("/team-members", json={"email": "x@example.com"}, headers=headers)
    assert response.status_code == 403
