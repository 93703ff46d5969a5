# tests/test_api_auth_users.py
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import update

from app.models.user import User
from conftest import auth_headers, create_user

AUTH = "/api/v1/auth"
USERS = "/api/v1/users"


async def _login(client, email: str) -> dict[str, str]:
    r = await client.post(f"{AUTH}/request-code", json={"email": email})
    assert r.status_code == 200
    code = r.json()["code"]
    r = await client.post(f"{AUTH}/verify-code", json={"email": email, "code": code})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


# ---------------------------------------------------------
# Magic code
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_first_user_bootstraps_as_admin(client):
    headers = await _login(client, "Owner@Example.com")

    me = (await client.get(f"{AUTH}/me", headers=headers)).json()
    assert me["email"] == "owner@example.com"
    assert me["role"] == "admin"
    assert me["is_admin"] is True


@pytest.mark.asyncio
async def test_unknown_email_gets_no_code_once_users_exist(client, admin):
    r = await client.post(f"{AUTH}/request-code", json={"email": "stranger@example.com"})
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert "code" not in r.json()


@pytest.mark.asyncio
async def test_code_is_single_use(client, seller):
    r = await client.post(f"{AUTH}/request-code", json={"email": seller.email})
    code = r.json()["code"]

    assert (await client.post(f"{AUTH}/verify-code", json={"email": seller.email, "code": code})).status_code == 200
    r = await client.post(f"{AUTH}/verify-code", json={"email": seller.email, "code": code})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_wrong_and_expired_codes(client, db, seller):
    r = await client.post(f"{AUTH}/request-code", json={"email": seller.email})
    code = r.json()["code"]

    r = await client.post(f"{AUTH}/verify-code", json={"email": seller.email, "code": "000000" if code != "000000" else "111111"})
    assert r.status_code == 401

    await db.execute(
        update(User)
        .where(User.id == seller.id)
        .values(magic_code_expires_at=datetime.now(timezone.utc) - timedelta(minutes=1))
    )
    await db.commit()

    r = await client.post(f"{AUTH}/verify-code", json={"email": seller.email, "code": code})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_inactive_user_cannot_log_in_or_use_token(client, db):
    user = await create_user(db, "gone@example.com", status="inactive")

    r = await client.post(f"{AUTH}/request-code", json={"email": user.email})
    assert "code" not in r.json()

    r = await client.get(f"{AUTH}/me", headers=auth_headers(user))
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_update_own_profile(client, seller_headers):
    r = await client.patch(
        f"{AUTH}/me",
        json={"name": "  Maria   Souza ", "phone_e164": "+55 11 98765-4321", "region": "Cerrado"},
        headers=seller_headers,
    )
    assert r.status_code == 200
    body = r.json()
    assert body["name"] == "Maria Souza"
    assert body["phone_e164"] == "+5511987654321"
    assert body["region"] == "Cerrado"

    r = await client.patch(f"{AUTH}/me", json={"role": "admin"}, headers=seller_headers)
    assert r.status_code == 422


# ---------------------------------------------------------
# Invitations + admin user management
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_invite_accept_then_login(client, admin_headers):
    r = await client.post(
        f"{USERS}/invites",
        json={"email": "New.Seller@example.com", "name": "New Seller", "region": "South"},
        headers=admin_headers,
    )
    assert r.status_code == 201, r.text
    invite = r.json()
    assert invite["status"] == "invited"
    assert invite["role"] == "seller"
    token = invite["invite_token"]

    # not active yet: no code
    r = await client.post(f"{AUTH}/request-code", json={"email": "new.seller@example.com"})
    assert "code" not in r.json()

    r = await client.post(f"{USERS}/invites/accept", json={"token": token})
    assert r.status_code == 200
    assert r.json()["status"] == "active"

    r = await client.post(f"{USERS}/invites/accept", json={"token": token})
    assert r.status_code == 404

    headers = await _login(client, "new.seller@example.com")
    assert (await client.get(f"{AUTH}/me", headers=headers)).json()["role"] == "seller"


@pytest.mark.asyncio
async def test_invite_rules(client, db, admin_headers, seller, seller_headers):
    r = await client.post(f"{USERS}/invites", json={"email": seller.email, "name": "Again"}, headers=admin_headers)
    assert r.status_code == 409

    r = await client.post(f"{USERS}/invites", json={"email": "x@example.com", "name": "X"}, headers=seller_headers)
    assert r.status_code == 403

    r = await client.post(f"{USERS}/invites", json={"email": "late@example.com", "name": "Late"}, headers=admin_headers)
    token = r.json()["invite_token"]
    await db.execute(
        update(User)
        .where(User.email == "late@example.com")
        .values(invite_expires_at=datetime.now(timezone.utc) - timedelta(days=1))
    )
    await db.commit()

    r = await client.post(f"{USERS}/invites/accept", json={"token": token})
    assert r.status_code == 410

    r = await client.post(f"{USERS}/invites/accept", json={"token": "no-such-token"})
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_admin_manages_users_but_not_itself(client, admin, admin_headers, seller, seller_headers):
    r = await client.patch(f"{USERS}/{seller.id}", json={"status": "inactive"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "inactive"

    r = await client.get(USERS, params={"status": "inactive"}, headers=admin_headers)
    assert [u["email"] for u in r.json()] == [seller.email]

    # the deactivated seller is locked out right away
    assert (await client.get(f"{AUTH}/me", headers=seller_headers)).status_code == 401

    r = await client.patch(f"{USERS}/{admin.id}", json={"role": "seller"}, headers=admin_headers)
    assert r.status_code == 400

    r = await client.patch(f"{USERS}/{uuid.uuid4()}", json={"name": "Nobody"}, headers=admin_headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_users_see_only_themselves(client, seller, other_seller, seller_headers):
    assert (await client.get(f"{USERS}/{seller.id}", headers=seller_headers)).status_code == 200
    assert (await client.get(f"{USERS}/{other_seller.id}", headers=seller_headers)).status_code == 404
    assert (await client.get(USERS, headers=seller_headers)).status_code == 403
