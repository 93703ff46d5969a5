# tests/test_api_notifications_goals.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.models.visit import Visit
from conftest import auth_headers, create_client, create_product

NOTIFICATIONS = "/api/v1/notifications"
GOALS = "/api/v1/goals"


async def _visit(db, client, seller, scheduled_at, status="completed"):
    visit = Visit(client_id=client.id, seller_id=seller.id, scheduled_at=scheduled_at, status=status)
    db.add(visit)
    await db.commit()
    return visit


# ---------------------------------------------------------
# Stock check
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_stock_check_notifies_admins(client, db, admin, admin_headers, seller_headers):
    await create_product(db, name="Glyphosate 5L", stock=0)
    await create_product(db, name="Urea 50kg", stock=3, low_stock_threshold=5)
    await create_product(db, name="Retired", stock=0, status="inactive")
    await create_product(db, name="Plenty", stock=500)

    r = await client.post(f"{NOTIFICATIONS}/check-stock", headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["products_checked"] == 3
    assert body["out_of_stock"] == ["Glyphosate 5L"]
    assert body["low_stock"] == ["Urea 50kg"]
    assert body["notifications_created"] == 2

    page = (await client.get(NOTIFICATIONS, headers=admin_headers)).json()
    assert page["unread"] == 2
    messages = sorted(n["message"] for n in page["items"])
    assert messages == ['Product "Glyphosate 5L" is OUT OF STOCK!', 'Product "Urea 50kg" is running low on stock!']

    # sellers get nothing and cannot trigger the check
    assert (await client.get(f"{NOTIFICATIONS}/unread-count", headers=seller_headers)).json()["unread"] == 0
    assert (await client.post(f"{NOTIFICATIONS}/check-stock", headers=seller_headers)).status_code == 403


@pytest.mark.asyncio
async def test_stock_check_with_healthy_stock_creates_nothing(client, db, admin_headers):
    await create_product(db, stock=100)
    r = await client.post(f"{NOTIFICATIONS}/check-stock", headers=admin_headers)
    assert r.json()["notifications_created"] == 0


@pytest.mark.asyncio
async def test_read_one_and_read_all(client, db, admin, admin_headers, seller_headers):
    await create_product(db, name="Empty", stock=0)
    await create_product(db, name="Low", stock=1)
    await client.post(f"{NOTIFICATIONS}/check-stock", headers=admin_headers)

    items = (await client.get(NOTIFICATIONS, headers=admin_headers)).json()["items"]
    first = items[0]["id"]

    # someone else's notification looks missing
    assert (await client.post(f"{NOTIFICATIONS}/{first}/read", headers=seller_headers)).status_code == 404

    r = await client.post(f"{NOTIFICATIONS}/{first}/read", headers=admin_headers)
    assert r.json()["read"] is True
    assert (await client.get(f"{NOTIFICATIONS}/unread-count", headers=admin_headers)).json()["unread"] == 1

    r = await client.get(NOTIFICATIONS, params={"unread_only": True}, headers=admin_headers)
    assert len(r.json()["items"]) == 1

    r = await client.post(f"{NOTIFICATIONS}/read-all", headers=admin_headers)
    assert r.json()["unread"] == 0
    assert (await client.get(f"{NOTIFICATIONS}/unread-count", headers=admin_headers)).json()["unread"] == 0


# ---------------------------------------------------------
# Visit follow-up
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_visit_check_reminds_seller_and_alerts_admins(client, db, admin, admin_headers, seller, seller_headers):
    now = datetime.now(timezone.utc)
    month = await create_client(db, seller, contact_name="Ana")
    quarter = await create_client(db, seller, contact_name="Bruno")
    recent = await create_client(db, seller, contact_name="Carla")

    await _visit(db, month, seller, now - timedelta(days=30, hours=2))
    await _visit(db, quarter, seller, now - timedelta(days=90, hours=2))
    await _visit(db, recent, seller, now - timedelta(days=3))
    # planned visits are not follow-ups
    await _visit(db, recent, seller, now - timedelta(days=60, hours=2), status="scheduled")

    r = await client.post(f"{NOTIFICATIONS}/check-visits", headers=admin_headers)
    assert r.status_code == 200
    assert r.json() == {"clients_checked": 3, "notifications_created": 3}

    seller_msgs = [n["message"] for n in (await client.get(NOTIFICATIONS, headers=seller_headers)).json()["items"]]
    assert len(seller_msgs) == 2
    assert any("30 days since the last visit to Ana" in m for m in seller_msgs)
    assert any("90 days since the last visit to Bruno" in m for m in seller_msgs)

    admin_msgs = [n["message"] for n in (await client.get(NOTIFICATIONS, headers=admin_headers)).json()["items"]]
    assert admin_msgs == ["Client Bruno has not been visited for 90 days!"]


# ---------------------------------------------------------
# Goals
# ---------------------------------------------------------
async def _sale(client, headers, farm, product, qty, sold_at, status="closed"):
    r = await client.post(
        "/api/v1/sales",
        json={
            "client_id": str(farm.id),
            "items": [{"product_id": str(product.id), "qty": qty}],
            "sold_at": sold_at,
            "status": status,
        },
        headers=headers,
    )
    assert r.status_code == 201, r.text


@pytest.mark.asyncio
async def test_goal_progress_for_seller_and_team(client, db, admin_headers, seller, other_seller, seller_headers):
    other_headers = auth_headers(other_seller)
    product = await create_product(db, price=Decimal("100.00"))
    farm = await create_client(db, seller)
    other_farm = await create_client(db, other_seller, farm_name="Other farm")

    r = await client.post(
        GOALS,
        json={"level": "seller", "seller_id": str(seller.id), "period_ym": "2026-03", "sales_goal": "2000", "visits_goal": 4},
        headers=admin_headers,
    )
    assert r.status_code == 201, r.text
    r = await client.post(GOALS, json={"level": "team", "period_ym": "2026-03", "sales_goal": "5000"}, headers=admin_headers)
    assert r.status_code == 201

    await _sale(client, seller_headers, farm, product, "10", "2026-03-05T10:00:00+00:00")
    await _sale(client, seller_headers, farm, product, "3", "2026-03-20T10:00:00+00:00", status="canceled")
    await _sale(client, seller_headers, farm, product, "7", "2026-04-01T00:00:00+00:00")
    await _sale(client, other_headers, other_farm, product, "5", "2026-03-31T23:00:00+00:00")

    await _visit(db, farm, seller, datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc))
    await _visit(db, farm, seller, datetime(2026, 3, 11, 9, 0, tzinfo=timezone.utc), status="scheduled")

    r = await client.get(f"{GOALS}/progress", params={"period": "2026-03"}, headers=seller_headers)
    assert r.status_code == 200
    by_level = {item["goal"]["level"]: item for item in r.json()["items"]}
    assert set(by_level) == {"seller", "team"}

    mine = by_level["seller"]
    assert Decimal(mine["sales_achieved"]) == Decimal("1000.00")
    assert Decimal(mine["sales_percent"]) == Decimal("50.0")
    assert mine["visits_achieved"] == 1
    assert Decimal(mine["visits_percent"]) == Decimal("25.0")
    assert mine["proposals_percent"] is None

    team = by_level["team"]
    assert Decimal(team["sales_achieved"]) == Decimal("1500.00")
    assert Decimal(team["sales_percent"]) == Decimal("30.0")

    # the other seller only sees the team goal
    r = await client.get(f"{GOALS}/progress", params={"period": "2026-03"}, headers=other_headers)
    assert [item["goal"]["level"] for item in r.json()["items"]] == ["team"]


@pytest.mark.asyncio
async def test_goal_validation_and_permissions(client, admin_headers, seller, seller_headers):
    r = await client.post(GOALS, json={"level": "seller", "period_ym": "2026-03"}, headers=admin_headers)
    assert r.status_code == 422

    r = await client.post(GOALS, json={"level": "team", "period_ym": "2026-3"}, headers=admin_headers)
    assert r.status_code == 422

    r = await client.post(GOALS, json={"level": "team", "period_ym": "2026-03"}, headers=seller_headers)
    assert r.status_code == 403

    r = await client.get(f"{GOALS}/progress", params={"period": "March"}, headers=seller_headers)
    assert r.status_code == 422

    r = await client.post(
        GOALS,
        json={"level": "team", "seller_id": str(seller.id), "period_ym": "2026-03", "visits_goal": 10},
        headers=admin_headers,
    )
    assert r.json()["seller_id"] is None
    goal_id = r.json()["id"]

    r = await client.patch(f"{GOALS}/{goal_id}", json={"visits_goal": 12}, headers=admin_headers)
    assert r.json()["visits_goal"] == 12

    assert (await client.delete(f"{GOALS}/{goal_id}", headers=admin_headers)).status_code == 204
    assert (await client.get(GOALS, headers=admin_headers)).json() == []
