# tests/test_api_crm.py
from __future__ import annotations

import uuid
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from app.models.commission import Commission
from app.models.notification import Notification
from app.models.sale import Sale
from conftest import auth_headers, create_client, create_product

RULES = "/api/v1/commission-rules"
SERVICES = "/api/v1/services"
OPPORTUNITIES = "/api/v1/opportunities"
DEMOS = "/api/v1/demonstrations"


async def _rule(client, headers, **body):
    payload = {"base": "gross", "percent": "10", "scope": "general"}
    payload.update(body)
    r = await client.post(RULES, json=payload, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


async def _commission_amount(db, sale_id):
    stmt = select(Commission.amount).where(Commission.sale_id == uuid.UUID(str(sale_id)))
    return (await db.execute(stmt)).scalar_one_or_none()


# ---------------------------------------------------------
# Services
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_completing_service_records_sale_and_commission(client, db, admin_headers, seller, seller_headers):
    await _rule(client, admin_headers, base="spraying", percent="8")
    farm = await create_client(db, seller)

    r = await client.post(
        SERVICES,
        json={
            "client_id": str(farm.id),
            "service_type": "spraying",
            "date": "2026-03-10",
            "hectares": "50",
            "value_per_hectare": "10",
        },
        headers=seller_headers,
    )
    assert r.status_code == 201, r.text
    service_id = uuid.UUID(r.json()["id"])

    r = await client.patch(f"{SERVICES}/{service_id}", json={"status": "completed"}, headers=seller_headers)
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "completed"

    sale = (await db.execute(select(Sale).where(Sale.service_id == service_id))).scalar_one()
    assert sale.status == "closed"
    assert sale.seller_id == seller.id
    assert sale.client_id == farm.id
    assert sale.gross_value == Decimal("500.00")
    assert sale.total_cost == Decimal("0.00")
    assert sale.items == []
    assert await _commission_amount(db, sale.id) == Decimal("40.00")

    # saving the completed service again records nothing new
    r = await client.patch(f"{SERVICES}/{service_id}", json={"status": "completed", "notes": "Done"}, headers=seller_headers)
    assert r.status_code == 200
    count = (await db.execute(select(func.count(Sale.id)).where(Sale.service_id == service_id))).scalar_one()
    assert count == 1


@pytest.mark.asyncio
async def test_completing_service_without_value_records_no_sale(client, db, seller, seller_headers):
    farm = await create_client(db, seller)
    r = await client.post(
        SERVICES,
        json={"client_id": str(farm.id), "service_type": "revision", "date": "2026-03-10"},
        headers=seller_headers,
    )
    service_id = uuid.UUID(r.json()["id"])

    r = await client.patch(f"{SERVICES}/{service_id}", json={"status": "completed"}, headers=seller_headers)
    assert r.status_code == 200
    assert r.json()["total_value"] is None
    assert (await db.execute(select(func.count(Sale.id)))).scalar_one() == 0


# ---------------------------------------------------------
# Opportunities
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_convert_opportunity_into_closed_sale(client, db, admin_headers, seller, seller_headers):
    await _rule(client, admin_headers, base="gross", percent="10")
    farm = await create_client(db, seller)
    seed = await create_product(db, price=Decimal("100.00"), cost=Decimal("60.00"))
    spray = await create_product(db, price=Decimal("250.00"), cost=Decimal("200.00"))

    r = await client.post(
        OPPORTUNITIES,
        json={"client_id": str(farm.id), "stage": "closing", "product_ids": [str(seed.id), str(spray.id)]},
        headers=seller_headers,
    )
    assert r.status_code == 201, r.text
    opp_id = r.json()["id"]

    r = await client.post(f"{OPPORTUNITIES}/{opp_id}/convert", json={"payment_method_1": "pix"}, headers=seller_headers)
    assert r.status_code == 201, r.text
    sale = r.json()
    assert sale["status"] == "closed"
    assert sale["seller_id"] == str(seller.id)
    assert sale["payment_method_1"] == "pix"
    assert [(i["product_id"], Decimal(i["qty"])) for i in sale["items"]] == [
        (str(seed.id), Decimal("1")),
        (str(spray.id), Decimal("1")),
    ]
    assert Decimal(sale["gross_value"]) == Decimal("350.00")
    assert Decimal(sale["estimated_profit"]) == Decimal("90.00")
    assert await _commission_amount(db, sale["id"]) == Decimal("35.00")

    r = await client.get(f"{OPPORTUNITIES}/{opp_id}", headers=seller_headers)
    assert r.json()["stage"] == "won"

    r = await client.post(f"{OPPORTUNITIES}/{opp_id}/convert", json={}, headers=seller_headers)
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_convert_needs_products_and_ownership(client, db, seller, other_seller, seller_headers):
    farm = await create_client(db, seller)

    r = await client.post(OPPORTUNITIES, json={"client_id": str(farm.id)}, headers=seller_headers)
    opp_id = r.json()["id"]
    r = await client.post(f"{OPPORTUNITIES}/{opp_id}/convert", json={}, headers=seller_headers)
    assert r.status_code == 422

    r = await client.post(f"{OPPORTUNITIES}/{opp_id}/convert", json={}, headers=auth_headers(other_seller))
    assert r.status_code == 404

    # the opportunity stays open when nothing was sold
    r = await client.get(f"{OPPORTUNITIES}/{opp_id}", headers=seller_headers)
    assert r.json()["stage"] == "lead"
    assert (await db.execute(select(func.count(Sale.id)))).scalar_one() == 0


# ---------------------------------------------------------
# Demonstrations
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_demonstrations_are_scoped_to_their_seller(
    client, db, admin, admin_headers, seller, other_seller, seller_headers
):
    farm = await create_client(db, seller)
    other_headers = auth_headers(other_seller)

    r = await client.post(
        DEMOS,
        json={
            "client_id": str(farm.id),
            "date": "2026-04-10T09:00:00Z",
            "demo_types": ["herbicide"],
            "crop": "Soy",
            "hectares": "5",
            "assigned_users": [str(seller.id), str(admin.id)],
        },
        headers=seller_headers,
    )
    assert r.status_code == 201, r.text
    demo = r.json()
    assert demo["seller_id"] == str(seller.id)
    assert demo["status"] == "scheduled"
    assert demo["demo_types"] == ["herbicide"]

    # the seller's own assignment is not announced to them
    notified = (
        await db.execute(select(Notification.user_id).where(Notification.kind == "demo_assigned"))
    ).scalars().all()
    assert notified == [admin.id]

    assert (await client.get(f"{DEMOS}/{demo['id']}", headers=other_headers)).status_code == 404
    assert (await client.get(DEMOS, headers=other_headers)).json() == []
    r = await client.patch(f"{DEMOS}/{demo['id']}", json={"status": "done"}, headers=other_headers)
    assert r.status_code == 404
    r = await client.post(DEMOS, json={"client_id": str(farm.id), "date": "2026-04-11T09:00:00Z"}, headers=other_headers)
    assert r.status_code == 404

    r = await client.patch(f"{DEMOS}/{demo['id']}", json={"status": "done", "notes": "Good weed control"}, headers=seller_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "done"

    r = await client.get(DEMOS, params={"status": "done"}, headers=admin_headers)
    assert [d["id"] for d in r.json()] == [demo["id"]]


@pytest.mark.asyncio
async def test_demonstration_assignment(client, db, seller, other_seller, seller_headers):
    farm = await create_client(db, seller)

    r = await client.post(DEMOS, json={"client_id": str(farm.id), "date": "2026-04-10T09:00:00Z"}, headers=seller_headers)
    demo = r.json()
    assert demo["assigned_users"] == [str(seller.id)]

    r = await client.patch(
        f"{DEMOS}/{demo['id']}",
        json={"assigned_users": [str(seller.id), str(uuid.uuid4())]},
        headers=seller_headers,
    )
    assert r.status_code == 404

    r = await client.patch(
        f"{DEMOS}/{demo['id']}",
        json={"assigned_users": [str(seller.id), str(other_seller.id)]},
        headers=seller_headers,
    )
    assert r.status_code == 200
    assert r.json()["assigned_users"] == [str(seller.id), str(other_seller.id)]

    notified = (
        await db.execute(select(Notification.user_id).where(Notification.kind == "demo_assigned"))
    ).scalars().all()
    assert notified == [other_seller.id]
