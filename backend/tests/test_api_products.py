# tests/test_api_products.py
from __future__ import annotations

import uuid
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from app.crud.products import SqlPriceHistoryStore
from app.models.price_history import PriceHistoryEntry
from conftest import create_product

API = "/api/v1/products"


async def _history_count(db, product_id) -> int:
    stmt = select(func.count(PriceHistoryEntry.id)).where(PriceHistoryEntry.product_id == uuid.UUID(str(product_id)))
    return int((await db.execute(stmt)).scalar_one())


async def _create_calculated(client, headers, **overrides):
    body = {
        "name": "Soy seed 40kg",
        "category": "Seeds",
        "cost": "100.00",
        "pricing_mode": "calculated",
        "profit_margin_percent": "20",
        "tax_percent": "10",
        "stock": 10,
        "low_stock_threshold": 2,
    }
    body.update(overrides)
    r = await client.post(API, json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


@pytest.mark.asyncio
async def test_calculated_price_and_history_on_create(client, db, admin_headers):
    product = await _create_calculated(client, admin_headers)

    assert Decimal(product["price"]) == Decimal("142.86")
    assert Decimal(product["margin_percent"]) == Decimal("30.0")

    r = await client.get(f"{API}/{product['id']}/price-history", headers=admin_headers)
    assert r.status_code == 200
    entries = r.json()
    assert len(entries) == 1
    assert entries[0]["change_type"] == "both"
    assert entries[0]["old_price"] is None
    assert Decimal(entries[0]["new_price"]) == Decimal("142.86")


@pytest.mark.asyncio
async def test_margin_update_reprices_and_records_price_change(client, admin_headers):
    product = await _create_calculated(client, admin_headers)

    r = await client.patch(f"{API}/{product['id']}", json={"profit_margin_percent": "30"}, headers=admin_headers)
    assert r.status_code == 200, r.text
    assert Decimal(r.json()["price"]) == Decimal("166.67")

    entries = (await client.get(f"{API}/{product['id']}/price-history", headers=admin_headers)).json()
    assert len(entries) == 2
    latest = entries[0]
    assert latest["change_type"] == "price"
    assert Decimal(latest["old_price"]) == Decimal("142.86")
    assert Decimal(latest["new_price"]) == Decimal("166.67")
    assert Decimal(latest["old_cost"]) == Decimal(latest["new_cost"]) == Decimal("100.00")
    assert Decimal(latest["profit_margin_percent"]) == Decimal("30")


@pytest.mark.asyncio
async def test_cost_update_in_calculated_mode_is_both(client, admin_headers):
    product = await _create_calculated(client, admin_headers)

    r = await client.patch(f"{API}/{product['id']}", json={"cost": "70.00"}, headers=admin_headers)
    assert Decimal(r.json()["price"]) == Decimal("100.00")

    latest = (await client.get(f"{API}/{product['id']}/price-history", headers=admin_headers)).json()[0]
    assert latest["change_type"] == "both"


@pytest.mark.asyncio
async def test_update_without_price_change_writes_no_history(client, db, admin_headers):
    product = await _create_calculated(client, admin_headers)

    r = await client.patch(f"{API}/{product['id']}", json={"stock": 99, "description": "bag"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["stock"] == 99

    assert await _history_count(db, product["id"]) == 1


@pytest.mark.asyncio
async def test_calculated_manual_calculated_round_trip(client, admin_headers):
    product = await _create_calculated(client, admin_headers)
    url = f"{API}/{product['id']}"

    r = await client.patch(url, json={"pricing_mode": "manual", "price": "150.00"}, headers=admin_headers)
    assert Decimal(r.json()["price"]) == Decimal("150.00")

    r = await client.patch(url, json={"pricing_mode": "calculated"}, headers=admin_headers)
    assert Decimal(r.json()["price"]) == Decimal("142.86")


@pytest.mark.asyncio
async def test_manual_price_may_be_below_cost(client, admin_headers):
    r = await client.post(
        API,
        json={"name": "Clearance", "cost": "100.00", "price": "80.00", "pricing_mode": "manual"},
        headers=admin_headers,
    )
    assert r.status_code == 201
    assert Decimal(r.json()["price"]) == Decimal("80.00")


@pytest.mark.asyncio
async def test_manual_product_requires_price(client, admin_headers):
    r = await client.post(API, json={"name": "No price", "cost": "10.00"}, headers=admin_headers)
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_history_failure_does_not_block_product_save(client, db, admin_headers, monkeypatch):
    product = await _create_calculated(client, admin_headers)

    async def _boom(self, **kwargs):
        raise RuntimeError("history table unavailable")

    monkeypatch.setattr(SqlPriceHistoryStore, "add_entry", _boom)

    r = await client.patch(f"{API}/{product['id']}", json={"profit_margin_percent": "30"}, headers=admin_headers)
    assert r.status_code == 200
    assert Decimal(r.json()["price"]) == Decimal("166.67")
    assert await _history_count(db, product["id"]) == 1


@pytest.mark.asyncio
async def test_price_preview_fallback(client, admin_headers):
    r = await client.post(
        f"{API}/price-preview",
        json={"cost": "100", "profit_margin_percent": "20", "tax_percent": "10"},
        headers=admin_headers,
    )
    body = r.json()
    assert Decimal(body["price"]) == Decimal("142.86")
    # amounts are shares of the cost, not of the price
    assert Decimal(body["margin_amount"]) == Decimal("20.00")
    assert Decimal(body["tax_amount"]) == Decimal("10.00")
    assert body["fallback_to_cost"] is False

    r = await client.post(
        f"{API}/price-preview",
        json={"cost": "100", "profit_margin_percent": "70", "tax_percent": "30"},
        headers=admin_headers,
    )
    assert Decimal(r.json()["price"]) == Decimal("100.00")
    assert r.json()["fallback_to_cost"] is True


@pytest.mark.asyncio
async def test_list_filters_and_soft_delete(client, db, admin_headers):
    await create_product(db, name="Seed A", stock=1, low_stock_threshold=5)
    plenty = await create_product(db, name="Seed B", stock=100, low_stock_threshold=5)

    r = await client.get(API, params={"low_stock": True}, headers=admin_headers)
    assert [p["name"] for p in r.json()] == ["Seed A"]

    r = await client.get(API, params={"search": "seed b"}, headers=admin_headers)
    assert [p["name"] for p in r.json()] == ["Seed B"]

    r = await client.delete(f"{API}/{plenty.id}", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "inactive"

    r = await client.get(API, params={"status": "active"}, headers=admin_headers)
    assert [p["name"] for p in r.json()] == ["Seed A"]


@pytest.mark.asyncio
async def test_seller_sees_active_catalog_without_costs(client, db, seller_headers):
    active = await create_product(db, name="Active one")
    inactive = await create_product(db, name="Retired one", status="inactive")

    r = await client.get(API, headers=seller_headers)
    assert r.status_code == 403

    r = await client.get(f"{API}/catalog", headers=seller_headers)
    assert r.status_code == 200
    items = r.json()
    assert [p["name"] for p in items] == ["Active one"]
    assert "cost" not in items[0]

    r = await client.get(f"{API}/catalog/{inactive.id}", headers=seller_headers)
    assert r.status_code == 404
    r = await client.get(f"{API}/catalog/{active.id}", headers=seller_headers)
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_products_require_auth(client):
    r = await client.get(f"{API}/catalog")
    assert r.status_code in (401, 403)
