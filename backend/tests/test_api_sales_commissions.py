# tests/test_api_sales_commissions.py
from __future__ import annotations

import uuid
from decimal import Decimal

import pytest
from sqlalchemy import event, select

from app.crud.commissions import SqlCommissionStore
from app.models.commission import Commission
from conftest import auth_headers, create_client, create_product

SALES = "/api/v1/sales"
RULES = "/api/v1/commission-rules"
COMMISSIONS = "/api/v1/commissions"


async def _rule(client, headers, **body):
    payload = {"base": "gross", "percent": "10", "scope": "general"}
    payload.update(body)
    r = await client.post(RULES, json=payload, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


async def _sell(client, headers, client_id, product_id, qty="10", discount="0", **extra):
    body = {
        "client_id": str(client_id),
        "items": [{"product_id": str(product_id), "qty": qty, "discount_percent": discount}],
    }
    body.update(extra)
    return await client.post(SALES, json=body, headers=headers)


async def _commission_for(db, sale_id):
    stmt = select(Commission.amount, Commission.pay_status).where(Commission.sale_id == uuid.UUID(str(sale_id)))
    return (await db.execute(stmt)).one_or_none()


# ---------------------------------------------------------
# Sale creation
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_closed_sale_gets_commission_immediately(client, db, admin_headers, seller, seller_headers):
    await _rule(client, admin_headers, base="gross", percent="10")
    farm = await create_client(db, seller)
    product = await create_product(db, price=Decimal("100.00"), cost=Decimal("60.00"))

    r = await _sell(client, seller_headers, farm.id, product.id, qty="10")
    assert r.status_code == 201, r.text
    sale = r.json()
    assert Decimal(sale["gross_value"]) == Decimal("1000.00")
    assert Decimal(sale["total_cost"]) == Decimal("600.00")
    assert Decimal(sale["estimated_profit"]) == Decimal("400.00")
    assert sale["seller_id"] == str(seller.id)
    assert Decimal(sale["items"][0]["unit_cost"]) == Decimal("60.00")

    r = await client.get(COMMISSIONS, headers=seller_headers)
    page = r.json()
    assert page["total"] == 1
    assert Decimal(page["items"][0]["amount"]) == Decimal("100.00")
    assert page["items"][0]["pay_status"] == "pending"


@pytest.mark.asyncio
async def test_profit_rule_commission(client, db, admin_headers, seller, seller_headers):
    await _rule(client, admin_headers, base="profit", percent="10")
    farm = await create_client(db, seller)
    product = await create_product(db, price=Decimal("100.00"), cost=Decimal("70.00"))

    r = await _sell(client, seller_headers, farm.id, product.id, qty="10")
    amount, status = await _commission_for(db, r.json()["id"])
    assert amount == Decimal("30.00")
    assert status == "pending"


@pytest.mark.asyncio
async def test_discount_above_product_limit_is_rejected(client, db, seller, seller_headers):
    farm = await create_client(db, seller)
    product = await create_product(db, max_discount_percent=Decimal("10"))

    r = await _sell(client, seller_headers, farm.id, product.id, discount="15")
    assert r.status_code == 422
    assert "Maximum discount allowed" in r.json()["detail"]

    r = await _sell(client, seller_headers, farm.id, product.id, qty="2", discount="10")
    assert r.status_code == 201
    assert Decimal(r.json()["gross_value"]) == Decimal("180.00")


@pytest.mark.asyncio
async def test_sale_needs_items_or_service(client, db, seller, seller_headers):
    farm = await create_client(db, seller)
    r = await client.post(SALES, json={"client_id": str(farm.id), "items": []}, headers=seller_headers)
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_seller_cannot_sell_for_someone_else_or_to_foreign_client(
    client, db, seller, other_seller, seller_headers
):
    own_farm = await create_client(db, seller)
    foreign_farm = await create_client(db, other_seller, farm_name="Other farm")
    product = await create_product(db)

    r = await _sell(client, seller_headers, own_farm.id, product.id, seller_id=str(other_seller.id))
    assert r.status_code == 201
    assert r.json()["seller_id"] == str(seller.id)

    r = await _sell(client, seller_headers, foreign_farm.id, product.id)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_sales_are_scoped_to_their_seller(client, db, seller, other_seller, seller_headers, admin_headers):
    farm = await create_client(db, seller)
    product = await create_product(db)
    sale_id = (await _sell(client, seller_headers, farm.id, product.id)).json()["id"]

    other_headers = auth_headers(other_seller)
    assert (await client.get(f"{SALES}/{sale_id}", headers=other_headers)).status_code == 404
    assert (await client.get(SALES, headers=other_headers)).json()["total"] == 0

    assert (await client.get(f"{SALES}/{sale_id}", headers=admin_headers)).status_code == 200
    assert (await client.get(SALES, headers=admin_headers)).json()["total"] == 1


@pytest.mark.asyncio
async def test_service_sale_uses_service_rule(client, db, admin_headers, seller, seller_headers):
    await _rule(client, admin_headers, base="gross", percent="10")
    await _rule(client, admin_headers, base="spraying", percent="8")
    farm = await create_client(db, seller)

    r = await client.post(
        "/api/v1/services",
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
    service = r.json()
    assert Decimal(service["total_value"]) == Decimal("500.00")

    r = await client.post(
        SALES,
        json={"client_id": str(farm.id), "service_id": service["id"], "items": []},
        headers=seller_headers,
    )
    assert r.status_code == 201, r.text
    assert Decimal(r.json()["gross_value"]) == Decimal("500.00")

    amount, _ = await _commission_for(db, r.json()["id"])
    assert amount == Decimal("40.00")


# ---------------------------------------------------------
# Cancel / recalc
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_canceling_sale_cancels_pending_commission(client, db, admin_headers, seller, seller_headers):
    await _rule(client, admin_headers)
    farm = await create_client(db, seller)
    product = await create_product(db)
    sale_id = (await _sell(client, seller_headers, farm.id, product.id)).json()["id"]

    r = await client.patch(f"{SALES}/{sale_id}", json={"status": "canceled"}, headers=seller_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "canceled"

    _, status = await _commission_for(db, sale_id)
    assert status == "canceled"

    r = await client.patch(f"{SALES}/{sale_id}", json={"status": "closed"}, headers=seller_headers)
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_recalc_refreshes_cost_but_not_commission(client, db, admin_headers, seller, seller_headers):
    await _rule(client, admin_headers, base="profit", percent="10")
    farm = await create_client(db, seller)
    product = await create_product(db, price=Decimal("100.00"), cost=Decimal("60.00"))
    sale_id = (await _sell(client, seller_headers, farm.id, product.id, qty="10")).json()["id"]

    r = await client.patch(f"/api/v1/products/{product.id}", json={"cost": "80.00"}, headers=admin_headers)
    assert r.status_code == 200

    # snapshot: nothing moves until an explicit recalc
    r = await client.get(f"{SALES}/{sale_id}", headers=admin_headers)
    assert Decimal(r.json()["estimated_profit"]) == Decimal("400.00")

    r = await client.post(f"{SALES}/{sale_id}/recalc", headers=admin_headers)
    assert r.status_code == 200
    assert Decimal(r.json()["total_cost"]) == Decimal("800.00")
    assert Decimal(r.json()["estimated_profit"]) == Decimal("200.00")
    assert Decimal(r.json()["items"][0]["unit_price"]) == Decimal("100.00")

    amount, _ = await _commission_for(db, sale_id)
    assert amount == Decimal("40.00")

    r = await client.post(f"{SALES}/{sale_id}/recalc", headers=seller_headers)
    assert r.status_code == 403


# ---------------------------------------------------------
# Batch processing
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_process_all_is_idempotent(client, db, admin_headers, seller, seller_headers):
    farm = await create_client(db, seller)
    product = await create_product(db)
    for _ in range(3):
        assert (await _sell(client, seller_headers, farm.id, product.id)).status_code == 201

    # no rule yet: nothing attached at sale time
    assert (await client.get(COMMISSIONS, headers=admin_headers)).json()["total"] == 0

    await _rule(client, admin_headers, percent="5")

    r = await client.post(f"{COMMISSIONS}/process-all", headers=admin_headers)
    body = r.json()
    assert (body["processed"], body["created"], body["skipped"], body["failed"]) == (3, 3, 0, 0)

    r = await client.post(f"{COMMISSIONS}/process-all", headers=admin_headers)
    assert (r.json()["processed"], r.json()["created"]) == (0, 0)

    assert (await client.get(COMMISSIONS, headers=admin_headers)).json()["total"] == 3


@pytest.mark.asyncio
async def test_single_sale_processing(client, db, admin_headers, seller, seller_headers):
    farm = await create_client(db, seller)
    product = await create_product(db)
    sale_id = (await _sell(client, seller_headers, farm.id, product.id)).json()["id"]

    await _rule(client, admin_headers, percent="5")
    r = await client.post(f"{COMMISSIONS}/sales/{sale_id}", headers=admin_headers)
    assert r.status_code == 200
    assert Decimal(r.json()["amount"]) == Decimal("50.00")

    r = await client.post(f"{COMMISSIONS}/sales/{sale_id}", headers=admin_headers)
    assert r.json() is None

    r = await client.post(f"{COMMISSIONS}/sales/{uuid.uuid4()}", headers=admin_headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_store_lists_only_closed_sales_without_commission(client, db, admin_headers, seller, seller_headers):
    farm = await create_client(db, seller)
    product = await create_product(db)
    keep = (await _sell(client, seller_headers, farm.id, product.id)).json()["id"]
    dropped = (await _sell(client, seller_headers, farm.id, product.id)).json()["id"]
    await client.patch(f"{SALES}/{dropped}", json={"status": "canceled"}, headers=seller_headers)

    store = SqlCommissionStore(db)
    assert await store.list_closed_sale_ids_without_commission() == [uuid.UUID(keep)]


# ---------------------------------------------------------
# Pay status + visibility
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_pay_status_workflow(client, db, admin_headers, seller, seller_headers):
    await _rule(client, admin_headers)
    farm = await create_client(db, seller)
    product = await create_product(db)
    await _sell(client, seller_headers, farm.id, product.id)
    commission = (await client.get(COMMISSIONS, headers=admin_headers)).json()["items"][0]
    url = f"{COMMISSIONS}/{commission['id']}"

    r = await client.patch(url, json={"pay_status": "paid"}, headers=admin_headers)
    assert r.status_code == 422

    r = await client.patch(url, json={"pay_status": "approved"}, headers=admin_headers)
    assert r.json()["pay_status"] == "approved"
    assert r.json()["pay_status_date"] is None

    r = await client.patch(
        url, json={"pay_status": "paid", "receipt_url": "https://files.example.com/r/1.pdf"}, headers=admin_headers
    )
    assert r.json()["pay_status"] == "paid"
    assert r.json()["pay_status_date"] is not None
    assert r.json()["receipt_url"].endswith("1.pdf")

    r = await client.patch(url, json={"pay_status": "approved"}, headers=seller_headers)
    assert r.status_code == 403

    summary = (await client.get(f"{COMMISSIONS}/summary", headers=seller_headers)).json()
    assert Decimal(summary["total_paid"]) == Decimal("100.00")
    assert Decimal(summary["total_pending"]) == Decimal("0.00")
    assert summary["count"] == 1


@pytest.mark.asyncio
async def test_commissions_are_private_to_their_seller(client, db, admin_headers, seller, other_seller, seller_headers):
    await _rule(client, admin_headers)
    farm = await create_client(db, seller)
    product = await create_product(db)
    await _sell(client, seller_headers, farm.id, product.id)
    commission_id = (await client.get(COMMISSIONS, headers=seller_headers)).json()["items"][0]["id"]

    other_headers = auth_headers(other_seller)
    assert (await client.get(COMMISSIONS, headers=other_headers)).json()["total"] == 0
    assert (await client.get(f"{COMMISSIONS}/{commission_id}", headers=other_headers)).status_code == 404
    r = await client.get(COMMISSIONS, params={"seller_id": str(seller.id)}, headers=other_headers)
    assert r.json()["total"] == 0


# ---------------------------------------------------------
# Rules
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_overlapping_rule_is_rejected(client, db, admin_headers):
    first = await _rule(client, admin_headers, scope="category", category="Seeds")

    r = await client.post(
        RULES, json={"base": "profit", "percent": "3", "scope": "category", "category": " seeds"}, headers=admin_headers
    )
    assert r.status_code == 409
    assert r.json()["detail"]["existing_rule_id"] == first["id"]

    # a different base family does not overlap
    await _rule(client, admin_headers, base="spraying", scope="category", category="Seeds")


@pytest.mark.asyncio
async def test_reactivating_rule_cannot_create_overlap(client, admin_headers):
    first = await _rule(client, admin_headers)
    r = await client.post(f"{RULES}/{first['id']}/toggle", headers=admin_headers)
    assert r.json()["active"] is False

    await _rule(client, admin_headers, percent="7")

    r = await client.post(f"{RULES}/{first['id']}/toggle", headers=admin_headers)
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_rule_scope_consistency(client, db, admin_headers, seller_headers):
    r = await client.post(RULES, json={"percent": "5", "scope": "category"}, headers=admin_headers)
    assert r.status_code == 422

    r = await client.post(RULES, json={"percent": "5", "scope": "product", "product_id": str(uuid.uuid4())}, headers=admin_headers)
    assert r.status_code == 404

    product = await create_product(db)
    rule = await _rule(client, admin_headers, scope="product", product_id=str(product.id), category="ignored")
    assert rule["category"] is None
    assert rule["product_id"] == str(product.id)

    r = await client.post(RULES, json={"percent": "5"}, headers=seller_headers)
    assert r.status_code == 403
    assert (await client.get(RULES, headers=seller_headers)).status_code == 200


def _enforce_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.mark.asyncio
async def test_rule_retargeted_to_missing_product_is_not_found(client, engine, admin_headers):
    rule = await _rule(client, admin_headers)
    # every new connection from here on enforces foreign keys, like Postgres
    event.listen(engine.sync_engine, "connect", _enforce_foreign_keys)

    r = await client.patch(
        f"{RULES}/{rule['id']}",
        json={"scope": "product", "product_id": str(uuid.uuid4())},
        headers=admin_headers,
    )
    assert r.status_code == 404

    r = await client.get(RULES, headers=admin_headers)
    assert [(x["scope"], x["product_id"]) for x in r.json()] == [("general", None)]


@pytest.mark.asyncio
async def test_product_rule_beats_general_end_to_end(client, db, admin_headers, seller, seller_headers):
    product = await create_product(db, price=Decimal("100.00"))
    await _rule(client, admin_headers, percent="3")
    await _rule(client, admin_headers, percent="4", scope="category", category="Seeds")
    product_rule = await _rule(client, admin_headers, percent="5", scope="product", product_id=str(product.id))
    farm = await create_client(db, seller)

    sale_id = (await _sell(client, seller_headers, farm.id, product.id, qty="10")).json()["id"]
    amount, _ = await _commission_for(db, sale_id)
    assert amount == Decimal("50.00")

    # without the product rule the category rule applies
    await client.post(f"{RULES}/{product_rule['id']}/toggle", headers=admin_headers)
    sale_id = (await _sell(client, seller_headers, farm.id, product.id, qty="10")).json()["id"]
    amount, _ = await _commission_for(db, sale_id)
    assert amount == Decimal("40.00")
