# app/crud/sales.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import ProductStatus, SaleStatus
from app.core.pricing import quantize_money
from app.core.sales import check_discount, sale_totals
from app.crud.products import get_products_by_ids
from app.models.product import Product
from app.models.sale import Sale, SaleItem
from app.models.service import Service

logger = logging.getLogger(__name__)


class SaleItemError(ValueError):
    pass


async def get_sale(db: AsyncSession, sale_id: uuid.UUID) -> Optional[Sale]:
    """Fresh load, items included."""
    stmt = select(Sale).where(Sale.id == sale_id).execution_options(populate_existing=True)
    return (await db.execute(stmt)).scalar_one_or_none()


def build_sale_items(items_in: Iterable, products: dict[uuid.UUID, Product]) -> list[SaleItem]:
    """
    One SaleItem per input line, snapshotting the product's current price and
    cost. Raises SaleItemError for unknown/inactive products and
    DiscountNotAllowed for a discount above the product's limit.
    """
    items: list[SaleItem] = []
    for position, line in enumerate(items_in):
        product = products.get(line.product_id)
        if product is None:
            raise SaleItemError(f"Product not found: {line.product_id}")
        if product.status != ProductStatus.ACTIVE.value:
            raise SaleItemError(f"Product is inactive: {product.name}")

        discount = check_discount(line.discount_percent, product.max_discount_percent)
        items.append(
            SaleItem(
                product_id=product.id,
                position=position,
                qty=line.qty,
                unit_price=quantize_money(product.price),
                unit_cost=quantize_money(product.cost),
                discount_percent=discount,
            )
        )
    return items


async def create_sale(
    db: AsyncSession,
    *,
    client_id: uuid.UUID,
    seller_id: uuid.UUID,
    items_in: list,
    service: Optional[Service] = None,
    sold_at: Optional[datetime] = None,
    **fields,
) -> Sale:
    """
    Adds a sale with snapshot totals to the session (not committed).

    A sale linked to a service and without product lines takes the service's
    total value as gross, with no cost.
    """
    products = await get_products_by_ids(db, [line.product_id for line in items_in])
    items = build_sale_items(items_in, products)

    sale = Sale(client_id=client_id, seller_id=seller_id, items=items, **fields)
    if sold_at is not None:
        sale.sold_at = sold_at

    if service is not None:
        sale.service_id = service.id

    if items:
        totals = sale_totals(items)
        sale.gross_value = totals.gross_value
        sale.total_cost = totals.total_cost
        sale.estimated_profit = totals.estimated_profit
    else:
        value = quantize_money(service.total_value if service is not None else 0)
        sale.gross_value = value
        sale.total_cost = Decimal("0.00")
        sale.estimated_profit = value

    db.add(sale)
    return sale


async def create_service_sale(db: AsyncSession, service: Service) -> Optional[Sale]:
    """
    Closed sale for a completed service, credited to the service's owner.
    Returns None when a sale is already linked to the service.
    """
    stmt = select(Sale.id).where(Sale.service_id == service.id).limit(1)
    if (await db.execute(stmt)).scalar_one_or_none() is not None:
        return None
    return await create_sale(
        db,
        client_id=service.client_id,
        seller_id=service.owner_user_id,
        items_in=[],
        service=service,
        status=SaleStatus.CLOSED.value,
        payment_received=False,
    )


async def recalc_sale_totals(db: AsyncSession, sale_id: uuid.UUID) -> Optional[Sale]:
    """
    Explicit reprocess: refresh every line's unit cost from the product's
    current cost and recompute the sale totals. Unit prices and discounts
    keep their sale-time values; an existing commission is not touched.
    """
    sale = await get_sale(db, sale_id)
    if sale is None:
        return None

    if sale.items:
        products = await get_products_by_ids(db, [item.product_id for item in sale.items])
        for item in sale.items:
            product = products.get(item.product_id)
            if product is not None:
                item.unit_cost = quantize_money(product.cost)

        totals = sale_totals(sale.items)
        sale.gross_value = totals.gross_value
        sale.total_cost = totals.total_cost
        sale.estimated_profit = totals.estimated_profit

    await db.commit()
    logger.info(
        "Sale %s recalculated: gross=%s cost=%s profit=%s",
        sale.id,
        sale.gross_value,
        sale.total_cost,
        sale.estimated_profit,
    )
    return await get_sale(db, sale_id)


async def list_sales(
    db: AsyncSession,
    *,
    seller_id: Optional[uuid.UUID] = None,
    client_id: Optional[uuid.UUID] = None,
    status: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Sale], int]:
    stmt = select(Sale)
    if seller_id is not None:
        stmt = stmt.where(Sale.seller_id == seller_id)
    if client_id is not None:
        stmt = stmt.where(Sale.client_id == client_id)
    if status:
        stmt = stmt.where(Sale.status == status)

    total = (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()
    stmt = stmt.order_by(Sale.sold_at.desc()).limit(limit).offset(offset)
    rows = (await db.execute(stmt)).scalars().all()
    return list(rows), int(total)
