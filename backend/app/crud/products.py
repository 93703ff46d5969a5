# app/crud/products.py
from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import ProductStatus
from app.models.price_history import PriceHistoryEntry
from app.models.product import Product

PRICE_HISTORY_LIMIT = 20


class SqlPriceHistoryStore:
    """
    PriceHistoryStore over an AsyncSession.

    Called after the product row is committed, so the entry gets its own
    commit; a failure rolls back only the entry and is re-raised for the
    caller to log.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add_entry(
        self,
        *,
        product_id: uuid.UUID,
        change_type: str,
        old_cost: Optional[Decimal],
        new_cost: Decimal,
        old_price: Optional[Decimal],
        new_price: Decimal,
        profit_margin_percent: Optional[Decimal],
        tax_percent: Optional[Decimal],
        changed_by: Optional[uuid.UUID],
    ) -> PriceHistoryEntry:
        entry = PriceHistoryEntry(
            product_id=product_id,
            changed_by=changed_by,
            change_type=change_type,
            old_cost=old_cost,
            new_cost=new_cost,
            old_price=old_price,
            new_price=new_price,
            profit_margin_percent=profit_margin_percent,
            tax_percent=tax_percent,
        )
        self.db.add(entry)
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return entry


async def list_products(
    db: AsyncSession,
    *,
    search: Optional[str] = None,
    status: Optional[str] = None,
    low_stock: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Product], int]:
    stmt = select(Product)

    if search:
        like = f"%{search.strip().lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Product.name).like(like),
                func.lower(func.coalesce(Product.sku, "")).like(like),
                func.lower(func.coalesce(Product.category, "")).like(like),
            )
        )
    if status:
        stmt = stmt.where(Product.status == status)
    if low_stock:
        stmt = stmt.where(Product.stock <= Product.low_stock_threshold)

    total = (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()
    rows = (await db.execute(stmt.order_by(Product.name.asc()).limit(limit).offset(offset))).scalars().all()
    return list(rows), int(total)


async def list_active_products(db: AsyncSession) -> list[Product]:
    stmt = select(Product).where(Product.status == ProductStatus.ACTIVE.value).order_by(Product.name.asc())
    return list((await db.execute(stmt)).scalars().all())


async def get_products_by_ids(db: AsyncSession, product_ids: list[uuid.UUID]) -> dict[uuid.UUID, Product]:
    if not product_ids:
        return {}
    rows = (await db.execute(select(Product).where(Product.id.in_(set(product_ids))))).scalars().all()
    return {p.id: p for p in rows}


async def list_price_history(
    db: AsyncSession,
    product_id: uuid.UUID,
    limit: int = PRICE_HISTORY_LIMIT,
) -> list[PriceHistoryEntry]:
    stmt = (
        select(PriceHistoryEntry)
        .where(PriceHistoryEntry.product_id == product_id)
        .order_by(PriceHistoryEntry.created_at.desc())
        .limit(limit)
    )
    return list((await db.execute(stmt)).scalars().all())
