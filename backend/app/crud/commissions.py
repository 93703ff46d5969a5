# app/crud/commissions.py
from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.commissions import (
    SaleContext,
    SaleLine,
    apply_pay_status,
    create_commission_for_sale,
    find_overlapping_rule,
    normalize_rule_target,
    OverlappingCommissionRule,
)
from app.core.enums import PayStatus, SaleStatus
from app.core.sales import line_gross
from app.models.commission import Commission
from app.models.commission_rule import CommissionRule
from app.models.product import Product
from app.models.sale import Sale
from app.models.service import Service

logger = logging.getLogger(__name__)


class SqlCommissionStore:
    """CommissionStore over an AsyncSession. Each created commission is committed on its own."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_closed_sale_ids_without_commission(self) -> list[uuid.UUID]:
        stmt = (
            select(Sale.id)
            .outerjoin(Commission, Commission.sale_id == Sale.id)
            .where(Sale.status == SaleStatus.CLOSED.value)
            .where(Commission.id.is_(None))
            .order_by(Sale.sold_at.asc())
        )
        return list((await self.db.execute(stmt)).scalars().all())

    async def commission_exists(self, sale_id: uuid.UUID) -> bool:
        stmt = select(Commission.id).where(Commission.sale_id == sale_id).limit(1)
        return (await self.db.execute(stmt)).scalar_one_or_none() is not None

    async def load_sale_context(self, sale_id: uuid.UUID) -> Optional[SaleContext]:
        sale = await self.db.get(Sale, sale_id)
        if sale is None:
            return None

        product_ids = [item.product_id for item in sale.items]
        categories: dict[uuid.UUID, Optional[str]] = {}
        if product_ids:
            rows = await self.db.execute(
                select(Product.id, Product.category).where(Product.id.in_(set(product_ids)))
            )
            categories = {pid: cat for pid, cat in rows.all()}

        lines = tuple(
            SaleLine(
                product_id=item.product_id,
                category=categories.get(item.product_id),
                gross=line_gross(item.unit_price, item.qty, item.discount_percent),
            )
            for item in sale.items
        )

        service_type = None
        service_value = None
        if sale.service_id is not None:
            service = await self.db.get(Service, sale.service_id)
            if service is not None:
                service_type = service.service_type
                service_value = service.total_value if service.total_value is not None else sale.gross_value

        return SaleContext(
            sale_id=sale.id,
            seller_id=sale.seller_id,
            status=sale.status,
            gross_value=Decimal(sale.gross_value),
            estimated_profit=Decimal(sale.estimated_profit),
            lines=lines,
            service_type=service_type,
            service_value=service_value,
        )

    async def list_active_rules(self) -> list[CommissionRule]:
        stmt = select(CommissionRule).where(CommissionRule.active.is_(True))
        return list((await self.db.execute(stmt)).scalars().all())

    async def add_commission(self, sale: SaleContext, rule: Any, amount: Decimal) -> Optional[Commission]:
        commission = Commission(
            sale_id=sale.sale_id,
            seller_id=sale.seller_id,
            rule_id=rule.id,
            base=rule.base,
            percent=rule.percent,
            amount=amount,
            pay_status=PayStatus.PENDING.value,
        )
        self.db.add(commission)
        try:
            await self.db.commit()
        except IntegrityError:
            # a concurrent run already attached a commission to this sale
            await self.db.rollback()
            logger.info("Commission for sale %s already exists, skipping", sale.sale_id)
            return None
        await self.db.refresh(commission)
        return commission

    async def rollback(self) -> None:
        await self.db.rollback()


async def attach_commission(db: AsyncSession, sale_id: uuid.UUID) -> None:
    """
    Closing a sale tries to create its commission right away. A failure here
    never fails the sale; the batch processor picks it up later.
    """
    try:
        await create_commission_for_sale(SqlCommissionStore(db), sale_id)
    except Exception:
        logger.exception("Could not create commission for sale %s; leaving it to the batch", sale_id)
        await db.rollback()


async def cancel_pending_commission(db: AsyncSession, sale_id: uuid.UUID) -> Optional[Commission]:
    """Called when a sale is canceled. Approved/paid commissions are left for an admin to handle."""
    commission = (
        await db.execute(select(Commission).where(Commission.sale_id == sale_id))
    ).scalar_one_or_none()
    if commission is None or commission.pay_status != PayStatus.PENDING.value:
        return None
    apply_pay_status(commission, PayStatus.CANCELED.value)
    commission.notes = commission.notes or "Sale canceled"
    return commission


# -----------------------------
# Rules
# -----------------------------
async def list_rules(db: AsyncSession, *, active: Optional[bool] = None) -> list[CommissionRule]:
    stmt = select(CommissionRule).order_by(CommissionRule.created_at.desc())
    if active is not None:
        stmt = stmt.where(CommissionRule.active.is_(active))
    return list((await db.execute(stmt)).scalars().all())


async def validate_rule(db: AsyncSession, rule: CommissionRule) -> None:
    """
    Normalizes the rule's target for its scope and rejects it when another
    active rule already covers the same scope, target and base family.
    Raises InvalidRuleScope, OverlappingCommissionRule or LookupError.

    The rule may carry unsaved edits; they must not be flushed before the
    product check, or a dangling product_id hits the foreign key first.
    """
    rule.category, rule.product_id = normalize_rule_target(rule.scope, rule.category, rule.product_id)
    with db.no_autoflush:
        if rule.product_id is not None and await db.get(Product, rule.product_id) is None:
            raise LookupError("Product not found")

        others = (
            await db.execute(
                select(CommissionRule)
                .where(CommissionRule.active.is_(True))
                .where(CommissionRule.scope == rule.scope)
            )
        ).scalars().all()
    overlap = find_overlapping_rule(rule, others)
    if overlap is not None:
        raise OverlappingCommissionRule(overlap.id)


# -----------------------------
# Commissions
# -----------------------------
def _commission_filters(stmt, *, seller_id: Optional[uuid.UUID], pay_status: Optional[str]):
    if seller_id is not None:
        stmt = stmt.where(Commission.seller_id == seller_id)
    if pay_status:
        stmt = stmt.where(Commission.pay_status == pay_status)
    return stmt


async def list_commissions(
    db: AsyncSession,
    *,
    seller_id: Optional[uuid.UUID] = None,
    pay_status: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Commission], int]:
    total_stmt = _commission_filters(
        select(func.count(Commission.id)), seller_id=seller_id, pay_status=pay_status
    )
    total = (await db.execute(total_stmt)).scalar_one()

    stmt = _commission_filters(select(Commission), seller_id=seller_id, pay_status=pay_status)
    stmt = stmt.order_by(Commission.created_at.desc()).limit(limit).offset(offset)
    rows = (await db.execute(stmt)).scalars().all()
    return list(rows), int(total)


async def commission_totals_by_status(
    db: AsyncSession,
    *,
    seller_id: Optional[uuid.UUID] = None,
) -> tuple[dict[str, Decimal], int]:
    stmt = _commission_filters(
        select(Commission.pay_status, func.coalesce(func.sum(Commission.amount), 0), func.count(Commission.id)),
        seller_id=seller_id,
        pay_status=None,
    ).group_by(Commission.pay_status)

    totals = {s.value: Decimal("0.00") for s in PayStatus}
    count = 0
    for pay_status, amount, n in (await db.execute(stmt)).all():
        totals[pay_status] = Decimal(str(amount)).quantize(Decimal("0.01"))
        count += int(n or 0)
    return totals, count
