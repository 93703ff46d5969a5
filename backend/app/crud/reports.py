# app/crud/reports.py
"""
Read-only aggregates behind the dashboards and the admin reports.

Only closed sales count as revenue. Periods are "YYYY-MM" months, resolved
with parse_period into a half-open UTC window.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import (
    CostType,
    OpportunityStage,
    PayStatus,
    SaleStatus,
    UserRole,
    UserStatus,
    VisitStatus,
)
from app.core.goals import parse_period
from app.core.pricing import quantize_money
from app.core.sales import line_gross
from app.crud.commissions import commission_totals_by_status
from app.models.client import Client
from app.models.company_cost import CompanyCost
from app.models.opportunity import Opportunity
from app.models.product import Product
from app.models.sale import Sale, SaleItem
from app.models.user import User
from app.models.visit import Visit

OPEN_STAGES = (
    OpportunityStage.LEAD.value,
    OpportunityStage.QUALIFIED.value,
    OpportunityStage.PROPOSAL.value,
    OpportunityStage.CLOSING.value,
)


@dataclass(frozen=True)
class SellerSales:
    seller_id: uuid.UUID
    name: Optional[str]
    sales_count: int
    gross_value: Decimal
    estimated_profit: Decimal


@dataclass(frozen=True)
class MonthSales:
    period_ym: str
    sales_count: int
    gross_value: Decimal
    estimated_profit: Decimal


@dataclass
class ProductSales:
    product_id: uuid.UUID
    name: str
    category: Optional[str]
    qty: Decimal = Decimal("0")
    revenue: Decimal = Decimal("0")


@dataclass(frozen=True)
class StageTotal:
    stage: str
    count: int
    gross_value: Decimal


@dataclass(frozen=True)
class CostSummary:
    period_ym: str
    fixed: Decimal
    variable: Decimal
    total: Decimal


@dataclass
class Dashboard:
    period_ym: str
    seller_id: Optional[uuid.UUID]
    sales_count: int
    gross_value: Decimal
    estimated_profit: Decimal
    visits_completed: int
    clients: int
    open_pipeline_value: Decimal
    commissions_pending: Decimal
    pipeline: list[StageTotal] = field(default_factory=list)
    # team view only
    company_costs: Optional[Decimal] = None
    net_result: Optional[Decimal] = None


def current_period(now: Optional[datetime] = None) -> str:
    return (now or datetime.now(timezone.utc)).strftime("%Y-%m")


def _money(value) -> Decimal:
    return quantize_money(value or 0)


def _closed_between(stmt, start: datetime, end: datetime):
    return (
        stmt.where(Sale.status == SaleStatus.CLOSED.value)
        .where(Sale.sold_at >= start)
        .where(Sale.sold_at < end)
    )


# -----------------------------
# Sales
# -----------------------------
async def sales_by_seller(db: AsyncSession, period_ym: str) -> list[SellerSales]:
    """Every active seller (zero rows included) plus anyone else who sold in the period."""
    start, end = parse_period(period_ym)
    sale_in_period = and_(
        Sale.seller_id == User.id,
        Sale.status == SaleStatus.CLOSED.value,
        Sale.sold_at >= start,
        Sale.sold_at < end,
    )
    gross = func.coalesce(func.sum(Sale.gross_value), 0)
    stmt = (
        select(
            User.id,
            User.name,
            func.count(Sale.id),
            gross,
            func.coalesce(func.sum(Sale.estimated_profit), 0),
        )
        .outerjoin(Sale, sale_in_period)
        .where(
            or_(
                and_(User.role == UserRole.SELLER.value, User.status == UserStatus.ACTIVE.value),
                Sale.id.is_not(None),
            )
        )
        .group_by(User.id, User.name)
        .order_by(gross.desc(), User.name.asc())
    )
    return [
        SellerSales(
            seller_id=seller_id,
            name=name,
            sales_count=int(count or 0),
            gross_value=_money(gross_value),
            estimated_profit=_money(profit),
        )
        for seller_id, name, count, gross_value, profit in (await db.execute(stmt)).all()
    ]


async def sales_by_month(
    db: AsyncSession,
    year: int,
    seller_id: Optional[uuid.UUID] = None,
) -> list[MonthSales]:
    """Twelve months of closed sales, empty months included."""
    start = datetime(year, 1, 1, tzinfo=timezone.utc)
    end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    stmt = _closed_between(select(Sale.sold_at, Sale.gross_value, Sale.estimated_profit), start, end)
    if seller_id is not None:
        stmt = stmt.where(Sale.seller_id == seller_id)

    buckets = {f"{year}-{month:02d}": [0, Decimal("0"), Decimal("0")] for month in range(1, 13)}
    for sold_at, gross_value, profit in (await db.execute(stmt)).all():
        bucket = buckets[sold_at.strftime("%Y-%m")]
        bucket[0] += 1
        bucket[1] += Decimal(str(gross_value))
        bucket[2] += Decimal(str(profit))

    return [
        MonthSales(period_ym=ym, sales_count=n, gross_value=_money(g), estimated_profit=_money(p))
        for ym, (n, g, p) in buckets.items()
    ]


async def top_products(db: AsyncSession, period_ym: str, limit: int = 10) -> list[ProductSales]:
    """Products ranked by discounted line revenue over the period's closed sales."""
    start, end = parse_period(period_ym)
    stmt = _closed_between(
        select(
            SaleItem.product_id,
            Product.name,
            Product.category,
            SaleItem.qty,
            SaleItem.unit_price,
            SaleItem.discount_percent,
        )
        .join(Sale, Sale.id == SaleItem.sale_id)
        .join(Product, Product.id == SaleItem.product_id),
        start,
        end,
    )

    totals: dict[uuid.UUID, ProductSales] = {}
    for product_id, name, category, qty, unit_price, discount in (await db.execute(stmt)).all():
        row = totals.setdefault(product_id, ProductSales(product_id=product_id, name=name, category=category))
        row.qty += Decimal(str(qty))
        row.revenue += line_gross(unit_price, qty, discount)

    ranked = sorted(totals.values(), key=lambda r: (-r.revenue, r.name))[:limit]
    for row in ranked:
        row.revenue = _money(row.revenue)
    return ranked


# -----------------------------
# Pipeline
# -----------------------------
async def pipeline_by_stage(db: AsyncSession, seller_id: Optional[uuid.UUID] = None) -> list[StageTotal]:
    stmt = select(
        Opportunity.stage,
        func.count(Opportunity.id),
        func.coalesce(func.sum(Opportunity.gross_value), 0),
    ).group_by(Opportunity.stage)
    if seller_id is not None:
        stmt = stmt.where(Opportunity.seller_id == seller_id)

    found = {stage: (int(n or 0), _money(value)) for stage, n, value in (await db.execute(stmt)).all()}
    empty = (0, Decimal("0.00"))
    return [StageTotal(s.value, *found.get(s.value, empty)) for s in OpportunityStage]


# -----------------------------
# Company costs
# -----------------------------
async def cost_summary(db: AsyncSession, period_ym: str) -> CostSummary:
    stmt = (
        select(CompanyCost.cost_type, func.coalesce(func.sum(CompanyCost.monthly_value), 0))
        .where(CompanyCost.competence_ym == period_ym)
        .group_by(CompanyCost.cost_type)
    )
    by_type = {cost_type: _money(value) for cost_type, value in (await db.execute(stmt)).all()}
    fixed = by_type.get(CostType.FIXED.value, Decimal("0.00"))
    variable = by_type.get(CostType.VARIABLE.value, Decimal("0.00"))
    return CostSummary(period_ym=period_ym, fixed=fixed, variable=variable, total=fixed + variable)


# -----------------------------
# Dashboard
# -----------------------------
async def dashboard(
    db: AsyncSession,
    period_ym: str,
    seller_id: Optional[uuid.UUID] = None,
) -> Dashboard:
    """
    Month figures for one seller, or for the team when seller_id is None.
    Pending commissions and the pipeline are not limited to the month.
    The team view also nets the month's company costs against profit.
    """
    start, end = parse_period(period_ym)

    sales_stmt = _closed_between(
        select(
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.gross_value), 0),
            func.coalesce(func.sum(Sale.estimated_profit), 0),
        ),
        start,
        end,
    )
    visits_stmt = (
        select(func.count(Visit.id))
        .where(Visit.status == VisitStatus.COMPLETED.value)
        .where(Visit.scheduled_at >= start)
        .where(Visit.scheduled_at < end)
    )
    clients_stmt = select(func.count(Client.id))

    if seller_id is not None:
        sales_stmt = sales_stmt.where(Sale.seller_id == seller_id)
        visits_stmt = visits_stmt.where(Visit.seller_id == seller_id)
        clients_stmt = clients_stmt.where(or_(Client.seller_id == seller_id, Client.owner_user_id == seller_id))

    sales_count, gross_value, profit = (await db.execute(sales_stmt)).one()
    visits = (await db.execute(visits_stmt)).scalar()
    clients = (await db.execute(clients_stmt)).scalar()
    pipeline = await pipeline_by_stage(db, seller_id)
    commission_totals, _count = await commission_totals_by_status(db, seller_id=seller_id)

    board = Dashboard(
        period_ym=period_ym,
        seller_id=seller_id,
        sales_count=int(sales_count or 0),
        gross_value=_money(gross_value),
        estimated_profit=_money(profit),
        visits_completed=int(visits or 0),
        clients=int(clients or 0),
        open_pipeline_value=sum((s.gross_value for s in pipeline if s.stage in OPEN_STAGES), Decimal("0.00")),
        commissions_pending=commission_totals[PayStatus.PENDING.value],
        pipeline=pipeline,
    )
    if seller_id is None:
        costs = await cost_summary(db, period_ym)
        board.company_costs = costs.total
        board.net_result = board.estimated_profit - costs.total
    return board
