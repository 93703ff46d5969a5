# app/crud/goals.py
from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import GoalLevel, OpportunityStage, SaleStatus, VisitStatus
from app.core.goals import parse_period
from app.models.goal import Goal
from app.models.opportunity import Opportunity
from app.models.sale import Sale
from app.models.visit import Visit

# "reached proposal or beyond"; lost deals are not counted
PROPOSAL_STAGES = (
    OpportunityStage.PROPOSAL.value,
    OpportunityStage.CLOSING.value,
    OpportunityStage.WON.value,
)


@dataclass(frozen=True)
class Achieved:
    sales: Decimal
    visits: int
    proposals: int


async def list_goals(
    db: AsyncSession,
    *,
    period_ym: Optional[str] = None,
    seller_id: Optional[uuid.UUID] = None,
) -> list[Goal]:
    stmt = select(Goal).order_by(Goal.period_ym.desc(), Goal.level.asc())
    if period_ym:
        stmt = stmt.where(Goal.period_ym == period_ym)
    if seller_id is not None:
        # a seller sees the team goal and their own
        stmt = stmt.where((Goal.seller_id == seller_id) | (Goal.level == GoalLevel.TEAM.value))
    return list((await db.execute(stmt)).scalars().all())


async def achieved_for_period(
    db: AsyncSession,
    period_ym: str,
    seller_id: Optional[uuid.UUID] = None,
) -> Achieved:
    """Totals for one month; seller_id None means the whole team."""
    start, end = parse_period(period_ym)

    sales_stmt = (
        select(func.coalesce(func.sum(Sale.gross_value), 0))
        .where(Sale.status == SaleStatus.CLOSED.value)
        .where(Sale.sold_at >= start)
        .where(Sale.sold_at < end)
    )
    visits_stmt = (
        select(func.count(Visit.id))
        .where(Visit.status == VisitStatus.COMPLETED.value)
        .where(Visit.scheduled_at >= start)
        .where(Visit.scheduled_at < end)
    )
    proposals_stmt = (
        select(func.count(Opportunity.id))
        .where(Opportunity.stage.in_(PROPOSAL_STAGES))
        .where(Opportunity.created_at >= start)
        .where(Opportunity.created_at < end)
    )

    if seller_id is not None:
        sales_stmt = sales_stmt.where(Sale.seller_id == seller_id)
        visits_stmt = visits_stmt.where(Visit.seller_id == seller_id)
        proposals_stmt = proposals_stmt.where(Opportunity.seller_id == seller_id)

    sales = (await db.execute(sales_stmt)).scalar()
    visits = (await db.execute(visits_stmt)).scalar()
    proposals = (await db.execute(proposals_stmt)).scalar()

    return Achieved(
        sales=Decimal(str(sales or 0)).quantize(Decimal("0.01")),
        visits=int(visits or 0),
        proposals=int(proposals or 0),
    )
