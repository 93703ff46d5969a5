from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.roles import require_admin
from app.core.enums import CostType, plain_values
from app.db.session import get_db
from app.models.company_cost import CompanyCost
from app.models.user import User
from app.schemas.reports import CompanyCostCreate, CompanyCostOut, CompanyCostUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/company-costs", tags=["company-costs"])


async def _get_cost_or_404(db: AsyncSession, cost_id: uuid.UUID) -> CompanyCost:
    cost = await db.get(CompanyCost, cost_id)
    if not cost:
        raise HTTPException(status_code=404, detail="Company cost not found")
    return cost


@router.get("", response_model=List[CompanyCostOut])
async def list_company_costs(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
    period: Optional[str] = Query(None, description="YYYY-MM"),
    cost_type: Optional[CostType] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    stmt = select(CompanyCost)
    if period:
        stmt = stmt.where(CompanyCost.competence_ym == period)
    if cost_type is not None:
        stmt = stmt.where(CompanyCost.cost_type == cost_type.value)
    stmt = stmt.order_by(CompanyCost.competence_ym.desc(), CompanyCost.created_at.desc()).limit(limit).offset(offset)
    return list((await db.execute(stmt)).scalars().all())


@router.post("", response_model=CompanyCostOut, status_code=status.HTTP_201_CREATED)
async def create_company_cost(
    payload: CompanyCostCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_admin),
):
    cost = CompanyCost(**plain_values(payload.model_dump()))
    db.add(cost)
    await db.commit()
    await db.refresh(cost)
    logger.info("Company cost %s booked for %s by %s: %s", cost.id, cost.competence_ym, user.id, cost.monthly_value)
    return cost


@router.patch("/{cost_id}", response_model=CompanyCostOut)
async def update_company_cost(
    cost_id: uuid.UUID,
    payload: CompanyCostUpdate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    cost = await _get_cost_or_404(db, cost_id)
    for field, value in plain_values(payload.model_dump(exclude_unset=True)).items():
        if value is None and field in {"cost_type", "monthly_value", "competence_ym"}:
            continue
        setattr(cost, field, value)

    await db.commit()
    await db.refresh(cost)
    return cost


@router.delete("/{cost_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_company_cost(
    cost_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    cost = await _get_cost_or_404(db, cost_id)
    await db.delete(cost)
    await db.commit()
    return None
