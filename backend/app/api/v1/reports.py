from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_user
from app.api.deps.roles import require_admin
from app.core.goals import parse_period
from app.crud.reports import (
    cost_summary,
    current_period,
    dashboard,
    pipeline_by_stage,
    sales_by_month,
    sales_by_seller,
    top_products,
)
from app.db.session import get_db
from app.models.user import User
from app.schemas.reports import (
    CostSummaryOut,
    DashboardOut,
    MonthSalesOut,
    ProductSalesOut,
    SellerSalesOut,
    StageTotalOut,
)

router = APIRouter(prefix="/reports", tags=["reports"])


def _period_or_422(period: Optional[str]) -> str:
    period = period or current_period()
    try:
        parse_period(period)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return period


def _seller_scope(user: User, seller_id: Optional[uuid.UUID]) -> Optional[uuid.UUID]:
    """Admins may pick a seller (None = team); everyone else only sees their own figures."""
    return seller_id if user.is_admin else user.id


@router.get("/dashboard", response_model=DashboardOut)
async def get_dashboard(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    period: Optional[str] = Query(None, description="YYYY-MM, defaults to the current month"),
    seller_id: Optional[uuid.UUID] = Query(None),
):
    return await dashboard(db, _period_or_422(period), seller_id=_seller_scope(user, seller_id))


@router.get("/pipeline", response_model=List[StageTotalOut])
async def get_pipeline(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    seller_id: Optional[uuid.UUID] = Query(None),
):
    return await pipeline_by_stage(db, seller_id=_seller_scope(user, seller_id))


@router.get("/sales-by-month", response_model=List[MonthSalesOut])
async def get_sales_by_month(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    year: int = Query(..., ge=2000, le=2100),
    seller_id: Optional[uuid.UUID] = Query(None),
):
    return await sales_by_month(db, year, seller_id=_seller_scope(user, seller_id))


@router.get("/sales-by-seller", response_model=List[SellerSalesOut])
async def get_sales_by_seller(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
    period: Optional[str] = Query(None, description="YYYY-MM"),
):
    return await sales_by_seller(db, _period_or_422(period))


@router.get("/top-products", response_model=List[ProductSalesOut])
async def get_top_products(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
    period: Optional[str] = Query(None, description="YYYY-MM"),
    limit: int = Query(10, ge=1, le=100),
):
    return await top_products(db, _period_or_422(period), limit=limit)


@router.get("/costs", response_model=CostSummaryOut)
async def get_cost_summary(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
    period: Optional[str] = Query(None, description="YYYY-MM"),
):
    return await cost_summary(db, _period_or_422(period))
