# app/api/v1/commissions.py
from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_user
from app.api.deps.roles import require_admin
from app.api.deps.scoping import get_scoped_or_404
from app.core.commissions import (
    InvalidPayStatusTransition,
    apply_pay_status,
    create_commission_for_sale,
    process_all_closed_sales,
)
from app.core.enums import PayStatus
from app.crud.commissions import SqlCommissionStore, commission_totals_by_status, list_commissions
from app.db.session import get_db
from app.models.commission import Commission
from app.models.sale import Sale
from app.models.user import User
from app.schemas.commissions import (
    BatchResultOut,
    CommissionOut,
    CommissionPageOut,
    CommissionSummaryOut,
    CommissionUpdate,
)

router = APIRouter(prefix="/commissions", tags=["commissions"])


@router.get("", response_model=CommissionPageOut)
async def list_all_commissions(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    seller_id: Optional[uuid.UUID] = Query(None),
    pay_status: Optional[PayStatus] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """
    Admins see every commission (optionally for one seller); sellers only their own.
    """
    if not user.is_admin:
        seller_id = user.id

    rows, total = await list_commissions(
        db,
        seller_id=seller_id,
        pay_status=pay_status.value if pay_status else None,
        limit=limit,
        offset=offset,
    )
    return CommissionPageOut(
        items=[CommissionOut.model_validate(c) for c in rows],
        limit=limit,
        offset=offset,
        total=total,
    )


@router.get("/summary", response_model=CommissionSummaryOut)
async def commission_summary(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    seller_id: Optional[uuid.UUID] = Query(None),
):
    if not user.is_admin:
        seller_id = user.id

    totals, count = await commission_totals_by_status(db, seller_id=seller_id)
    return CommissionSummaryOut(
        total_pending=totals[PayStatus.PENDING.value],
        total_approved=totals[PayStatus.APPROVED.value],
        total_paid=totals[PayStatus.PAID.value],
        total_canceled=totals[PayStatus.CANCELED.value],
        count=count,
    )


@router.post("/process-all", response_model=BatchResultOut)
async def process_all(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    """
    Creates commissions for every closed sale that has none yet.
    Safe to run repeatedly; per-sale failures are reported, not raised.
    """
    result = await process_all_closed_sales(SqlCommissionStore(db))

    message = f"{result.created} commission(s) created from {result.processed} sale(s)"
    if result.failed:
        message += f"; {result.failed} failed"
    return BatchResultOut(
        processed=result.processed,
        created=result.created,
        skipped=result.skipped,
        failed=result.failed,
        message=message,
    )


@router.post("/sales/{sale_id}", response_model=Optional[CommissionOut])
async def process_sale(
    sale_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    """
    Single-sale variant. Returns the new commission, or null when the sale
    already has one, is canceled, or no rule applies.
    """
    if await db.get(Sale, sale_id) is None:
        raise HTTPException(status_code=404, detail="Sale not found")
    return await create_commission_for_sale(SqlCommissionStore(db), sale_id)


@router.get("/{commission_id}", response_model=CommissionOut)
async def get_commission(
    commission_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await get_scoped_or_404(db, Commission, commission_id, user, detail="Commission not found")


@router.patch("/{commission_id}", response_model=CommissionOut)
async def update_commission(
    commission_id: uuid.UUID,
    payload: CommissionUpdate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    """Pay status workflow: pending -> approved -> paid, pending/paid -> canceled."""
    commission = await db.get(Commission, commission_id)
    if not commission:
        raise HTTPException(status_code=404, detail="Commission not found")

    data = payload.model_dump(exclude_unset=True)

    if data.get("pay_status") is not None:
        try:
            apply_pay_status(commission, data["pay_status"].value)
        except InvalidPayStatusTransition as e:
            raise HTTPException(status_code=422, detail=str(e))

    if "notes" in data:
        commission.notes = data["notes"]
    if "receipt_url" in data:
        commission.receipt_url = data["receipt_url"]

    await db.commit()
    await db.refresh(commission)
    return commission
