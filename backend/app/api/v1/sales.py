# app/api/v1/sales.py
from __future__ import annotations

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_user
from app.api.deps.roles import require_admin
from app.api.deps.scoping import effective_seller_id, get_scoped_or_404
from app.core.enums import SaleStatus
from app.core.sales import DiscountNotAllowed
from app.crud.commissions import attach_commission, cancel_pending_commission
from app.crud.sales import SaleItemError, create_sale, get_sale, list_sales, recalc_sale_totals
from app.db.session import get_db
from app.models.client import Client
from app.models.sale import Sale
from app.models.service import Service
from app.models.user import User
from app.schemas.sales import SaleCreate, SaleOut, SalesPageOut, SaleUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sales", tags=["sales"])


@router.get("", response_model=SalesPageOut)
async def list_my_sales(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    seller_id: Optional[uuid.UUID] = Query(None),
    client_id: Optional[uuid.UUID] = Query(None),
    status_filter: Optional[SaleStatus] = Query(None, alias="status"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """
    Pagination:
      - limit (1..100)
      - offset (>=0)
    Sellers only ever see their own sales; seller_id is an admin filter.
    """
    rows, total = await list_sales(
        db,
        seller_id=seller_id if user.is_admin else user.id,
        client_id=client_id,
        status=status_filter.value if status_filter else None,
        limit=limit,
        offset=offset,
    )
    return SalesPageOut(items=[SaleOut.model_validate(s) for s in rows], limit=limit, offset=offset, total=total)


@router.post("", response_model=SaleOut, status_code=status.HTTP_201_CREATED)
async def record_sale(
    payload: SaleCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    seller_id = effective_seller_id(user, payload.seller_id)
    if seller_id != user.id and await db.get(User, seller_id) is None:
        raise HTTPException(status_code=404, detail="Seller not found")

    await get_scoped_or_404(db, Client, payload.client_id, user, detail="Client not found")

    service = None
    if payload.service_id is not None:
        service = await get_scoped_or_404(db, Service, payload.service_id, user, detail="Service not found")

    if not payload.items and service is None:
        raise HTTPException(status_code=422, detail="A sale needs at least one item or a linked service")

    try:
        sale = await create_sale(
            db,
            client_id=payload.client_id,
            seller_id=seller_id,
            items_in=payload.items,
            service=service,
            sold_at=payload.sold_at,
            status=payload.status.value,
            payment_received=payload.payment_received,
            payment_method_1=payload.payment_method_1,
            payment_method_2=payload.payment_method_2,
            tax_percent=payload.tax_percent,
            region=payload.region,
        )
    except (DiscountNotAllowed, SaleItemError) as e:
        raise HTTPException(status_code=422, detail=str(e))

    await db.commit()
    logger.info("Sale %s recorded by %s: gross=%s", sale.id, user.id, sale.gross_value)

    if sale.status == SaleStatus.CLOSED.value:
        await attach_commission(db, sale.id)

    return await get_sale(db, sale.id)


@router.get("/{sale_id}", response_model=SaleOut)
async def get_one_sale(
    sale_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await get_scoped_or_404(db, Sale, sale_id, user, detail="Sale not found")


@router.patch("/{sale_id}", response_model=SaleOut)
async def update_sale(
    sale_id: uuid.UUID,
    payload: SaleUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    Payment fields and cancellation. Line items are immutable once recorded.
    Canceling cancels a still-pending commission; a canceled sale stays canceled.
    """
    sale = await get_scoped_or_404(db, Sale, sale_id, user, detail="Sale not found")
    data = payload.model_dump(exclude_unset=True)

    new_status = data.pop("status", None)
    for field, value in data.items():
        if field == "payment_received" and value is None:
            continue
        setattr(sale, field, value)

    canceled_now = False
    if new_status is not None and new_status.value != sale.status:
        if sale.status == SaleStatus.CANCELED.value:
            raise HTTPException(status_code=422, detail="A canceled sale cannot be reopened")
        sale.status = new_status.value
        canceled_now = True

    if canceled_now:
        commission = await cancel_pending_commission(db, sale.id)
        if commission is not None:
            logger.info("Sale %s canceled, commission %s canceled", sale.id, commission.id)

    await db.commit()
    return await get_sale(db, sale.id)


@router.post("/{sale_id}/recalc", response_model=SaleOut)
async def recalc_sale(
    sale_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    """
    Refreshes unit costs from the current product costs and recomputes totals.
    The commission of the sale, if any, is left unchanged.
    """
    sale = await recalc_sale_totals(db, sale_id)
    if sale is None:
        raise HTTPException(status_code=404, detail="Sale not found")
    return sale
