from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_user
from app.api.deps.scoping import effective_seller_id, get_scoped_or_404, scoped
from app.core.enums import OpportunityStage, SaleStatus, plain_values
from app.crud.commissions import attach_commission
from app.crud.sales import SaleItemError, create_sale, get_sale
from app.db.session import get_db
from app.models.client import Client
from app.models.opportunity import Opportunity
from app.models.user import User
from app.schemas.crm import OpportunityConvert, OpportunityCreate, OpportunityOut, OpportunityUpdate
from app.schemas.sales import SaleItemIn, SaleOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/opportunities", tags=["opportunities"])

FINAL_STAGES = (OpportunityStage.WON.value, OpportunityStage.LOST.value)


@router.get("", response_model=List[OpportunityOut])
async def list_opportunities(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    stage: Optional[OpportunityStage] = Query(None),
    client_id: Optional[uuid.UUID] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    stmt = scoped(select(Opportunity), Opportunity, user)
    if stage is not None:
        stmt = stmt.where(Opportunity.stage == stage.value)
    if client_id is not None:
        stmt = stmt.where(Opportunity.client_id == client_id)
    stmt = stmt.order_by(Opportunity.created_at.desc()).limit(limit).offset(offset)
    return list((await db.execute(stmt)).scalars().all())


@router.post("", response_model=OpportunityOut, status_code=status.HTTP_201_CREATED)
async def create_opportunity(
    payload: OpportunityCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await get_scoped_or_404(db, Client, payload.client_id, user, detail="Client not found")

    data = plain_values(payload.model_dump())
    data["seller_id"] = effective_seller_id(user, data.get("seller_id"))
    data["product_ids"] = [str(pid) for pid in data["product_ids"]]

    opp = Opportunity(**data)
    db.add(opp)
    await db.commit()
    await db.refresh(opp)
    return opp


@router.get("/{opportunity_id}", response_model=OpportunityOut)
async def get_opportunity(
    opportunity_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await get_scoped_or_404(db, Opportunity, opportunity_id, user, detail="Opportunity not found")


@router.patch("/{opportunity_id}", response_model=OpportunityOut)
async def update_opportunity(
    opportunity_id: uuid.UUID,
    payload: OpportunityUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    opp = await get_scoped_or_404(db, Opportunity, opportunity_id, user, detail="Opportunity not found")
    data = plain_values(payload.model_dump(exclude_unset=True))

    if data.get("stage") == OpportunityStage.LOST.value and not (data.get("loss_reason") or opp.loss_reason):
        raise HTTPException(status_code=422, detail="loss_reason is required when an opportunity is lost")

    for field, value in data.items():
        if field in {"stage", "product_ids"} and value is None:
            continue
        if field == "product_ids":
            value = [str(pid) for pid in value]
        setattr(opp, field, value)

    await db.commit()
    await db.refresh(opp)
    return opp


@router.post("/{opportunity_id}/convert", response_model=SaleOut, status_code=status.HTTP_201_CREATED)
async def convert_opportunity(
    opportunity_id: uuid.UUID,
    payload: OpportunityConvert,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    Closes the deal: one sale line per opportunity product (qty 1, current
    catalog price, no discount), credited to the opportunity's seller.
    The opportunity moves to won and the commission is attached right away.
    """
    opp = await get_scoped_or_404(db, Opportunity, opportunity_id, user, detail="Opportunity not found")
    if opp.stage in FINAL_STAGES:
        raise HTTPException(status_code=409, detail=f"Opportunity is already {opp.stage}")
    if not opp.product_ids:
        raise HTTPException(status_code=422, detail="Opportunity has no products to sell")

    items = [SaleItemIn(product_id=uuid.UUID(pid), qty=Decimal("1")) for pid in opp.product_ids]
    try:
        sale = await create_sale(
            db,
            client_id=opp.client_id,
            seller_id=opp.seller_id,
            items_in=items,
            sold_at=payload.sold_at,
            status=SaleStatus.CLOSED.value,
            payment_received=payload.payment_received,
            payment_method_1=payload.payment_method_1,
            payment_method_2=payload.payment_method_2,
        )
    except SaleItemError as e:
        raise HTTPException(status_code=422, detail=str(e))

    opp.stage = OpportunityStage.WON.value
    await db.commit()
    logger.info("Opportunity %s converted into sale %s: gross=%s", opp.id, sale.id, sale.gross_value)

    await attach_commission(db, sale.id)
    return await get_sale(db, sale.id)
