from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_user
from app.api.deps.scoping import effective_seller_id, get_scoped_or_404, scoped
from app.core.enums import VisitStatus, plain_values
from app.db.session import get_db
from app.models.client import Client
from app.models.user import User
from app.models.visit import Visit
from app.schemas.crm import VisitCreate, VisitOut, VisitUpdate

router = APIRouter(prefix="/visits", tags=["visits"])


@router.get("", response_model=List[VisitOut])
async def list_visits(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    status_filter: Optional[VisitStatus] = Query(None, alias="status"),
    client_id: Optional[uuid.UUID] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    stmt = scoped(select(Visit), Visit, user)
    if status_filter is not None:
        stmt = stmt.where(Visit.status == status_filter.value)
    if client_id is not None:
        stmt = stmt.where(Visit.client_id == client_id)
    if date_from is not None:
        stmt = stmt.where(Visit.scheduled_at >= date_from)
    if date_to is not None:
        stmt = stmt.where(Visit.scheduled_at < date_to)
    stmt = stmt.order_by(Visit.scheduled_at.desc()).limit(limit).offset(offset)
    return list((await db.execute(stmt)).scalars().all())


@router.post("", response_model=VisitOut, status_code=status.HTTP_201_CREATED)
async def create_visit(
    payload: VisitCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await get_scoped_or_404(db, Client, payload.client_id, user, detail="Client not found")

    data = plain_values(payload.model_dump())
    data["seller_id"] = effective_seller_id(user, data.get("seller_id"))

    visit = Visit(**data)
    db.add(visit)
    await db.commit()
    await db.refresh(visit)
    return visit


@router.get("/{visit_id}", response_model=VisitOut)
async def get_visit(
    visit_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await get_scoped_or_404(db, Visit, visit_id, user, detail="Visit not found")


@router.patch("/{visit_id}", response_model=VisitOut)
async def update_visit(
    visit_id: uuid.UUID,
    payload: VisitUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    visit = await get_scoped_or_404(db, Visit, visit_id, user, detail="Visit not found")

    for field, value in plain_values(payload.model_dump(exclude_unset=True)).items():
        if field == "status" and value is None:
            continue
        setattr(visit, field, value)

    await db.commit()
    await db.refresh(visit)
    return visit
