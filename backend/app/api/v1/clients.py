from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_user
from app.api.deps.scoping import effective_seller_id, get_scoped_or_404, scoped
from app.core.enums import RelationshipStatus, plain_values
from app.db.session import get_db
from app.models.client import Client
from app.models.user import User
from app.schemas.crm import ClientCreate, ClientOut, ClientUpdate

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("", response_model=List[ClientOut])
async def list_clients(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    search: Optional[str] = Query(None, max_length=120),
    relationship_status: Optional[RelationshipStatus] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    stmt = scoped(select(Client), Client, user)
    if search:
        like = f"%{search.strip().lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(func.coalesce(Client.farm_name, "")).like(like),
                func.lower(func.coalesce(Client.contact_name, "")).like(like),
                func.lower(func.coalesce(Client.city, "")).like(like),
            )
        )
    if relationship_status is not None:
        stmt = stmt.where(Client.relationship_status == relationship_status.value)

    stmt = stmt.order_by(Client.created_at.desc()).limit(limit).offset(offset)
    res = await db.execute(stmt)
    return list(res.scalars().all())


@router.post("", response_model=ClientOut, status_code=status.HTTP_201_CREATED)
async def create_client(
    payload: ClientCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    data = plain_values(payload.model_dump())
    data["seller_id"] = effective_seller_id(user, data.get("seller_id"))
    if not data.get("farm_name") and not data.get("contact_name"):
        raise HTTPException(status_code=422, detail="farm_name or contact_name is required")
    if data.get("state"):
        data["state"] = data["state"].upper()

    client = Client(**data)
    db.add(client)
    await db.commit()
    await db.refresh(client)
    return client


@router.get("/{client_id}", response_model=ClientOut)
async def get_client(
    client_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await get_scoped_or_404(db, Client, client_id, user, detail="Client not found")


@router.patch("/{client_id}", response_model=ClientOut)
async def update_client(
    client_id: uuid.UUID,
    payload: ClientUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    client = await get_scoped_or_404(db, Client, client_id, user, detail="Client not found")

    for field, value in plain_values(payload.model_dump(exclude_unset=True)).items():
        if field in {"crops", "relationship_status"} and value is None:
            continue
        if field == "state" and value:
            value = value.upper()
        setattr(client, field, value)

    await db.commit()
    await db.refresh(client)
    return client
