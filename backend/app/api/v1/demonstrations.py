from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Iterable, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_user
from app.api.deps.scoping import effective_seller_id, get_scoped_or_404, scoped
from app.core.enums import DemoStatus, NotificationKind, plain_values
from app.crud.notifications import add_notification
from app.db.session import get_db
from app.models.client import Client
from app.models.demonstration import Demonstration
from app.models.user import User
from app.schemas.crm import DemonstrationCreate, DemonstrationOut, DemonstrationUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/demonstrations", tags=["demonstrations"])


async def _check_users_exist(db: AsyncSession, user_ids: Iterable[uuid.UUID]) -> None:
    wanted = set(user_ids)
    if not wanted:
        return
    found = set((await db.execute(select(User.id).where(User.id.in_(wanted)))).scalars().all())
    missing = wanted - found
    if missing:
        raise HTTPException(status_code=404, detail=f"User not found: {sorted(map(str, missing))[0]}")


def _notify_assigned(db: AsyncSession, demo: Demonstration, user_ids: Iterable[str], actor: User) -> None:
    for uid in user_ids:
        if uid == str(actor.id):
            continue
        add_notification(
            db,
            user_id=uuid.UUID(uid),
            kind=NotificationKind.DEMO_ASSIGNED.value,
            title="Demonstration assigned",
            message=f"You were assigned to a demonstration on {demo.date:%Y-%m-%d %H:%M}",
        )


@router.get("", response_model=List[DemonstrationOut])
async def list_demonstrations(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    status_filter: Optional[DemoStatus] = Query(None, alias="status"),
    client_id: Optional[uuid.UUID] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    stmt = scoped(select(Demonstration), Demonstration, user)
    if status_filter is not None:
        stmt = stmt.where(Demonstration.status == status_filter.value)
    if client_id is not None:
        stmt = stmt.where(Demonstration.client_id == client_id)
    if date_from is not None:
        stmt = stmt.where(Demonstration.date >= date_from)
    if date_to is not None:
        stmt = stmt.where(Demonstration.date < date_to)
    stmt = stmt.order_by(Demonstration.date.asc()).limit(limit).offset(offset)
    return list((await db.execute(stmt)).scalars().all())


@router.post("", response_model=DemonstrationOut, status_code=status.HTTP_201_CREATED)
async def create_demonstration(
    payload: DemonstrationCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    A seller's demonstration is assigned to the seller when nobody else is named.
    Every other assigned user gets a demo_assigned notification.
    """
    await get_scoped_or_404(db, Client, payload.client_id, user, detail="Client not found")
    await _check_users_exist(db, payload.assigned_users)

    data = plain_values(payload.model_dump())
    data["seller_id"] = effective_seller_id(user, data.get("seller_id"))
    data["demo_types"] = [t.value for t in payload.demo_types]
    data["product_ids"] = [str(pid) for pid in data["product_ids"]]
    data["assigned_users"] = [str(uid) for uid in data["assigned_users"]] or [str(data["seller_id"])]

    demo = Demonstration(**data)
    db.add(demo)
    _notify_assigned(db, demo, demo.assigned_users, user)
    await db.commit()
    await db.refresh(demo)
    logger.info("Demonstration %s scheduled for %s by %s", demo.id, demo.date, user.id)
    return demo


@router.get("/{demonstration_id}", response_model=DemonstrationOut)
async def get_demonstration(
    demonstration_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await get_scoped_or_404(db, Demonstration, demonstration_id, user, detail="Demonstration not found")


@router.patch("/{demonstration_id}", response_model=DemonstrationOut)
async def update_demonstration(
    demonstration_id: uuid.UUID,
    payload: DemonstrationUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Users newly added to assigned_users are notified; existing ones are not."""
    demo = await get_scoped_or_404(db, Demonstration, demonstration_id, user, detail="Demonstration not found")
    if payload.assigned_users:
        await _check_users_exist(db, payload.assigned_users)

    previous = set(demo.assigned_users or [])
    for field, value in plain_values(payload.model_dump(exclude_unset=True)).items():
        if field in {"date", "status", "demo_types", "product_ids", "assigned_users"} and value is None:
            continue
        if field == "demo_types":
            value = [t.value for t in value]
        elif field in {"product_ids", "assigned_users"}:
            value = [str(v) for v in value]
        setattr(demo, field, value)

    _notify_assigned(db, demo, [uid for uid in demo.assigned_users if uid not in previous], user)
    await db.commit()
    await db.refresh(demo)
    return demo
