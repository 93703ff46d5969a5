from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_user
from app.api.deps.roles import require_admin
from app.crud.notifications import check_stock, check_visits, list_notifications, mark_all_read, unread_count
from app.db.session import get_db
from app.models.notification import Notification
from app.models.user import User
from app.schemas.notifications import (
    NotificationOut,
    NotificationPageOut,
    StockCheckOut,
    UnreadCountOut,
    VisitCheckOut,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationPageOut)
async def list_my_notifications(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    rows = await list_notifications(db, user.id, unread_only=unread_only, limit=limit, offset=offset)
    return NotificationPageOut(
        items=[NotificationOut.model_validate(n) for n in rows],
        unread=await unread_count(db, user.id),
        limit=limit,
        offset=offset,
    )


@router.get("/unread-count", response_model=UnreadCountOut)
async def get_unread_count(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Polled by the UI in place of a realtime channel."""
    return UnreadCountOut(unread=await unread_count(db, user.id))


@router.post("/read-all", response_model=UnreadCountOut)
async def read_all(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await mark_all_read(db, user.id)
    return UnreadCountOut(unread=0)


@router.post("/check-stock", response_model=StockCheckOut)
async def run_stock_check(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    report, created = await check_stock(db)
    return StockCheckOut(
        products_checked=report.checked,
        out_of_stock=report.out_of_stock,
        low_stock=report.low_stock,
        notifications_created=created,
    )


@router.post("/check-visits", response_model=VisitCheckOut)
async def run_visit_check(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    checked, created = await check_visits(db)
    return VisitCheckOut(clients_checked=checked, notifications_created=created)


@router.post("/{notification_id}/read", response_model=NotificationOut)
async def read_one(
    notification_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    n = await db.get(Notification, notification_id)
    if not n or n.user_id != user.id:
        raise HTTPException(status_code=404, detail="Notification not found")
    n.read = True
    await db.commit()
    await db.refresh(n)
    return n
