# app/crud/notifications.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.alerts import (
    LastVisit,
    StockReport,
    classify_stock,
    stock_alert_messages,
    visit_alerts,
)
from app.core.enums import UserRole, UserStatus, VisitStatus
from app.crud.products import list_active_products
from app.models.client import Client
from app.models.notification import Notification
from app.models.user import User
from app.models.visit import Visit

logger = logging.getLogger(__name__)


def add_notification(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    kind: str,
    title: Optional[str] = None,
    message: Optional[str] = None,
) -> Notification:
    n = Notification(user_id=user_id, kind=kind, title=title, message=message, read=False)
    db.add(n)
    return n


async def list_notifications(
    db: AsyncSession,
    user_id: uuid.UUID,
    *,
    unread_only: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> list[Notification]:
    stmt = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        stmt = stmt.where(Notification.read.is_(False))
    stmt = stmt.order_by(Notification.created_at.desc()).limit(limit).offset(offset)
    return list((await db.execute(stmt)).scalars().all())


async def unread_count(db: AsyncSession, user_id: uuid.UUID) -> int:
    stmt = (
        select(func.count(Notification.id))
        .where(Notification.user_id == user_id)
        .where(Notification.read.is_(False))
    )
    return int((await db.execute(stmt)).scalar() or 0)


async def mark_all_read(db: AsyncSession, user_id: uuid.UUID) -> int:
    stmt = (
        update(Notification)
        .where(Notification.user_id == user_id)
        .where(Notification.read.is_(False))
        .values(read=True)
    )
    res = await db.execute(stmt)
    await db.commit()
    return int(res.rowcount or 0)


async def list_active_admin_ids(db: AsyncSession) -> list[uuid.UUID]:
    stmt = (
        select(User.id)
        .where(User.role == UserRole.ADMIN.value)
        .where(User.status == UserStatus.ACTIVE.value)
    )
    return list((await db.execute(stmt)).scalars().all())


async def check_stock(db: AsyncSession) -> tuple[StockReport, int]:
    """
    Notify every active admin about out-of-stock and low-stock active products.
    Returns the report and the number of notifications created.
    """
    report = classify_stock(await list_active_products(db))
    messages = stock_alert_messages(report)
    admin_ids = await list_active_admin_ids(db) if messages else []

    created = 0
    for msg in messages:
        for admin_id in admin_ids:
            add_notification(db, user_id=admin_id, kind=msg.kind, title=msg.title, message=msg.message)
            created += 1
    await db.commit()

    logger.info(
        "Stock check: %d products checked, %d out of stock, %d low, %d notifications",
        report.checked,
        len(report.out_of_stock),
        len(report.low_stock),
        created,
    )
    return report, created


async def last_completed_visits(db: AsyncSession) -> list[LastVisit]:
    last_at = func.max(Visit.scheduled_at).label("last_at")
    stmt = (
        select(Client.id, Client.contact_name, Client.farm_name, Client.seller_id, last_at)
        .join(Visit, Visit.client_id == Client.id)
        .where(Visit.status == VisitStatus.COMPLETED.value)
        .where(Visit.scheduled_at.is_not(None))
        .group_by(Client.id, Client.contact_name, Client.farm_name, Client.seller_id)
    )
    out: list[LastVisit] = []
    for client_id, contact_name, farm_name, seller_id, last_visit_at in (await db.execute(stmt)).all():
        out.append(
            LastVisit(
                client_id=client_id,
                client_name=contact_name or farm_name or "Client",
                seller_id=seller_id,
                last_visit_at=last_visit_at,
            )
        )
    return out


async def check_visits(db: AsyncSession, now: Optional[datetime] = None) -> tuple[int, int]:
    """Returns (clients checked, notifications created)."""
    now = now or datetime.now(timezone.utc)
    last_visits = await last_completed_visits(db)
    alerts = visit_alerts(last_visits, now)
    admin_ids = await list_active_admin_ids(db) if any(a.recipient == "admins" for a in alerts) else []

    created = 0
    for alert in alerts:
        recipients = [alert.seller_id] if alert.recipient == "seller" else admin_ids
        for user_id in recipients:
            add_notification(db, user_id=user_id, kind=alert.kind, title=alert.title, message=alert.message)
            created += 1
    await db.commit()

    logger.info("Visit check: %d clients checked, %d notifications", len(last_visits), created)
    return len(last_visits), created
