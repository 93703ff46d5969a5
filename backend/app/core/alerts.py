# app/core/alerts.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

from app.core.enums import NotificationKind

MAX_NAMES_IN_MESSAGE = 3


@dataclass
class StockReport:
    checked: int = 0
    out_of_stock: list[str] = field(default_factory=list)
    low_stock: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class AlertMessage:
    kind: str
    title: str
    message: str


def classify_stock(products: Iterable[Any]) -> StockReport:
    """stock == 0 is out of stock; stock <= threshold is low stock."""
    report = StockReport()
    for p in products:
        report.checked += 1
        if p.stock <= 0:
            report.out_of_stock.append(p.name)
        elif p.stock <= p.low_stock_threshold:
            report.low_stock.append(p.name)
    return report


def _list_names(names: list[str]) -> str:
    shown = ", ".join(names[:MAX_NAMES_IN_MESSAGE])
    return shown + ("..." if len(names) > MAX_NAMES_IN_MESSAGE else "")


def stock_alert_messages(report: StockReport) -> list[AlertMessage]:
    messages: list[AlertMessage] = []

    if report.out_of_stock:
        names = report.out_of_stock
        text = (
            f'Product "{names[0]}" is OUT OF STOCK!'
            if len(names) == 1
            else f"{len(names)} products are OUT OF STOCK: {_list_names(names)}"
        )
        messages.append(AlertMessage(NotificationKind.ALERT.value, "Products out of stock!", text))

    if report.low_stock:
        names = report.low_stock
        text = (
            f'Product "{names[0]}" is running low on stock!'
            if len(names) == 1
            else f"{len(names)} products with low stock: {_list_names(names)}"
        )
        messages.append(AlertMessage(NotificationKind.WARNING.value, "Low stock", text))

    return messages


# ---------------------------------------------------------------------------
# Client visit follow-up
# ---------------------------------------------------------------------------
SELLER_REMINDER_DAYS = 30
ADMIN_ALERT_DAYS = 90


@dataclass(frozen=True)
class LastVisit:
    client_id: Any
    client_name: str
    seller_id: Any
    last_visit_at: datetime


@dataclass(frozen=True)
class VisitAlert:
    """recipient is "seller" (the client's seller) or "admins" (every active admin)."""

    recipient: str
    kind: str
    title: str
    message: str
    seller_id: Any = None


def days_since(moment: datetime, now: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (now - moment).days


def visit_alerts(last_visits: Iterable[LastVisit], now: datetime) -> list[VisitAlert]:
    """
    Fires on exact multiples so a daily run nags once per period:
    every 30 days without a completed visit the seller is reminded,
    every 90 days the admins are alerted.
    """
    alerts: list[VisitAlert] = []
    for lv in last_visits:
        days = days_since(lv.last_visit_at, now)

        if days >= SELLER_REMINDER_DAYS and days % SELLER_REMINDER_DAYS == 0:
            alerts.append(
                VisitAlert(
                    recipient="seller",
                    seller_id=lv.seller_id,
                    kind=NotificationKind.WARNING.value,
                    title="Visit pending",
                    message=f"It has been {days} days since the last visit to {lv.client_name}. Schedule a new visit!",
                )
            )

        if days >= ADMIN_ALERT_DAYS and days % ADMIN_ALERT_DAYS == 0:
            alerts.append(
                VisitAlert(
                    recipient="admins",
                    kind=NotificationKind.ALERT.value,
                    title="Client without a visit for 90+ days!",
                    message=f"Client {lv.client_name} has not been visited for {days} days!",
                )
            )
    return alerts
