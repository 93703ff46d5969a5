# tests/fakes.py
# In-memory stand-ins for the store protocols used by app.core.
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from app.core.commissions import SaleContext

_T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


@dataclass
class FakeRule:
    base: str = "gross"
    percent: Decimal = Decimal("5")
    scope: str = "general"
    category: Optional[str] = None
    product_id: Optional[uuid.UUID] = None
    active: bool = True
    created_at: datetime = _T0
    id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass
class FakeCommission:
    sale_id: uuid.UUID
    seller_id: uuid.UUID
    rule_id: uuid.UUID
    base: str
    percent: Decimal
    amount: Decimal
    pay_status: str = "pending"
    pay_status_date: Optional[datetime] = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)


def rule_created(minutes: int) -> datetime:
    return _T0 + timedelta(minutes=minutes)


class FakeCommissionStore:
    def __init__(self, sales: list[SaleContext], rules: list[FakeRule], fail_on: set[uuid.UUID] | None = None):
        self.sales = {s.sale_id: s for s in sales}
        self.rules = rules
        self.fail_on = fail_on or set()
        self.commissions: dict[uuid.UUID, FakeCommission] = {}
        self.rollbacks = 0

    async def list_closed_sale_ids_without_commission(self) -> list[uuid.UUID]:
        return [
            sid for sid, s in self.sales.items() if s.status == "closed" and sid not in self.commissions
        ]

    async def commission_exists(self, sale_id: uuid.UUID) -> bool:
        return sale_id in self.commissions

    async def load_sale_context(self, sale_id: uuid.UUID) -> Optional[SaleContext]:
        if sale_id in self.fail_on:
            raise RuntimeError(f"storage error for {sale_id}")
        return self.sales.get(sale_id)

    async def list_active_rules(self) -> list[FakeRule]:
        return [r for r in self.rules if r.active]

    async def add_commission(self, sale: SaleContext, rule: FakeRule, amount: Decimal) -> Optional[FakeCommission]:
        if sale.sale_id in self.commissions:
            return None
        c = FakeCommission(
            sale_id=sale.sale_id,
            seller_id=sale.seller_id,
            rule_id=rule.id,
            base=rule.base,
            percent=rule.percent,
            amount=amount,
        )
        self.commissions[sale.sale_id] = c
        return c

    async def rollback(self) -> None:
        self.rollbacks += 1


class FakePriceHistoryStore:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.entries: list[dict] = []

    async def add_entry(self, **entry) -> dict:
        if self.fail:
            raise RuntimeError("history table unavailable")
        self.entries.append(entry)
        return entry
