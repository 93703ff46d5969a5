# app/core/commissions.py
"""
Commission rule resolution and commission creation for closed sales.

Rule precedence (highest first):
  1. product-scoped rule for a product sold in the sale
  2. category-scoped rule for the category of a product sold in the sale
  3. general rule

Only active rules take part, and only rules whose base fits the sale:
gross/profit rules for product sales, maintenance/revision/spraying rules for
sales linked to a service of that type.

Percentages are whole numbers (5 means 5%). Amounts are rounded to cents.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional, Protocol, Sequence

from app.core.enums import CommissionBase, CommissionScope, PayStatus, SaleStatus

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
ZERO = Decimal("0")

SALE_BASES = frozenset({CommissionBase.GROSS.value, CommissionBase.PROFIT.value})
SERVICE_BASES = frozenset(
    {
        CommissionBase.MAINTENANCE.value,
        CommissionBase.REVISION.value,
        CommissionBase.SPRAYING.value,
    }
)
_SALE_FAMILY = "sale"

# pending -> approved -> paid, pending -> canceled, paid -> canceled
PAY_STATUS_TRANSITIONS: dict[str, frozenset[str]] = {
    PayStatus.PENDING.value: frozenset({PayStatus.APPROVED.value, PayStatus.CANCELED.value}),
    PayStatus.APPROVED.value: frozenset({PayStatus.PAID.value}),
    PayStatus.PAID.value: frozenset({PayStatus.CANCELED.value}),
    PayStatus.CANCELED.value: frozenset(),
}
_STAMPED_STATUSES = frozenset({PayStatus.PAID.value, PayStatus.CANCELED.value})


class InvalidPayStatusTransition(ValueError):
    pass


class InvalidRuleScope(ValueError):
    pass


class OverlappingCommissionRule(ValueError):
    def __init__(self, existing_rule_id: Any):
        super().__init__(f"An active rule with the same scope and base already exists: {existing_rule_id}")
        self.existing_rule_id = existing_rule_id


# ---------------------------------------------------------------------------
# Sale view used by the resolver
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class SaleLine:
    product_id: uuid.UUID
    category: Optional[str]
    gross: Decimal


@dataclass(frozen=True)
class SaleContext:
    sale_id: uuid.UUID
    seller_id: uuid.UUID
    status: str
    gross_value: Decimal
    estimated_profit: Decimal
    lines: tuple[SaleLine, ...] = ()
    service_type: Optional[str] = None
    service_value: Optional[Decimal] = None


@dataclass
class BatchResult:
    processed: int = 0
    created: int = 0
    skipped: int = 0
    failed: int = 0
    failed_sale_ids: list[uuid.UUID] = field(default_factory=list)


def _norm_category(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    v = value.strip().casefold()
    return v or None


def base_family(base: str) -> str:
    return _SALE_FAMILY if base in SALE_BASES else base


def sale_family(sale: SaleContext) -> str:
    return sale.service_type or _SALE_FAMILY


def _created_key(rule: Any):
    created = getattr(rule, "created_at", None)
    if created is not None and created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created or datetime.min.replace(tzinfo=timezone.utc)


def _pick(matches: Sequence[Any]) -> Optional[Any]:
    """Same-level tie: the most recently created rule wins."""
    if not matches:
        return None
    return max(matches, key=_created_key)


def resolve_rule(sale: SaleContext, rules: Iterable[Any]) -> Optional[Any]:
    family = sale_family(sale)
    candidates = [r for r in rules if r.active and base_family(r.base) == family]
    if not candidates:
        return None

    # biggest line first; sorted() is stable so equal lines keep entry order
    lines = sorted(sale.lines, key=lambda ln: ln.gross, reverse=True)

    product_rules = [r for r in candidates if r.scope == CommissionScope.PRODUCT.value]
    for line in lines:
        match = _pick([r for r in product_rules if r.product_id == line.product_id])
        if match is not None:
            return match

    category_rules = [r for r in candidates if r.scope == CommissionScope.CATEGORY.value]
    for line in lines:
        cat = _norm_category(line.category)
        if cat is None:
            continue
        match = _pick([r for r in category_rules if _norm_category(r.category) == cat])
        if match is not None:
            return match

    return _pick([r for r in candidates if r.scope == CommissionScope.GENERAL.value])


def commission_base_amount(sale: SaleContext, base: str) -> Decimal:
    if base == CommissionBase.GROSS.value:
        return sale.gross_value
    if base == CommissionBase.PROFIT.value:
        return sale.estimated_profit
    return sale.service_value or ZERO


def compute_commission(sale: SaleContext, rule: Any) -> Decimal:
    amount = commission_base_amount(sale, rule.base) * Decimal(str(rule.percent)) / HUNDRED
    if amount < ZERO:
        # a loss-making sale earns nothing rather than a clawback
        amount = ZERO
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


# ---------------------------------------------------------------------------
# Rule write-time checks
# ---------------------------------------------------------------------------
def normalize_rule_target(
    scope: str,
    category: Optional[str],
    product_id: Optional[uuid.UUID],
) -> tuple[Optional[str], Optional[uuid.UUID]]:
    """
    general: neither category nor product
    category: category only
    product: product only
    """
    scope = CommissionScope(scope).value
    category = (category or "").strip() or None

    if scope == CommissionScope.GENERAL.value:
        return None, None
    if scope == CommissionScope.CATEGORY.value:
        if category is None:
            raise InvalidRuleScope("category is required for category-scoped rules")
        return category, None
    if product_id is None:
        raise InvalidRuleScope("product_id is required for product-scoped rules")
    return None, product_id


def find_overlapping_rule(candidate: Any, existing: Iterable[Any]) -> Optional[Any]:
    if not candidate.active:
        return None
    for other in existing:
        if other.id == candidate.id or not other.active:
            continue
        if other.scope != candidate.scope:
            continue
        if base_family(other.base) != base_family(candidate.base):
            continue
        if candidate.scope == CommissionScope.CATEGORY.value:
            if _norm_category(other.category) != _norm_category(candidate.category):
                continue
        elif candidate.scope == CommissionScope.PRODUCT.value:
            if other.product_id != candidate.product_id:
                continue
        return other
    return None


# ---------------------------------------------------------------------------
# Pay status
# ---------------------------------------------------------------------------
def apply_pay_status(commission: Any, new_status: str, *, now: Optional[datetime] = None) -> None:
    current = commission.pay_status
    new_status = PayStatus(new_status).value

    if new_status != current and new_status not in PAY_STATUS_TRANSITIONS.get(current, frozenset()):
        raise InvalidPayStatusTransition(f"Cannot move commission from {current} to {new_status}")

    commission.pay_status = new_status
    if new_status in _STAMPED_STATUSES:
        if new_status != current or commission.pay_status_date is None:
            commission.pay_status_date = now or datetime.now(timezone.utc)
    else:
        # pending/approved carry no date; nothing moves back into pending, so
        # in practice this clears a stray date on approval
        commission.pay_status_date = None


# ---------------------------------------------------------------------------
# Store-backed operations
# ---------------------------------------------------------------------------
class CommissionStore(Protocol):
    async def list_closed_sale_ids_without_commission(self) -> list[uuid.UUID]: ...

    async def commission_exists(self, sale_id: uuid.UUID) -> bool: ...

    async def load_sale_context(self, sale_id: uuid.UUID) -> Optional[SaleContext]: ...

    async def list_active_rules(self) -> list[Any]: ...

    async def add_commission(self, sale: SaleContext, rule: Any, amount: Decimal) -> Any: ...

    async def rollback(self) -> None: ...


async def create_commission_for_sale(store: CommissionStore, sale_id: uuid.UUID) -> Optional[Any]:
    """
    Attach a commission to one closed sale. Returns None when the sale is
    missing, canceled, already has a commission, or no rule matches.
    """
    if await store.commission_exists(sale_id):
        return None

    sale = await store.load_sale_context(sale_id)
    if sale is None or sale.status != SaleStatus.CLOSED.value:
        return None

    rule = resolve_rule(sale, await store.list_active_rules())
    if rule is None:
        logger.info("No commission rule matches sale %s", sale_id)
        return None

    amount = compute_commission(sale, rule)
    commission = await store.add_commission(sale, rule, amount)
    if commission is not None:
        logger.info(
            "Commission created for sale %s: base=%s percent=%s amount=%s",
            sale_id,
            rule.base,
            rule.percent,
            amount,
        )
    return commission


async def process_all_closed_sales(store: CommissionStore) -> BatchResult:
    """
    Sequentially create commissions for every closed sale that lacks one.
    A failing sale is logged and counted, never fatal to the batch.
    Safe to re-run: sales that already hold a commission are not listed.
    """
    result = BatchResult()
    for sale_id in await store.list_closed_sale_ids_without_commission():
        result.processed += 1
        try:
            created = await create_commission_for_sale(store, sale_id)
        except Exception:
            logger.exception("Commission processing failed for sale %s", sale_id)
            await store.rollback()
            result.failed += 1
            result.failed_sale_ids.append(sale_id)
            continue

        if created is None:
            result.skipped += 1
        else:
            result.created += 1

    logger.info(
        "Commission batch done: %d processed, %d created, %d skipped, %d failed",
        result.processed,
        result.created,
        result.skipped,
        result.failed,
    )
    return result
