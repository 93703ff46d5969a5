# app/core/pricing.py
"""
Product pricing rules.

Sell price in "calculated" mode is derived from cost so that margin and tax
are both expressed as a share of the final price:

    price = cost / (1 - (margin% + tax%) / 100)

Everything here is pure Decimal arithmetic except record_price_change(),
which appends to the price-history store.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional, Protocol

from app.core.enums import PriceChangeType, PricingMode

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    # str() first so floats like 0.1 keep their printed value
    return Decimal(str(value))


def quantize_money(value: Any) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_price(cost: Any, margin_percent: Any, tax_percent: Any) -> Decimal:
    """
    Unrounded sell price for a cost, target margin and tax share.

    When margin + tax reaches 100% the formula would divide by zero (or flip
    sign), so the cost is returned unchanged instead.
    """
    cost_d = to_decimal(cost)
    total_percent = to_decimal(margin_percent) + to_decimal(tax_percent)
    if total_percent >= HUNDRED:
        return cost_d
    return cost_d / (1 - total_percent / HUNDRED)


def resolve_price(
    *,
    pricing_mode: str,
    cost: Any,
    margin_percent: Any,
    tax_percent: Any,
    manual_price: Any = None,
) -> Decimal:
    """
    Price to store for a product save.

    calculated: always re-derived from cost/margin/tax, so switching back
    from manual lands on the same price as before.
    manual: the operator's price, unconstrained relative to cost.
    """
    if PricingMode(pricing_mode) is PricingMode.CALCULATED:
        return quantize_money(compute_price(cost, margin_percent, tax_percent))
    return quantize_money(manual_price)


def markup_margin_percent(price: Any, cost: Any) -> Decimal:
    """Margin over the sell price, as shown in product listings."""
    price_d = to_decimal(price)
    if price_d <= ZERO:
        return ZERO
    return ((price_d - to_decimal(cost)) / price_d * HUNDRED).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceSnapshot:
    cost: Decimal
    price: Decimal
    profit_margin_percent: Decimal = ZERO
    tax_percent: Decimal = ZERO

    @classmethod
    def of(cls, product: Any) -> "PriceSnapshot":
        return cls(
            cost=quantize_money(product.cost),
            price=quantize_money(product.price),
            profit_margin_percent=to_decimal(product.profit_margin_percent),
            tax_percent=to_decimal(product.tax_percent),
        )


def classify_price_change(before: Optional[PriceSnapshot], after: PriceSnapshot) -> Optional[PriceChangeType]:
    """
    None when neither cost nor price moved.
    A product without a previous snapshot (just created) counts as BOTH.
    """
    if before is None:
        return PriceChangeType.BOTH

    cost_changed = before.cost != after.cost
    price_changed = before.price != after.price

    if cost_changed and price_changed:
        return PriceChangeType.BOTH
    if cost_changed:
        return PriceChangeType.COST
    if price_changed:
        return PriceChangeType.PRICE
    return None


class PriceHistoryStore(Protocol):
    async def add_entry(
        self,
        *,
        product_id: uuid.UUID,
        change_type: str,
        old_cost: Optional[Decimal],
        new_cost: Decimal,
        old_price: Optional[Decimal],
        new_price: Decimal,
        profit_margin_percent: Optional[Decimal],
        tax_percent: Optional[Decimal],
        changed_by: Optional[uuid.UUID],
    ) -> Any: ...


async def record_price_change(
    store: PriceHistoryStore,
    product_id: uuid.UUID,
    before: Optional[PriceSnapshot],
    after: PriceSnapshot,
    *,
    changed_by: Optional[uuid.UUID] = None,
) -> Any:
    """
    Append one history entry when cost and/or price changed.

    Best-effort: the product row is the source of truth, so a failing
    history write is logged and None is returned instead of raising.
    """
    change_type = classify_price_change(before, after)
    if change_type is None:
        return None

    try:
        entry = await store.add_entry(
            product_id=product_id,
            change_type=change_type.value,
            old_cost=before.cost if before else None,
            new_cost=after.cost,
            old_price=before.price if before else None,
            new_price=after.price,
            profit_margin_percent=after.profit_margin_percent or None,
            tax_percent=after.tax_percent or None,
            changed_by=changed_by,
        )
    except Exception:
        logger.exception("Could not write price history for product %s", product_id)
        return None

    logger.info("Price history %s recorded for product %s", change_type.value, product_id)
    return entry
