# app/core/sales.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

from app.core.pricing import quantize_money, to_decimal

HUNDRED = Decimal("100")


class DiscountNotAllowed(ValueError):
    def __init__(self, discount_percent: Decimal, max_discount_percent: Decimal):
        super().__init__(f"Maximum discount allowed: {max_discount_percent}% (got {discount_percent}%)")
        self.discount_percent = discount_percent
        self.max_discount_percent = max_discount_percent


@dataclass(frozen=True)
class SaleTotals:
    gross_value: Decimal
    total_cost: Decimal
    estimated_profit: Decimal


def check_discount(discount_percent: Any, max_discount_percent: Any) -> Decimal:
    discount = to_decimal(discount_percent)
    limit = to_decimal(max_discount_percent)
    if discount < 0 or discount > limit:
        raise DiscountNotAllowed(discount, limit)
    return discount


def line_gross(unit_price: Any, qty: Any, discount_percent: Any) -> Decimal:
    """unit_price * qty * (1 - discount/100), unrounded."""
    return to_decimal(unit_price) * to_decimal(qty) * (1 - to_decimal(discount_percent) / HUNDRED)


def line_cost(unit_cost: Any, qty: Any) -> Decimal:
    return to_decimal(unit_cost) * to_decimal(qty)


def sale_totals(items: Iterable[Any]) -> SaleTotals:
    """
    Totals over objects exposing unit_price, unit_cost, qty, discount_percent.
    Rounded once at the end so per-line rounding never drifts the sum.
    """
    gross = Decimal("0")
    cost = Decimal("0")
    for item in items:
        gross += line_gross(item.unit_price, item.qty, item.discount_percent)
        cost += line_cost(item.unit_cost, item.qty)

    gross_q = quantize_money(gross)
    cost_q = quantize_money(cost)
    return SaleTotals(
        gross_value=gross_q,
        total_cost=cost_q,
        estimated_profit=(gross_q - cost_q).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
    )


def service_total_value(*, fixed_value: Any, hectares: Any, value_per_hectare: Any) -> Decimal | None:
    """fixed_value wins; otherwise hectares * value_per_hectare; None when neither is known."""
    if fixed_value is not None:
        return quantize_money(fixed_value)
    if hectares is not None and value_per_hectare is not None:
        return quantize_money(to_decimal(hectares) * to_decimal(value_per_hectare))
    return None
