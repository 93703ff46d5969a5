# app/models/price_history.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class PriceHistoryEntry(Base):
    """
    Append-only audit of product cost/price changes.

    One row per product save that changed cost and/or price:
      - change_type: cost | price | both
      - old_* are NULL for the entry written when the product was created
      - profit_margin_percent / tax_percent: what was in effect at save time

    Rows are never updated or deleted by the application.
    """

    __tablename__ = "product_price_history"
    __table_args__ = (
        Index("ix_price_history_product_created", "product_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
    )
    changed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    change_type: Mapped[str] = mapped_column(String(10), nullable=False)

    old_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    new_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    old_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    new_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    profit_margin_percent: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 2), nullable=True)
    tax_percent: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 2), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )
