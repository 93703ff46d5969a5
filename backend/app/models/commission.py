# app/models/commission.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class Commission(Base):
    """
    Seller commission attached to a closed sale.

    At most one row per sale (uq_commissions_sale), so re-running the
    batch processor can never double-pay a sale.

    base/percent are copied from the rule that matched at creation time;
    later rule edits do not touch existing commissions.
    """

    __tablename__ = "commissions"
    __table_args__ = (
        UniqueConstraint("sale_id", name="uq_commissions_sale"),
        Index("ix_commissions_seller_status", "seller_id", "pay_status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    sale_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("sales.id", ondelete="CASCADE"),
        nullable=False,
    )
    seller_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    rule_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("commission_rules.id", ondelete="SET NULL"),
        nullable=True,
    )

    base: Mapped[str] = mapped_column(String(20), nullable=False)
    percent: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    # pending | approved | paid | canceled
    pay_status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    pay_status_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    receipt_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )
