from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class CommissionRule(Base):
    __tablename__ = "commission_rules"
    __table_args__ = (
        Index("ix_commission_rules_scope_active", "scope", "active"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # gross | profit | maintenance | revision | spraying
    base: Mapped[str] = mapped_column(String(20), nullable=False)
    # whole-number percentage: 5 means 5%
    percent: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)

    # general | category | product
    scope: Mapped[str] = mapped_column(String(16), nullable=False, default="general")
    category: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    product_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )
