from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class Goal(Base):
    __tablename__ = "goals"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # team | seller
    level: Mapped[str] = mapped_column(String(10), nullable=False)
    seller_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True
    )
    period_ym: Mapped[str] = mapped_column(String(7), nullable=False, index=True)  # YYYY-MM

    sales_goal: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    visits_goal: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    proposals_goal: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
