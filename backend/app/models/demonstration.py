from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class Demonstration(Base):
    """Field demonstration of products on a client's farm."""

    __tablename__ = "demonstrations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    seller_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # scheduled | done | canceled
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="scheduled")

    demo_types: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    product_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    assigned_users: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    crop: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    hectares: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
