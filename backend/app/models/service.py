from __future__ import annotations

import uuid
import datetime as dt
from decimal import Decimal
from typing import Optional

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class Service(Base):
    """Field service (maintenance, revision, spraying) billed to a client."""

    __tablename__ = "services"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    owner_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    # maintenance | revision | spraying
    service_type: Mapped[str] = mapped_column(String(20), nullable=False)
    # scheduled | completed | cancelled
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="scheduled")

    date: Mapped[dt.date] = mapped_column(Date, nullable=False)

    hectares: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    value_per_hectare: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    fixed_value: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    total_value: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    assigned_users: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )
