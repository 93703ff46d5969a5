# app/schemas/commissions.py
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from app.core.enums import CommissionBase, CommissionScope, PayStatus


# -----------------------------
# Rules
# -----------------------------
class CommissionRuleCreate(BaseModel):
    base: CommissionBase = CommissionBase.GROSS
    percent: Decimal = Field(..., ge=0, le=100)
    scope: CommissionScope = CommissionScope.GENERAL
    category: Optional[str] = Field(None, max_length=120)
    product_id: Optional[uuid.UUID] = None
    active: bool = True


class CommissionRuleUpdate(BaseModel):
    base: Optional[CommissionBase] = None
    percent: Optional[Decimal] = Field(None, ge=0, le=100)
    scope: Optional[CommissionScope] = None
    category: Optional[str] = Field(None, max_length=120)
    product_id: Optional[uuid.UUID] = None
    active: Optional[bool] = None


class CommissionRuleOut(BaseModel):
    id: uuid.UUID
    base: str
    percent: Decimal
    scope: str
    category: Optional[str] = None
    product_id: Optional[uuid.UUID] = None
    active: bool
    created_at: datetime

    class Config:
        from_attributes = True


# -----------------------------
# Commissions
# -----------------------------
class CommissionOut(BaseModel):
    id: uuid.UUID
    sale_id: uuid.UUID
    seller_id: uuid.UUID
    rule_id: Optional[uuid.UUID] = None

    base: str
    percent: Decimal
    amount: Decimal

    pay_status: str
    pay_status_date: Optional[datetime] = None
    notes: Optional[str] = None
    receipt_url: Optional[str] = None

    created_at: datetime

    class Config:
        from_attributes = True


class CommissionPageOut(BaseModel):
    items: List[CommissionOut]
    limit: int
    offset: int
    total: int


class CommissionUpdate(BaseModel):
    pay_status: Optional[PayStatus] = None
    notes: Optional[str] = None
    receipt_url: Optional[str] = Field(None, max_length=1024)


class CommissionSummaryOut(BaseModel):
    total_pending: Decimal
    total_approved: Decimal
    total_paid: Decimal
    total_canceled: Decimal
    count: int


class BatchResultOut(BaseModel):
    processed: int
    created: int
    skipped: int
    failed: int
    message: str
