# app/schemas/sales.py
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from app.core.enums import SaleStatus


class SaleItemIn(BaseModel):
    product_id: uuid.UUID
    qty: Decimal = Field(..., gt=0)
    discount_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)


class SaleCreate(BaseModel):
    client_id: uuid.UUID
    # admins may record a sale for another seller; ignored for sellers
    seller_id: Optional[uuid.UUID] = None
    service_id: Optional[uuid.UUID] = None

    items: List[SaleItemIn] = Field(default_factory=list)

    status: SaleStatus = SaleStatus.CLOSED
    sold_at: Optional[datetime] = None
    payment_received: bool = False
    payment_method_1: Optional[str] = Field(None, max_length=40)
    payment_method_2: Optional[str] = Field(None, max_length=40)
    tax_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    region: Optional[str] = Field(None, max_length=120)


class SaleUpdate(BaseModel):
    status: Optional[SaleStatus] = None
    payment_received: Optional[bool] = None
    payment_method_1: Optional[str] = Field(None, max_length=40)
    payment_method_2: Optional[str] = Field(None, max_length=40)
    region: Optional[str] = Field(None, max_length=120)


class SaleItemOut(BaseModel):
    id: uuid.UUID
    product_id: uuid.UUID
    qty: Decimal
    unit_price: Decimal
    unit_cost: Decimal
    discount_percent: Decimal

    class Config:
        from_attributes = True


class SaleOut(BaseModel):
    id: uuid.UUID
    client_id: uuid.UUID
    seller_id: uuid.UUID
    service_id: Optional[uuid.UUID] = None

    gross_value: Decimal
    total_cost: Decimal
    estimated_profit: Decimal

    status: str
    payment_received: bool
    payment_method_1: Optional[str] = None
    payment_method_2: Optional[str] = None
    tax_percent: Optional[Decimal] = None
    region: Optional[str] = None

    sold_at: datetime
    created_at: datetime

    items: List[SaleItemOut] = Field(default_factory=list)

    class Config:
        from_attributes = True


class SalesPageOut(BaseModel):
    items: List[SaleOut]
    limit: int
    offset: int
    total: int
