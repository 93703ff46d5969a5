from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from app.core.enums import PricingMode, ProductStatus


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    sku: Optional[str] = Field(None, max_length=128)
    category: Optional[str] = Field(None, max_length=120)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=1024)

    cost: Decimal = Field(..., ge=0)
    # required in manual mode, ignored (re-derived) in calculated mode
    price: Optional[Decimal] = Field(None, ge=0)
    pricing_mode: PricingMode = PricingMode.MANUAL
    profit_margin_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    tax_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)

    stock: int = Field(default=0, ge=0)
    low_stock_threshold: int = Field(default=0, ge=0)
    max_discount_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)


class ProductCreate(ProductBase):
    status: ProductStatus = ProductStatus.ACTIVE


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    sku: Optional[str] = Field(None, max_length=128)
    category: Optional[str] = Field(None, max_length=120)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=1024)

    cost: Optional[Decimal] = Field(None, ge=0)
    price: Optional[Decimal] = Field(None, ge=0)
    pricing_mode: Optional[PricingMode] = None
    profit_margin_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    tax_percent: Optional[Decimal] = Field(None, ge=0, le=100)

    stock: Optional[int] = Field(None, ge=0)
    low_stock_threshold: Optional[int] = Field(None, ge=0)
    max_discount_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    status: Optional[ProductStatus] = None


class ProductResponse(BaseModel):
    id: uuid.UUID
    name: str
    sku: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None

    cost: Decimal
    price: Decimal
    pricing_mode: str
    profit_margin_percent: Decimal
    tax_percent: Decimal
    margin_percent: Decimal

    stock: int
    low_stock_threshold: int
    is_low_stock: bool
    max_discount_percent: Decimal
    status: str

    created_at: datetime
    updated_at: datetime


class SellerProductResponse(BaseModel):
    """Catalog view for sellers: no cost or margin data."""

    id: uuid.UUID
    name: str
    sku: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    price: Decimal
    stock: int
    max_discount_percent: Decimal

    class Config:
        from_attributes = True


class PricePreviewRequest(BaseModel):
    cost: Decimal = Field(..., ge=0)
    profit_margin_percent: Decimal = Field(default=Decimal("0"), ge=0)
    tax_percent: Decimal = Field(default=Decimal("0"), ge=0)


class PricePreviewResponse(BaseModel):
    price: Decimal
    margin_amount: Decimal
    tax_amount: Decimal
    fallback_to_cost: bool


class PriceHistoryOut(BaseModel):
    id: uuid.UUID
    product_id: uuid.UUID
    changed_by: Optional[uuid.UUID] = None
    change_type: str
    old_cost: Optional[Decimal] = None
    new_cost: Optional[Decimal] = None
    old_price: Optional[Decimal] = None
    new_price: Optional[Decimal] = None
    profit_margin_percent: Optional[Decimal] = None
    tax_percent: Optional[Decimal] = None
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
