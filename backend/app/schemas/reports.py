# app/schemas/reports.py
# Dashboard/report aggregates and company costs.
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from app.core.enums import CostType
from app.schemas.goals import PeriodYM


# -----------------------------
# Reports
# -----------------------------
class SellerSalesOut(BaseModel):
    seller_id: uuid.UUID
    name: Optional[str] = None
    sales_count: int
    gross_value: Decimal
    estimated_profit: Decimal

    class Config:
        from_attributes = True


class MonthSalesOut(BaseModel):
    period_ym: str
    sales_count: int
    gross_value: Decimal
    estimated_profit: Decimal

    class Config:
        from_attributes = True


class ProductSalesOut(BaseModel):
    product_id: uuid.UUID
    name: str
    category: Optional[str] = None
    qty: Decimal
    revenue: Decimal

    class Config:
        from_attributes = True


class StageTotalOut(BaseModel):
    stage: str
    count: int
    gross_value: Decimal

    class Config:
        from_attributes = True


class CostSummaryOut(BaseModel):
    period_ym: str
    fixed: Decimal
    variable: Decimal
    total: Decimal

    class Config:
        from_attributes = True


class DashboardOut(BaseModel):
    period_ym: str
    seller_id: Optional[uuid.UUID] = None
    sales_count: int
    gross_value: Decimal
    estimated_profit: Decimal
    visits_completed: int
    clients: int
    open_pipeline_value: Decimal
    commissions_pending: Decimal
    pipeline: List[StageTotalOut] = Field(default_factory=list)
    company_costs: Optional[Decimal] = None
    net_result: Optional[Decimal] = None

    class Config:
        from_attributes = True


# -----------------------------
# Company costs
# -----------------------------
class CompanyCostCreate(BaseModel):
    cost_type: CostType = CostType.FIXED
    category: Optional[str] = Field(None, max_length=120)
    description: Optional[str] = Field(None, max_length=255)
    monthly_value: Decimal = Field(..., ge=0)
    competence_ym: str = PeriodYM
    notes: Optional[str] = None


class CompanyCostUpdate(BaseModel):
    cost_type: Optional[CostType] = None
    category: Optional[str] = Field(None, max_length=120)
    description: Optional[str] = Field(None, max_length=255)
    monthly_value: Optional[Decimal] = Field(None, ge=0)
    competence_ym: Optional[str] = Field(None, pattern=r"^\d{4}-(0[1-9]|1[0-2])$")
    notes: Optional[str] = None


class CompanyCostOut(BaseModel):
    id: uuid.UUID
    cost_type: str
    category: Optional[str] = None
    description: Optional[str] = None
    monthly_value: Decimal
    competence_ym: str
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
