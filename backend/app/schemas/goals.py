from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from app.core.enums import GoalLevel

PeriodYM = Field(..., pattern=r"^\d{4}-(0[1-9]|1[0-2])$", description="YYYY-MM")


class GoalCreate(BaseModel):
    level: GoalLevel
    seller_id: Optional[uuid.UUID] = None
    period_ym: str = PeriodYM

    sales_goal: Optional[Decimal] = Field(None, ge=0)
    visits_goal: Optional[int] = Field(None, ge=0)
    proposals_goal: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def _seller_matches_level(self) -> "GoalCreate":
        if self.level is GoalLevel.SELLER and self.seller_id is None:
            raise ValueError("seller_id is required for seller goals")
        if self.level is GoalLevel.TEAM:
            self.seller_id = None
        return self


class GoalUpdate(BaseModel):
    sales_goal: Optional[Decimal] = Field(None, ge=0)
    visits_goal: Optional[int] = Field(None, ge=0)
    proposals_goal: Optional[int] = Field(None, ge=0)


class GoalOut(BaseModel):
    id: uuid.UUID
    level: str
    seller_id: Optional[uuid.UUID] = None
    period_ym: str
    sales_goal: Optional[Decimal] = None
    visits_goal: Optional[int] = None
    proposals_goal: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class GoalProgressOut(BaseModel):
    goal: GoalOut

    sales_achieved: Decimal
    visits_achieved: int
    proposals_achieved: int

    sales_percent: Optional[Decimal] = None
    visits_percent: Optional[Decimal] = None
    proposals_percent: Optional[Decimal] = None


class GoalProgressPageOut(BaseModel):
    period_ym: str
    items: List[GoalProgressOut]
