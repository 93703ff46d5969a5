# app/schemas/crm.py
# Clients, opportunities, visits, services and demonstrations.
from __future__ import annotations

import uuid
import datetime as dt
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from app.core.enums import (
    DemoStatus,
    DemoType,
    OpportunityStage,
    RelationshipStatus,
    ServiceStatus,
    ServiceType,
    VisitStatus,
)


# -----------------------------
# Clients
# -----------------------------
class ClientBase(BaseModel):
    farm_name: Optional[str] = Field(None, max_length=255)
    contact_name: Optional[str] = Field(None, max_length=255)
    legal_name: Optional[str] = Field(None, max_length=255)
    document: Optional[str] = Field(None, max_length=32)

    phone: Optional[str] = Field(None, max_length=32)
    whatsapp: Optional[str] = Field(None, max_length=32)
    email: Optional[EmailStr] = None

    address: Optional[str] = Field(None, max_length=512)
    city: Optional[str] = Field(None, max_length=120)
    state: Optional[str] = Field(None, min_length=2, max_length=2)
    region: Optional[str] = Field(None, max_length=120)

    hectares: Optional[Decimal] = Field(None, ge=0)
    crops: List[str] = Field(default_factory=list)
    lead_source: Optional[str] = Field(None, max_length=120)
    relationship_status: RelationshipStatus = RelationshipStatus.PROSPECT


class ClientCreate(ClientBase):
    seller_id: Optional[uuid.UUID] = None
    owner_user_id: Optional[uuid.UUID] = None


class ClientUpdate(BaseModel):
    farm_name: Optional[str] = Field(None, max_length=255)
    contact_name: Optional[str] = Field(None, max_length=255)
    legal_name: Optional[str] = Field(None, max_length=255)
    document: Optional[str] = Field(None, max_length=32)
    phone: Optional[str] = Field(None, max_length=32)
    whatsapp: Optional[str] = Field(None, max_length=32)
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(None, max_length=512)
    city: Optional[str] = Field(None, max_length=120)
    state: Optional[str] = Field(None, min_length=2, max_length=2)
    region: Optional[str] = Field(None, max_length=120)
    hectares: Optional[Decimal] = Field(None, ge=0)
    crops: Optional[List[str]] = None
    lead_source: Optional[str] = Field(None, max_length=120)
    relationship_status: Optional[RelationshipStatus] = None
    owner_user_id: Optional[uuid.UUID] = None


class ClientOut(ClientBase):
    id: uuid.UUID
    seller_id: uuid.UUID
    owner_user_id: Optional[uuid.UUID] = None
    relationship_status: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# -----------------------------
# Opportunities
# -----------------------------
class OpportunityCreate(BaseModel):
    client_id: uuid.UUID
    seller_id: Optional[uuid.UUID] = None
    stage: OpportunityStage = OpportunityStage.LEAD
    gross_value: Optional[Decimal] = Field(None, ge=0)
    estimated_margin: Optional[Decimal] = Field(None, ge=0, le=100)
    probability: Optional[int] = Field(None, ge=0, le=100)
    expected_close_date: Optional[dt.date] = None
    product_ids: List[uuid.UUID] = Field(default_factory=list)
    history: Optional[str] = None


class OpportunityUpdate(BaseModel):
    stage: Optional[OpportunityStage] = None
    gross_value: Optional[Decimal] = Field(None, ge=0)
    estimated_margin: Optional[Decimal] = Field(None, ge=0, le=100)
    probability: Optional[int] = Field(None, ge=0, le=100)
    expected_close_date: Optional[dt.date] = None
    product_ids: Optional[List[uuid.UUID]] = None
    loss_reason: Optional[str] = None
    history: Optional[str] = None


class OpportunityOut(BaseModel):
    id: uuid.UUID
    client_id: uuid.UUID
    seller_id: uuid.UUID
    stage: str
    gross_value: Optional[Decimal] = None
    estimated_margin: Optional[Decimal] = None
    probability: Optional[int] = None
    expected_close_date: Optional[dt.date] = None
    product_ids: List[str] = Field(default_factory=list)
    loss_reason: Optional[str] = None
    history: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class OpportunityConvert(BaseModel):
    sold_at: Optional[datetime] = None
    payment_received: bool = False
    payment_method_1: Optional[str] = Field(None, max_length=40)
    payment_method_2: Optional[str] = Field(None, max_length=40)


# -----------------------------
# Visits
# -----------------------------
class VisitCreate(BaseModel):
    client_id: uuid.UUID
    seller_id: Optional[uuid.UUID] = None
    scheduled_at: Optional[datetime] = None
    status: VisitStatus = VisitStatus.SCHEDULED
    objective: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None


class VisitUpdate(BaseModel):
    scheduled_at: Optional[datetime] = None
    status: Optional[VisitStatus] = None
    objective: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    next_steps: Optional[str] = None
    duration_min: Optional[int] = Field(None, ge=0)


class VisitOut(BaseModel):
    id: uuid.UUID
    client_id: uuid.UUID
    seller_id: uuid.UUID
    scheduled_at: Optional[datetime] = None
    status: str
    objective: Optional[str] = None
    notes: Optional[str] = None
    next_steps: Optional[str] = None
    duration_min: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


# -----------------------------
# Services
# -----------------------------
class ServiceCreate(BaseModel):
    client_id: uuid.UUID
    service_type: ServiceType
    status: ServiceStatus = ServiceStatus.SCHEDULED
    date: dt.date
    hectares: Optional[Decimal] = Field(None, ge=0)
    value_per_hectare: Optional[Decimal] = Field(None, ge=0)
    fixed_value: Optional[Decimal] = Field(None, ge=0)
    assigned_users: List[uuid.UUID] = Field(default_factory=list)
    notes: Optional[str] = None


class ServiceUpdate(BaseModel):
    status: Optional[ServiceStatus] = None
    date: Optional[dt.date] = None
    hectares: Optional[Decimal] = Field(None, ge=0)
    value_per_hectare: Optional[Decimal] = Field(None, ge=0)
    fixed_value: Optional[Decimal] = Field(None, ge=0)
    assigned_users: Optional[List[uuid.UUID]] = None
    notes: Optional[str] = None


class ServiceOut(BaseModel):
    id: uuid.UUID
    client_id: uuid.UUID
    owner_user_id: uuid.UUID
    service_type: str
    status: str
    date: dt.date
    hectares: Optional[Decimal] = None
    value_per_hectare: Optional[Decimal] = None
    fixed_value: Optional[Decimal] = None
    total_value: Optional[Decimal] = None
    assigned_users: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


# -----------------------------
# Demonstrations
# -----------------------------
class DemonstrationCreate(BaseModel):
    client_id: uuid.UUID
    seller_id: Optional[uuid.UUID] = None
    date: datetime
    status: DemoStatus = DemoStatus.SCHEDULED
    demo_types: List[DemoType] = Field(default_factory=list)
    product_ids: List[uuid.UUID] = Field(default_factory=list)
    assigned_users: List[uuid.UUID] = Field(default_factory=list)
    crop: Optional[str] = Field(None, max_length=120)
    hectares: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None


class DemonstrationUpdate(BaseModel):
    date: Optional[datetime] = None
    status: Optional[DemoStatus] = None
    demo_types: Optional[List[DemoType]] = None
    product_ids: Optional[List[uuid.UUID]] = None
    assigned_users: Optional[List[uuid.UUID]] = None
    crop: Optional[str] = Field(None, max_length=120)
    hectares: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None


class DemonstrationOut(BaseModel):
    id: uuid.UUID
    client_id: uuid.UUID
    seller_id: uuid.UUID
    date: datetime
    status: str
    demo_types: List[str] = Field(default_factory=list)
    product_ids: List[str] = Field(default_factory=list)
    assigned_users: List[str] = Field(default_factory=list)
    crop: Optional[str] = None
    hectares: Optional[Decimal] = None
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
