from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_user
from app.api.deps.scoping import get_scoped_or_404, scoped
from app.core.enums import ServiceStatus, ServiceType, plain_values
from app.core.sales import service_total_value
from app.crud.commissions import attach_commission
from app.crud.sales import create_service_sale
from app.db.session import get_db
from app.models.client import Client
from app.models.service import Service
from app.models.user import User
from app.schemas.crm import ServiceCreate, ServiceOut, ServiceUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/services", tags=["services"])


def _refresh_total(service: Service) -> None:
    service.total_value = service_total_value(
        fixed_value=service.fixed_value,
        hectares=service.hectares,
        value_per_hectare=service.value_per_hectare,
    )


@router.get("", response_model=List[ServiceOut])
async def list_services(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    service_type: Optional[ServiceType] = Query(None),
    status_filter: Optional[ServiceStatus] = Query(None, alias="status"),
    client_id: Optional[uuid.UUID] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    stmt = scoped(select(Service), Service, user)
    if service_type is not None:
        stmt = stmt.where(Service.service_type == service_type.value)
    if status_filter is not None:
        stmt = stmt.where(Service.status == status_filter.value)
    if client_id is not None:
        stmt = stmt.where(Service.client_id == client_id)
    stmt = stmt.order_by(Service.date.desc()).limit(limit).offset(offset)
    return list((await db.execute(stmt)).scalars().all())


@router.post("", response_model=ServiceOut, status_code=status.HTTP_201_CREATED)
async def create_service(
    payload: ServiceCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await get_scoped_or_404(db, Client, payload.client_id, user, detail="Client not found")

    data = plain_values(payload.model_dump())
    data["assigned_users"] = [str(uid) for uid in data["assigned_users"]]

    service = Service(owner_user_id=user.id, **data)
    _refresh_total(service)
    db.add(service)
    await db.commit()
    await db.refresh(service)
    return service


@router.get("/{service_id}", response_model=ServiceOut)
async def get_service(
    service_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await get_scoped_or_404(db, Service, service_id, user, detail="Service not found")


@router.patch("/{service_id}", response_model=ServiceOut)
async def update_service(
    service_id: uuid.UUID,
    payload: ServiceUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    Completing a service with a value records a closed sale for it, linked
    through service_id, and tries to attach its commission.
    """
    service = await get_scoped_or_404(db, Service, service_id, user, detail="Service not found")
    was_completed = service.status == ServiceStatus.COMPLETED.value

    for field, value in plain_values(payload.model_dump(exclude_unset=True)).items():
        if field in {"status", "date", "assigned_users"} and value is None:
            continue
        if field == "assigned_users":
            value = [str(uid) for uid in value]
        setattr(service, field, value)
    _refresh_total(service)

    sale = None
    if service.status == ServiceStatus.COMPLETED.value and not was_completed and service.total_value:
        sale = await create_service_sale(db, service)

    await db.commit()

    if sale is not None:
        logger.info("Service %s completed, sale %s recorded: gross=%s", service.id, sale.id, sale.gross_value)
        await attach_commission(db, sale.id)

    await db.refresh(service)
    return service
