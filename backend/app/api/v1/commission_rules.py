from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_user
from app.api.deps.roles import require_admin
from app.core.commissions import InvalidRuleScope, OverlappingCommissionRule
from app.core.enums import plain_values
from app.crud.commissions import list_rules, validate_rule
from app.db.session import get_db
from app.models.commission_rule import CommissionRule
from app.models.user import User
from app.schemas.commissions import CommissionRuleCreate, CommissionRuleOut, CommissionRuleUpdate

router = APIRouter(prefix="/commission-rules", tags=["commission-rules"])


async def _get_rule_or_404(db: AsyncSession, rule_id: uuid.UUID) -> CommissionRule:
    rule = await db.get(CommissionRule, rule_id)
    if not rule:
        raise HTTPException(status_code=404, detail="Commission rule not found")
    return rule


async def _validate_or_raise(db: AsyncSession, rule: CommissionRule) -> None:
    try:
        await validate_rule(db, rule)
    except InvalidRuleScope as e:
        raise HTTPException(status_code=422, detail=str(e))
    except OverlappingCommissionRule as e:
        raise HTTPException(
            status_code=409,
            detail={"message": str(e), "existing_rule_id": str(e.existing_rule_id)},
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("", response_model=List[CommissionRuleOut])
async def list_commission_rules(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
    active: Optional[bool] = Query(None),
):
    """Readable by everyone so sellers can see how they are paid."""
    return await list_rules(db, active=active)


@router.post("", response_model=CommissionRuleOut, status_code=status.HTTP_201_CREATED)
async def create_commission_rule(
    payload: CommissionRuleCreate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    rule = CommissionRule(**plain_values(payload.model_dump()))
    await _validate_or_raise(db, rule)

    db.add(rule)
    await db.commit()
    await db.refresh(rule)
    return rule


@router.patch("/{rule_id}", response_model=CommissionRuleOut)
async def update_commission_rule(
    rule_id: uuid.UUID,
    payload: CommissionRuleUpdate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    """Existing commissions keep the base/percent they were created with."""
    rule = await _get_rule_or_404(db, rule_id)

    for field, value in plain_values(payload.model_dump(exclude_unset=True)).items():
        if value is None and field in {"base", "percent", "scope", "active"}:
            continue
        setattr(rule, field, value)

    await _validate_or_raise(db, rule)
    await db.commit()
    await db.refresh(rule)
    return rule


@router.post("/{rule_id}/toggle", response_model=CommissionRuleOut)
async def toggle_commission_rule(
    rule_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    rule = await _get_rule_or_404(db, rule_id)
    rule.active = not rule.active
    # re-activating must not create an overlap
    await _validate_or_raise(db, rule)
    await db.commit()
    await db.refresh(rule)
    return rule


@router.delete("/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_commission_rule(
    rule_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    """Commissions created from the rule keep their copied base/percent (rule_id is set to NULL)."""
    rule = await _get_rule_or_404(db, rule_id)
    await db.delete(rule)
    await db.commit()
    return None
