from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_user
from app.api.deps.roles import require_admin
from app.core.enums import GoalLevel
from app.core.goals import parse_period, progress_percent
from app.crud.goals import achieved_for_period, list_goals
from app.db.session import get_db
from app.models.goal import Goal
from app.models.user import User
from app.schemas.goals import GoalCreate, GoalOut, GoalProgressOut, GoalProgressPageOut, GoalUpdate

router = APIRouter(prefix="/goals", tags=["goals"])


@router.get("", response_model=List[GoalOut])
async def list_all_goals(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    period: Optional[str] = Query(None, description="YYYY-MM"),
):
    return await list_goals(db, period_ym=period, seller_id=None if user.is_admin else user.id)


@router.post("", response_model=GoalOut, status_code=status.HTTP_201_CREATED)
async def create_goal(
    payload: GoalCreate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    if payload.seller_id is not None and await db.get(User, payload.seller_id) is None:
        raise HTTPException(status_code=404, detail="Seller not found")

    goal = Goal(
        level=payload.level.value,
        seller_id=payload.seller_id,
        period_ym=payload.period_ym,
        sales_goal=payload.sales_goal,
        visits_goal=payload.visits_goal,
        proposals_goal=payload.proposals_goal,
    )
    db.add(goal)
    await db.commit()
    await db.refresh(goal)
    return goal


@router.get("/progress", response_model=GoalProgressPageOut)
async def goals_progress(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    period: str = Query(..., description="YYYY-MM"),
):
    """
    Progress of each goal of the month: closed sales gross value, completed
    visits and opportunities that reached the proposal stage or beyond.
    Team goals count everyone, seller goals only that seller.
    """
    try:
        parse_period(period)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    goals = await list_goals(db, period_ym=period, seller_id=None if user.is_admin else user.id)

    items: list[GoalProgressOut] = []
    for goal in goals:
        seller_id = goal.seller_id if goal.level == GoalLevel.SELLER.value else None
        achieved = await achieved_for_period(db, period, seller_id=seller_id)
        items.append(
            GoalProgressOut(
                goal=GoalOut.model_validate(goal),
                sales_achieved=achieved.sales,
                visits_achieved=achieved.visits,
                proposals_achieved=achieved.proposals,
                sales_percent=progress_percent(achieved.sales, goal.sales_goal),
                visits_percent=progress_percent(achieved.visits, goal.visits_goal),
                proposals_percent=progress_percent(achieved.proposals, goal.proposals_goal),
            )
        )
    return GoalProgressPageOut(period_ym=period, items=items)


@router.patch("/{goal_id}", response_model=GoalOut)
async def update_goal(
    goal_id: uuid.UUID,
    payload: GoalUpdate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    goal = await db.get(Goal, goal_id)
    if not goal:
        raise HTTPException(status_code=404, detail="Goal not found")

    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(goal, field, value)

    await db.commit()
    await db.refresh(goal)
    return goal


@router.delete("/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_goal(
    goal_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    goal = await db.get(Goal, goal_id)
    if not goal:
        raise HTTPException(status_code=404, detail="Goal not found")
    await db.delete(goal)
    await db.commit()
    return None
