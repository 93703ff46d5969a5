from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_user
from app.api.deps.roles import require_admin
from app.api.v1.auth import as_utc
from app.core.config import settings
from app.core.enums import UserRole, UserStatus
from app.core.security import generate_invite_token
from app.db.session import get_db
from app.models.user import User
from app.schemas.users import UserInviteAccept, UserInviteCreate, UserInviteOut, UserOut, UserUpdate

router = APIRouter(prefix="/users", tags=["users"])


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@router.get("", response_model=List[UserOut])
async def list_users(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
    role: Optional[UserRole] = Query(None),
    status_filter: Optional[UserStatus] = Query(None, alias="status"),
):
    stmt = select(User).order_by(User.name.asc(), User.email.asc())
    if role is not None:
        stmt = stmt.where(User.role == role.value)
    if status_filter is not None:
        stmt = stmt.where(User.status == status_filter.value)
    res = await db.execute(stmt)
    return list(res.scalars().all())


# =========================================================
# Invitations (admin creates, invitee accepts)
# =========================================================

@router.post("/invites", response_model=UserInviteOut, status_code=status.HTTP_201_CREATED)
async def invite_user(
    payload: UserInviteCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """
    Creates (or re-invites) a user in status "invited" with a one-time token.
    An already active user cannot be invited again.
    """
    email = User.normalize_email(payload.email)

    res = await db.execute(select(User).where(User.email == email))
    user = res.scalar_one_or_none()
    if user is not None and user.status != UserStatus.INVITED.value:
        raise HTTPException(status_code=409, detail="A user with this email already exists")

    if user is None:
        user = User(email=email)
        db.add(user)

    now = _utcnow()
    user.name = User.normalize_name(payload.name)
    user.role = payload.role.value
    user.region = payload.region
    user.status = UserStatus.INVITED.value
    user.invite_token = generate_invite_token()
    user.invite_expires_at = now + timedelta(days=settings.INVITE_EXPIRE_DAYS)
    user.invited_at = now
    user.invited_by = admin.id

    await db.commit()
    await db.refresh(user)
    return user


@router.post("/invites/accept", response_model=UserOut)
async def accept_invite(
    payload: UserInviteAccept,
    db: AsyncSession = Depends(get_db),
):
    """
    Public accept by token. Activates the user; login then goes through the magic code.
    """
    token = (payload.token or "").strip()
    if not token:
        raise HTTPException(status_code=400, detail="token is required")

    res = await db.execute(select(User).where(User.invite_token == token))
    user = res.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="Invitation not found")

    if user.status != UserStatus.INVITED.value:
        raise HTTPException(status_code=409, detail="Invitation already accepted")

    if user.invite_expires_at is not None and as_utc(user.invite_expires_at) < _utcnow():
        raise HTTPException(status_code=410, detail="Invitation has expired")

    user.status = UserStatus.ACTIVE.value
    user.invite_token = None
    user.invite_expires_at = None

    await db.commit()
    await db.refresh(user)
    return user


# =========================================================
# Admin operations
# =========================================================

@router.get("/{user_id}", response_model=UserOut)
async def get_user(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current: User = Depends(get_current_user),
):
    if not current.is_admin and current.id != user_id:
        raise HTTPException(status_code=404, detail="User not found")
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.patch("/{user_id}", response_model=UserOut)
async def update_user(
    user_id: uuid.UUID,
    payload: UserUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    data = payload.model_dump(exclude_unset=True)

    # an admin cannot lock themselves out
    if user.id == admin.id and (
        data.get("role") not in (None, UserRole.ADMIN) or data.get("status") not in (None, UserStatus.ACTIVE)
    ):
        raise HTTPException(status_code=400, detail="You cannot demote or deactivate yourself")

    if "name" in data and data["name"] is not None:
        user.name = User.normalize_name(data["name"])
    if data.get("role") is not None:
        user.role = data["role"].value
    if data.get("status") is not None:
        user.status = data["status"].value
    if "region" in data:
        user.region = data["region"]

    await db.commit()
    await db.refresh(user)
    return user
