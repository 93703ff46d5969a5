# app/api/deps/scoping.py
"""
Row visibility for the single-organisation deployment.

Admins see every row. Everyone else sees rows they own, where ownership is
the row's seller_id or owner_user_id. Out-of-scope rows are reported as
missing (404) so their existence is not disclosed.
"""
from __future__ import annotations

import uuid
from typing import Any, Optional, TypeVar

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User

T = TypeVar("T")

OWNER_COLUMNS = ("seller_id", "owner_user_id")


def owner_filter(model: Any, user: User):
    """WHERE clause restricting `model` to the user's rows, or None for admins."""
    if user.is_admin:
        return None
    clauses = [getattr(model, col) == user.id for col in OWNER_COLUMNS if hasattr(model, col)]
    if not clauses:
        raise ValueError(f"{model.__name__} has no owner column")
    return or_(*clauses) if len(clauses) > 1 else clauses[0]


def scoped(stmt, model: Any, user: User):
    clause = owner_filter(model, user)
    return stmt if clause is None else stmt.where(clause)


def can_see(row: Any, user: User) -> bool:
    if user.is_admin:
        return True
    return any(getattr(row, col, None) == user.id for col in OWNER_COLUMNS)


async def get_scoped_or_404(
    db: AsyncSession,
    model: type[T],
    row_id: uuid.UUID,
    user: User,
    detail: Optional[str] = None,
) -> T:
    row = await db.get(model, row_id)
    if row is None or not can_see(row, user):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail or f"{model.__name__} not found",
        )
    return row


def effective_seller_id(user: User, requested: Optional[uuid.UUID]) -> uuid.UUID:
    """Admins may act for another seller; everyone else acts as themselves."""
    if user.is_admin and requested is not None:
        return requested
    return user.id
