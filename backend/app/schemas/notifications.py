from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class NotificationOut(BaseModel):
    id: uuid.UUID
    kind: str
    title: Optional[str] = None
    message: Optional[str] = None
    read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationPageOut(BaseModel):
    items: List[NotificationOut]
    unread: int
    limit: int
    offset: int


class UnreadCountOut(BaseModel):
    unread: int


class StockCheckOut(BaseModel):
    products_checked: int
    out_of_stock: List[str]
    low_stock: List[str]
    notifications_created: int


class VisitCheckOut(BaseModel):
    clients_checked: int
    notifications_created: int
