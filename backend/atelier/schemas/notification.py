"""
Notification Pydantic Schemas
"""
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from enum import Enum


class NotificationCategory(str, Enum):
    ORDER_UPDATE = "ORDER_UPDATE"
    PAYMENT = "PAYMENT"
    SUPPORT = "SUPPORT"
    PROMOTION = "PROMOTION"
    SYSTEM = "SYSTEM"
    BESPOKE = "BESPOKE"
    PRODUCTION = "PRODUCTION"


class NotificationResponse(BaseModel):
    id: int
    user_id: int
    title: str
    message: str
    category: NotificationCategory
    link_url: Optional[str] = None
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class UnreadCountResponse(BaseModel):
    count: int


class MarkAllReadResponse(BaseModel):
    updated: int
