"""
Notification Model

In-app messages shown in a customer's notification inbox.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Boolean, Index
from datetime import datetime

from atelier.db.base import Base


class Notification(Base):
    """One message for one user"""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)

    # ORDER_UPDATE, PAYMENT, SUPPORT, PROMOTION, SYSTEM, BESPOKE, PRODUCTION
    category = Column(String(30), nullable=False, default="SYSTEM")
    link_url = Column(String(500), nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_notifications_user_read", "user_id", "is_read"),
    )

    def __repr__(self):
        return f"<Notification {self.category} for user {self.user_id}>"
