"""
User Model

Accounts referenced by the workflow: customers linked to bespoke orders,
staff assigned to production tasks, and the actors recorded in status logs.
"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy.orm import relationship
from datetime import datetime

from atelier.db.base import Base


class User(Base):
    """Storefront or back-office account"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=False)

    # SUPER_ADMIN, ADMIN, STAFF, CUSTOMER
    role = Column(String(20), nullable=False, default="CUSTOMER", index=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Relationships
    bespoke_orders = relationship("BespokeOrder", back_populates="user", foreign_keys="BespokeOrder.user_id")
    assigned_tasks = relationship("ProductionTask", back_populates="assigned_to")
    measurement_profiles = relationship("MeasurementProfile", back_populates="user")

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"
