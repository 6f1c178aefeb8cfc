"""
Bespoke Order Models

Custom, made-to-measure orders and the append-only history of their status
changes. Status only moves through atelier.services.bespoke_workflow.
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Date, ForeignKey, Text, Boolean, Index, event
from sqlalchemy.orm import relationship
from datetime import datetime

from atelier.db.base import Base


class BespokeOrder(Base):
    """
    Bespoke Order - one custom garment commission.

    Lifecycle: NEW / INQUIRY → QUOTED → CONFIRMED → IN_PRODUCTION → FITTING → DELIVERED
    Can also be: CANCELLED
    """
    __tablename__ = "bespoke_orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(30), unique=True, nullable=False, index=True)  # BSP-1001

    # Customer
    customer_name = Column(String(100), nullable=False)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(20), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # Commercial
    estimated_price = Column(Numeric(10, 2), nullable=True)
    final_price = Column(Numeric(10, 2), nullable=True)
    deposit_amount = Column(Numeric(10, 2), nullable=True)
    deposit_paid = Column(Boolean, nullable=False, default=False)

    # Production
    design_description = Column(Text, nullable=True)
    fabric_details = Column(Text, nullable=True)
    measurement_id = Column(Integer, ForeignKey("measurement_profiles.id", ondelete="SET NULL"), nullable=True)

    # Lifecycle
    status = Column(String(30), nullable=False, default="INQUIRY", index=True)
    estimated_completion_date = Column(Date, nullable=True)
    actual_completion_date = Column(DateTime, nullable=True)  # stamped on DELIVERED

    # Notes
    customer_notes = Column(Text, nullable=True)
    internal_notes = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="bespoke_orders", foreign_keys=[user_id])
    measurement = relationship("MeasurementProfile")
    tasks = relationship(
        "ProductionTask",
        back_populates="bespoke_order",
        order_by="[ProductionTask.sort_order, ProductionTask.created_at, ProductionTask.id]",
    )
    status_logs = relationship(
        "BespokeStatusLog",
        back_populates="bespoke_order",
        order_by="[BespokeStatusLog.created_at, BespokeStatusLog.id]",
    )

    def __repr__(self):
        return f"<BespokeOrder {self.order_number} - {self.status}>"

    @property
    def balance_due(self):
        """Price still owed after the deposit (None until priced)"""
        price = self.final_price if self.final_price is not None else self.estimated_price
        if price is None:
            return None
        paid = self.deposit_amount if self.deposit_paid and self.deposit_amount else 0
        return price - paid

    @property
    def task_count(self) -> int:
        return len(self.tasks)


class BespokeStatusLog(Base):
    """
    One accepted status transition. Written once, never updated.

    old_status is NULL only for the entry recorded when the order is created.
    """
    __tablename__ = "bespoke_status_logs"

    id = Column(Integer, primary_key=True, index=True)
    bespoke_order_id = Column(Integer, ForeignKey("bespoke_orders.id", ondelete="CASCADE"), nullable=False)
    changed_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    old_status = Column(String(30), nullable=True)
    new_status = Column(String(30), nullable=False)
    note = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Relationships
    bespoke_order = relationship("BespokeOrder", back_populates="status_logs")
    changed_by = relationship("User")

    __table_args__ = (
        Index("ix_bespoke_status_logs_order_created", "bespoke_order_id", "created_at"),
    )

    def __repr__(self):
        return f"<BespokeStatusLog {self.old_status} -> {self.new_status}>"

    @property
    def changed_by_name(self):
        return self.changed_by.name if self.changed_by else None


@event.listens_for(BespokeStatusLog, "before_update")
def _reject_status_log_update(mapper, connection, target):
    raise ValueError("Bespoke status log entries are append-only")
