"""
Production Task Model

Units of manufacturing work (cutting, sewing, embroidery, ...) for a bespoke
order. Tasks are independent of the order status machine.
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Date, ForeignKey, Text, Index
from sqlalchemy.orm import relationship
from datetime import datetime

from atelier.db.base import Base


class ProductionTask(Base):
    """
    A single piece of work on a bespoke order.

    Status: NOT_STARTED → IN_PROGRESS → COMPLETED (any move allowed).
    completed_at is set exactly while status is COMPLETED.
    """
    __tablename__ = "production_tasks"

    id = Column(Integer, primary_key=True, index=True)
    bespoke_order_id = Column(Integer, ForeignKey("bespoke_orders.id", ondelete="CASCADE"), nullable=False)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    # CUTTING, SEWING, EMBROIDERY, BEADING, FINISHING, QC, PRESSING, OTHER
    stage = Column(String(30), nullable=False, index=True)

    # NOT_STARTED, IN_PROGRESS, COMPLETED
    status = Column(String(30), nullable=False, default="NOT_STARTED", index=True)

    assigned_to_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # 0 = normal, 1 = high, 2 = urgent
    priority = Column(Integer, nullable=False, default=0)
    # Display position within the order; max + 1 on create, duplicates tolerated
    sort_order = Column(Integer, nullable=False, default=1)

    estimated_hours = Column(Numeric(6, 2), nullable=True)
    actual_hours = Column(Numeric(6, 2), nullable=True)
    due_date = Column(Date, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    bespoke_order = relationship("BespokeOrder", back_populates="tasks")
    assigned_to = relationship("User", back_populates="assigned_tasks")

    __table_args__ = (
        Index("ix_production_tasks_order_sort", "bespoke_order_id", "sort_order"),
    )

    def __repr__(self):
        return f"<ProductionTask {self.sort_order}: {self.title} ({self.status})>"

    @property
    def assigned_to_name(self):
        return self.assigned_to.name if self.assigned_to else None
