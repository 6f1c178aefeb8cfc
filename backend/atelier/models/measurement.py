"""
Measurement Profile Model

Body measurements taken by the atelier. Bespoke orders reference a profile by
id; this system only reads them.
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime

from atelier.db.base import Base


class MeasurementProfile(Base):
    """A labelled set of body measurements (cm, weight in kg)"""
    __tablename__ = "measurement_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # "Wedding suit 2025", "Default", ...
    label = Column(String(100), nullable=False, index=True)

    chest = Column(Numeric(6, 2), nullable=True)
    shoulder = Column(Numeric(6, 2), nullable=True)
    sleeve_length = Column(Numeric(6, 2), nullable=True)
    neck = Column(Numeric(6, 2), nullable=True)
    back_length = Column(Numeric(6, 2), nullable=True)
    waist = Column(Numeric(6, 2), nullable=True)
    hip = Column(Numeric(6, 2), nullable=True)
    inseam = Column(Numeric(6, 2), nullable=True)
    outseam = Column(Numeric(6, 2), nullable=True)
    thigh = Column(Numeric(6, 2), nullable=True)
    height = Column(Numeric(6, 2), nullable=True)
    weight = Column(Numeric(6, 2), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    user = relationship("User", back_populates="measurement_profiles")

    def __repr__(self):
        return f"<MeasurementProfile {self.label}>"
