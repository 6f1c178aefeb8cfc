"""
Measurement profile lookups (read-only)
"""
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from atelier.models.measurement import MeasurementProfile


def find_measurement_profile(
    db: Session,
    label: str,
    user_id: Optional[int] = None,
) -> Optional[MeasurementProfile]:
    """
    Find a profile by its label, case-insensitively.

    When user_id is given only that customer's profiles are considered. If a
    label was reused, the most recently recorded profile wins.
    """
    query = db.query(MeasurementProfile).filter(
        func.lower(MeasurementProfile.label) == label.strip().lower()
    )
    if user_id is not None:
        query = query.filter(MeasurementProfile.user_id == user_id)
    return query.order_by(MeasurementProfile.created_at.desc(), MeasurementProfile.id.desc()).first()
