"""
Database models
"""
from atelier.models.user import User
from atelier.models.measurement import MeasurementProfile
from atelier.models.bespoke_order import BespokeOrder, BespokeStatusLog
from atelier.models.production_task import ProductionTask
from atelier.models.notification import Notification

__all__ = [
    "User",
    "MeasurementProfile",
    "BespokeOrder",
    "BespokeStatusLog",
    "ProductionTask",
    "Notification",
]
