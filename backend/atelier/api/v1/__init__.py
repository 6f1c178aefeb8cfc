"""
API v1 Router - Atelier ERP
"""
from fastapi import APIRouter
from atelier.api.v1.endpoints import notifications
from atelier.api.v1.endpoints.admin import router as admin_router

router = APIRouter()

# Admin (bespoke orders, production board)
router.include_router(
    admin_router,
    prefix="/admin",
    tags=["admin"]
)

# Notification inbox
router.include_router(notifications.router)
