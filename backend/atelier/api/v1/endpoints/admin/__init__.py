"""
Admin endpoints - staff tier required, enforced per operation
"""
from fastapi import APIRouter
from . import bespoke_orders, production_tasks

router = APIRouter()

# Bespoke orders, status transitions and per-order production plans
router.include_router(bespoke_orders.router)

# Cross-order production board
router.include_router(production_tasks.router)
