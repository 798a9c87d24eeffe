"""API route aggregation.

All routers registered here get mounted in main.py.
"""

from fastapi import APIRouter

from smsrelay.api.deliveries import router as deliveries_router
from smsrelay.api.health import router as health_router
from smsrelay.api.listener import router as listener_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(listener_router, tags=["listener"])
api_router.include_router(deliveries_router, tags=["deliveries"])
