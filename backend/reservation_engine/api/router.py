"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from reservation_engine.api.routes import admin, availability, holds, payments

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(holds.router)
api_router.include_router(availability.router)
api_router.include_router(payments.router)
api_router.include_router(admin.router)
