"""
API v1 Router - Main Entry Point
Aggregates all v1 endpoints of the hostel booking service
"""
from fastapi import APIRouter

from hostel_app.api.v1 import billing, bookings, discounts, health, notifications, payments, resident, rooms

router = APIRouter(
    responses={
        400: {"description": "Bad Request"},
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden"},
        404: {"description": "Not Found"},
        409: {"description": "Conflict"},
        422: {"description": "Validation Error"},
        500: {"description": "Internal Server Error"},
    }
)

router.include_router(health.router)
router.include_router(bookings.router)
router.include_router(resident.router)
router.include_router(rooms.router)
router.include_router(discounts.router)
router.include_router(billing.router)
router.include_router(notifications.router)
router.include_router(payments.router)
