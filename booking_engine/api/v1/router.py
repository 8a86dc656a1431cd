"""
API v1 router setup
Organized into: public (no auth / booking token) and dashboard (host JWT) routes
"""
from fastapi import APIRouter

from booking_engine.api.v1.public import booking
from booking_engine.api.v1.dashboard import bookings, schedules, event_types

api_v1_router = APIRouter()

# ============================================================================
# PUBLIC ROUTES (No authentication; booking routes take the booking uid)
# ============================================================================
api_v1_router.include_router(
    booking.router,
    prefix="/public",
    tags=["Public"]
)

# ============================================================================
# DASHBOARD ROUTES (JWT authentication required)
# ============================================================================
api_v1_router.include_router(
    bookings.router,
    prefix="/dashboard",
    tags=["Dashboard"]
)

api_v1_router.include_router(
    schedules.router,
    prefix="/dashboard",
    tags=["Dashboard"]
)

api_v1_router.include_router(
    event_types.router,
    prefix="/dashboard",
    tags=["Dashboard"]
)


# ============================================================================
# ROOT ENDPOINT - API Info
# ============================================================================
@api_v1_router.get("/", tags=["Info"])
async def api_info():
    """
    API information and available endpoints.
    Shows the structure of all API routes organized by authentication type.
    """
    return {
        "version": "1.0",
        "authentication": {
            "public": "No authentication required; booking management uses the booking uid",
            "dashboard": "JWT Bearer token issued by the identity service",
        }
    }
