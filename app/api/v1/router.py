"""
API v1 router setup
All booking engine routes expect a JWT bearer token, except availability browsing
"""
from fastapi import APIRouter

from app.api.v1 import bookings, orders

api_v1_router = APIRouter()

# ============================================================================
# BOOKING ROUTES (JWT authentication required)
# ============================================================================
api_v1_router.include_router(
    bookings.router,
    # No prefix needed - bookings.router already has "/bookings" prefix
    tags=["Bookings"]
)

# ============================================================================
# ORDER ROUTES (availability is public, schedule edits require JWT)
# ============================================================================
api_v1_router.include_router(
    orders.router,
    tags=["Orders"]
)


# ============================================================================
# ROOT ENDPOINT - API Info
# ============================================================================
@api_v1_router.get("/", tags=["Info"])
async def api_info():
    """
    API information and available endpoints.
    """
    return {
        "version": "1.0",
        "authentication": {
            "bookings": "JWT Bearer token required",
            "orders": "Availability is public, schedule edits need a JWT Bearer token"
        }
    }
