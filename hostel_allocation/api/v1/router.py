"""
API v1 Router - Main Entry Point
Aggregates all v1 API endpoints for the hostel allocation engine
"""
from fastapi import APIRouter

from hostel_allocation.api.v1.endpoints import applications, hostels, windows

router = APIRouter(
    responses={
        403: {"description": "Forbidden"},
        404: {"description": "Not Found"},
        409: {"description": "Conflict"},
        422: {"description": "Validation Error"},
        500: {"description": "Internal Server Error"}
    }
)

router.include_router(hostels.router)
router.include_router(windows.router)
router.include_router(applications.router)
