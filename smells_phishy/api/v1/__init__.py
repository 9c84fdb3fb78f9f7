"""
Smells Phishy API v1
"""

from fastapi import APIRouter

from .scan import router as scan_router

v1_router = APIRouter(prefix="/api/v1")

v1_router.include_router(scan_router)
