"""
Dashboard routers.
"""
from fastapi import APIRouter

from app.api.v1.dashboard.members import router as members_router

dashboard_router = APIRouter()
dashboard_router.include_router(members_router)
