from fastapi import APIRouter

from dashboard.app.api.v1.endpoints import accounts

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(accounts.router, prefix="/accounts", tags=["accounts"])
