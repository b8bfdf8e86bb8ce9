import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dashboard.app.api.v1.api import api_router
from dashboard.app.core.config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Pharmacy Dashboard Reports")

# ─── CORS: dashboard UI origins only ─────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Refresh-Token"],
    expose_headers=["Content-Disposition", "X-Access-Token", "X-Refresh-Token"],
)

app.include_router(api_router)
