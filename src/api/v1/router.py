from fastapi import APIRouter

from .endpoints import cron, enhance, health

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])

# Cron triggers - Mounts at /cron prefix (e.g. /cron/sync-rss)
api_router.include_router(cron.router, prefix="/cron", tags=["cron"])

# Single-article rewriting for the admin editor
api_router.include_router(enhance.router, tags=["enhance"])
