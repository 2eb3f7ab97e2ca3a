from fastapi import APIRouter

from blip.api.routes import interactions, maintenance, matches, presence, reports, signals, users

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(presence.router, prefix="/presence", tags=["presence"])
api_router.include_router(signals.router, prefix="/signals", tags=["signals"])
api_router.include_router(matches.router, prefix="/matches", tags=["matches"])
api_router.include_router(interactions.router, tags=["interactions"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
api_router.include_router(users.router, tags=["users"])
api_router.include_router(maintenance.router, prefix="/maintenance", tags=["maintenance"])
