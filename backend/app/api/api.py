from fastapi import APIRouter
from backend.app.api.endpoints import events, sessions, export, analytics, catalog

api_router = APIRouter()
api_router.include_router(events.router, prefix="/quiz/events", tags=["events"])
api_router.include_router(sessions.router, prefix="/quiz/sessions", tags=["sessions"])
api_router.include_router(export.router, prefix="/quiz/sessions", tags=["export"])
api_router.include_router(analytics.router, prefix="/quiz", tags=["analytics"])
api_router.include_router(catalog.router, prefix="/quiz", tags=["catalog"])
