"""Main API router: combines all endpoint routers."""

from fastapi import APIRouter

from healthmate.api.health import router as health_router
from healthmate.api.forms import router as forms_router
from healthmate.api.form_sessions import router as form_sessions_router
from healthmate.api.websocket import router as websocket_router

api_router = APIRouter()

# Health check
api_router.include_router(health_router, tags=["Health"])

# Form definitions, stateless validation, password strength
api_router.include_router(forms_router, tags=["Forms"])

# Mounted forms
api_router.include_router(form_sessions_router, tags=["Form Sessions"])

# WebSocket is exported separately: mounted at app root (no /api/v1 prefix)
ws_router = websocket_router
