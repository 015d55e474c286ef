"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. Health and auth routers are open: the auth router
does its own gating per route (authenticate/register/verify must work
without a token).
"""

from fastapi import APIRouter, Depends

from floodgate.api.auth import router as auth_router
from floodgate.api.health import router as health_router
from floodgate.api.settings import router as settings_router
from floodgate.auth.dependencies import get_current_identity

# All protected routers require authentication
_auth = [Depends(get_current_identity)]

api_router = APIRouter(prefix="/api/v1")

# Open routes — no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes — require a valid session token
api_router.include_router(settings_router, tags=["settings"], dependencies=_auth)
