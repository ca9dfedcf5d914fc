"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. This protects all task routes without modifying
individual handlers. Health and auth routers are open (no auth required);
/auth/me declares its own dependency.
"""

from fastapi import APIRouter, Depends

from taskboard.api.auth import router as auth_router
from taskboard.api.health import router as health_router
from taskboard.api.tasks import router as tasks_router
from taskboard.auth.dependencies import get_current_user

# All protected routers require authentication
_auth = [Depends(get_current_user)]

api_router = APIRouter(prefix="/api")

# Open routes (no auth)
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes (valid access token required)
api_router.include_router(tasks_router, tags=["tasks"], dependencies=_auth)
