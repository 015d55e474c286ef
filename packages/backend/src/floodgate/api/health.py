"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running and the
users database is reachable. Also reports the auth mode so operators can
spot a deployment that accidentally runs with auth disabled.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from floodgate import __version__
from floodgate.auth.dependencies import get_auth_mode
from floodgate.db.engine import get_db
from floodgate.services.gateway import AuthMode

router = APIRouter()


@router.get("/health")
async def health_check(
    db: AsyncSession = Depends(get_db),
    mode: AuthMode = Depends(get_auth_mode),
):
    """Check server health and users-database connectivity."""
    checks = {"server": "ok", "version": __version__, "auth": mode.value}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    status = "healthy" if checks["database"] == "ok" else "degraded"
    return {"status": status, **checks}
