"""
Main application endpoints.

- `GET /health` - liveness probe. Always answers 200 while the process serves requests; the
  `database` field reports whether MongoDB answered a ping.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from content_hub.database.manager import DatabaseManager
from content_hub.routes.auth.dependencies import get_db_manager

router = APIRouter(tags=["Main"])


@router.get("/health")
async def health(db_manager: DatabaseManager = Depends(get_db_manager)):
    database_ok = await db_manager.health_check()
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": "connected" if database_ok else "unavailable",
    }
