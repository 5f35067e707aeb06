"""
Administration APIs for development and test environments.

POST /admin/cleanup-db: drop the whole MongoDB database.
Never mounted in production, and refuses to run there regardless.
"""

import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from gratias.config import Settings, get_settings
from gratias.database import drop_database

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/cleanup-db", summary="Drop the database (non-production only)")
async def cleanup_db(settings: Annotated[Settings, Depends(get_settings)]):
    if settings.is_production:
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={"error": "Cleanup route disabled in production"},
        )
    try:
        name = await drop_database()
    except Exception as e:
        logger.exception("Database cleanup failed: %s", e)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Database cleanup failed", "details": str(e)},
        )
    return {
        "status": "ok",
        "message": f"MongoDB database {name} cleaned",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
