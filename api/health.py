"""
Health check routes — liveness and database reachability.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from api.dependencies import get_context
from core.context import AppContext

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

_STARTED = time.monotonic()


@router.get("/health")
async def health(ctx: AppContext = Depends(get_context)) -> Dict[str, Any]:
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - _STARTED, 3),
        "environment": ctx.settings.environment,
    }


@router.get("/health/db")
async def health_db(ctx: AppContext = Depends(get_context)):
    try:
        async with ctx.session_factory() as session:
            await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("Database health check failed: %s", exc)
        return JSONResponse(
            status_code=503,
            content={"status": "error", "database": "disconnected", "error": str(exc)},
        )
    return {"status": "ok", "database": "connected"}
