import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from keysmith.deps.db import engine

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health():
    # Check Postgres
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("health_postgres_failed")
        return JSONResponse(status_code=503, content={"status": "degraded", "postgres": "unavailable"})

    return {
        "status": "ok",
        "postgres": "ok",
    }
