"""
Health check for the workspace portal.
"""
import logging
import os

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from modules.workspace.config import get_config

from ..db import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Database reachability plus the active workflow mode."""
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}")
        db_status = f"unhealthy: {e}"

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "database": db_status,
        "dialect": db.get_bind().dialect.name,
        "strict_transitions": get_config().workflow.strict_transitions,
        "environment": os.getenv("ENVIRONMENT", "development"),
    }
