"""
Health check endpoint.

Used by load balancers, monitoring systems, and humans
to verify the application is running and can reach the ledger.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from residence_ledger.config import get_settings
from residence_ledger.models.base import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """
    Return application health status including database connectivity.

    If the database cannot be queried the service reports itself
    as degraded rather than failing the request.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError:
        logger.exception("Health check could not reach the database")
        db_status = "unhealthy"

    settings = get_settings()
    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "service": "residence-ledger",
        "version": settings.APP_VERSION,
        "database": db_status,
    }
