"""
Health check endpoint.

Reports database reachability and the write-grouping mode
the atomicity coordinator would pick for this database.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bullion_ledger.config import get_settings
from bullion_ledger.models.base import get_db
from bullion_ledger.services.atomicity import AtomicityCoordinator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """
    atomic_groups is False when the database runs in AUTOCOMMIT
    mode and failed operations fall back to stock compensation.
    """
    settings = get_settings()
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
        atomic_groups = AtomicityCoordinator(db).supports_atomic_groups()
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        db_status = "unhealthy"
        atomic_groups = None

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "service": "bullion-ledger",
        "version": settings.APP_VERSION,
        "database": db_status,
        "atomic_groups": atomic_groups,
    }
