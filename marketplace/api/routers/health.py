"""Health endpoints."""

from fastapi import APIRouter, Depends, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.data.database import get_db
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    return {"status": "ok"}


@router.get("/health/database", status_code=status.HTTP_200_OK)
def health_database(db: Session = Depends(get_db)) -> dict:
    """Check database connection."""
    try:
        db.execute(text("SELECT 1"))
        return {"service": "database", "healthy": True}
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        return {"service": "database", "healthy": False, "error": str(e)}
