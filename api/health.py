from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from api.dependencies import get_db
import logging

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint for monitoring and load balancers.
    Reports database connectivity, scheduler state and the last sweep.
    """
    # Imported here: main imports this module
    from main import scheduler, last_sweep_report

    scheduler_status = "running" if scheduler and scheduler.running else "stopped"
    last_sweep = last_sweep_report.as_dict() if last_sweep_report else None
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}")
        return {
            "status": "unhealthy",
            "database": "unreachable",
            "scheduler": scheduler_status,
            "last_sweep": last_sweep,
        }
    return {
        "status": "healthy",
        "database": "connected",
        "scheduler": scheduler_status,
        "last_sweep": last_sweep,
    }
