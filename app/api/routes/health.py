from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from datetime import datetime, timezone
from sqlalchemy import text
from sqlalchemy.orm import Session
import structlog

from app.config.settings import settings
from app.core.database import get_database
from app.core.dependencies import container
from app.core.errors import ConfigurationError

logger = structlog.get_logger()

router = APIRouter(prefix="/health", tags=["health"])


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    environment: str


@router.get("", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health_check():
    """Health check endpoint"""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version="1.0.0",
        environment=settings.environment
    )


@router.get("/readiness")
async def readiness_check(db: Session = Depends(get_database)):
    """Readiness check: database reachable and external clients configured"""
    checks = {}
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        logger.error("Readiness database check failed", error=str(e))
        checks["database"] = "error"

    for name, provider in (("jira", container.jira_service), ("ai", container.ai_service)):
        try:
            provider()
            checks[name] = "ok"
        except ConfigurationError:
            checks[name] = "not_configured"

    all_ok = all(value == "ok" for value in checks.values())

    return {
        "status": "ready" if all_ok else "not_ready",
        "checks": checks,
        "timestamp": datetime.now(timezone.utc)
    }
