"""Health check endpoints for load balancers and monitoring."""

from datetime import datetime

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from product_wizard.config import settings
from product_wizard.database import engine
from product_wizard.utils.session_store import get_session_store

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Lightweight health check for load balancer (no DB/session store check)."""
    return {
        "status": "ok",
        "service": "product-wizard",
        "timestamp": datetime.utcnow().isoformat(),
        "environment": settings.environment,
    }


@router.get("/health/ready")
async def readiness_check(store=Depends(get_session_store)):
    """Readiness check: database and session store must both answer."""
    checks = {
        "service": "ok",
        "database": "unknown",
        "session_store": "unknown",
    }
    overall_healthy = True

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {str(e)[:100]}"
        overall_healthy = False

    try:
        await store.ping()
        checks["session_store"] = "ok"
    except Exception as e:
        checks["session_store"] = f"error: {str(e)[:100]}"
        overall_healthy = False

    return JSONResponse(
        status_code=status.HTTP_200_OK if overall_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if overall_healthy else "unhealthy",
            "service": "product-wizard",
            "checks": checks,
            "timestamp": datetime.utcnow().isoformat(),
        },
    )
