from fastapi import APIRouter, Request
from sqlalchemy import text

from common.db.scoped import get_session
from common.core.config import settings
from common.core.telemetry import get_logger
from common.providers.rate_limiter.limiter import limiter
from packages.billing.providers.payment.factory import get_payment_provider

logger = get_logger(__name__)

router = APIRouter()


@router.get("/")
@limiter.exempt
async def health_check(request: Request):
    # No rate limiting or logging - k8s probes hit this every 5-10s
    return {"status": "healthy", "service": settings.app_name}


@router.get("/db")
@limiter.limit("100/minute")
async def db_check(request: Request):
    try:
        async with get_session(readonly=True) as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {"status": "unhealthy", "database": "disconnected"}


@router.get("/billing")
@limiter.limit("10/minute")
async def billing_check(request: Request):
    configured = bool(settings.stripe_secret_key and settings.stripe_webhook_secret)
    if not configured:
        return {"status": "unhealthy", "billing": "not_configured"}

    healthy = await get_payment_provider().health_check()
    return {
        "status": "healthy" if healthy else "unhealthy",
        "billing": "connected" if healthy else "unreachable",
    }
