from fastapi import APIRouter, Depends

from api.v1.routes import (
    health,
)
from packages.auth.dependencies import get_current_active_user
from packages.billing.routes import billing, webhooks

api_router = APIRouter()

# Health check (no auth required)
api_router.include_router(health.router, prefix="/health", tags=["health"])

# Webhooks (no auth - signature verified internally)
api_router.include_router(webhooks.router, tags=["webhooks"])

# Billing routes (require auth; company membership checked per route)
api_router.include_router(
    billing.router,
    prefix="/billing",
    tags=["billing"],
    dependencies=[Depends(get_current_active_user)],
)
