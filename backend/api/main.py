from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.middleware import SlowAPIMiddleware
from slowapi.errors import RateLimitExceeded
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from common.core.config import settings
from common.core.constants import Environment
from common.core.telemetry import get_logger
from common.db.session import engine
from common.providers.rate_limiter.limiter import limiter
from api.v1.routes.router import api_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(
        "Starting application...",
        extra={"environment": settings.environment.value},
    )
    yield
    # Shutdown
    logger.info("Shutting down application...")
    await engine.dispose()


# Only expose OpenAPI docs in local development
docs_url = "/docs" if settings.environment == Environment.LOCAL else None
redoc_url = "/redoc" if settings.environment == Environment.LOCAL else None
openapi_url = "/openapi.json" if settings.environment == Environment.LOCAL else None

app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    lifespan=lifespan,
    docs_url=docs_url,
    redoc_url=redoc_url,
    openapi_url=openapi_url,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# Instrument FastAPI with OpenTelemetry
FastAPIInstrumentor.instrument_app(app)

# Add gzip compression middleware
app.add_middleware(GZipMiddleware, minimum_size=1000)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


# Internal health endpoint for k8s probes - not under /api/v1
@app.get("/healthz", include_in_schema=False)
async def healthz():
    return {"status": "ok"}
