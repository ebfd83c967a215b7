"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from smartresponse.core.config import settings
from smartresponse.core.errors import (
    AccountNotFoundError,
    AdmissionUnavailableError,
    BackendFulfillmentError,
    ConfigurationError,
    DuplicateSubmissionError,
    FormNotFoundError,
    KnowledgeFileRejectedError,
    PersistenceError,
    QuotaExceededError,
)
from smartresponse.db.session import engine
from smartresponse.services.notification_service import get_dispatcher

logger = logging.getLogger(__name__)

# ============================================================================
# Sentry Integration (optional, for production error tracking)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,  # 10% of requests for performance monitoring
        send_default_pii=False,  # Visitor emails stay out of Sentry
    )
    logging.info("Sentry initialized for error tracking")

# ============================================================================
# Rate Limiting
# ============================================================================

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from smartresponse.core.rate_limit import limiter


# ============================================================================
# FastAPI App
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    dispatcher = get_dispatcher()
    await dispatcher.start()
    try:
        yield
    finally:
        await dispatcher.stop()


app = FastAPI(
    title="Smart Response API",
    description="Form builder API: quota admission, AI generation and lead capture",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
    lifespan=lifespan,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Public forms are embedded on visitor sites
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials="*" not in settings.cors_origins_list,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
)

# ============================================================================
# Pipeline errors -> HTTP
# ============================================================================


@app.exception_handler(QuotaExceededError)
async def quota_exceeded_handler(request: Request, exc: QuotaExceededError):
    return JSONResponse(
        status_code=403,
        content={
            "message": str(exc),
            "resource": exc.resource,
            "current": exc.current,
            "limit": exc.limit,
        },
    )


_STATUS_BY_ERROR = {
    FormNotFoundError: 404,
    AccountNotFoundError: 404,
    DuplicateSubmissionError: 409,
    KnowledgeFileRejectedError: 400,
    PermissionError: 403,
    ConfigurationError: 503,
    AdmissionUnavailableError: 503,
    BackendFulfillmentError: 502,
    PersistenceError: 500,
}


async def pipeline_error_handler(request: Request, exc: Exception):
    status_code = next(code for cls, code in _STATUS_BY_ERROR.items() if isinstance(exc, cls))
    if status_code >= 500:
        logger.warning(
            "%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc
        )
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


for _error_class in _STATUS_BY_ERROR:
    app.add_exception_handler(_error_class, pipeline_error_handler)

# ============================================================================
# Routers
# ============================================================================

from smartresponse.routers import admin_accounts, admin_settings, ai, forms, public

# Public visitor endpoints (unauthenticated, rate limited)
app.include_router(public.router)

# Form management (authenticated owners)
app.include_router(forms.router)

# AI helpers
app.include_router(ai.router)

# System settings (superadmin only)
app.include_router(admin_settings.router)

# Account quotas (superadmin only)
app.include_router(admin_accounts.router)


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
