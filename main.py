"""Main application entry point for the dashboard API.

Sets up FastAPI app with security middleware, rate limiting and the two route
groups: user accounts (routers/users.py) and the personal dashboard
(routers/dashboard.py). Storage goes through database_adapter for dual DB support.
"""
import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings, load_settings_from_env
from routers import dashboard, users
from services.error_handler import (
    handle_exception,
    handle_http_exception,
    handle_rate_limit,
    handle_validation_error,
)
from services.rate_limit import limiter

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_SECRET_KEY = "dev-secret-key-change-in-production"

app = FastAPI(
    title="Dashboard API",
    version="1.0.0",
    description="User accounts and a personal dashboard: home, search, inbox, for-you and live events"
)

app.state.limiter = limiter


def is_production_environment(local_settings) -> bool:
    """Detect production by Supabase URL, public domain, or explicit env flag"""
    return any([
        local_settings.SUPABASE_URL and
        "supabase.co" in local_settings.SUPABASE_URL and
        "dummy" not in local_settings.SUPABASE_URL,

        local_settings.PRODUCTION_URL and
        "localhost" not in local_settings.PRODUCTION_URL and
        local_settings.PRODUCTION_URL.strip(),

        os.getenv("ENVIRONMENT") == "production",
        os.getenv("ENV") == "production",
    ])


@app.on_event("startup")
async def validate_security_configuration():
    """Validate critical security settings on startup.

    Raises RuntimeError for misconfigurations that must be fixed before running.
    """
    # Fresh settings so tests that patch the environment are respected.
    local_settings = load_settings_from_env()
    is_production = is_production_environment(local_settings)

    if local_settings.TEST_MODE and is_production:
        raise RuntimeError(
            "CRITICAL SECURITY ERROR: TEST_MODE=true in production environment!\n"
            "Dev tokens (dev-token-<user_id>) would let anyone impersonate users.\n"
            "Set TEST_MODE=false and restart the application."
        )

    if is_production:
        if local_settings.SECRET_KEY == DEFAULT_SECRET_KEY:
            raise RuntimeError(
                "CRITICAL SECURITY ERROR: Default SECRET_KEY in production!\n"
                "Generate one with: python -c 'import secrets; print(secrets.token_hex(32))'"
            )

        if len(local_settings.SECRET_KEY) < 32:
            raise RuntimeError(
                f"CRITICAL SECURITY ERROR: SECRET_KEY too short ({len(local_settings.SECRET_KEY)} chars)!\n"
                "Production requires a SECRET_KEY of at least 32 characters."
            )

    if local_settings.TEST_MODE:
        logger.warning("TEST_MODE enabled - dev tokens (dev-token-*) are accepted. Never enable in production!")

    if local_settings.SECRET_KEY == DEFAULT_SECRET_KEY and not is_production:
        logger.warning("Using default SECRET_KEY in development")

    logger.info(
        f"Security configuration validated: production={is_production} "
        f"test_mode={local_settings.TEST_MODE} cors_origins={len(get_cors_origins())}"
    )


def get_cors_origins():
    """Build strict CORS allowlist from environment.

    Never uses wildcard origins with credentials.
    """
    origins = set()

    if settings.FRONTEND_URL:
        origins.add(settings.FRONTEND_URL)
    if settings.PRODUCTION_URL:
        origins.add(settings.PRODUCTION_URL)

    if settings.TEST_MODE:
        origins.update({
            "https://localhost:5173",
            "https://127.0.0.1:5173",
        })

    # Support additional origins via env var (comma-separated)
    extra = os.getenv("CORS_EXTRA_ORIGINS", "")
    if extra:
        origins.update(o.strip() for o in extra.split(",") if o.strip())

    return list(origins)


origins = get_cors_origins()

# ============================================================================
# Security Middleware
# ============================================================================

@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

    # HSTS (only outside test mode)
    if not settings.TEST_MODE:
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )

    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Trusted hosts (prevent host header injection)
allowed_hosts = ["localhost", "127.0.0.1", "0.0.0.0"]
if settings.TEST_MODE:
    allowed_hosts.append("testserver")

for url in (settings.PRODUCTION_URL, settings.FRONTEND_URL):
    if url:
        host = url.replace("https://", "").replace("http://", "").split("/")[0].split(":")[0]
        if host and host not in allowed_hosts:
            allowed_hosts.append(host)

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=allowed_hosts
)

# Every error leaves as {"success": false, "message": ...}
app.add_exception_handler(StarletteHTTPException, handle_http_exception)
app.add_exception_handler(RequestValidationError, handle_validation_error)
app.add_exception_handler(RateLimitExceeded, handle_rate_limit)
app.add_exception_handler(Exception, handle_exception)

# ============================================================================
# Root Endpoints
# ============================================================================

@app.get("/")
@limiter.limit("60/minute")
async def root(request: Request):
    """API root endpoint."""
    return {
        "message": "Dashboard API",
        "version": "1.0.0",
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint (no rate limit for monitoring)."""
    current_settings = load_settings_from_env()
    return {
        "status": "healthy",
        "mode": "production" if is_production_environment(current_settings) else "development",
        "test_mode": current_settings.TEST_MODE,
        "database": "sqlite" if current_settings.DATABASE_URL else "supabase",
    }


app.include_router(users.router)
app.include_router(dashboard.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
