"""Main FastAPI application."""
from fastapi import FastAPI, HTTPException, Request, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.orm import Session
from sqlalchemy import text

from gatepass.api.v1.router import api_router
from gatepass.api.deps import get_db
from gatepass.core.config import settings
from gatepass.core.exceptions import GatepassError, ValidationFailed
from gatepass.core.rate_limit import limiter
from gatepass.core.logging_config import setup_logging, get_logger
from gatepass.middleware import LoggingMiddleware
from gatepass.schemas.errors import ErrorResponse

# Initialize structured logging
setup_logging(level=settings.LOG_LEVEL, json_logs=settings.ENVIRONMENT == "production")
logger = get_logger(__name__)

# Validate production configuration after logging is configured
if settings.ENVIRONMENT == "production":
    settings.validate_production_config()

logger.info(
    "application_starting",
    app_title=settings.APP_TITLE,
    app_version=settings.APP_VERSION,
    environment=settings.ENVIRONMENT,
)

app = FastAPI(
    title=settings.APP_TITLE,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION
)

# Add rate limiter to app state
app.state.limiter = limiter

# Add rate limit exceeded exception handler
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


def error_response(status_code: int, body: ErrorResponse) -> JSONResponse:
    """Render the standard error body."""
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(GatepassError)
async def gatepass_error_handler(request: Request, exc: GatepassError):
    """Map domain errors raised by services to HTTP responses."""
    logger.info(
        "request_rejected",
        code=exc.code,
        status_code=exc.status_code,
        message=exc.message,
    )
    return error_response(exc.status_code, ErrorResponse.for_error(exc))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report the first invalid field with its human-readable message."""
    errors = exc.errors()
    message = ValidationFailed.default_message
    if errors:
        # Pydantic prefixes messages raised from validators with "Value error, "
        message = str(errors[0].get("msg", message)).removeprefix("Value error, ")
    return error_response(422, ErrorResponse.build(ValidationFailed.code, message))


# Add logging middleware (must be added before other middleware for proper request tracking)
app.add_middleware(LoggingMiddleware)

# Add API versioning middleware
@app.middleware("http")
async def add_api_version_header(request: Request, call_next):
    """Add X-API-Version header to all responses for version tracking."""
    response = await call_next(request)
    response.headers["X-API-Version"] = settings.APP_VERSION
    return response

# CORS middleware - mobile clients send bearer tokens, no cookies
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,  # Configured via environment
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-API-Version"],
)

# Include API router
app.include_router(api_router)


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint.

    Returns:
        - status: "healthy" or "unhealthy"
        - database: Database connection status
        - environment: Current environment setting

    Returns 503 if database is unreachable.
    """
    health_status = {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "database": {"status": "connected"},
    }

    try:
        # Test database connection with a simple query
        db.execute(text("SELECT 1"))
    except Exception as e:
        health_status["status"] = "unhealthy"
        health_status["database"]["status"] = f"error: {str(e)}"
        logger.error("health_check_failed", error=str(e))
        raise HTTPException(status_code=503, detail=health_status)

    return health_status
