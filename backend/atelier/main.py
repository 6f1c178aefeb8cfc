"""
Atelier ERP - Main FastAPI Application
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError

from atelier.api.v1 import router as api_v1_router
from atelier.core.settings import settings
from atelier.db.session import SessionLocal, init_models
from atelier.exceptions import AtelierException
from atelier.logging_config import setup_logging, get_logger
from atelier.services.notifications import (
    BackgroundNotificationDispatcher,
    DatabaseNotificationDispatcher,
    NullNotificationDispatcher,
)
from atelier.services.validation import flatten_errors

# Setup structured logging
setup_logging()
logger = get_logger(__name__)


def build_notification_dispatcher():
    if not settings.NOTIFICATIONS_ENABLED:
        return NullNotificationDispatcher()
    return BackgroundNotificationDispatcher(
        DatabaseNotificationDispatcher(SessionLocal),
        max_workers=settings.NOTIFICATION_WORKERS,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info(
        "Starting Atelier ERP API",
        extra={
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
            "debug": settings.DEBUG,
        }
    )
    if settings.AUTO_CREATE_TABLES:
        init_models()

    dispatcher = build_notification_dispatcher()
    app.state.notification_dispatcher = dispatcher
    yield
    # Shutdown
    if isinstance(dispatcher, BackgroundNotificationDispatcher):
        dispatcher.shutdown(wait=True)
    logger.info("Shutting down Atelier ERP API")


# Create FastAPI app
app = FastAPI(
    title="Atelier ERP API",
    description="Bespoke order and production workflow for a made-to-measure atelier",
    version=settings.VERSION,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ===================
# Exception Handlers
# ===================


@app.exception_handler(AtelierException)
async def atelier_exception_handler(request: Request, exc: AtelierException):
    """Handle all workflow exceptions."""
    logger.warning(
        f"Atelier Exception: {exc.error_code} - {exc.message}",
        extra={"error_code": exc.error_code, "details": exc.details, "path": request.url.path}
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request body/query validation errors with a flat error list."""
    errors = flatten_errors(exc.errors())

    logger.warning(
        f"Validation error on {request.url.path}",
        extra={"errors": errors}
    )
    return JSONResponse(
        status_code=422,
        content={
            "error": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "details": {"errors": errors},
        },
    )


@app.exception_handler(SQLAlchemyError)
async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    """Handle SQLAlchemy database errors."""
    # Full error goes to the log only
    logger.error(
        f"Database error on {request.url.path}: {str(exc)}",
        exc_info=True
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "DATABASE_ERROR",
            "message": "A database error occurred. Please try again.",
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Catch-all handler for unexpected errors."""
    logger.error(
        f"Unexpected error on {request.url.path}: {str(exc)}",
        exc_info=True
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred. Please try again later.",
        },
    )


# Include API routes
app.include_router(api_v1_router, prefix=settings.API_V1_STR)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Atelier ERP API",
        "version": settings.VERSION,
        "status": "online"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "atelier.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
    )
