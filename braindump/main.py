"""
BrainDump - FastAPI Application

Main entry point for the backend API: auth, profiles, quota, brain dump
capture with realtime sync, PayPal subscriptions and voice notes.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from braindump import __version__
from braindump.config.settings import Settings, get_settings
from braindump.infrastructure.ai.categorization_service import CategorizationService
from braindump.infrastructure.ai.transcription_service import TranscriptionService
from braindump.infrastructure.auth.jwt_verifier import TokenVerifier
from braindump.infrastructure.auth.supabase_auth import AuthGateway, supabase_client_factory
from braindump.infrastructure.db.database import DatabaseManager, close_db, init_db
from braindump.infrastructure.exceptions import (
    AIServiceError,
    AuthProviderError,
    BrainDumpError,
    DatabaseError,
    NotFoundError,
    QuotaExceededError,
    ValidationError,
)
from braindump.infrastructure.payments import PayPalService
from braindump.infrastructure.realtime.broker import RealtimeBroker

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def build_state(app: FastAPI, settings: Settings) -> None:
    """
    Construct the per-application collaborators.

    Nothing here opens a connection; the database engine is created on
    first use.
    """
    app.state.db = DatabaseManager(settings)
    app.state.token_verifier = TokenVerifier(settings)
    app.state.broker = RealtimeBroker()
    app.state.categorizer = CategorizationService(settings)
    app.state.transcriber = TranscriptionService(settings)
    app.state.paypal = PayPalService(settings)
    app.state.auth_gateway = AuthGateway(
        supabase_client_factory(settings),
        redirect_url=settings.frontend_url,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    settings: Settings = app.state.settings
    logger.info(f"BrainDump Backend starting in {settings.environment} mode...")

    build_state(app, settings)

    if not settings.llm_api_key:
        logger.warning(f"No API key for LLM provider '{settings.llm_provider}'; dumps will be saved as notes")
    if not settings.paypal_configured:
        logger.warning("PayPal credentials not configured; subscription endpoints will fail")

    database_configured = bool(settings.database_url or settings.supabase_password)
    if database_configured:
        try:
            await init_db(app.state.db)
        except Exception as e:
            logger.warning(f"Database connection check failed at startup: {e}")

    yield

    if database_configured:
        try:
            await close_db(app.state.db)
        except Exception as e:
            logger.warning(f"Database shutdown error: {e}")

    logger.info("BrainDump Backend shutting down...")


# ============================================================================
# Exception Handlers
# ============================================================================

def _error_response(status_code: int, exc: BrainDumpError) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=exc.to_dict())


async def validation_error_handler(request: Request, exc: ValidationError):
    return _error_response(400, exc)


async def not_found_error_handler(request: Request, exc: NotFoundError):
    return _error_response(404, exc)


async def quota_exceeded_handler(request: Request, exc: QuotaExceededError):
    return _error_response(429, exc)


async def auth_provider_error_handler(request: Request, exc: AuthProviderError):
    return _error_response(401, exc)


async def ai_service_error_handler(request: Request, exc: AIServiceError):
    logger.error(f"AI service error: {exc.message}")
    return _error_response(502, exc)


async def database_driver_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Unhandled database error: {exc}")
    error = DatabaseError("Database operation failed", original_error=exc)
    return _error_response(500, error)


async def general_error_handler(request: Request, exc: BrainDumpError):
    """Handle all other application errors (billing, configuration, storage)."""
    logger.error(f"{exc.__class__.__name__}: {exc.message}")
    return _error_response(500, exc)


# ============================================================================
# Application Factory
# ============================================================================

def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    app_settings = app_settings or settings

    app = FastAPI(
        title="BrainDump",
        description="Capture thoughts, let AI sort them, sync them everywhere",
        version=__version__,
        lifespan=lifespan,
        debug=app_settings.debug,
    )
    app.state.settings = app_settings

    # CORS configuration from Settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(NotFoundError, not_found_error_handler)
    app.add_exception_handler(QuotaExceededError, quota_exceeded_handler)
    app.add_exception_handler(AuthProviderError, auth_provider_error_handler)
    app.add_exception_handler(AIServiceError, ai_service_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_driver_error_handler)
    app.add_exception_handler(BrainDumpError, general_error_handler)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "braindump"}

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": "BrainDump API",
            "version": __version__,
            "docs": "/docs",
        }

    from braindump.api.routes import (
        admin,
        auth,
        categorize,
        dumps,
        profiles,
        quota,
        subscriptions,
        voice,
    )

    app.include_router(auth.router, prefix="/api", tags=["Auth"])
    app.include_router(profiles.router, prefix="/api", tags=["Profiles"])
    app.include_router(quota.router, prefix="/api", tags=["Quota"])
    app.include_router(categorize.router, prefix="/api", tags=["Categorization"])
    app.include_router(dumps.router, prefix="/api", tags=["Brain Dumps"])
    app.include_router(subscriptions.router, prefix="/api", tags=["Subscriptions"])
    app.include_router(voice.router, prefix="/api", tags=["Voice"])
    app.include_router(admin.router)

    return app


app = create_app()
