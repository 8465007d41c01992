"""
API Dependencies

FastAPI dependency injection for authentication and the per-app
services. Everything long-lived (settings, token verifier, gateways,
realtime broker) is built in the application lifespan and read from
``request.app.state``; tests replace it with ``app.dependency_overrides``.
"""

import logging
from typing import Annotated, Optional
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from braindump.config.settings import Settings
from braindump.domain.auth import AuthenticatedUser
from braindump.domain.services import DumpService, QuotaService, SubscriptionService
from braindump.infrastructure.ai.categorization_service import CategorizationService
from braindump.infrastructure.ai.transcription_service import TranscriptionService
from braindump.infrastructure.auth.jwt_verifier import TokenVerifier
from braindump.infrastructure.auth.supabase_auth import AuthGateway
from braindump.infrastructure.db.dependencies import BrainDumpRepoDep, ProfileRepoDep
from braindump.infrastructure.payments import PayPalService
from braindump.infrastructure.realtime.broker import RealtimeBroker


logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


# =============================================================================
# Application State
# =============================================================================

def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_verifier(request: Request) -> TokenVerifier:
    return request.app.state.token_verifier


def get_broker(request: Request) -> RealtimeBroker:
    return request.app.state.broker


def get_categorization_service(request: Request) -> CategorizationService:
    return request.app.state.categorizer


def get_transcription_service(request: Request) -> TranscriptionService:
    return request.app.state.transcriber


def get_paypal_service(request: Request) -> PayPalService:
    return request.app.state.paypal


def get_auth_gateway(request: Request) -> AuthGateway:
    return request.app.state.auth_gateway


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
BrokerDep = Annotated[RealtimeBroker, Depends(get_broker)]
CategorizerDep = Annotated[CategorizationService, Depends(get_categorization_service)]
TranscriberDep = Annotated[TranscriptionService, Depends(get_transcription_service)]
AuthGatewayDep = Annotated[AuthGateway, Depends(get_auth_gateway)]


# =============================================================================
# Authentication
# =============================================================================

async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> AuthenticatedUser:
    """
    Verify the bearer token and return the caller.

    Raises:
        HTTPException 401: token missing, expired, or invalid.
    """
    if not credentials or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return verifier.verify(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
        )
    except jwt.InvalidTokenError as e:
        logger.warning("JWT verification failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or unverifiable token",
        )


async def get_current_user_id(
    user: AuthenticatedUser = Depends(get_current_user),
) -> UUID:
    return user.id


CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]


# =============================================================================
# Services (one per request, sharing the request's session)
# =============================================================================

async def get_quota_service(profiles: ProfileRepoDep, settings: SettingsDep) -> QuotaService:
    return QuotaService(profiles, daily_limit=settings.free_daily_dump_limit)


QuotaServiceDep = Annotated[QuotaService, Depends(get_quota_service)]


async def get_dump_service(
    dumps: BrainDumpRepoDep,
    quota: QuotaServiceDep,
    categorizer: CategorizerDep,
    broker: BrokerDep,
) -> DumpService:
    return DumpService(dumps, quota, categorizer, broker)


async def get_subscription_service(
    profiles: ProfileRepoDep,
    settings: SettingsDep,
    paypal: PayPalService = Depends(get_paypal_service),
) -> SubscriptionService:
    return SubscriptionService(
        profiles,
        paypal,
        daily_limit=settings.free_daily_dump_limit,
        fallback_days=settings.premium_fallback_days,
    )


DumpServiceDep = Annotated[DumpService, Depends(get_dump_service)]
SubscriptionServiceDep = Annotated[SubscriptionService, Depends(get_subscription_service)]


# =============================================================================
# Re-export DB dependencies for a single import source
# Routers should import from api.dependencies, not db.dependencies directly.
# =============================================================================
from braindump.infrastructure.db.dependencies import (  # noqa: E402, F401
    SessionDep,
)
