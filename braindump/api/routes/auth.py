"""
Auth Routes

Email/password sign-up and sign-in, token refresh, and completion of the
verification redirect (``?code=`` or legacy ``#access_token=`` links).
"""

from fastapi import APIRouter, status

from braindump.api.dependencies import AuthGatewayDep
from braindump.domain.auth import (
    RedirectCallbackRequest,
    RefreshSessionRequest,
    SessionEstablished,
    SignInRequest,
    SignUpRequest,
    SignUpResponse,
)


router = APIRouter(prefix="/auth")


@router.post("/signup", response_model=SignUpResponse, status_code=status.HTTP_201_CREATED)
async def sign_up(request: SignUpRequest, gateway: AuthGatewayDep):
    """Password and confirmation must match and the terms must be accepted."""
    return await gateway.sign_up(request.email, request.password, request.display_name)


@router.post("/login", response_model=SessionEstablished)
async def sign_in(request: SignInRequest, gateway: AuthGatewayDep):
    return await gateway.sign_in_with_password(request.email, request.password)


@router.post("/refresh", response_model=SessionEstablished)
async def refresh_session(request: RefreshSessionRequest, gateway: AuthGatewayDep):
    return await gateway.refresh_session(request.refresh_token)


@router.post("/callback", response_model=SessionEstablished)
async def complete_redirect(request: RedirectCallbackRequest, gateway: AuthGatewayDep):
    """
    Finish the e-mail verification redirect.

    Send the full URL the browser landed on; both link shapes end in the
    same session payload.
    """
    return await gateway.complete_redirect(request.url, request.code_verifier)
