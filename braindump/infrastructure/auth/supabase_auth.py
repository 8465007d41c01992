"""
Supabase Auth Gateway

Email/password sign-up and sign-in, token refresh and completion of the
email-verification redirect. Provider errors are turned into readable
messages before they leave this module.

The supabase client keeps the signed-in session in memory, so every
call builds its own client from the factory instead of sharing one
across users.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from supabase import AuthError, Client, create_client
from supabase.lib.client_options import ClientOptions

from braindump.config.settings import Settings
from braindump.domain.auth import (
    CodeExchange,
    PendingSessionCompletion,
    SessionEstablished,
    SignUpResponse,
    TokenFragment,
    friendly_auth_error,
    parse_redirect_url,
)
from braindump.infrastructure.exceptions import AuthProviderError, ValidationError


logger = logging.getLogger(__name__)


ClientFactory = Callable[[], Client]


def supabase_client_factory(settings: Settings) -> ClientFactory:
    """Factory for short-lived, non-persisting Supabase clients."""
    key = settings.supabase_anon_key or settings.supabase_service_role_key

    def factory() -> Client:
        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
            postgrest_client_timeout=10,
        )
        return create_client(settings.supabase_url, key, options)

    return factory


def _to_session(response) -> SessionEstablished:
    session = getattr(response, "session", None)
    if session is None:
        raise AuthProviderError(friendly_auth_error(None))

    user = session.user or getattr(response, "user", None)
    expires_at = None
    if session.expires_at:
        expires_at = datetime.fromtimestamp(session.expires_at, tz=timezone.utc)

    return SessionEstablished(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_at=expires_at,
        user_id=str(user.id) if user else "",
        email=user.email if user else None,
    )


class AuthGateway:
    """
    Thin async facade over supabase auth.

    Args:
        client_factory: Returns a fresh supabase Client per call
        redirect_url: Where verification e-mails send the user back to
    """

    def __init__(self, client_factory: ClientFactory, redirect_url: Optional[str] = None):
        self._client_factory = client_factory
        self._redirect_url = redirect_url

    async def _call(self, operation: str, fn):
        try:
            return await asyncio.to_thread(fn, self._client_factory())
        except AuthError as e:
            logger.info(f"Auth {operation} rejected: {e.message}")
            raise AuthProviderError(friendly_auth_error(e.message), original_error=e)

    async def sign_up(
        self,
        email: str,
        password: str,
        display_name: Optional[str] = None,
    ) -> SignUpResponse:
        options = {"data": {"display_name": display_name} if display_name else {}}
        if self._redirect_url:
            options["email_redirect_to"] = self._redirect_url

        response = await self._call(
            "sign_up",
            lambda client: client.auth.sign_up({
                "email": email,
                "password": password,
                "options": options,
            }),
        )
        if response.user is None:
            raise AuthProviderError(friendly_auth_error(None))

        logger.info(f"Signed up user {response.user.id}")
        return SignUpResponse(
            user_id=str(response.user.id),
            email=response.user.email,
            email_confirmation_required=response.session is None,
        )

    async def sign_in_with_password(self, email: str, password: str) -> SessionEstablished:
        response = await self._call(
            "sign_in",
            lambda client: client.auth.sign_in_with_password({
                "email": email,
                "password": password,
            }),
        )
        return _to_session(response)

    async def refresh_session(self, refresh_token: str) -> SessionEstablished:
        response = await self._call(
            "refresh",
            lambda client: client.auth.refresh_session(refresh_token),
        )
        return _to_session(response)

    async def complete(self, pending: PendingSessionCompletion) -> SessionEstablished:
        """Finish either redirect flow."""
        if isinstance(pending, CodeExchange):
            params = {"auth_code": pending.code}
            if pending.code_verifier:
                params["code_verifier"] = pending.code_verifier
            if self._redirect_url:
                params["redirect_to"] = self._redirect_url
            response = await self._call(
                "code_exchange",
                lambda client: client.auth.exchange_code_for_session(params),
            )
        elif isinstance(pending, TokenFragment):
            response = await self._call(
                "token_fragment",
                lambda client: client.auth.set_session(
                    pending.access_token, pending.refresh_token
                ),
            )
        else:
            raise ValidationError("Unsupported redirect completion")

        session = _to_session(response)
        logger.info(f"Session established for user {session.user_id} via {type(pending).__name__}")
        return session

    async def complete_redirect(
        self,
        url: str,
        code_verifier: Optional[str] = None,
    ) -> SessionEstablished:
        """
        Classify the callback URL and finish the matching flow.

        Raises:
            ValidationError: The URL carries neither a code nor tokens
            AuthProviderError: The provider rejected the code or tokens
        """
        pending = parse_redirect_url(url, code_verifier)
        if pending is None:
            raise ValidationError("Invalid or expired sign-in link")
        return await self.complete(pending)
