"""
Unit tests for the auth redirect flow and the Supabase gateway.

The supabase client is replaced by a MagicMock returned from the
gateway's client factory.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError as PydanticValidationError
from supabase import AuthError

from braindump.domain.auth import (
    GENERIC_AUTH_ERROR,
    CodeExchange,
    SignUpRequest,
    TokenFragment,
    friendly_auth_error,
    parse_redirect_url,
)
from braindump.infrastructure.auth.supabase_auth import AuthGateway
from braindump.infrastructure.exceptions import AuthProviderError, ValidationError


def auth_error(message: str) -> AuthError:
    error = AuthError.__new__(AuthError)
    error.message = message
    return error


def auth_response(with_session: bool = True):
    user = SimpleNamespace(id="user-1", email="jane@example.com")
    session = None
    if with_session:
        session = SimpleNamespace(
            access_token="access",
            refresh_token="refresh",
            expires_at=1773489600,
            user=user,
        )
    return SimpleNamespace(user=user, session=session)


@pytest.fixture
def supabase_client():
    return MagicMock()


@pytest.fixture
def gateway(supabase_client):
    return AuthGateway(lambda: supabase_client, redirect_url="https://app.example.com/callback")


class TestParseRedirectUrl:

    def test_code_query(self):
        pending = parse_redirect_url("https://app/callback?code=abc", code_verifier="v")
        assert pending == CodeExchange(code="abc", code_verifier="v")

    def test_token_fragment(self):
        pending = parse_redirect_url(
            "https://app/callback#access_token=a&refresh_token=r&type=signup"
        )
        assert pending == TokenFragment(access_token="a", refresh_token="r")

    def test_code_wins_over_fragment(self):
        pending = parse_redirect_url("https://app/callback?code=abc#access_token=a&refresh_token=r")
        assert isinstance(pending, CodeExchange)

    def test_fragment_needs_both_tokens(self):
        assert parse_redirect_url("https://app/callback#access_token=a") is None

    def test_plain_url(self):
        assert parse_redirect_url("https://app/callback") is None


class TestFriendlyAuthError:

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Invalid login credentials", "Invalid email or password."),
            ("Email not confirmed", "Please verify your email address before signing in."),
            ("User already registered", "An account with this email already exists."),
            ("Invalid Refresh Token: Already Used", "Your session has expired. Please sign in again."),
        ],
    )
    def test_known_messages(self, raw, expected):
        assert friendly_auth_error(raw) == expected

    def test_unknown_message(self):
        assert friendly_auth_error("database exploded") == GENERIC_AUTH_ERROR
        assert friendly_auth_error(None) == GENERIC_AUTH_ERROR


class TestSignUpRequest:

    def valid(self, **overrides):
        data = {
            "email": "jane@example.com",
            "password": "secret1",
            "confirm_password": "secret1",
            "accepted_terms": True,
        }
        data.update(overrides)
        return data

    def test_valid(self):
        assert SignUpRequest(**self.valid()).email == "jane@example.com"

    def test_password_mismatch(self):
        with pytest.raises(PydanticValidationError, match="Passwords do not match"):
            SignUpRequest(**self.valid(confirm_password="other1"))

    def test_terms_required(self):
        with pytest.raises(PydanticValidationError, match="terms"):
            SignUpRequest(**self.valid(accepted_terms=False))

    def test_short_password(self):
        with pytest.raises(PydanticValidationError):
            SignUpRequest(**self.valid(password="123", confirm_password="123"))

    def test_invalid_email(self):
        with pytest.raises(PydanticValidationError):
            SignUpRequest(**self.valid(email="not-an-email"))


class TestAuthGateway:

    async def test_sign_up_requires_confirmation(self, gateway, supabase_client):
        supabase_client.auth.sign_up.return_value = auth_response(with_session=False)

        result = await gateway.sign_up("jane@example.com", "secret1", display_name="Jane")

        assert result.email_confirmation_required is True
        credentials = supabase_client.auth.sign_up.call_args.args[0]
        assert credentials["options"]["data"] == {"display_name": "Jane"}
        assert credentials["options"]["email_redirect_to"] == "https://app.example.com/callback"

    async def test_sign_in(self, gateway, supabase_client):
        supabase_client.auth.sign_in_with_password.return_value = auth_response()

        session = await gateway.sign_in_with_password("jane@example.com", "secret1")

        assert session.access_token == "access"
        assert session.user_id == "user-1"
        assert session.expires_at is not None

    async def test_sign_in_error_is_friendly(self, gateway, supabase_client):
        supabase_client.auth.sign_in_with_password.side_effect = auth_error(
            "Invalid login credentials"
        )

        with pytest.raises(AuthProviderError) as exc_info:
            await gateway.sign_in_with_password("jane@example.com", "wrong")

        assert exc_info.value.message == "Invalid email or password."

    async def test_code_redirect_exchanges_code(self, gateway, supabase_client):
        supabase_client.auth.exchange_code_for_session.return_value = auth_response()

        session = await gateway.complete_redirect(
            "https://app.example.com/callback?code=abc", code_verifier="verifier"
        )

        assert session.refresh_token == "refresh"
        supabase_client.auth.exchange_code_for_session.assert_called_once_with({
            "auth_code": "abc",
            "code_verifier": "verifier",
            "redirect_to": "https://app.example.com/callback",
        })
        supabase_client.auth.set_session.assert_not_called()

    async def test_fragment_redirect_sets_session(self, gateway, supabase_client):
        supabase_client.auth.set_session.return_value = auth_response()

        await gateway.complete_redirect(
            "https://app.example.com/callback#access_token=a&refresh_token=r"
        )

        supabase_client.auth.set_session.assert_called_once_with("a", "r")
        supabase_client.auth.exchange_code_for_session.assert_not_called()

    async def test_expired_code(self, gateway, supabase_client):
        supabase_client.auth.exchange_code_for_session.side_effect = auth_error(
            "invalid flow state, flow state not found"
        )

        with pytest.raises(AuthProviderError, match="expired"):
            await gateway.complete(CodeExchange(code="old"))

    async def test_invalid_redirect(self, gateway, supabase_client):
        with pytest.raises(ValidationError):
            await gateway.complete_redirect("https://app.example.com/callback")

        supabase_client.auth.exchange_code_for_session.assert_not_called()

    async def test_each_call_gets_fresh_client(self):
        clients = []

        def factory():
            client = MagicMock()
            client.auth.refresh_session.return_value = auth_response()
            clients.append(client)
            return client

        gateway = AuthGateway(factory)
        await gateway.refresh_session("r1")
        await gateway.refresh_session("r2")

        assert len(clients) == 2
