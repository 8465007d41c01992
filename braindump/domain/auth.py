"""
Authentication Domain Models

Sign-up/sign-in DTOs, the two redirect-completion shapes used after
email verification, and the table that turns raw provider errors into
messages a user can act on.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union
from urllib.parse import parse_qs, urlparse
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator


@dataclass(frozen=True)
class AuthenticatedUser:
    """Identity extracted from a verified access token."""
    id: UUID
    email: Optional[str] = None


# =============================================================================
# Redirect Completion
# =============================================================================

@dataclass(frozen=True)
class CodeExchange:
    """PKCE flow: ``/callback?code=...``."""
    code: str
    code_verifier: Optional[str] = None


@dataclass(frozen=True)
class TokenFragment:
    """Legacy flow: ``/callback#access_token=...&refresh_token=...``."""
    access_token: str
    refresh_token: str


PendingSessionCompletion = Union[CodeExchange, TokenFragment]


def parse_redirect_url(
    url: str,
    code_verifier: Optional[str] = None,
) -> Optional[PendingSessionCompletion]:
    """
    Classify an auth redirect URL.

    The ``code`` query parameter wins over a token fragment. Returns None
    when the URL carries neither.
    """
    parsed = urlparse(url)

    code = parse_qs(parsed.query).get("code", [None])[0]
    if code:
        return CodeExchange(code=code, code_verifier=code_verifier)

    fragment = parse_qs(parsed.fragment)
    access_token = fragment.get("access_token", [None])[0]
    refresh_token = fragment.get("refresh_token", [None])[0]
    if access_token and refresh_token:
        return TokenFragment(access_token=access_token, refresh_token=refresh_token)

    return None


class SessionEstablished(BaseModel):
    """Both redirect flows and password sign-in end here."""
    access_token: str
    refresh_token: str
    expires_at: Optional[datetime] = None
    user_id: str
    email: Optional[str] = None


# =============================================================================
# Provider Error Messages
# =============================================================================

GENERIC_AUTH_ERROR = "Something went wrong. Please try again."

AUTH_ERROR_MESSAGES = {
    "invalid login credentials": "Invalid email or password.",
    "email not confirmed": "Please verify your email address before signing in.",
    "user already registered": "An account with this email already exists.",
    "password should be at least": "Password must be at least 6 characters long.",
    "unable to validate email address": "Please enter a valid email address.",
    "email rate limit exceeded": "Too many attempts. Please wait a moment and try again.",
    "for security purposes, you can only request this": "Too many attempts. Please wait a moment and try again.",
    "invalid refresh token": "Your session has expired. Please sign in again.",
    "refresh token not found": "Your session has expired. Please sign in again.",
    "code verifier": "This sign-in link has expired. Please request a new one.",
    "flow state not found": "This sign-in link has expired. Please request a new one.",
}


def friendly_auth_error(raw_message: Optional[str]) -> str:
    """Map a raw provider message to a readable one."""
    lowered = (raw_message or "").lower()
    for needle, message in AUTH_ERROR_MESSAGES.items():
        if needle in lowered:
            return message
    return GENERIC_AUTH_ERROR


# =============================================================================
# Request/Response DTOs
# =============================================================================

class SignUpRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=6, max_length=128)
    confirm_password: str
    display_name: Optional[str] = Field(default=None, max_length=100)
    accepted_terms: bool = False

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip()
        if "@" not in v:
            raise ValueError("Please enter a valid email address")
        return v

    @model_validator(mode="after")
    def validate_form(self) -> "SignUpRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        if not self.accepted_terms:
            raise ValueError("You must accept the terms and conditions")
        return self


class SignInRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1, max_length=128)


class RefreshSessionRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class RedirectCallbackRequest(BaseModel):
    url: str = Field(..., min_length=1, max_length=4096)
    code_verifier: Optional[str] = None


class SignUpResponse(BaseModel):
    user_id: str
    email: Optional[str] = None
    email_confirmation_required: bool
