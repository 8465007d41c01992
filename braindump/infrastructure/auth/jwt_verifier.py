"""
Supabase JWT Verification

Access tokens are verified cryptographically, never just decoded:
JWKS (ES256) for asymmetric project keys, HS256 with SUPABASE_JWT_SECRET
for projects still on the legacy shared secret.
"""

import logging
from typing import Optional
from uuid import UUID

import jwt
from jwt import PyJWKClient

from braindump.config.settings import Settings
from braindump.domain.auth import AuthenticatedUser


logger = logging.getLogger(__name__)


AUDIENCE = "authenticated"
REQUIRED_CLAIMS = ["exp", "sub", "iss"]


class TokenVerifier:
    """
    Verifies Supabase access tokens.

    Built once per application; the PyJWKClient caches signing keys and
    refreshes them on rotation.
    """

    def __init__(self, settings: Settings, jwks_client: Optional[PyJWKClient] = None):
        self._secret = settings.supabase_jwt_secret
        self.issuer = f"{settings.supabase_url.rstrip('/')}/auth/v1"
        self._jwks_client = jwks_client or PyJWKClient(
            f"{self.issuer}/.well-known/jwks.json", cache_keys=True
        )

    def _decode_with_jwks(self, token: str) -> dict:
        signing_key = self._jwks_client.get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["ES256"],
            issuer=self.issuer,
            audience=AUDIENCE,
            options={"require": REQUIRED_CLAIMS},
        )

    def _decode_with_secret(self, token: str) -> dict:
        return jwt.decode(
            token,
            self._secret,
            algorithms=["HS256"],
            issuer=self.issuer,
            audience=AUDIENCE,
            options={"require": REQUIRED_CLAIMS},
        )

    def decode(self, token: str) -> dict:
        """
        Verify ``token`` and return its claims.

        JWKS is tried first unless the header already says HS256, in
        which case the key fetch would be pointless.

        Raises:
            jwt.ExpiredSignatureError: Valid signature, expired token
            jwt.InvalidTokenError: Anything else wrong with the token
        """
        header = jwt.get_unverified_header(token)

        if header.get("alg") != "HS256":
            try:
                return self._decode_with_jwks(token)
            except jwt.ExpiredSignatureError:
                raise
            except (jwt.exceptions.PyJWKClientError, jwt.InvalidTokenError) as e:
                logger.debug("JWKS verification failed, trying HS256 fallback: %s", e)

        if not self._secret:
            raise jwt.InvalidTokenError("No HS256 secret configured")
        return self._decode_with_secret(token)

    def verify(self, token: str) -> AuthenticatedUser:
        """
        Raises:
            jwt.InvalidTokenError: Bad token or ``sub`` is not a UUID
        """
        payload = self.decode(token)
        try:
            user_id = UUID(str(payload.get("sub")))
        except ValueError:
            raise jwt.InvalidTokenError("Invalid token: subject is not a user ID")
        return AuthenticatedUser(id=user_id, email=payload.get("email"))
