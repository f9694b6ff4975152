"""Identity Provider — issues and verifies stateless bearer tokens.

Invariants:
    - The signing secret is process-wide: from settings.token_secret, or a
      random 32-byte secret generated once per process when unset
    - Verification needs no server-side session storage
    - Only a verified user id leaves this module

Design Decisions:
    - Clock injected (defaults to time.time) so expiry is testable
    - The OAuth handshake that precedes issue() lives outside this service
"""

import logging
import secrets
import time
from functools import lru_cache
from typing import Callable

from stm.config import get_settings
from stm.core.auth_token import TokenClaims, extract_bearer, issue_token, verify_token
from stm.core.domain_types import UserId

logger = logging.getLogger(__name__)


class TokenIdentityProvider:
    """Signs and verifies HS256 JWTs carrying {user, exp}."""

    def __init__(
        self,
        secret: bytes,
        validity_hours: int = 24,
        clock: Callable[[], float] = time.time,
    ):
        self._secret = secret
        self._validity_seconds = validity_hours * 60 * 60
        self._clock = clock

    def issue(self, user: str) -> str:
        logger.info(f"Create token for user '{user}'", extra={"user": user})
        return issue_token(
            self._secret, user, int(self._clock()), self._validity_seconds,
        )

    def verify(self, token: str) -> TokenClaims:
        return verify_token(self._secret, token, int(self._clock()))

    def authenticate(self, authorization_header: str | None) -> UserId:
        """Verified user id for an Authorization header, or AuthenticationError."""
        claims = self.verify(extract_bearer(authorization_header))
        logger.debug(f"User '{claims.user}' has valid token", extra={"user": claims.user})
        return claims.user


@lru_cache
def get_identity_provider() -> TokenIdentityProvider:
    settings = get_settings()
    if settings.token_secret:
        secret = settings.token_secret.encode()
    else:
        logger.warning("TOKEN_SECRET not set, using a random per-process secret")
        secret = secrets.token_bytes(32)
    return TokenIdentityProvider(secret, settings.token_validity_hours)
