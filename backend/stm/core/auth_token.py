"""Bearer Tokens — HS256 JSON Web Tokens carrying {user, exp}.

Invariants:
    - Token text is a compact JWT signed with HS256; claims are exactly user, exp
    - A token is accepted only if the signature verifies AND now <= exp
    - Only HS256 is accepted on decode ("none" and other algorithms rejected)
    - Every PyJWT failure surfaces as AuthenticationError

Design Decisions:
    - Current time may be passed in so expiry is testable; without it PyJWT
      checks exp against the wall clock itself
    - No server-side session storage: the signature is the only proof needed
"""

from dataclasses import dataclass

import jwt

from stm.core.domain_types import UserId
from stm.core.errors import AuthenticationError

ALGORITHM = "HS256"
DEFAULT_VALIDITY_SECONDS = 24 * 60 * 60


@dataclass(frozen=True)
class TokenClaims:
    """Verified claims."""
    user: UserId
    valid_until: int


def issue_token(
    secret: bytes, user: str, now: int,
    validity_seconds: int = DEFAULT_VALIDITY_SECONDS,
) -> str:
    """Create a token for user valid until now + validity_seconds."""
    claims = {"user": user, "exp": now + validity_seconds}
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def verify_token(secret: bytes, token: str, now: int | None = None) -> TokenClaims:
    """Validate signature and expiry. Raises AuthenticationError."""
    if not token or not token.strip():
        raise AuthenticationError("Missing token")
    try:
        claims = jwt.decode(
            token.strip(),
            secret,
            algorithms=[ALGORITHM],
            options={"require": ["exp", "user"], "verify_exp": now is None},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError as e:
        raise AuthenticationError(f"Invalid token: {e}")

    user = claims["user"]
    valid_until = claims["exp"]
    if not isinstance(user, str) or not user:
        raise AuthenticationError("Invalid token: user claim must be a non-empty string")
    if not isinstance(valid_until, int) or isinstance(valid_until, bool):
        raise AuthenticationError("Invalid token: exp claim must be an integer")
    if now is not None and valid_until < now:
        raise AuthenticationError("Token expired")
    return TokenClaims(user=UserId(user), valid_until=valid_until)


def extract_bearer(header_value: str | None) -> str:
    """Accept 'Bearer <token>' or the raw token."""
    if not header_value:
        raise AuthenticationError("Missing Authorization header")
    value = header_value.strip()
    if value.lower().startswith("bearer "):
        value = value[len("bearer "):].strip()
    return value
