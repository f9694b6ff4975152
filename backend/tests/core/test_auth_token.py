"""Bearer Tokens — tests for issuing and verifying signed claims.

Tests cover:
    - a fresh token is an HS256 JWT with exactly the user and exp claims
    - forged user, forged expiry and foreign secret are rejected
    - expiry is inclusive of exp when the clock is passed in
    - malformed input never raises anything but AuthenticationError
"""

import jwt
import pytest

from stm.core.auth_token import extract_bearer, issue_token, verify_token
from stm.core.errors import AuthenticationError

SECRET = b"unit-test-secret-of-thirty-two-bytes!!"
OTHER_SECRET = b"another-secret-of-thirty-two-bytes!!"
NOW = 1_700_000_000


def _claims(token: str) -> dict:
    return jwt.decode(token, options={"verify_signature": False})


def test_issued_token_verifies():
    token = issue_token(SECRET, "alice", NOW, validity_seconds=60)
    claims = verify_token(SECRET, token, NOW + 30)
    assert claims.user == "alice"
    assert claims.valid_until == NOW + 60


def test_token_is_hs256_jwt_with_user_and_exp():
    token = issue_token(SECRET, "alice", NOW, validity_seconds=60)
    assert token.count(".") == 2
    assert jwt.get_unverified_header(token)["alg"] == "HS256"
    assert _claims(token) == {"user": "alice", "exp": NOW + 60}


def test_token_valid_at_expiry_instant():
    token = issue_token(SECRET, "alice", NOW, validity_seconds=60)
    assert verify_token(SECRET, token, NOW + 60).user == "alice"


def test_expired_token_is_rejected():
    token = issue_token(SECRET, "alice", NOW, validity_seconds=60)
    with pytest.raises(AuthenticationError, match="expired"):
        verify_token(SECRET, token, NOW + 61)


def test_expiry_checked_against_wall_clock_when_no_time_given():
    # NOW is in the past, so a 60 second token is long expired
    token = issue_token(SECRET, "alice", NOW, validity_seconds=60)
    with pytest.raises(AuthenticationError, match="expired"):
        verify_token(SECRET, token)


def test_forged_user_is_rejected():
    forged = jwt.encode({"user": "mallory", "exp": NOW + 60}, OTHER_SECRET, algorithm="HS256")
    with pytest.raises(AuthenticationError, match="Invalid token"):
        verify_token(SECRET, forged, NOW)


def test_tampered_payload_is_rejected():
    header, _, signature = issue_token(SECRET, "alice", NOW, validity_seconds=60).split(".")
    _, payload, _ = jwt.encode(
        {"user": "alice", "exp": NOW + 3600}, OTHER_SECRET, algorithm="HS256",
    ).split(".")
    with pytest.raises(AuthenticationError, match="Invalid token"):
        verify_token(SECRET, f"{header}.{payload}.{signature}", NOW)


def test_token_from_other_secret_is_rejected():
    token = issue_token(OTHER_SECRET, "alice", NOW)
    with pytest.raises(AuthenticationError):
        verify_token(SECRET, token, NOW)


def test_unsigned_token_is_rejected():
    token = jwt.encode({"user": "alice", "exp": NOW + 60}, None, algorithm="none")
    with pytest.raises(AuthenticationError):
        verify_token(SECRET, token, NOW)


@pytest.mark.parametrize("claims", [
    {"exp": NOW + 60},
    {"user": "alice"},
    {"user": "", "exp": NOW + 60},
    {"user": 42, "exp": NOW + 60},
])
def test_missing_or_invalid_claims_are_rejected(claims):
    token = jwt.encode(claims, SECRET, algorithm="HS256")
    with pytest.raises(AuthenticationError):
        verify_token(SECRET, token, NOW)


@pytest.mark.parametrize("token", ["", "   ", "not-a-jwt", "a.b.c", "bm90IGEgdG9rZW4="])
def test_malformed_tokens_are_authentication_errors(token):
    with pytest.raises(AuthenticationError):
        verify_token(SECRET, token, NOW)


def test_extract_bearer_strips_scheme():
    assert extract_bearer("Bearer abc") == "abc"


def test_extract_bearer_accepts_raw_token():
    assert extract_bearer("abc") == "abc"


def test_extract_bearer_requires_header():
    with pytest.raises(AuthenticationError):
        extract_bearer(None)
