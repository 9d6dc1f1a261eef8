"""Tests for password hashing and token signing."""
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from jose import jwt

from materix.config import settings
from materix.errors import InvalidToken
from materix.security import (
    ALGORITHM,
    REFRESH,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    new_token_pair,
    subject_id,
    verify_password,
)

USER = SimpleNamespace(id=7, uuid="u-7", name="Alice", email="alice@example.com", avatar_url="", provider="email")


class TestPasswords:

    def test_hash_and_verify(self):
        hashed = hash_password("correct-horse")
        assert hashed != "correct-horse"
        assert verify_password("correct-horse", hashed)
        assert not verify_password("wrong-horse", hashed)

    def test_missing_hash_never_verifies(self):
        assert not verify_password("anything", None)
        assert not verify_password("anything", "")


class TestTokens:

    def test_access_claims(self):
        claims = decode_token(create_access_token(USER))
        assert subject_id(claims) == 7
        assert claims["uuid"] == "u-7"
        assert claims["username"] == "Alice"
        assert claims["iss"] == settings.JWT_ISSUER
        assert claims["aud"] == settings.JWT_AUDIENCE
        assert claims["typ"] == "access"

    def test_refresh_has_no_profile(self):
        claims = decode_token(create_refresh_token(USER), expected_type=REFRESH)
        assert subject_id(claims) == 7
        assert "email" not in claims

    def test_wrong_type_rejected(self):
        with pytest.raises(InvalidToken):
            decode_token(create_refresh_token(USER))

    def test_pair(self):
        pair = new_token_pair(USER)
        assert set(pair) == {"access_token", "refresh_token", "token_type"}

    def _signed(self, **overrides):
        now = datetime.now(timezone.utc)
        claims = {
            "sub": "7", "iat": now, "nbf": now, "exp": now + timedelta(minutes=5),
            "iss": settings.JWT_ISSUER, "aud": settings.JWT_AUDIENCE, "typ": "access",
        }
        claims.update(overrides)
        return claims

    def test_expired(self):
        past = datetime.now(timezone.utc) - timedelta(minutes=10)
        token = jwt.encode(self._signed(exp=past), settings.JWT_SECRET, algorithm=ALGORITHM)
        with pytest.raises(InvalidToken):
            decode_token(token)

    def test_wrong_audience(self):
        token = jwt.encode(self._signed(aud="someone-else"), settings.JWT_SECRET, algorithm=ALGORITHM)
        with pytest.raises(InvalidToken):
            decode_token(token)

    def test_wrong_signature(self):
        token = jwt.encode(self._signed(), "another-secret", algorithm=ALGORITHM)
        with pytest.raises(InvalidToken):
            decode_token(token)

    def test_non_numeric_subject(self):
        with pytest.raises(InvalidToken):
            subject_id({"sub": "abc"})
