"""Unit tests for token signing and TTL parsing."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from config import JWTSettings
from services.token_service import (
    DEFAULT_TTL,
    ExpiredTokenError,
    InvalidTokenError,
    TokenService,
    compute_expiration,
    parse_ttl,
)

NOW = datetime(2025, 3, 10, 12, 0, 0, 123456, tzinfo=timezone.utc)


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(JWTSettings(jwt_secret="unit-secret"))


@pytest.mark.parametrize(
    "value, expected",
    [
        ("30s", timedelta(seconds=30)),
        ("15m", timedelta(minutes=15)),
        ("12h", timedelta(hours=12)),
        ("7d", timedelta(days=7)),
        (" 2d ", timedelta(days=2)),
        ("", DEFAULT_TTL),
        (None, DEFAULT_TTL),
        ("1w", DEFAULT_TTL),
        ("abc", DEFAULT_TTL),
    ],
    ids=["seconds", "minutes", "hours", "days", "padded", "empty", "none",
         "unknown_unit", "garbage"],
)
def test_parse_ttl(value, expected):
    assert parse_ttl(value) == expected


def test_compute_expiration_drops_microseconds():
    assert compute_expiration("1h", NOW) == datetime(
        2025, 3, 10, 13, 0, 0, tzinfo=timezone.utc
    )


class TestIssueVerify:
    def test_roundtrip_claims(self, tokens):
        token = tokens.issue({"sub": "u1", "email": "a@example.com"}, "1h")
        claims = tokens.verify(token)
        assert claims["sub"] == "u1"
        assert claims["email"] == "a@example.com"
        assert claims["iss"] == "code-and-cash"
        assert claims["exp"] - claims["iat"] == 3600

    def test_two_tokens_same_instant_differ(self, tokens):
        a = tokens.issue({"sub": "u1"}, now=NOW)
        b = tokens.issue({"sub": "u1"}, now=NOW)
        assert a != b

    def test_expired(self, tokens):
        token = tokens.issue({"sub": "u1"}, "1s", now=datetime.now(timezone.utc) - timedelta(hours=1))
        with pytest.raises(ExpiredTokenError):
            tokens.verify(token)

    def test_tampered_signature(self, tokens):
        token = tokens.issue({"sub": "u1"})
        other = TokenService(JWTSettings(jwt_secret="another-secret"))
        with pytest.raises(InvalidTokenError):
            other.verify(token)

    def test_wrong_audience(self, tokens):
        forged = jwt.encode(
            {"sub": "u1", "iss": "code-and-cash", "aud": "elsewhere"},
            "unit-secret",
            algorithm="HS256",
        )
        with pytest.raises(InvalidTokenError):
            tokens.verify(forged)

    def test_garbage(self, tokens):
        with pytest.raises(InvalidTokenError):
            tokens.verify("not.a.jwt")


class TestDecodeUnverified:
    def test_reads_expired_token(self, tokens):
        token = tokens.issue({"sub": "u1"}, "1s", now=NOW)
        assert TokenService.decode_unverified(token)["sub"] == "u1"

    def test_garbage_returns_none(self):
        assert TokenService.decode_unverified("garbage") is None
