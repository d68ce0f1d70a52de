"""
Signed session tokens (PyJWT, HS256).

Claims: iss, aud, sub (user id), email, iat, exp, jti. The random jti keeps
two tokens issued to the same user in the same second distinct, which the
session list and blacklist both rely on (they key on the token string).
"""

from __future__ import annotations

import re
import secrets
from datetime import datetime, timedelta
from typing import Any, Optional

import jwt

from config import JWTSettings
from shared.datetime_utils import utc_now

ALGORITHM = "HS256"
DEFAULT_TTL = timedelta(days=7)

_TTL_PATTERN = re.compile(r"^(\d+)([smhd])$")
_TTL_UNITS = {
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
}


class TokenError(Exception):
    """Base for token verification failures."""


class InvalidTokenError(TokenError):
    """Malformed token, bad signature, or wrong issuer/audience."""


class ExpiredTokenError(TokenError):
    """Signature is valid but the token is past its exp."""


def parse_ttl(ttl_spec: Optional[str]) -> timedelta:
    """Parse "<int><unit>" (unit s, m, h or d). Anything else means 7 days."""
    match = _TTL_PATTERN.match((ttl_spec or "").strip())
    if match is None:
        return DEFAULT_TTL
    value, unit = match.groups()
    return timedelta(**{_TTL_UNITS[unit]: int(value)})


def compute_expiration(
    ttl_spec: Optional[str], now: Optional[datetime] = None
) -> datetime:
    """Absolute UTC expiry for a token issued at *now* with *ttl_spec*."""
    now = now or utc_now()
    # JWT exp has whole-second resolution; keep the session record identical
    return now.replace(microsecond=0) + parse_ttl(ttl_spec)


class TokenService:
    def __init__(self, settings: JWTSettings) -> None:
        self._secret = settings.jwt_secret
        self._issuer = settings.jwt_issuer
        self._audience = settings.jwt_audience
        self.default_ttl = settings.jwt_expires_in

    def issue(
        self,
        payload: dict[str, Any],
        ttl: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> str:
        """Sign *payload* into a token that expires *ttl* after *now*."""
        now = now or utc_now()
        expires_at = compute_expiration(ttl or self.default_ttl, now)
        claims = {
            **payload,
            "iss": self._issuer,
            "aud": self._audience,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
            "jti": secrets.token_hex(16),
        }
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> dict[str, Any]:
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                audience=self._audience,
                issuer=self._issuer,
            )
        except jwt.ExpiredSignatureError as e:
            raise ExpiredTokenError(str(e)) from e
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(str(e)) from e

    @staticmethod
    def decode_unverified(token: str) -> Optional[dict[str, Any]]:
        """Claims without signature or expiry checks; None if not a JWT."""
        try:
            return jwt.decode(
                token,
                options={"verify_signature": False, "verify_exp": False},
                algorithms=[ALGORITHM],
            )
        except jwt.InvalidTokenError:
            return None
