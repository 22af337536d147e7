"""Admin bearer tokens.

A token is an opaque random string followed by its issue time in
milliseconds, base36-encoded in the last eight characters. It is not a
signed credential: validity is only "issued less than a TTL ago". The
structure is kept explicit here as ``AdminToken`` instead of being sliced
ad hoc by every route.
"""

from __future__ import annotations

import hmac
import logging
import secrets
from dataclasses import dataclass

from store.config import TOKEN_TTL_SECONDS
from store.errors import AuthError
from store.models import BASE36_ALPHABET, now_ms, to_base36

logger = logging.getLogger(__name__)

TIMESTAMP_CHARS = 8
MIN_TOKEN_LENGTH = 40


@dataclass(frozen=True)
class AdminToken:
    issued_at_ms: int
    opaque: str

    def encode(self) -> str:
        return self.opaque + to_base36(self.issued_at_ms).rjust(TIMESTAMP_CHARS, "0")

    def age_ms(self, now: int | None = None) -> int:
        return (now_ms() if now is None else now) - self.issued_at_ms

    def expired(self, ttl_seconds: int = TOKEN_TTL_SECONDS, now: int | None = None) -> bool:
        return self.age_ms(now) > ttl_seconds * 1000


def issue_token(now: int | None = None) -> AdminToken:
    return AdminToken(issued_at_ms=now_ms() if now is None else now, opaque=secrets.token_hex(32))


def parse_token(text: str | None) -> AdminToken:
    if not text:
        raise AuthError("No token provided")
    if len(text) < MIN_TOKEN_LENGTH:
        raise AuthError("Invalid token format")
    suffix = text[-TIMESTAMP_CHARS:].lower()
    if any(ch not in BASE36_ALPHABET for ch in suffix):
        raise AuthError("Invalid token")
    return AdminToken(issued_at_ms=int(suffix, 36), opaque=text[:-TIMESTAMP_CHARS])


def verify_token(text: str | None, ttl_seconds: int = TOKEN_TTL_SECONDS, now: int | None = None) -> AdminToken:
    """Parse ``text`` and reject it once it is older than ``ttl_seconds``."""
    token = parse_token(text)
    if token.expired(ttl_seconds, now):
        logger.info("Rejected admin token issued %d ms ago", token.age_ms(now))
        raise AuthError("Token expired")
    return token


def bearer_token(authorization: str | None) -> str | None:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[len("Bearer "):].strip() or None


def check_password(candidate: object, expected: str) -> bool:
    if not isinstance(candidate, str) or not candidate:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))
