import pytest

from store.auth import (
    AdminToken,
    bearer_token,
    check_password,
    issue_token,
    parse_token,
    verify_token,
)
from store.errors import AuthError

from conftest import FIXED_MS

HOUR_MS = 60 * 60 * 1000


def test_issued_token_round_trips_its_timestamp():
    token = issue_token(now=FIXED_MS)
    text = token.encode()

    assert len(text) == 64 + 8
    assert parse_token(text) == token


def test_fresh_token_verifies():
    text = issue_token(now=FIXED_MS).encode()
    assert verify_token(text, ttl_seconds=3600, now=FIXED_MS + HOUR_MS - 1).issued_at_ms == FIXED_MS


def test_token_older_than_an_hour_is_rejected():
    text = issue_token(now=FIXED_MS).encode()
    with pytest.raises(AuthError, match="Token expired"):
        verify_token(text, ttl_seconds=3600, now=FIXED_MS + HOUR_MS + 1)


def test_expiry_ignores_the_opaque_part():
    text = AdminToken(issued_at_ms=FIXED_MS - 2 * HOUR_MS, opaque="z" * 40).encode()
    with pytest.raises(AuthError, match="expired"):
        verify_token(text, now=FIXED_MS)


@pytest.mark.parametrize(
    "text, message",
    [(None, "No token provided"), ("", "No token provided"), ("short", "Invalid token format"), ("x" * 40 + "!!!!!!!!", "Invalid token")],
)
def test_malformed_tokens(text, message):
    with pytest.raises(AuthError, match=message):
        parse_token(text)


def test_bearer_token_extraction():
    assert bearer_token("Bearer abc") == "abc"
    assert bearer_token("Basic abc") is None
    assert bearer_token("Bearer ") is None
    assert bearer_token(None) is None


def test_check_password():
    assert check_password("s3cret", "s3cret")
    assert not check_password("nope", "s3cret")
    assert not check_password(None, "s3cret")
