from __future__ import annotations

from datetime import timedelta

import jwt
import pytest

from task_tracker.errors import InvalidToken
from task_tracker.tokens import TokenService

from .conftest import TEST_SECRET


def _claims(token: str) -> dict:
    return jwt.decode(token, options={"verify_signature": False})


class TestIssue:
    def test_round_trip_returns_subject(self, tokens):
        token = tokens.issue("user-123")
        assert tokens.verify(token) == "user-123"

    def test_expiry_is_exactly_one_hour_after_issue(self, tokens, wall_clock):
        claims = _claims(tokens.issue("user-123"))
        assert claims["sub"] == "user-123"
        assert claims["iat"] == int(wall_clock.now.timestamp())
        assert claims["exp"] - claims["iat"] == 3600

    def test_custom_ttl(self, wall_clock):
        service = TokenService(TEST_SECRET, ttl=timedelta(minutes=5), clock=wall_clock)
        claims = _claims(service.issue("u"))
        assert claims["exp"] - claims["iat"] == 300

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError):
            TokenService("")


class TestVerifyExpiry:
    def test_valid_just_before_expiry(self, tokens, wall_clock):
        token = tokens.issue("user-1")
        wall_clock.advance(3599)
        assert tokens.verify(token) == "user-1"

    def test_invalid_exactly_at_expiry(self, tokens, wall_clock):
        token = tokens.issue("user-1")
        wall_clock.advance(3600)
        with pytest.raises(InvalidToken):
            tokens.verify(token)

    def test_invalid_after_expiry(self, tokens, wall_clock):
        token = tokens.issue("user-1")
        wall_clock.advance(7200)
        with pytest.raises(InvalidToken):
            tokens.verify(token)


class TestVerifyRejects:
    def test_wrong_secret(self, tokens, wall_clock):
        other = TokenService("another-secret-that-is-also-long-enough-0", clock=wall_clock)
        with pytest.raises(InvalidToken):
            tokens.verify(other.issue("user-1"))

    def test_tampered_signature(self, tokens):
        token = tokens.issue("user-1")
        head, payload, signature = token.split(".")
        flipped = ("A" if signature[0] != "A" else "B") + signature[1:]
        with pytest.raises(InvalidToken):
            tokens.verify(".".join([head, payload, flipped]))

    def test_tampered_payload(self, tokens, wall_clock):
        token = tokens.issue("user-1")
        forged = jwt.encode(
            {"sub": "user-2", "exp": int(wall_clock.now.timestamp()) + 3600},
            "not-the-real-secret-but-long-enough-32bytes",
            algorithm="HS256",
        )
        head, _, signature = token.split(".")
        with pytest.raises(InvalidToken):
            tokens.verify(".".join([head, forged.split(".")[1], signature]))

    @pytest.mark.parametrize("garbage", ["", "abc", "a.b.c", "Bearer xyz"])
    def test_malformed(self, tokens, garbage):
        with pytest.raises(InvalidToken):
            tokens.verify(garbage)

    def test_missing_expiry_claim(self, tokens):
        token = jwt.encode({"sub": "user-1"}, TEST_SECRET, algorithm="HS256")
        with pytest.raises(InvalidToken):
            tokens.verify(token)

    def test_missing_subject_claim(self, tokens, wall_clock):
        token = jwt.encode({"exp": int(wall_clock.now.timestamp()) + 60}, TEST_SECRET, algorithm="HS256")
        with pytest.raises(InvalidToken):
            tokens.verify(token)

    def test_unsigned_token(self, tokens, wall_clock):
        token = jwt.encode(
            {"sub": "user-1", "exp": int(wall_clock.now.timestamp()) + 60}, None, algorithm="none"
        )
        with pytest.raises(InvalidToken):
            tokens.verify(token)
