"""
Signed, time-limited identity tokens.

Tokens are HS256 JWTs carrying the subject user id in ``sub`` and an absolute
expiry in ``exp``. They are self-contained: nothing is stored server side and
each call to ``verify`` stands on its own.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import jwt

from .errors import InvalidToken

REQUIRED_TOKEN_CLAIMS = ["sub", "exp"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# PUBLIC_INTERFACE
class TokenService:
    """
    Issue and verify bearer tokens.

    Args:
        secret: Process-wide signing key, loaded once at startup.
        algorithm: JWT signing algorithm.
        ttl: Lifetime of an issued token.
        clock: Returns the current aware UTC datetime. Injectable for tests.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(hours=1),
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if not secret:
            raise ValueError("secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm
        self._ttl_seconds = int(ttl.total_seconds())
        self._clock = clock or _utcnow

    def issue(self, subject_id: str) -> str:
        """Return a token for ``subject_id`` that expires exactly ``ttl`` from now."""
        issued_at = int(self._clock().timestamp())
        payload: Dict[str, Any] = {
            "sub": subject_id,
            "iat": issued_at,
            "exp": issued_at + self._ttl_seconds,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> str:
        """
        Return the subject id embedded in ``token``.

        Raises:
            InvalidToken: bad signature, malformed token or claims, or the
                current time is at or past ``exp``. No leeway is applied.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                # Expiry is checked below against our own clock.
                options={"require": REQUIRED_TOKEN_CLAIMS, "verify_exp": False, "verify_iat": False},
            )
        except jwt.InvalidTokenError as exc:
            raise InvalidToken(str(exc)) from exc

        subject = payload.get("sub")
        expires_at = payload.get("exp")
        if not isinstance(subject, str) or not subject:
            raise InvalidToken("Token subject is missing or malformed")
        if isinstance(expires_at, bool) or not isinstance(expires_at, (int, float)):
            raise InvalidToken("Token expiry is malformed")
        if self._clock().timestamp() >= expires_at:
            raise InvalidToken("Token has expired")
        return subject
