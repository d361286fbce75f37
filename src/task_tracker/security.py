from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from .errors import InvalidToken, Unauthenticated
from .tokens import TokenService

logger = logging.getLogger(__name__)

AUTH_HEADER = "Authorization"
BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class Identity:
    """The verified caller of a protected request."""

    user_id: str


def extract_bearer_token(header_value: Optional[str]) -> Optional[str]:
    """
    Return the token from an ``Authorization`` header value, or None.

    The scheme is matched case-sensitively with exactly one space, so
    'bearer abc' and 'Bearer  abc' carry no credential.
    """
    if not header_value or not header_value.startswith(BEARER_PREFIX):
        return None
    token = header_value[len(BEARER_PREFIX):]
    return token or None


# PUBLIC_INTERFACE
def authenticate(request: Request, tokens: TokenService) -> Identity:
    """
    Gate a request on its bearer token.

    On success the subject id is bound to ``request.state.user_id`` and
    returned as an Identity.

    Raises:
        Unauthenticated: the header is absent/malformed, or the token fails
            verification.
    """
    token = extract_bearer_token(request.headers.get(AUTH_HEADER))
    if token is None:
        raise Unauthenticated("Access denied: missing token")

    try:
        user_id = tokens.verify(token)
    except InvalidToken as exc:
        logger.info("Rejected bearer token on %s %s: %s", request.method, request.url.path, exc)
        raise Unauthenticated("Invalid or expired token") from exc

    request.state.user_id = user_id
    return Identity(user_id=user_id)


# PUBLIC_INTERFACE
def require_identity(request: Request) -> Identity:
    """
    FastAPI dependency enforcing bearer authentication with the app's token service.

    Usage:
        @router.get("/tasks")
        def list_tasks(identity: Identity = Depends(require_identity)) ...
    """
    return authenticate(request, request.app.state.tokens)
