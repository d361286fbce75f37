from __future__ import annotations

from types import SimpleNamespace

import pytest

from task_tracker.errors import Unauthenticated
from task_tracker.security import Identity, authenticate, extract_bearer_token


@pytest.mark.parametrize(
    "header, expected",
    [
        ("Bearer abc.def.ghi", "abc.def.ghi"),
        ("Bearer  abc", " abc"),
        ("Bearer ", None),
        ("Bearer", None),
        ("bearer abc", None),
        ("Basic dXNlcjpwYXNz", None),
        ("", None),
        (None, None),
    ],
)
def test_extract_bearer_token(header, expected):
    assert extract_bearer_token(header) == expected


class _FakeRequest:
    """Just enough of starlette's Request for the gate."""

    def __init__(self, authorization=None):
        self.headers = {} if authorization is None else {"Authorization": authorization}
        self.state = SimpleNamespace()
        self.method = "GET"
        self.url = SimpleNamespace(path="/tasks")


def test_authenticate_binds_identity(tokens):
    request = _FakeRequest(f"Bearer {tokens.issue('user-42')}")
    assert authenticate(request, tokens) == Identity(user_id="user-42")
    assert request.state.user_id == "user-42"


def test_authenticate_missing_token_never_calls_verify():
    class ExplodingTokens:
        def verify(self, token):
            raise AssertionError("verify must not be called without a credential")

    request = _FakeRequest()
    with pytest.raises(Unauthenticated) as info:
        authenticate(request, ExplodingTokens())
    assert info.value.to_body() == {"error": "Access denied: missing token"}
    assert not hasattr(request.state, "user_id")


def test_authenticate_expired_token(tokens, wall_clock):
    request = _FakeRequest(f"Bearer {tokens.issue('user-42')}")
    wall_clock.advance(3600)
    with pytest.raises(Unauthenticated) as info:
        authenticate(request, tokens)
    assert info.value.to_body() == {"error": "Invalid or expired token"}
    assert not hasattr(request.state, "user_id")
