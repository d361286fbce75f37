"""Password hashing and verification."""
from __future__ import annotations

from typing import Optional

from pwdlib import PasswordHash


# PUBLIC_INTERFACE
class PasswordHasher:
    """
    One-way salted hashing with constant-time verification.

    Uses pwdlib's recommended configuration (Argon2) unless a custom
    ``PasswordHash`` is supplied.
    """

    def __init__(self, password_hash: Optional[PasswordHash] = None) -> None:
        self._hasher = password_hash or PasswordHash.recommended()

    def hash(self, password: str) -> str:
        return self._hasher.hash(password)

    def verify(self, password: str, hashed: str) -> bool:
        return self._hasher.verify(password, hashed)
