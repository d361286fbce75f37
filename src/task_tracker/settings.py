from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional

from dotenv import find_dotenv, load_dotenv

DEFAULT_JWT_SECRET = "change-me-in-env"


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PORT: listening port (default 8080)
    - HOST: listening interface (default '0.0.0.0')
    - DATABASE_URL: store location, 'memory://' or 'sqlite:///path/to/db'. Required at startup.
    - JWT_SECRET: token signing secret; falls back to an insecure default when unset
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: root log level (default INFO)
    """

    port: int
    host: str
    database_url: Optional[str]
    jwt_secret: str
    cors_allow_origins: List[str]
    log_level: str
    jwt_algorithm: str = "HS256"
    token_ttl_seconds: int = 3600
    cache_ttl_seconds: int = 600

    @property
    def uses_default_secret(self) -> bool:
        return self.jwt_secret == DEFAULT_JWT_SECRET


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_port(value: str, default: int = 8080) -> int:
    try:
        port = int(value.strip())
    except ValueError:
        return default
    return port if 0 < port < 65536 else default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    database_url = os.getenv("DATABASE_URL", "").strip() or None

    return Settings(
        port=_parse_port(_get_env("PORT", "8080")),
        host=_get_env("HOST", "0.0.0.0").strip(),
        database_url=database_url,
        jwt_secret=_get_env("JWT_SECRET", DEFAULT_JWT_SECRET),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
    )


# PUBLIC_INTERFACE
def load_settings() -> Settings:
    """
    Load a .env file from the working directory (or its parents) into the
    environment, then return settings. Variables already set in the
    environment win over the file.
    """
    load_dotenv(find_dotenv(usecwd=True))
    return get_settings()
