"""
Process entry point.

Usage:
    python -m task_tracker
    task-tracker

Reads configuration from the environment (and a local .env file), then serves
the API with uvicorn. Exits with status 1 when the store cannot be configured.
"""
from __future__ import annotations

import logging
import sys

import uvicorn
from .errors import ConfigurationError
from .logging_setup import setup_logging
from .main import create_app
from .repositories import open_stores
from .settings import load_settings

logger = logging.getLogger("task_tracker")


def main() -> int:
    settings = load_settings()
    setup_logging(settings.log_level)

    try:
        stores = open_stores(settings.database_url)
    except ConfigurationError as exc:
        logger.critical("Cannot start: %s", exc)
        return 1

    app = create_app(settings, stores=stores)
    logger.info("Serving on %s:%d", settings.host, settings.port)
    logger.info("Use header: Authorization: Bearer <token>")
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
