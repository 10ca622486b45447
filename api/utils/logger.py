"""
Logging setup.

Every module calls `get_logger(__name__)`. Handlers are attached once to the
`api` root so uvicorn, Celery and pytest all share the same format.
"""

import logging
import sys

from api.config.settings import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_configured = False


def _configure() -> None:
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger("api")
    root.setLevel(settings.LOG_LEVEL.upper())
    root.addHandler(handler)
    root.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the `api` namespace."""
    _configure()
    if name != "api" and not name.startswith("api."):
        name = f"api.{name}"
    return logging.getLogger(name)


logger = get_logger("api")
