from __future__ import annotations

import logging


def configure_app_logging(level: str = "INFO") -> None:
    """
    Set the verbosity of the `saddle_authz.*` loggers.

    Notes:
    - Plain stdlib logging; uvicorn (or the embedding application) owns the handlers.
    - `SADDLE_LOG_LEVEL=DEBUG` traces every authorization decision.
    """

    normalized = level.upper()
    logging.getLogger("saddle_authz").setLevel(normalized)
    logging.getLogger("saddle_authz").propagate = True
