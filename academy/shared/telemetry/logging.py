"""Logging setup for the academy service.

Modules log through ``logging.getLogger(__name__)``; this only installs the
stdout handler and levels once, at startup.
"""

import logging
import sys

from academy.core.config import Settings, get_settings

_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"

# Third-party loggers that are chatty at INFO.
_QUIET_LOGGERS = ("redis", "asyncio", "httpx")


def setup_logging(settings: Settings | None = None) -> None:
    """Log to stdout; academy.* at DEBUG when settings.debug, INFO otherwise.

    Cache hits and misses are logged at DEBUG, so they only show in debug
    mode. SQL echo is governed by database_echo on the engine, not here.
    """
    settings = settings or get_settings()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT))
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(logging.INFO)
    logging.getLogger("academy").setLevel(logging.DEBUG if settings.debug else logging.INFO)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
