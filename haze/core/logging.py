"""Logger setup for script use.

Library modules only call ``logging.getLogger("haze.<module>")``; handlers
are attached once, by whoever drives the run.
"""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def configure_logging(level: int | str = logging.INFO) -> logging.Logger:
    """Attach a single stream handler to the ``haze`` logger.

    Calling this more than once does not duplicate handlers.

    Returns:
        The configured ``haze`` root logger.
    """
    logger = logging.getLogger("haze")
    logger.setLevel(level)
    if not any(getattr(h, "_haze_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._haze_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
