from __future__ import annotations

import logging
import sys

_LOGGER_NAME = "stock_movements"
_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Configura el logger del paquete una sola vez por proceso."""
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level.upper())

    if not any(getattr(h, "_stock_movements", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._stock_movements = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    return logger
