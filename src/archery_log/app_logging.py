"""Logging configuration helpers."""

import logging


def configure_logging(level: str = "INFO") -> None:
    """Attach a single stream handler to the ``archery_log`` logger."""
    logger = logging.getLogger("archery_log")
    logger.setLevel(level.upper())
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s: %(name)s: %(message)s")
    )
    logger.addHandler(handler)
    logger.propagate = False
