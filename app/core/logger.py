import logging
import os


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    """Named logger with a single stream handler; level defaults to LOG_LEVEL."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "[%(asctime)s] [%(levelname)s] [%(name)s]: %(message)s"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel((level or os.getenv("LOG_LEVEL", "INFO")).upper())
    return logger


def mask_secret(value: str | None) -> str:
    """Render a secret for startup logs without leaking it."""
    if not value:
        return "NOT SET"
    return f"***MASKED*** (length: {len(value)})"
