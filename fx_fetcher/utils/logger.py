"""Logging utilities for the fx_fetcher package."""

from __future__ import annotations

import logging
import re
from typing import Optional

_LOGGER: Optional[logging.Logger] = None

_SECRET_QUERY_PATTERN = re.compile(r"(?i)(authkey=)[^&]+")


def get_logger(name: str = "fx_fetcher") -> logging.Logger:
    """Return a module-level logger configured with a simple formatter."""
    global _LOGGER
    if _LOGGER is None:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )
        _LOGGER = logging.getLogger(name)
    return logging.getLogger(name)


def mask_secret(url: str, secret: str | None = None) -> str:
    """Hide API keys embedded in ``url`` before it reaches the logs."""

    masked = _SECRET_QUERY_PATTERN.sub(r"\1***", url)
    if secret:
        masked = masked.replace(secret, "***")
    return masked
