from __future__ import annotations
import logging
import os
from logging import Logger
from typing import Optional

def configure_logging(level: Optional[str] = None) -> Logger:
    """Configure basic logging once; level from arg or LOG_LEVEL (default INFO)."""
    name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    return logging.getLogger("signquiz")
