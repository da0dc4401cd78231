"""
Logging setup and structured event records.
"""

from __future__ import annotations

import json
import logging
import logging.handlers
from typing import Any

PACKAGE_LOGGER = "issue_bot"


def configure_logging(level_name: str = "INFO", log_file: str | None = None) -> None:
    level = getattr(logging, (level_name or "INFO").upper(), logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO
    pkg = logging.getLogger(PACKAGE_LOGGER)
    pkg.setLevel(level)
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    if root.level and root.level > level:
        root.setLevel(level)
    if log_file:
        handler = logging.handlers.TimedRotatingFileHandler(
            log_file, when="midnight", backupCount=30, encoding="utf-8"
        )
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
        pkg.addHandler(handler)


def log_event(logger: logging.Logger, msg: str, level: int = logging.INFO, **fields: Any) -> None:
    try:
        rec = {"msg": msg, **fields}
        logger.log(level, json.dumps(rec, ensure_ascii=False))
    except (TypeError, ValueError):
        # Fallback to plain log
        logger.log(level, "%s | %s", msg, fields)
