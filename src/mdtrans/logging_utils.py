# src/mdtrans/logging_utils.py
"""
Application-wide logging setup.

- Console logs go to stderr so they never mix with the translated output
  or the live status line.
- Optional file log for auditing API calls (latency, retries, bisections).
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(
    level: str = "WARNING",
    log_file: Optional[Path] = None,
) -> None:
    """
    Configure application logging.
    - Logs to stderr (console)
    - Optionally also logs to a file, at DEBUG level
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)

    handlers: list[logging.Handler] = []

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(log_level)
    handlers.append(console)

    root_level = log_level
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)
        root_level = logging.DEBUG

    logging.basicConfig(
        level=root_level,
        handlers=handlers,
        format=LOG_FORMAT,
        force=True,
    )
