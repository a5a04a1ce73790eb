"""
Logging setup for the CLI.

stdout carries the decision report (one line per PR/commit), so log records go
to stderr and, optionally, to a file under the configuration directory. Only
main() calls setup_logging; library modules just use logging.getLogger(__name__).
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
    - Optionally also logs to a file, at least at INFO so decisions stay auditable
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)

    handlers: list[logging.Handler] = []

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(log_level)
    handlers.append(console)

    root_level = log_level
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_level = min(log_level, logging.INFO)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(file_level)
        handlers.append(file_handler)
        root_level = file_level

    logging.basicConfig(
        level=root_level,
        handlers=handlers,
        format=LOG_FORMAT,
        force=True,
    )
