"""
Decision cache (human decisions that make re-runs converge).

Layout: one file per commit under <home>/commits/, named `<commit>.action`,
holding a single character:
- b  backport
- s  skip
- p  pick (descend into the PR's commits)

The files are meant to be edited by hand; there is no deletion path in the tool.
A record unconditionally overrides score-based logic on later runs.
"""
from __future__ import annotations

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Optional

from backporter.errors import ConfigError
from backporter.settings import BackporterSettings

logger = logging.getLogger(__name__)

ACTION_SUFFIX = ".action"


class Decision(str, Enum):
    BACKPORT = "b"
    SKIP = "s"
    PICK = "p"


class DecisionCache:
    """
    Not safe for concurrent runs: a single invocation owns the directory.
    With read_only=True (dry run) writes are logged and dropped.
    """

    def __init__(self, directory: Path, read_only: bool = False) -> None:
        self.directory = directory
        self.read_only = read_only

    @classmethod
    def open(cls, settings: BackporterSettings) -> "DecisionCache":
        directory = settings.cache_dir
        if settings.dry_run:
            # Nothing is written in a dry run; a missing directory reads as empty.
            if directory.exists() and not os.access(directory, os.R_OK | os.X_OK):
                raise ConfigError(f"Decision cache directory is not readable: {directory}")
            return cls(directory, read_only=True)

        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigError(f"Cannot create decision cache directory {directory}: {e}") from e
        if not os.access(directory, os.R_OK | os.X_OK):
            raise ConfigError(f"Decision cache directory is not readable: {directory}")
        if not os.access(directory, os.W_OK):
            raise ConfigError(f"Decision cache directory is not writable: {directory}")
        return cls(directory)

    def _path(self, commit: str) -> Path:
        return self.directory / f"{commit}{ACTION_SUFFIX}"

    def get(self, commit: str) -> Optional[Decision]:
        path = self._path(commit)
        if not path.is_file():
            return None
        raw = path.read_text(encoding="utf-8").strip()
        try:
            return Decision(raw)
        except ValueError:
            logger.warning("Ignoring unknown decision %r in %s", raw, path)
            return None

    def set(self, commit: str, decision: Decision) -> None:
        if self.read_only:
            logger.info("dry run: not saving decision %s for %s", decision.name, commit)
            return
        self._path(commit).write_text(decision.value + "\n", encoding="utf-8")
        logger.info("saved decision %s for %s", decision.name, commit)
