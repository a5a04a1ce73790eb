"""
Runtime configuration contract.

Purpose:
- Declare every setting the tool reads in one validated model.
- Reject bad values (unknown strategy, negative threshold) at startup, before
  any commit is classified or cherry-picked.

Sources, lowest to highest precedence:
- defaults declared on the model
- environment variables (a local .env file is loaded first via python-dotenv)
- explicit CLI flags, applied through `with_overrides`
"""
from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from backporter.errors import ConfigError

COMMIT_MESSAGE_PATTERNS_FILE = "commit_message_patterns.txt"
DIR_PATTERNS_FILE = "dir_patterns.txt"
AUTHOR_EMAILS_FILE = "author_emails.txt"
COMMIT_CACHE_DIR = "commits"
LOG_FILE = "backporter.log"

# Environment variable -> model field
ENV_FIELDS = {
    "BACKPORTER_HOME": "home",
    "BACKPORTER_STRATEGY": "strategy",
    "BACKPORTER_MIXED_THRESHOLD": "mixed_threshold",
    "BACKPORTER_DRY_RUN": "dry_run",
    "BACKPORTER_SIGN": "sign",
    "LOG_LEVEL": "log_level",
}


class Strategy(str, Enum):
    """Granularity at which merge commits may be backported."""

    PR = "PR"
    MIXED = "MIXED"
    COMMITS = "COMMITS"


class BackporterSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    home: Path = Field(
        Path("~/.backporter"),
        validate_default=True,
        description="Directory holding the pattern files and the decision cache.",
    )

    strategy: Strategy = Field(
        Strategy.COMMITS,
        description="PR: whole merge commits may be backported. COMMITS: always per commit. "
        "MIXED: per commit for PRs smaller than mixed_threshold.",
    )

    mixed_threshold: int = Field(0, ge=0, description="Member count below which MIXED descends per commit.")

    # Dry run suppresses cherry-picks and decision cache writes, but still prints decisions.
    dry_run: bool = Field(False, description="Print decisions without mutating anything.")

    sign: bool = Field(True, description="Pass -S (GPG signature) to cherry-pick and commit.")

    log_level: str = Field("WARNING", description="Logging level name.")

    @field_validator("home", mode="before")
    @classmethod
    def _expand_home(cls, value: Any) -> Path:
        return Path(str(value)).expanduser()

    @field_validator("strategy", mode="before")
    @classmethod
    def _upper_strategy(cls, value: Any) -> Any:
        return value.strip().upper() if isinstance(value, str) else value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.strip().upper()
        if value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level {value!r}")
        return value

    @property
    def message_patterns_file(self) -> Path:
        return self.home / COMMIT_MESSAGE_PATTERNS_FILE

    @property
    def path_patterns_file(self) -> Path:
        return self.home / DIR_PATTERNS_FILE

    @property
    def author_patterns_file(self) -> Path:
        return self.home / AUTHOR_EMAILS_FILE

    @property
    def cache_dir(self) -> Path:
        return self.home / COMMIT_CACHE_DIR

    @property
    def log_file(self) -> Path:
        return self.home / LOG_FILE

    @classmethod
    def from_env(cls, env: Optional[Dict[str, str]] = None, dotenv: bool = True) -> "BackporterSettings":
        """
        Build settings from the environment.
        `env` defaults to os.environ; a .env file in the working directory is loaded first.
        """
        if env is None:
            if dotenv:
                load_dotenv()
            env = dict(os.environ)

        values: Dict[str, Any] = {}
        for var, field_name in ENV_FIELDS.items():
            raw = env.get(var)
            if raw is not None and raw.strip() != "":
                values[field_name] = raw.strip()
        return cls.parse(values)

    @classmethod
    def parse(cls, values: Dict[str, Any]) -> "BackporterSettings":
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration:\n{e}") from e

    def with_overrides(self, **overrides: Any) -> "BackporterSettings":
        """Return a new validated copy; None values leave the current setting untouched."""
        updates = {k: v for k, v in overrides.items() if v is not None}
        if not updates:
            return self
        return self.parse({**self.model_dump(), **updates})
