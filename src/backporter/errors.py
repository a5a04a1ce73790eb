"""
Exception taxonomy.

Every failure the CLI can report maps to one of these classes, and each class
maps to one exit code in main.py. Scoring and classification never raise on
well-formed input, so there is no classification error type.
"""
from __future__ import annotations

from typing import List, Optional


class BackporterError(RuntimeError):
    pass


# Missing pattern files, unusable cache directory, invalid settings.
# Raised before any commit is touched.
class ConfigError(BackporterError):
    pass


class GitError(BackporterError):
    def __init__(
        self,
        message: str,
        cmd: Optional[List[str]] = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.cmd = cmd or []
        self.stdout = stdout
        self.stderr = stderr


class BackportError(BackporterError):
    """
    A backport could not be completed after the merge-tool handoff.
    Non-retryable: the working tree is left as the merge tool left it.
    """

    def __init__(self, commit: str, reason: str) -> None:
        super().__init__(f"Backport of {commit} aborted: {reason}")
        self.commit = commit
        self.reason = reason


class UserAbort(BackporterError):
    def __init__(self, commit: str) -> None:
        super().__init__(f"User aborted: {commit}")
        self.commit = commit
