"""
Pattern store.

Three newline-delimited regex lists live in the configuration directory:
- commit_message_patterns.txt  matched against the full commit message
- dir_patterns.txt             matched against each changed path
- author_emails.txt            matched against the author email

They are loaded once at startup into an immutable PatternSet and never
mutated afterwards. Blank lines are ignored, so an empty file means the
signal always rates 0.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Tuple

from backporter.errors import ConfigError
from backporter.settings import BackporterSettings

Patterns = Tuple["re.Pattern[str]", ...]


def _combine(patterns: Patterns) -> Optional["re.Pattern[str]"]:
    # One alternation so overlapping patterns do not count the same text twice.
    if not patterns:
        return None
    return re.compile("|".join(f"(?:{p.pattern})" for p in patterns))


def count_matches(patterns: Patterns, lines: Iterable[str]) -> int:
    """
    Number of non-empty, non-overlapping matches over all lines
    (what `grep -o -f patterns | wc -l` reports).
    """
    combined = _combine(patterns)
    if combined is None:
        return 0
    return sum(1 for line in lines for m in combined.finditer(line) if m.group(0))


def matches_any(patterns: Patterns, line: str) -> bool:
    return any(p.search(line) for p in patterns)


def read_pattern_file(path: Path) -> Patterns:
    if not path.is_file():
        raise ConfigError(f"Pattern file not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read pattern file {path}: {e}") from e

    compiled = []
    for lineno, raw in enumerate(text.splitlines(), start=1):
        pattern = raw.rstrip("\r\n")
        if not pattern.strip():
            continue
        try:
            compiled.append(re.compile(pattern))
        except re.error as e:
            raise ConfigError(f"Invalid pattern in {path}:{lineno}: {pattern!r} ({e})") from e
    return tuple(compiled)


@dataclass(frozen=True)
class PatternSet:
    message: Patterns = ()
    path: Patterns = ()
    author: Patterns = ()

    @classmethod
    def from_strings(
        cls,
        message: Iterable[str] = (),
        path: Iterable[str] = (),
        author: Iterable[str] = (),
    ) -> "PatternSet":
        return cls(
            message=tuple(re.compile(p) for p in message),
            path=tuple(re.compile(p) for p in path),
            author=tuple(re.compile(p) for p in author),
        )


def load_patterns(settings: BackporterSettings) -> PatternSet:
    return PatternSet(
        message=read_pattern_file(settings.message_patterns_file),
        path=read_pattern_file(settings.path_patterns_file),
        author=read_pattern_file(settings.author_patterns_file),
    )
