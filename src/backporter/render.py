"""
Terminal rendering of decisions (deterministic, no side effects besides printing).

One line per PR or commit, prefixed with a marker:
  [S] skip   [X] backport   [?] ask   [B] already backported   [P] pick per commit
Member commits of a PR are indented by two spaces. Commit text is always
wrapped in rich Text objects so brackets in subjects are never read as markup.
"""
from __future__ import annotations

from typing import Dict, Iterable, Optional, Tuple

from rich.console import Console
from rich.text import Text

from backporter.classifier import Outcome
from backporter.git import CommitMeta
from backporter.patterns import Patterns

MARKERS: Dict[Outcome, Tuple[str, str]] = {
    Outcome.SKIP: ("[S]", "dim"),
    Outcome.BACKPORT: ("[X]", "green"),
    Outcome.ASK: ("[?]", "dim green"),
    Outcome.DONE: ("[B]", "yellow"),
    Outcome.PICK: ("[P]", "dim green"),
}

MATCH_STYLE = "bold red"


def merge_subject(meta: CommitMeta) -> str:
    """First paragraph of a merge body (usually the PR title), comma-joined; subject as fallback."""
    first_paragraph = []
    for line in meta.body.replace("\r", "").splitlines():
        if not line.strip():
            if first_paragraph:
                break
            continue
        first_paragraph.append(" ".join(line.split()))
    return ",".join(first_paragraph) or meta.subject


def format_commit(meta: CommitMeta) -> str:
    subject = merge_subject(meta) if meta.is_merge else meta.subject
    return f"{meta.short_sha} - {meta.relative_date} - {meta.author_name} - {subject}"


def highlight(text: str, patterns: Iterable[Patterns]) -> Text:
    """Like `grep --color`: every match of every pattern list styled in place."""
    out = Text(text)
    for group in patterns:
        for p in group:
            out.highlight_regex(p, style=MATCH_STYLE)
    return out


class Renderer:
    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console(highlight=False)

    def commit_line(self, meta: CommitMeta, outcome: Outcome, extra: str = "") -> Text:
        marker, style = MARKERS[outcome]
        indent = "" if meta.is_merge else "  "
        line = Text(f"{indent}{marker} - {format_commit(meta)}", style=style)
        if extra:
            line.append(f" - {extra}", style=style)
        self.console.print(line)
        return line

    def text(self, message: str, style: Optional[str] = None) -> None:
        self.console.print(Text(message, style=style or ""))
