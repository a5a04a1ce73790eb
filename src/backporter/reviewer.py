"""
Interactive reviewer (human-in-the-loop boundary).

Ambiguous commits and PRs are shown to a human together with what matched,
and resolved with a single keystroke:

  b / B   backport            (uppercase: remember the decision)
  s / S   skip                (uppercase: remember the decision)
  p / P   pick per commit     (PRs only; uppercase: remember)
  c       list the PR's commits (PRs only)
  i       commit info          f  file list
  d       diff of matched paths only      D  full diff
  q       abort the whole run

The key handling is a small explicit state machine (`transition`); the
Reviewer drives it, performs the inspection output and writes the decision
cache for remembered skip and pick. A remembered backport is returned
unsaved: the caller stores it once the backport has landed. Waiting for a
key is the only place the tool blocks on a human.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import click
from rich.console import Console
from rich.text import Text

from backporter.decisions import Decision, DecisionCache
from backporter.errors import UserAbort
from backporter.git import CommitMeta, GitHistory
from backporter.render import highlight
from backporter.scoring import Scorer

logger = logging.getLogger(__name__)

KeyReader = Callable[[], str]


class ReviewState(Enum):
    AWAITING_INPUT = "awaiting_input"
    SHOWING_INFO = "showing_info"
    SHOWING_FILES = "showing_files"
    SHOWING_DIFF = "showing_diff"
    SHOWING_COMMITS = "showing_commits"
    RESOLVED = "resolved"
    ABORTED = "aborted"


@dataclass(frozen=True)
class Transition:
    state: ReviewState
    decision: Optional[Decision] = None
    remember: bool = False
    full_diff: bool = False
    invalid: bool = False


_RESOLVING_KEYS = {
    "b": Decision.BACKPORT,
    "s": Decision.SKIP,
    "p": Decision.PICK,
}

_INSPECTION_KEYS = {
    "i": Transition(ReviewState.SHOWING_INFO),
    "f": Transition(ReviewState.SHOWING_FILES),
    "d": Transition(ReviewState.SHOWING_DIFF),
    "D": Transition(ReviewState.SHOWING_DIFF, full_diff=True),
}

_PR_ONLY_KEYS = {"p", "P", "c"}


def transition(key: str, allow_pick: bool) -> Transition:
    """Next state for one keystroke. Inspection states return to AWAITING_INPUT after output."""
    if key in _PR_ONLY_KEYS and not allow_pick:
        return Transition(ReviewState.AWAITING_INPUT, invalid=True)

    if key.lower() in _RESOLVING_KEYS and len(key) == 1:
        return Transition(
            ReviewState.RESOLVED,
            decision=_RESOLVING_KEYS[key.lower()],
            remember=key.isupper(),
        )
    if key in _INSPECTION_KEYS:
        return _INSPECTION_KEYS[key]
    if key == "c":
        return Transition(ReviewState.SHOWING_COMMITS)
    if key == "q":
        return Transition(ReviewState.ABORTED)
    return Transition(ReviewState.AWAITING_INPUT, invalid=True)


@dataclass(frozen=True)
class ResolvedAction:
    decision: Decision
    remember: bool = False


def prompt_for(allow_pick: bool) -> str:
    pr_keys = " (pP)ick, (c)ommits," if allow_pick else ""
    return f"Possible matching: (bB)ackport, (sS)kip,{pr_keys} (i)nfo, (f)iles, (dD)iff, (q)uit? "


_ACTION_LABELS = {
    Decision.BACKPORT: ("backport", "bold green"),
    Decision.SKIP: ("skip", "bold"),
    Decision.PICK: ("pick", ""),
}


class Reviewer:
    def __init__(
        self,
        history: GitHistory,
        scorer: Scorer,
        cache: DecisionCache,
        key_reader: Optional[KeyReader] = None,
        console: Optional[Console] = None,
    ) -> None:
        self.history = history
        self.scorer = scorer
        self.cache = cache
        self.key_reader = key_reader or click.getchar
        self.console = console or Console(highlight=False)

    def show_matches(self, meta: CommitMeta) -> None:
        matches = self.scorer.matches(meta, self.history.name_status(meta.sha))
        patterns = self.scorer.patterns
        self.console.print(Text("Matching:", style="bold"))
        for line in matches.message_lines:
            self.console.print(highlight(line, [patterns.message]))
        if matches.author:
            self.console.print(highlight(matches.author, [patterns.author]))
        for line in matches.paths:
            self.console.print(highlight(line, [patterns.path]))

    def _inspect(self, step: Transition, meta: CommitMeta, target: Optional[str]) -> None:
        patterns = self.scorer.patterns
        self.console.print()
        if step.state is ReviewState.SHOWING_INFO:
            self.console.print(highlight(self.history.show_info(meta.sha), [patterns.message, patterns.author]))
        elif step.state is ReviewState.SHOWING_FILES:
            self.console.print(highlight(self.history.show_stat(meta.sha), [patterns.path]))
        elif step.state is ReviewState.SHOWING_COMMITS:
            self.console.print(Text(self.history.pr_log(target or "HEAD", meta.sha)))
        elif step.state is ReviewState.SHOWING_DIFF:
            if step.full_diff:
                self.history.difftool(meta.sha)
                return
            # A merge lists no paths of its own; diff it against its first parent.
            changed = self.history.first_parent_paths(meta.sha) if meta.is_merge else meta.changed_paths
            paths = self.scorer.matched_paths(changed)
            if paths:
                self.history.difftool(meta.sha, paths)
            else:
                self.console.print("No changed path matches the path patterns.")

    def review(self, meta: CommitMeta, target: Optional[str] = None) -> ResolvedAction:
        """
        Block until the human resolves `meta`. Raises UserAbort on quit.
        `target` is the branch used to list a PR's commits (key c).
        """
        allow_pick = meta.is_merge
        self.show_matches(meta)

        while True:
            self.console.print(prompt_for(allow_pick), end="")
            key = self.key_reader()
            step = transition(key, allow_pick)
            state = step.state

            if state is ReviewState.ABORTED:
                self.console.print()
                logger.warning("user aborted review of %s", meta.sha)
                raise UserAbort(meta.short_sha)

            if state is ReviewState.RESOLVED and step.decision is not None:
                label, style = _ACTION_LABELS[step.decision]
                self.console.print(Text(f"  {label}", style=style))
                if step.remember and step.decision is not Decision.BACKPORT:
                    self.cache.set(meta.sha, step.decision)
                logger.info("review %s -> %s (remember=%s)", meta.sha, step.decision.name, step.remember)
                return ResolvedAction(step.decision, step.remember)

            if step.invalid:
                self.console.print(Text(f"\nWrong option: {key}"))
                continue

            self._inspect(step, meta, target)
