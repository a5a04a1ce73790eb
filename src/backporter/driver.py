"""
Backport driver: walks the merge commits of a revision range and acts on
each classification.

For every PR (oldest first):
- SKIP / DONE      report only
- BACKPORT         backport the whole PR, flattened onto its first parent
- ASK              let the reviewer choose: whole PR, skip, or per commit
- PICK             classify and handle each member commit on its own

If per-commit handling applied nothing, a `skip` decision is saved for the PR
so the next run does not descend into it again.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from backporter.classifier import Classifier, CommitVerdict, Outcome, PRVerdict
from backporter.decisions import Decision, DecisionCache
from backporter.executor import BackportExecutor
from backporter.git import GitHistory
from backporter.render import Renderer
from backporter.reviewer import Reviewer

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    decisions: List[Tuple[str, Outcome]] = field(default_factory=list)
    applied: List[str] = field(default_factory=list)
    saved_skips: List[str] = field(default_factory=list)
    # Applied, but only after the merge tool resolved conflicts.
    conflicted: List[str] = field(default_factory=list)

    def outcome_of(self, commit: str) -> Optional[Outcome]:
        for sha, outcome in self.decisions:
            if sha == commit:
                return outcome
        return None


class BackportDriver:
    def __init__(
        self,
        history: GitHistory,
        classifier: Classifier,
        reviewer: Reviewer,
        executor: BackportExecutor,
        cache: DecisionCache,
        renderer: Renderer,
        dry_run: bool = False,
    ) -> None:
        self.history = history
        self.classifier = classifier
        self.reviewer = reviewer
        self.executor = executor
        self.cache = cache
        self.renderer = renderer
        self.dry_run = dry_run

    def run(self, start: str, end: str) -> RunReport:
        report = RunReport()
        for pr in self.history.list_merge_commits(f"{start}...{end}"):
            verdict = self.process_pr(end, pr, report)
            if verdict is not None:
                self.process_members(pr, verdict, report)
        return report

    def _apply(self, commit: str, report: RunReport, remember: bool = False) -> None:
        result = self.executor.apply(self.history.commit_meta(commit))
        report.applied.append(commit)
        if result.conflicted:
            report.conflicted.append(commit)
        # A remembered backport is stored only once it has landed.
        if remember:
            self.cache.set(commit, Decision.BACKPORT)

    def _show_remembered(self, decision: Optional[Decision]) -> None:
        if decision is not None:
            self.renderer.text(f"  -  Action_from_file: [{decision.value}]", style="dim")

    def process_pr(self, target: str, pr: str, report: RunReport) -> Optional[PRVerdict]:
        """Handle one merge commit; returns the verdict when its members must be handled one by one."""
        verdict = self.classifier.classify_pr(target, pr)
        meta = self.history.commit_meta(pr)
        report.decisions.append((pr, verdict.outcome))

        if verdict.outcome is Outcome.SKIP and verdict.decision is Decision.SKIP:
            extra = "<from_file>"
        else:
            extra = f"[commits: {verdict.count}] - [score: {verdict.score_sum}]"
        self.renderer.commit_line(meta, verdict.outcome, extra)

        if verdict.outcome is Outcome.BACKPORT:
            self._apply(pr, report)
        elif verdict.outcome is Outcome.ASK:
            if self.dry_run:
                self._show_remembered(verdict.decision)
                return None
            action = self.reviewer.review(meta, target=target)
            if action.decision is Decision.BACKPORT:
                self._apply(pr, report, remember=action.remember)
            elif action.decision is Decision.PICK:
                return verdict
        elif verdict.outcome is Outcome.PICK:
            return verdict
        return None

    def process_commit(self, commit: str, report: RunReport) -> bool:
        """Handle one non-merge commit; True if it is (now) applied on the branch."""
        verdict: CommitVerdict = self.classifier.classify_commit(commit)
        meta = self.history.commit_meta(commit)
        report.decisions.append((commit, verdict.outcome))

        extra = str(verdict.rates)
        if verdict.from_cache:
            extra += " - <from_file>"

        if verdict.outcome is Outcome.SKIP:
            self.renderer.commit_line(meta, verdict.outcome, extra)
            return False
        if verdict.outcome is Outcome.DONE:
            self.renderer.commit_line(meta, verdict.outcome)
            return True
        if verdict.outcome is Outcome.BACKPORT:
            self.renderer.commit_line(meta, verdict.outcome, extra)
            self._apply(commit, report)
            return True

        self.renderer.commit_line(meta, verdict.outcome, extra)
        if self.dry_run:
            self._show_remembered(verdict.decision)
            return False
        action = self.reviewer.review(meta)
        if action.decision is Decision.BACKPORT:
            self._apply(commit, report, remember=action.remember)
            return True
        return False

    def process_members(self, pr: str, verdict: PRVerdict, report: RunReport) -> None:
        any_applied = False
        for commit in verdict.members:
            if self.process_commit(commit, report):
                any_applied = True

        if not any_applied and not self.dry_run:
            self.cache.set(pr, Decision.SKIP)
            report.saved_skips.append(pr)
            self.renderer.text(f"No commits merged for PR {self.history.commit_meta(pr).short_sha}. Decision to skip saved!")
