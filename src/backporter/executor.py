"""
Backport executor.

Applies one resolved "backport" decision onto the current branch:
- plain commit: `git cherry-pick -x -s -Xpatience [-S]`
- merge commit: the same against its first parent (-m1) without committing,
  then one flattened commit whose message is the merge message minus the
  generated "Merge pull request ..." header.

On conflict the unmerged paths are handed to an external merge tool, and the
commit is only created once the tool reports success. If the tool or the final
commit fails, BackportError names the commit; nothing is rolled back.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence

from backporter.errors import BackportError
from backporter.git import PROVENANCE_MARKER, CommitMeta, GitHistory

logger = logging.getLogger(__name__)

# Lines of MERGE_MSG generated by git for the merge itself ("Merge pull request #N ..." + blank line)
MERGE_HEADER_LINES = 2


class MergeTool(Protocol):
    def resolve(self, paths: Sequence[str]) -> bool:
        ...


class GitMergeTool:
    """Runs `git mergetool` attached to the terminal."""

    def __init__(self, history: GitHistory) -> None:
        self.history = history

    def resolve(self, paths: Sequence[str]) -> bool:
        return self.history.mergetool(paths)


@dataclass(frozen=True)
class ApplyResult:
    commit: str
    conflicted: bool = False
    conflict_paths: List[str] = field(default_factory=list)
    dry_run: bool = False


def flatten_merge_message(merge_msg: str, commit: str) -> str:
    """
    Commit message for a flattened merge: drop the generated header and any
    comment lines, and make sure the provenance marker is present so the PR
    is recognised as applied on later runs.
    """
    lines = merge_msg.replace("\r", "").splitlines()[MERGE_HEADER_LINES:]
    lines = [ln for ln in lines if not ln.startswith("#")]
    message = "\n".join(lines).strip()
    marker = f"({PROVENANCE_MARKER} {commit})"
    if f"{PROVENANCE_MARKER} {commit}" not in message:
        message = f"{message}\n\n{marker}" if message else marker
    return message


class BackportExecutor:
    def __init__(
        self,
        history: GitHistory,
        merge_tool: Optional[MergeTool] = None,
        sign: bool = True,
        dry_run: bool = False,
    ) -> None:
        self.history = history
        self.merge_tool = merge_tool or GitMergeTool(history)
        self.sign = sign
        self.dry_run = dry_run

    def _sign_args(self) -> List[str]:
        return ["-S"] if self.sign else []

    def _resolve_conflicts(self, commit: str) -> List[str]:
        paths = self.history.unmerged_paths()
        logger.warning("conflict while backporting %s: %s", commit, ", ".join(paths) or "(no unmerged paths)")
        if not self.merge_tool.resolve(paths):
            raise BackportError(commit, "merge tool did not resolve the conflicts")
        return paths

    def apply(self, meta: CommitMeta) -> ApplyResult:
        if self.dry_run:
            return ApplyResult(meta.sha, dry_run=True)

        if meta.is_merge:
            result = self._apply_merge(meta)
        else:
            result = self._apply_commit(meta)

        self.history.forget_applied()
        logger.info("backported %s (conflicted=%s)", meta.sha, result.conflicted)
        return result

    def _apply_commit(self, meta: CommitMeta) -> ApplyResult:
        args = ["-x", *self._sign_args(), "-s", "-Xpatience", meta.sha]
        if self.history.cherry_pick(args):
            return ApplyResult(meta.sha)

        paths = self._resolve_conflicts(meta.short_sha)
        if not self.history.commit(["-s", *self._sign_args(), "--no-edit"]):
            raise BackportError(meta.short_sha, "commit after conflict resolution failed")
        return ApplyResult(meta.sha, conflicted=True, conflict_paths=paths)

    def _apply_merge(self, meta: CommitMeta) -> ApplyResult:
        args = ["-m1", "-n", "-x", *self._sign_args(), "-s", "-Xpatience", meta.sha]
        paths: List[str] = []
        conflicted = not self.history.cherry_pick(args)
        if conflicted:
            paths = self._resolve_conflicts(meta.short_sha)

        message = flatten_merge_message(self.history.merge_message(), meta.sha)
        if not self.history.commit(["-s", *self._sign_args(), "-m", message]):
            raise BackportError(meta.short_sha, "commit of flattened merge failed")
        return ApplyResult(meta.sha, conflicted=conflicted, conflict_paths=paths)
