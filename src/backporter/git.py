"""
History adapter over the git CLI.

Purpose:
- Answer every question the decision engine asks about history: merge commits
  in a range, the commits a merge brought in, commit metadata, merge-base and
  whether a commit was already cherry-picked onto HEAD.
- Provide the few mutating/interactive primitives the executor and the
  reviewer need (cherry-pick, commit, mergetool, difftool).

Design goals:
- No shell=True, explicit argument lists.
- Actionable errors: GitError carries the command, stdout and stderr.
- Commits are immutable, so metadata is memoized for the lifetime of the process.
"""
from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from backporter.errors import GitError

logger = logging.getLogger(__name__)

# Provenance marker written by `git cherry-pick -x`
PROVENANCE_MARKER = "cherry picked from commit"

FORMAT_COMMIT = "%h - %cr - %an - %s"

_SEP_FIELD = "\n---BP_FIELD---\n"


@dataclass(frozen=True)
class CommitMeta:
    sha: str
    short_sha: str
    author_name: str
    author_email: str
    relative_date: str
    subject: str
    message: str
    parents: Tuple[str, ...] = ()
    changed_paths: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1

    @property
    def body(self) -> str:
        """Message without the subject line."""
        lines = self.message.splitlines()
        return "\n".join(lines[1:]).strip()


def run_git(
    args: Sequence[str],
    cwd: Path,
    check: bool = True,
    capture: bool = True,
) -> subprocess.CompletedProcess:
    """
    Run git in cwd. Raises GitError on failure if check=True.
    capture=False hands the terminal to git (mergetool, difftool).
    """
    cmd = ["git"] + list(args)
    logger.debug("git %s (cwd=%s)", " ".join(args), cwd)
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            capture_output=capture,
            text=True,
            check=False,
        )
    except FileNotFoundError as e:
        raise GitError("git is not installed or not available in PATH.", cmd) from e

    if check and proc.returncode != 0:
        raise GitError(
            f"Git command failed: {' '.join(cmd)}\n"
            f"cwd={cwd}\n"
            f"stdout:\n{proc.stdout or ''}\n"
            f"stderr:\n{proc.stderr or ''}",
            cmd,
            proc.stdout or "",
            proc.stderr or "",
        )
    return proc


def _lines(text: str) -> List[str]:
    return [ln.strip() for ln in text.splitlines() if ln.strip()]


class GitHistory:
    def __init__(self, repo_dir: Path) -> None:
        self.repo_dir = repo_dir
        self._meta: Dict[str, CommitMeta] = {}
        self._applied: Dict[str, bool] = {}

    def _git(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        return run_git(args, cwd=self.repo_dir, check=check)

    # ---------- queries used by the decision engine ----------

    def list_merge_commits(self, rev_range: str) -> List[str]:
        """Merge commits in rev_range, oldest first."""
        proc = self._git("log", "--format=%H", "--reverse", "--merges", rev_range)
        return _lines(proc.stdout)

    def merge_base(self, a: str, b: str) -> str:
        return self._git("merge-base", a, b).stdout.strip()

    def list_pr_members(self, target: str, pr: str) -> List[str]:
        """
        Non-merge commits the merge commit `pr` brought in, oldest first:
        merge-base(target, pr^1)..pr
        """
        base = self.merge_base(target, f"{pr}^1")
        proc = self._git("log", "--format=%H", "--no-merges", "--reverse", f"{base}..{pr}")
        return _lines(proc.stdout)

    def commit_meta(self, commit: str) -> CommitMeta:
        cached = self._meta.get(commit)
        if cached is not None:
            return cached

        pretty = _SEP_FIELD.join(["%H", "%h", "%an", "%ae", "%cr", "%P", "%s", "%B"])
        proc = self._git("log", "-1", f"--format={pretty}", commit)
        parts = proc.stdout.split(_SEP_FIELD)
        if len(parts) < 8:
            raise GitError(f"Unexpected git log output for {commit}", ["git", "log", commit], proc.stdout)

        # Merge commits list no paths here: diff-tree without -m is empty for them.
        paths = self._git("diff-tree", "--no-commit-id", "--name-only", "-r", commit).stdout

        meta = CommitMeta(
            sha=parts[0].strip(),
            short_sha=parts[1].strip(),
            author_name=parts[2].strip(),
            author_email=parts[3].strip(),
            relative_date=parts[4].strip(),
            parents=tuple(parts[5].split()),
            subject=parts[6].strip(),
            message=parts[7].strip("\n"),
            changed_paths=tuple(_lines(paths)),
        )
        self._meta[commit] = meta
        return meta

    def is_already_applied(self, commit: str) -> bool:
        """True if a commit on HEAD carries the cherry-pick provenance marker for `commit`."""
        if commit not in self._applied:
            proc = self._git(
                "log", "-1", "--format=%H", "--fixed-strings",
                f"--grep={PROVENANCE_MARKER} {commit}", "HEAD",
            )
            self._applied[commit] = bool(proc.stdout.strip())
        return self._applied[commit]

    def forget_applied(self) -> None:
        """HEAD moved (a backport landed); drop cached provenance lookups."""
        self._applied.clear()

    # ---------- inspection output for the reviewer ----------

    def show_info(self, commit: str) -> str:
        return self._git("log", "-1", commit).stdout

    def show_stat(self, commit: str) -> str:
        return self._git("log", "-1", "--format=", "--stat", commit).stdout

    def name_status(self, commit: str) -> List[str]:
        return _lines(self._git("diff-tree", "--no-commit-id", "-r", "--name-status", commit).stdout)

    def first_parent_paths(self, commit: str) -> List[str]:
        """Paths a merge commit changed relative to its first parent."""
        return _lines(self._git("diff", "--name-only", f"{commit}^1", commit).stdout)

    def pr_log(self, target: str, pr: str) -> str:
        base = self.merge_base(target, f"{pr}^1")
        proc = self._git("log", f"--format={FORMAT_COMMIT}", "--no-merges", "--reverse", f"{base}..{pr}")
        return proc.stdout

    def difftool(self, commit: str, paths: Optional[Sequence[str]] = None) -> bool:
        """Blocking external diff viewer between commit~ and commit."""
        args = ["difftool", "--no-prompt", f"{commit}~", commit]
        if paths:
            args += ["--"] + list(paths)
        proc = run_git(args, cwd=self.repo_dir, check=False, capture=False)
        return proc.returncode == 0

    # ---------- primitives for the executor ----------

    def cherry_pick(self, args: Sequence[str]) -> bool:
        """Run cherry-pick with output suppressed; False on conflict."""
        proc = run_git(["cherry-pick"] + list(args), cwd=self.repo_dir, check=False)
        if proc.returncode != 0:
            logger.debug("cherry-pick %s failed:\n%s", " ".join(args), proc.stderr)
        return proc.returncode == 0

    def unmerged_paths(self) -> List[str]:
        return _lines(self._git("diff", "--name-only", "--diff-filter=U").stdout)

    def merge_message(self) -> str:
        """Contents of MERGE_MSG prepared by the last cherry-pick."""
        rel = self._git("rev-parse", "--git-path", "MERGE_MSG").stdout.strip()
        path = Path(rel)
        if not path.is_absolute():
            path = self.repo_dir / path
        return path.read_text(encoding="utf-8")

    def commit(self, args: Sequence[str]) -> bool:
        proc = run_git(["commit"] + list(args), cwd=self.repo_dir, check=False)
        if proc.returncode != 0:
            logger.warning("git commit failed:\n%s%s", proc.stdout, proc.stderr)
        return proc.returncode == 0

    def mergetool(self, paths: Sequence[str]) -> bool:
        proc = run_git(["mergetool"] + list(paths), cwd=self.repo_dir, check=False, capture=False)
        return proc.returncode == 0
