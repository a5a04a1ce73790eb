"""Shared fixtures: an in-memory history standing in for git."""

import io
from typing import Dict, List, Optional, Sequence

import pytest
from rich.console import Console

from backporter.decisions import DecisionCache
from backporter.git import CommitMeta
from backporter.patterns import PatternSet
from backporter.scoring import Scorer

MESSAGE_PATTERN = r"\bfix\b"
PATH_PATTERN = r"^src/dashboard/"
AUTHOR_PATTERN = r"@team\.example$"


def make_commit(
    sha: str,
    message: str = "chore: unrelated",
    paths: Sequence[str] = ("README.md",),
    email: str = "someone@elsewhere.org",
    parents: Sequence[str] = ("p0",),
    author: str = "Some One",
) -> CommitMeta:
    return CommitMeta(
        sha=sha,
        short_sha=sha[:7],
        author_name=author,
        author_email=email,
        relative_date="2 days ago",
        subject=message.splitlines()[0] if message else "",
        message=message,
        parents=tuple(parents),
        changed_paths=tuple(paths),
    )


def full_match(sha: str) -> CommitMeta:
    return make_commit(sha, message="fix: crash", paths=["src/dashboard/app.py"], email="dev@team.example")


def no_match(sha: str) -> CommitMeta:
    return make_commit(sha)


def merge_commit(sha: str, title: str = "Add widget") -> CommitMeta:
    return make_commit(
        sha,
        message=f"Merge pull request #1 from dev/branch\n\n{title}\n\nLonger description",
        paths=(),
        parents=("m1", "m2"),
    )


class FakeHistory:
    """Implements the GitHistory surface the engine uses, without a repository."""

    def __init__(self) -> None:
        self.commits: Dict[str, CommitMeta] = {}
        self.merges: List[str] = []
        self.members: Dict[str, List[str]] = {}
        self.applied: set = set()
        self.cherry_pick_calls: List[List[str]] = []
        self.commit_calls: List[List[str]] = []
        self.difftool_calls: List[tuple] = []
        self.cherry_pick_ok = True
        self.commit_ok = True
        self.unmerged: List[str] = []
        self.merge_msg = "Merge pull request #1 from dev/branch\n\nAdd widget\n"
        self.ranges: List[str] = []

    def add(self, meta: CommitMeta) -> CommitMeta:
        self.commits[meta.sha] = meta
        return meta

    def add_pr(self, pr: CommitMeta, members: Sequence[CommitMeta]) -> None:
        self.add(pr)
        for m in members:
            self.add(m)
        self.merges.append(pr.sha)
        self.members[pr.sha] = [m.sha for m in members]

    # GitHistory surface
    def list_merge_commits(self, rev_range: str) -> List[str]:
        self.ranges.append(rev_range)
        return list(self.merges)

    def list_pr_members(self, target: str, pr: str) -> List[str]:
        return list(self.members.get(pr, []))

    def commit_meta(self, commit: str) -> CommitMeta:
        return self.commits[commit]

    def is_already_applied(self, commit: str) -> bool:
        return commit in self.applied

    def forget_applied(self) -> None:
        pass

    def show_info(self, commit: str) -> str:
        return f"commit {commit}\nAuthor: {self.commits[commit].author_email}\n\n{self.commits[commit].message}\n"

    def show_stat(self, commit: str) -> str:
        return "\n".join(f" {p} | 2 +-" for p in self.commits[commit].changed_paths)

    def name_status(self, commit: str) -> List[str]:
        return [f"M\t{p}" for p in self.commits[commit].changed_paths]

    def first_parent_paths(self, commit: str) -> List[str]:
        paths: List[str] = []
        for member in self.members.get(commit, []):
            for path in self.commits[member].changed_paths:
                if path not in paths:
                    paths.append(path)
        return paths

    def pr_log(self, target: str, pr: str) -> str:
        return "\n".join(self.commits[c].subject for c in self.members.get(pr, []))

    def difftool(self, commit: str, paths: Optional[Sequence[str]] = None) -> bool:
        self.difftool_calls.append((commit, tuple(paths or ())))
        return True

    def cherry_pick(self, args: Sequence[str]) -> bool:
        self.cherry_pick_calls.append(list(args))
        if self.cherry_pick_ok:
            self.applied.add(args[-1])
        return self.cherry_pick_ok

    def unmerged_paths(self) -> List[str]:
        return list(self.unmerged)

    def merge_message(self) -> str:
        return self.merge_msg

    def commit(self, args: Sequence[str]) -> bool:
        self.commit_calls.append(list(args))
        return self.commit_ok

    def mergetool(self, paths: Sequence[str]) -> bool:
        return True


class FakeMergeTool:
    def __init__(self, ok: bool = True) -> None:
        self.ok = ok
        self.calls: List[List[str]] = []

    def resolve(self, paths: Sequence[str]) -> bool:
        self.calls.append(list(paths))
        return self.ok


def scripted_keys(*keys: str):
    """Key reader returning the given keys in order."""
    it = iter(keys)
    return lambda: next(it)


@pytest.fixture
def history():
    return FakeHistory()


@pytest.fixture
def patterns():
    return PatternSet.from_strings(message=[MESSAGE_PATTERN], path=[PATH_PATTERN], author=[AUTHOR_PATTERN])


@pytest.fixture
def scorer(patterns):
    return Scorer(patterns)


@pytest.fixture
def cache(tmp_path):
    directory = tmp_path / "commits"
    directory.mkdir()
    return DecisionCache(directory)


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=200, color_system=None, highlight=False)


def console_output(console: Console) -> str:
    return console.file.getvalue()
