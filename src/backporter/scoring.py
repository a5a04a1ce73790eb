"""
Commit scoring (deterministic).

A commit is rated against the three pattern lists; each rate is a match count.
The score only cares whether a rate is nonzero: every signal contributes its
full weight or nothing, so the score is one of {0, 30, 35, 65, 70, 100}.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, NamedTuple

from backporter.git import CommitMeta
from backporter.patterns import PatternSet, count_matches, matches_any

MESSAGE_WEIGHT = 35
PATH_WEIGHT = 30
AUTHOR_WEIGHT = 35

MAX_SCORE = MESSAGE_WEIGHT + PATH_WEIGHT + AUTHOR_WEIGHT


class RateTriple(NamedTuple):
    message: int
    path: int
    author: int

    def __str__(self) -> str:
        return f"{self.message} {self.path} {self.author}"


def score(rates: RateTriple) -> int:
    return (
        (MESSAGE_WEIGHT if rates.message > 0 else 0)
        + (PATH_WEIGHT if rates.path > 0 else 0)
        + (AUTHOR_WEIGHT if rates.author > 0 else 0)
    )


@dataclass(frozen=True)
class Matches:
    """What matched where, shown to the reviewer before asking."""

    message_lines: List[str]
    author: str
    paths: List[str]


class Scorer:
    def __init__(self, patterns: PatternSet) -> None:
        self.patterns = patterns

    def rates(self, meta: CommitMeta) -> RateTriple:
        return RateTriple(
            message=count_matches(self.patterns.message, meta.message.splitlines()),
            path=count_matches(self.patterns.path, meta.changed_paths),
            author=count_matches(self.patterns.author, [meta.author_email]),
        )

    def score(self, meta: CommitMeta) -> int:
        return score(self.rates(meta))

    def matches(self, meta: CommitMeta, name_status: List[str]) -> Matches:
        return Matches(
            message_lines=[ln for ln in meta.message.splitlines() if matches_any(self.patterns.message, ln)],
            author=meta.author_email if matches_any(self.patterns.author, meta.author_email) else "",
            paths=[ln for ln in name_status if matches_any(self.patterns.path, ln.split("\t")[-1])],
        )

    def matched_paths(self, paths: Iterable[str]) -> List[str]:
        return [p for p in paths if matches_any(self.patterns.path, p)]
