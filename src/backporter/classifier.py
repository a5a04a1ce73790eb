"""
Classification state machine.

Turns scores, cached human decisions and "already applied" status into an
outcome, for a plain commit or for a merge commit (PR). Classification only
reads history and the decision cache; acting on the outcome (cherry-picking,
asking, descending into a PR) is the driver's job, so running it twice with
the same cache yields the same outcomes.

Commit outcomes, in precedence order:
  skip record            -> SKIP
  effective score == 0   -> SKIP
  already cherry-picked  -> DONE
  effective score == 100 -> BACKPORT   (a backport record counts as 100)
  otherwise              -> ASK

PR classes (aggregate over member commits):
  4 ALL_APPLIED  every member already cherry-picked
  3 TOTAL        sum >= 100 * n   -> backport the whole PR
  2 LIKELY       sum >=  50 * n   -> ask: whole PR, skip, or per commit
  1 PARTIAL      sum > 0          -> per-commit handling
  0 NO_MATCH                      -> skip
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional, Sequence, Tuple

from backporter.decisions import Decision, DecisionCache
from backporter.git import GitHistory
from backporter.scoring import MAX_SCORE, RateTriple, Scorer
from backporter.scoring import score as score_rates
from backporter.settings import Strategy

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    SKIP = "SKIP"
    BACKPORT = "BACKPORT"
    ASK = "ASK"
    DONE = "DONE"
    PICK = "PICK"


class PRClass(IntEnum):
    NO_MATCH = 0
    PARTIAL = 1
    LIKELY = 2
    TOTAL = 3
    ALL_APPLIED = 4


CLASS_OUTCOMES = {
    PRClass.NO_MATCH: Outcome.SKIP,
    PRClass.PARTIAL: Outcome.PICK,
    PRClass.LIKELY: Outcome.ASK,
    PRClass.TOTAL: Outcome.BACKPORT,
    PRClass.ALL_APPLIED: Outcome.DONE,
}


def effective_score(raw: int, decision: Optional[Decision]) -> int:
    if decision is Decision.SKIP:
        return 0
    if decision is Decision.BACKPORT:
        return MAX_SCORE
    return raw


def aggregate_class(
    scores: Sequence[int],
    applied: Sequence[bool],
    strategy: Strategy = Strategy.PR,
    mixed_threshold: int = 0,
) -> PRClass:
    count = len(scores)
    if count == 0:
        return PRClass.NO_MATCH

    total = sum(scores)
    if all(applied):
        pr_class = PRClass.ALL_APPLIED
    elif total >= MAX_SCORE * count:
        pr_class = PRClass.TOTAL
    elif total >= (MAX_SCORE // 2) * count:
        pr_class = PRClass.LIKELY
    elif total > 0:
        pr_class = PRClass.PARTIAL
    else:
        pr_class = PRClass.NO_MATCH

    # COMMITS never merges at PR granularity; MIXED only for PRs big enough.
    if strategy is Strategy.COMMITS and pr_class in (PRClass.LIKELY, PRClass.TOTAL):
        pr_class = PRClass.PARTIAL
    elif strategy is Strategy.MIXED and count < mixed_threshold:
        pr_class = PRClass.PARTIAL
    return pr_class


@dataclass(frozen=True)
class CommitVerdict:
    commit: str
    outcome: Outcome
    rates: RateTriple
    score: int
    decision: Optional[Decision] = None

    @property
    def from_cache(self) -> bool:
        return self.decision in (Decision.SKIP, Decision.BACKPORT) and self.outcome in (
            Outcome.SKIP,
            Outcome.BACKPORT,
        )


@dataclass(frozen=True)
class PRVerdict:
    commit: str
    outcome: Outcome
    pr_class: PRClass
    count: int
    score_sum: int
    members: Tuple[str, ...] = ()
    decision: Optional[Decision] = None

    @property
    def from_cache(self) -> bool:
        return self.decision is not None and self.outcome in (Outcome.SKIP, Outcome.BACKPORT, Outcome.PICK)


class Classifier:
    def __init__(
        self,
        history: GitHistory,
        scorer: Scorer,
        cache: DecisionCache,
        strategy: Strategy = Strategy.COMMITS,
        mixed_threshold: int = 0,
    ) -> None:
        self.history = history
        self.scorer = scorer
        self.cache = cache
        self.strategy = strategy
        self.mixed_threshold = mixed_threshold

    def classify_commit(self, commit: str) -> CommitVerdict:
        decision = self.cache.get(commit)
        rates = self.scorer.rates(self.history.commit_meta(commit))
        score = effective_score(score_rates(rates), decision)

        if score == 0:
            outcome = Outcome.SKIP
        elif self.history.is_already_applied(commit):
            outcome = Outcome.DONE
        elif score == MAX_SCORE:
            outcome = Outcome.BACKPORT
        else:
            outcome = Outcome.ASK

        logger.info("commit %s rates=(%s) score=%d decision=%s -> %s",
                    commit, rates, score, decision and decision.name, outcome.value)
        return CommitVerdict(commit, outcome, rates, score, decision)

    def classify_pr(self, target: str, pr: str) -> PRVerdict:
        decision = self.cache.get(pr)
        if decision is Decision.SKIP:
            return PRVerdict(pr, Outcome.SKIP, PRClass.NO_MATCH, 0, 0, (), decision)

        members = tuple(self.history.list_pr_members(target, pr))
        scores = []
        applied = []
        for commit in members:
            raw = self.scorer.score(self.history.commit_meta(commit))
            scores.append(effective_score(raw, self.cache.get(commit)))
            applied.append(self.history.is_already_applied(commit))

        pr_class = aggregate_class(scores, applied, self.strategy, self.mixed_threshold)
        score_sum = sum(scores)

        if self.history.is_already_applied(pr):
            outcome = Outcome.DONE
        elif decision is Decision.BACKPORT:
            # A backport record wins over the member aggregate, ALL_APPLIED included.
            outcome = Outcome.BACKPORT
        elif decision is Decision.PICK:
            # A remembered pick always descends again on later runs.
            outcome = Outcome.PICK
        else:
            outcome = CLASS_OUTCOMES[pr_class]

        logger.info("PR %s commits=%d score=%d class=%s decision=%s -> %s",
                    pr, len(members), score_sum, pr_class.name, decision and decision.name, outcome.value)
        return PRVerdict(pr, outcome, pr_class, len(members), score_sum, members, decision)
