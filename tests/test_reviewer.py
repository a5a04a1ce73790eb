"""Tests for the review key state machine and the interactive reviewer."""

import pytest

from backporter.decisions import Decision
from backporter.errors import UserAbort
from backporter.reviewer import ReviewState, Reviewer, prompt_for, transition

from conftest import console_output, make_commit, merge_commit, scripted_keys

A = "a" * 40
PR = "f" * 40


def _reviewer(history, scorer, cache, console, *keys):
    return Reviewer(history, scorer, cache, key_reader=scripted_keys(*keys), console=console)


class TestTransition:
    @pytest.mark.parametrize(
        "key, decision, remember",
        [
            ("b", Decision.BACKPORT, False),
            ("B", Decision.BACKPORT, True),
            ("s", Decision.SKIP, False),
            ("S", Decision.SKIP, True),
            ("p", Decision.PICK, False),
            ("P", Decision.PICK, True),
        ],
    )
    def test_resolving_keys(self, key, decision, remember):
        step = transition(key, allow_pick=True)
        assert step.state is ReviewState.RESOLVED
        assert step.decision is decision
        assert step.remember is remember

    @pytest.mark.parametrize(
        "key, state",
        [
            ("i", ReviewState.SHOWING_INFO),
            ("f", ReviewState.SHOWING_FILES),
            ("d", ReviewState.SHOWING_DIFF),
            ("D", ReviewState.SHOWING_DIFF),
            ("c", ReviewState.SHOWING_COMMITS),
        ],
    )
    def test_inspection_keys(self, key, state):
        assert transition(key, allow_pick=True).state is state

    def test_full_diff_flag(self):
        assert transition("D", allow_pick=False).full_diff is True
        assert transition("d", allow_pick=False).full_diff is False

    def test_quit(self):
        assert transition("q", allow_pick=False).state is ReviewState.ABORTED

    @pytest.mark.parametrize("key", ["p", "P", "c"])
    def test_pr_only_keys_invalid_for_commits(self, key):
        step = transition(key, allow_pick=False)
        assert step.state is ReviewState.AWAITING_INPUT
        assert step.invalid

    @pytest.mark.parametrize("key", ["x", "Q", "\r", ""])
    def test_unknown_keys(self, key):
        step = transition(key, allow_pick=True)
        assert step.state is ReviewState.AWAITING_INPUT
        assert step.invalid

    def test_prompt_mentions_pick_only_for_prs(self):
        assert "(pP)ick" in prompt_for(True)
        assert "(pP)ick" not in prompt_for(False)


class TestReviewer:
    def test_backport_once_does_not_remember(self, history, scorer, cache, console):
        meta = history.add(make_commit(A, message="fix: x"))
        action = _reviewer(history, scorer, cache, console, "b").review(meta)
        assert action.decision is Decision.BACKPORT
        assert action.remember is False
        assert cache.get(A) is None

    def test_remembered_skip_is_saved(self, history, scorer, cache, console):
        meta = history.add(make_commit(A, message="fix: x"))
        action = _reviewer(history, scorer, cache, console, "S").review(meta)
        assert action.decision is Decision.SKIP
        assert cache.get(A) is Decision.SKIP

    def test_remembered_backport_left_to_caller(self, history, scorer, cache, console):
        meta = history.add(make_commit(A, message="fix: x"))
        action = _reviewer(history, scorer, cache, console, "B").review(meta)
        assert action.decision is Decision.BACKPORT
        assert action.remember is True
        assert cache.get(A) is None

    def test_shows_matches_first(self, history, scorer, cache, console):
        meta = history.add(make_commit(A, message="fix: crash\n\nbody", paths=["src/dashboard/x.ts"]))
        _reviewer(history, scorer, cache, console, "s").review(meta)
        out = console_output(console)
        assert out.index("Matching:") < out.index("Possible matching")
        assert "fix: crash" in out
        assert "src/dashboard/x.ts" in out

    def test_inspection_then_resolve(self, history, scorer, cache, console):
        meta = history.add(make_commit(A, message="fix: x", paths=["src/dashboard/a.py", "other.py"]))
        action = _reviewer(history, scorer, cache, console, "i", "f", "d", "D", "b").review(meta)
        assert action.decision is Decision.BACKPORT
        assert history.difftool_calls == [(A, ("src/dashboard/a.py",)), (A, ())]
        out = console_output(console)
        assert "commit " + A in out
        assert "other.py | 2 +-" in out

    def test_restricted_diff_without_matched_paths(self, history, scorer, cache, console):
        meta = history.add(make_commit(A, message="fix: x", paths=["other.py"]))
        _reviewer(history, scorer, cache, console, "d", "s").review(meta)
        assert history.difftool_calls == []
        assert "No changed path matches" in console_output(console)

    def test_restricted_diff_of_pr_uses_first_parent_paths(self, history, scorer, cache, console):
        member = make_commit(A, message="fix: x", paths=["src/dashboard/a.py", "other.py"])
        history.add_pr(merge_commit(PR), [member])
        _reviewer(history, scorer, cache, console, "d", "s").review(history.commit_meta(PR), target="release")
        assert history.difftool_calls == [(PR, ("src/dashboard/a.py",))]
        assert "No changed path matches" not in console_output(console)

    def test_wrong_option_loops(self, history, scorer, cache, console):
        meta = history.add(make_commit(A, message="fix: x"))
        action = _reviewer(history, scorer, cache, console, "z", "p", "s").review(meta)
        assert action.decision is Decision.SKIP
        assert console_output(console).count("Wrong option") == 2

    def test_quit_raises_user_abort(self, history, scorer, cache, console):
        meta = history.add(make_commit(A, message="fix: x"))
        with pytest.raises(UserAbort) as exc:
            _reviewer(history, scorer, cache, console, "q").review(meta)
        assert exc.value.commit == A[:7]
        assert cache.get(A) is None

    def test_pr_pick_and_commit_listing(self, history, scorer, cache, console):
        member = make_commit(A, message="fix: member subject")
        history.add_pr(merge_commit(PR), [member])
        action = _reviewer(history, scorer, cache, console, "c", "P").review(history.commit_meta(PR), target="release")
        assert action.decision is Decision.PICK
        assert cache.get(PR) is Decision.PICK
        assert "fix: member subject" in console_output(console)
