"""Tests for cherry-pick execution and conflict handoff."""

import pytest

from backporter.errors import BackportError
from backporter.executor import BackportExecutor, GitMergeTool, flatten_merge_message

from conftest import FakeMergeTool, full_match, merge_commit

A = "a" * 40
PR = "f" * 40


class TestFlattenMergeMessage:
    def test_drops_generated_header(self):
        msg = "Merge pull request #12 from dev/feature\n\nAdd widget\n\n(cherry picked from commit abc)\n"
        assert flatten_merge_message(msg, "abc") == "Add widget\n\n(cherry picked from commit abc)"

    def test_adds_missing_provenance_marker(self):
        msg = "Merge pull request #12 from dev/feature\n\nAdd widget\n"
        assert flatten_merge_message(msg, PR) == f"Add widget\n\n(cherry picked from commit {PR})"

    def test_strips_comment_lines_and_crlf(self):
        msg = "Merge pull request #1\r\n\r\nTitle\r\n# Conflicts:\r\n#\tsrc/a.py\r\n"
        assert flatten_merge_message(msg, "x") == "Title\n\n(cherry picked from commit x)"

    def test_header_only(self):
        assert flatten_merge_message("Merge branch 'x'\n", "x") == "(cherry picked from commit x)"


class TestApplyCommit:
    def test_clean_cherry_pick(self, history):
        executor = BackportExecutor(history, FakeMergeTool())
        result = executor.apply(history.add(full_match(A)))
        assert history.cherry_pick_calls == [["-x", "-S", "-s", "-Xpatience", A]]
        assert result.conflicted is False
        assert history.commit_calls == []

    def test_unsigned(self, history):
        executor = BackportExecutor(history, FakeMergeTool(), sign=False)
        executor.apply(history.add(full_match(A)))
        assert history.cherry_pick_calls == [["-x", "-s", "-Xpatience", A]]

    def test_conflict_resolved_by_merge_tool(self, history):
        history.cherry_pick_ok = False
        history.unmerged = ["src/a.py"]
        tool = FakeMergeTool(ok=True)
        result = BackportExecutor(history, tool).apply(history.add(full_match(A)))
        assert tool.calls == [["src/a.py"]]
        assert history.commit_calls == [["-s", "-S", "--no-edit"]]
        assert result.conflicted is True
        assert result.conflict_paths == ["src/a.py"]

    def test_merge_tool_failure_names_commit(self, history):
        history.cherry_pick_ok = False
        with pytest.raises(BackportError) as exc:
            BackportExecutor(history, FakeMergeTool(ok=False)).apply(history.add(full_match(A)))
        assert exc.value.commit == A[:7]
        assert A[:7] in str(exc.value)
        assert history.commit_calls == []

    def test_commit_failure_after_resolution(self, history):
        history.cherry_pick_ok = False
        history.commit_ok = False
        with pytest.raises(BackportError, match="commit after conflict resolution failed"):
            BackportExecutor(history, FakeMergeTool()).apply(history.add(full_match(A)))

    def test_dry_run_touches_nothing(self, history):
        result = BackportExecutor(history, FakeMergeTool(), dry_run=True).apply(history.add(full_match(A)))
        assert result.dry_run is True
        assert history.cherry_pick_calls == []
        assert history.commit_calls == []


class TestApplyMerge:
    def test_flattens_onto_first_parent(self, history):
        history.merge_msg = "Merge pull request #3 from dev/x\n\nAdd widget\n"
        executor = BackportExecutor(history, FakeMergeTool())
        executor.apply(history.add(merge_commit(PR)))
        assert history.cherry_pick_calls == [["-m1", "-n", "-x", "-S", "-s", "-Xpatience", PR]]
        assert history.commit_calls == [
            ["-s", "-S", "-m", f"Add widget\n\n(cherry picked from commit {PR})"]
        ]

    def test_conflict_then_commit(self, history):
        history.cherry_pick_ok = False
        history.unmerged = ["a", "b"]
        tool = FakeMergeTool()
        result = BackportExecutor(history, tool).apply(history.add(merge_commit(PR)))
        assert tool.calls == [["a", "b"]]
        assert result.conflicted is True
        assert len(history.commit_calls) == 1

    def test_failed_final_commit(self, history):
        history.commit_ok = False
        with pytest.raises(BackportError, match="flattened merge"):
            BackportExecutor(history, FakeMergeTool()).apply(history.add(merge_commit(PR)))


class TestGitMergeTool:
    def test_delegates_to_history(self, history):
        assert GitMergeTool(history).resolve(["x"]) is True
