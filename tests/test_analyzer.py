"""Tests for commit analysis: Change-Id filtering, empty and conflict detection."""

import pytest
from fakes import FakeBackend
from helpers import commit_file, create_sketch_branch, requires_merge_tree

from palimp.core.analyzer import (
    AnalysisState,
    CommitAnalyzer,
    StepOutcome,
    analyze_step,
    filter_landed,
)
from palimp.core.inventory import commits_in_branch
from palimp.errors import GitOperationError
from palimp.models import Commit


def make_commit(hash_, subject, *change_ids):
    message = subject
    if change_ids:
        message += "\n\n" + "\n".join(f"Change-Id: {c}" for c in change_ids)
    return Commit(hash=hash_, subject=subject, message=message, change_ids=list(change_ids))


@pytest.fixture
def fake():
    return FakeBackend()


class TestFilterLanded:
    def test_drops_commits_sharing_a_change_id(self):
        commits = [
            make_commit("a" * 40, "A", "I-a"),
            make_commit("b" * 40, "B", "I-b"),
            make_commit("c" * 40, "C", "I-c"),
        ]
        remaining = filter_landed(commits, {"I-b"})
        assert [c.subject for c in remaining] == ["A", "C"]

    def test_commits_without_change_ids_are_kept(self):
        commits = [make_commit("a" * 40, "A")]
        assert filter_landed(commits, {"I-a"}) == commits

    def test_any_overlapping_id_is_enough(self):
        commits = [make_commit("a" * 40, "A", "I-new", "I-old")]
        assert filter_landed(commits, {"I-old"}) == []


class TestAnalyzeStep:
    def test_accepted_commit_advances_base(self, fake):
        """An accepted commit is wrapped in a synthetic commit on top of the base."""
        commit = make_commit("aaaaaaa1", "A")
        fake.merge_results[commit.hash] = "tree-a"

        state, outcome, error = analyze_step(fake, AnalysisState(base="main"), commit, 1, 1)

        assert outcome is StepOutcome.ACCEPTED
        assert error is None
        assert state.base == "synthetic-1"
        assert fake.synthetic == [("tree-a", "main")]
        assert [c.hash for c in state.valid_commits] == [commit.hash]
        assert fake.merge_calls == [("aaaaaaa1^", "main", "aaaaaaa1")]

    def test_no_op_commit_leaves_state_alone(self, fake):
        """A commit whose result tree equals the base tree is empty."""
        commit = make_commit("aaaaaaa1", "A")
        fake.merge_results[commit.hash] = "tree-main"
        initial = AnalysisState(base="main")

        state, outcome, _ = analyze_step(fake, initial, commit, 1, 1)

        assert outcome is StepOutcome.EMPTY
        assert state == initial
        assert fake.synthetic == []

    def test_conflict_reports_position_hash_and_subject(self, fake):
        commit = make_commit("bbbbbbb2", "Touch shared file")
        fake.merge_results[commit.hash] = None
        initial = AnalysisState(base="main")

        state, outcome, error = analyze_step(fake, initial, commit, 2, 3)

        assert outcome is StepOutcome.CONFLICT
        assert state == initial
        assert "2/3" in error
        assert "bbbbbbb" in error
        assert "Touch shared file" in error

    def test_empty_merge_tree_output_is_a_conflict(self, fake):
        commit = make_commit("aaaaaaa1", "A")
        fake.merge_results[commit.hash] = ""

        _, outcome, error = analyze_step(fake, AnalysisState(base="main"), commit, 1, 1)

        assert outcome is StepOutcome.CONFLICT
        assert "unexpected empty output" in error

    def test_synthetic_commit_failure_falls_back_to_commit_hash(self, fake):
        """Without a synthetic commit the commit itself becomes the base, flagged approximate."""
        commit = make_commit("aaaaaaa1", "A")
        fake.merge_results[commit.hash] = "tree-a"
        fake.fail_commit_tree = True

        state, outcome, _ = analyze_step(fake, AnalysisState(base="main"), commit, 1, 1)

        assert outcome is StepOutcome.ACCEPTED
        assert state.base == commit.hash
        assert state.approximate is True


class TestCommitAnalyzerFold:
    def test_each_commit_is_merged_onto_accumulated_base(self, fake):
        a = make_commit("aaaaaaa1", "A")
        b = make_commit("bbbbbbb2", "B")
        fake.merge_results.update({a.hash: "tree-a", b.hash: "tree-ab"})

        analysis = CommitAnalyzer(fake).analyze([a, b], "main")

        assert [c.hash for c in analysis.valid_commits] == [a.hash, b.hash]
        assert fake.merge_calls[1] == ("bbbbbbb2^", "synthetic-1", "bbbbbbb2")
        assert not analysis.has_conflict
        assert not analysis.approximate

    def test_first_conflict_stops_the_walk(self, fake):
        a = make_commit("aaaaaaa1", "A")
        b = make_commit("bbbbbbb2", "B")
        c = make_commit("ccccccc3", "C")
        fake.merge_results.update({a.hash: "tree-a", b.hash: None, c.hash: "tree-c"})

        analysis = CommitAnalyzer(fake).analyze([a, b, c], "main")

        assert [x.hash for x in analysis.valid_commits] == [a.hash]
        assert analysis.first_conflict.hash == b.hash
        assert "2/3" in analysis.conflict_error
        assert len(fake.merge_calls) == 2

    def test_empty_commit_in_the_middle_is_skipped(self, fake):
        a = make_commit("aaaaaaa1", "A")
        b = make_commit("bbbbbbb2", "B")
        c = make_commit("ccccccc3", "C")
        fake.merge_results.update({a.hash: "tree-a", b.hash: "tree-a", c.hash: "tree-ac"})

        analysis = CommitAnalyzer(fake).analyze([a, b, c], "main")

        assert [x.hash for x in analysis.valid_commits] == [a.hash, c.hash]
        # c is merged onto the base built from a alone
        assert fake.merge_calls[2][1] == "synthetic-1"

    def test_landed_commits_are_filtered_before_simulation(self, fake):
        a = make_commit("aaaaaaa1", "A", "I-a")
        b = make_commit("bbbbbbb2", "B", "I-b")
        c = make_commit("ccccccc3", "C", "I-c")
        fake.main_messages = ["B on main\n\nChange-Id: I-b"]
        fake.merge_results.update({a.hash: "tree-a", c.hash: "tree-ac"})

        analysis = CommitAnalyzer(fake).analyze([a, b, c], "main")

        assert [x.hash for x in analysis.valid_commits] == [a.hash, c.hash]
        assert all(call[2] != b.hash for call in fake.merge_calls)

    def test_everything_landed_returns_empty_analysis(self, fake):
        a = make_commit("aaaaaaa1", "A", "I-a")
        fake.main_messages = ["A\n\nChange-Id: I-a"]

        analysis = CommitAnalyzer(fake).analyze([a], "main")

        assert analysis.valid_commits == []
        assert not analysis.has_conflict
        assert fake.merge_calls == []

    def test_degraded_mode_only_filters_by_change_id(self, fake):
        a = make_commit("aaaaaaa1", "A", "I-a")
        b = make_commit("bbbbbbb2", "B", "I-b")
        fake.main_messages = ["Change-Id: I-a"]
        fake.merge_tree_available = False

        analysis = CommitAnalyzer(fake).analyze([a, b], "main")

        assert analysis.degraded is True
        assert [x.hash for x in analysis.valid_commits] == [b.hash]
        assert fake.merge_calls == []

    def test_approximate_flag_survives_to_the_result(self, fake):
        a = make_commit("aaaaaaa1", "A")
        b = make_commit("bbbbbbb2", "B")
        fake.merge_results.update({a.hash: "tree-a", b.hash: "tree-ab"})
        fake.trees[a.hash] = "tree-a"
        fake.fail_commit_tree = True

        analysis = CommitAnalyzer(fake).analyze([a, b], "main")

        assert analysis.approximate is True
        assert fake.merge_calls[1][1] == a.hash


@requires_merge_tree
class TestAnalyzerOnRepository:
    def test_duplicate_change_id_is_dropped(self, git_repo, backend):
        """Branch A,B,C where B's Change-Id is already on main gives [A, C]."""
        branch = create_sketch_branch(
            git_repo,
            "abc",
            [
                ("a.txt", "a\n", "Add a", "I-a"),
                ("b.txt", "b\n", "Add b", "I-b"),
                ("c.txt", "c\n", "Add c", "I-c"),
            ],
        )
        commit_file(git_repo, "b-main.txt", "b\n", "Add b on main", "I-b")

        commits = commits_in_branch(backend, branch, "main")
        analysis = CommitAnalyzer(backend).analyze(commits, "main", branch)

        assert [c.subject for c in analysis.valid_commits] == ["Add a", "Add c"]
        assert not analysis.has_conflict

    def test_commit_already_applied_by_content_is_empty(self, git_repo, backend):
        branch = create_sketch_branch(
            git_repo, "same", [("x.txt", "hello\n", "Add x", "I-branch")]
        )
        commit_file(git_repo, "x.txt", "hello\n", "Add x again", "I-main")

        commits = commits_in_branch(backend, branch, "main")
        analysis = CommitAnalyzer(backend).analyze(commits, "main", branch)

        assert analysis.valid_commits == []
        assert not analysis.has_conflict

    def test_conflicting_second_commit(self, git_repo, backend):
        branch = create_sketch_branch(
            git_repo,
            "conflict",
            [
                ("a.txt", "a\n", "Add a", "I-a"),
                ("README.md", "# branch\n", "Edit readme on branch", "I-b"),
            ],
        )
        commit_file(git_repo, "README.md", "# main\n", "Edit readme on main")

        commits = commits_in_branch(backend, branch, "main")
        analysis = CommitAnalyzer(backend).analyze(commits, "main", branch)

        assert [c.subject for c in analysis.valid_commits] == ["Add a"]
        assert analysis.first_conflict.subject == "Edit readme on branch"
        assert "2/2" in analysis.conflict_error

    def test_later_commit_sees_earlier_accepted_changes(self, git_repo, backend):
        """The second commit edits a file the first one created."""
        branch = create_sketch_branch(
            git_repo,
            "stacked",
            [
                ("new.txt", "one\n", "Create new", "I-1"),
                ("new.txt", "one\ntwo\n", "Extend new", "I-2"),
            ],
        )

        commits = commits_in_branch(backend, branch, "main")
        analysis = CommitAnalyzer(backend).analyze(commits, "main", branch)

        assert [c.subject for c in analysis.valid_commits] == ["Create new", "Extend new"]
        assert not analysis.approximate

    def test_analysis_does_not_touch_refs(self, git_repo, backend):
        branch = create_sketch_branch(git_repo, "pure", [("p.txt", "p\n", "Add p")])
        main_before = git_repo.heads.main.commit.hexsha
        branch_before = git_repo.heads[branch].commit.hexsha

        commits = commits_in_branch(backend, branch, "main")
        CommitAnalyzer(backend).analyze(commits, "main", branch)

        assert git_repo.heads.main.commit.hexsha == main_before
        assert git_repo.heads[branch].commit.hexsha == branch_before
        assert not git_repo.is_dirty(untracked_files=True)

    def test_missing_ref_is_an_error(self, backend):
        with pytest.raises(GitOperationError):
            CommitAnalyzer(backend).analyze([make_commit("a" * 40, "A")], "no-such-ref")
