"""Tests for timeline_core.graph: dependency lookups and classification."""

from timeline_core.graph import (
    build_blocks_lookup,
    build_dependency_lookup,
    classify_issues,
    in_set_blockers,
    issue_key,
)
from timeline_core.models import Dependency

from tests.conftest import blocks, make_issue


def _ids(issues):
    return [i.id for i in issues]


# ---------------------------------------------------------------------------
# build_dependency_lookup
# ---------------------------------------------------------------------------

class TestBuildDependencyLookup:
    def test_empty_input(self):
        assert build_dependency_lookup([]) == {}

    def test_edges_map_blocked_to_blockers(self):
        issues = [make_issue("A"), make_issue("B")]
        lookup = build_dependency_lookup(issues, [blocks("A", "B")])
        assert lookup == {"b": ["A"]}

    def test_parent_issues_field(self):
        issues = [make_issue("A"), make_issue("B", blocked_by=["A"])]
        assert build_dependency_lookup(issues) == {"b": ["A"]}

    def test_both_representations_merge_without_duplicates(self):
        issues = [make_issue("A"), make_issue("B", blocked_by=["a", "C"])]
        lookup = build_dependency_lookup(issues, [blocks("A", "B")])
        assert lookup == {"b": ["A", "C"]}

    def test_non_blocking_edges_ignored(self):
        deps = [blocks("A", "B", type="relates_to"), blocks("C", "B", type="BLOCKS")]
        lookup = build_dependency_lookup([make_issue("B")], deps)
        assert lookup == {"b": ["C"]}

    def test_empty_ids_ignored(self):
        lookup = build_dependency_lookup([], [Dependency("", "A"), Dependency("B", "")])
        assert lookup == {}

    def test_blocker_order_preserved(self):
        deps = [blocks("Z", "X"), blocks("A", "X"), blocks("M", "X")]
        assert build_dependency_lookup([], deps)["x"] == ["Z", "A", "M"]


# ---------------------------------------------------------------------------
# build_blocks_lookup / in_set_blockers
# ---------------------------------------------------------------------------

class TestBlocksLookup:
    def test_reverse_map(self):
        blocking = {"b": ["A"], "c": ["A", "B"]}
        assert build_blocks_lookup(blocking, {"a", "b", "c"}) == {"a": ["b", "c"], "b": ["c"]}

    def test_out_of_set_blocker_dropped(self):
        blocking = {"b": ["ghost"]}
        assert build_blocks_lookup(blocking, {"b"}) == {}

    def test_out_of_set_blocked_dropped(self):
        blocking = {"ghost": ["A"]}
        assert build_blocks_lookup(blocking, {"a"}) == {}

    def test_out_of_set_blocked_kept_when_asked(self):
        blocking = {"ghost": ["A"], "b": ["ghost"]}
        assert build_blocks_lookup(blocking, {"a", "b"}, blocked_in_set=False) == {"a": ["ghost"]}

    def test_in_set_blockers_filters(self):
        blocking = {"b": ["A", "ghost"]}
        assert in_set_blockers("b", blocking, {"a", "b"}) == ["A"]
        assert in_set_blockers("a", blocking, {"a", "b"}) == []


# ---------------------------------------------------------------------------
# classify_issues
# ---------------------------------------------------------------------------

class TestClassifyIssues:
    def _classify(self, issues, deps=()):
        return classify_issues(issues, build_dependency_lookup(issues, deps))

    def test_empty(self):
        result = self._classify([])
        assert result.roots == [] and result.dependents == [] and result.orphans == []

    def test_a_blocks_b(self):
        result = self._classify([make_issue("A"), make_issue("B")], [blocks("A", "B")])
        assert _ids(result.roots) == ["A"]
        assert _ids(result.dependents) == ["B"]
        assert result.orphans == []

    def test_no_relationships_is_orphan(self):
        result = self._classify([make_issue("A"), make_issue("B")])
        assert _ids(result.orphans) == ["A", "B"]

    def test_middle_of_chain_is_dependent(self):
        issues = [make_issue("A"), make_issue("B"), make_issue("C")]
        result = self._classify(issues, [blocks("A", "B"), blocks("B", "C")])
        assert _ids(result.roots) == ["A"]
        assert _ids(result.dependents) == ["B", "C"]

    def test_missing_blocker_degrades_to_orphan(self):
        result = self._classify([make_issue("B", blocked_by=["gone"])])
        assert _ids(result.orphans) == ["B"]

    def test_missing_blocker_degrades_to_root(self):
        issues = [make_issue("B", blocked_by=["gone"]), make_issue("C", blocked_by=["B"])]
        result = self._classify(issues)
        assert _ids(result.roots) == ["B"]
        assert _ids(result.dependents) == ["C"]

    def test_blocking_only_missing_issue_is_root(self):
        result = self._classify([make_issue("X")], [blocks("X", "Z")])
        assert _ids(result.roots) == ["X"]
        assert result.orphans == []

    def test_case_insensitive_ids(self):
        issues = [make_issue("Web-1"), make_issue("web-2")]
        result = self._classify(issues, [blocks("WEB-1", "WEB-2")])
        assert _ids(result.roots) == ["Web-1"]
        assert _ids(result.dependents) == ["web-2"]

    def test_cycle_members_are_dependents(self):
        issues = [make_issue("A"), make_issue("B")]
        result = self._classify(issues, [blocks("A", "B"), blocks("B", "A")])
        assert result.roots == []
        assert _ids(result.dependents) == ["A", "B"]

    def test_partition_is_disjoint_and_complete(self):
        issues = [make_issue(x) for x in "ABCDEF"]
        deps = [blocks("A", "B"), blocks("B", "C"), blocks("D", "C")]
        result = self._classify(issues, deps)
        all_ids = _ids(result.roots) + _ids(result.dependents) + _ids(result.orphans)
        assert sorted(all_ids) == list("ABCDEF")
        assert _ids(result.orphans) == ["E", "F"]


def test_issue_key_casefolds():
    assert issue_key("ABC-1") == issue_key("abc-1")
