"""Tests for timeline_core.lane_layout: lowest-free-lane allocation."""

from timeline_core.graph_builder import build_graph
from timeline_core.lane_layout import TimelineLaneCalculator, calculate_lanes
from timeline_core.models import PullRequestNode

from tests.conftest import blocks, make_issue, make_pr


def _node(number, branch, parents=()):
    return PullRequestNode(make_pr(number), branch, 1, tuple(parents))


def _rows(layout):
    return [(r.node_id, r.node_lane, sorted(r.active_lanes), r.connector_from_lane)
            for r in layout.row_infos]


class TestCalculateLanes:
    def test_empty(self):
        layout = calculate_lanes([])
        assert layout.max_lanes == 1
        assert layout.lane_assignments == {}
        assert layout.row_infos == ()

    def test_main_only(self):
        nodes = [_node(1, "main"), _node(2, "main", ["pr-1"])]
        layout = calculate_lanes(nodes)
        assert layout.lane_assignments == {"pr-1": 0, "pr-2": 0}
        assert layout.max_lanes == 1
        assert all(r.connector_from_lane is None for r in layout.row_infos)

    def test_released_lane_is_reused(self):
        nodes = [
            _node(1, "main"),
            _node(2, "feat-a", ["pr-1"]),
            _node(3, "feat-b", ["pr-1"]),
        ]
        layout = calculate_lanes(nodes)
        assert _rows(layout) == [
            ("pr-1", 0, [0], None),
            ("pr-2", 1, [0, 1], 0),
            ("pr-3", 1, [0, 1], 0),
        ]
        assert layout.max_lanes == 2

    def test_branch_keeps_lane_across_gap(self):
        nodes = [
            _node(1, "x"),
            _node(2, "y"),
            _node(3, "x", ["pr-1"]),
            _node(4, "z"),
        ]
        layout = calculate_lanes(nodes)
        assert _rows(layout) == [
            ("pr-1", 1, [0, 1], 0),
            ("pr-2", 2, [0, 1, 2], 0),
            ("pr-3", 1, [0, 1], None),
            ("pr-4", 1, [0, 1], 0),
        ]
        assert layout.max_lanes == 3

    def test_lowest_free_lane_fills_hole(self):
        nodes = [
            _node(1, "a"),
            _node(2, "b"),
            _node(3, "b"),
            _node(4, "c"),
            _node(5, "a"),
        ]
        layout = calculate_lanes(nodes)
        # b releases lane 2 after pr-3; c takes it while a still holds lane 1.
        assert layout.lane_assignments == {"pr-1": 1, "pr-2": 2, "pr-3": 2, "pr-4": 2, "pr-5": 1}

    def test_connector_uses_first_parent_lane(self):
        nodes = [
            _node(1, "a"),
            _node(2, "b"),
            _node(3, "c", ["pr-2", "pr-1"]),
            _node(4, "a"),
            _node(5, "b"),
        ]
        layout = calculate_lanes(nodes)
        assert layout.row_infos[2].node_lane == 3
        assert layout.row_infos[2].connector_from_lane == 2

    def test_unknown_parent_connects_from_main(self):
        layout = calculate_lanes([_node(1, "a", ["pr-404"])])
        assert layout.row_infos[0].connector_from_lane == 0

    def test_branch_names_case_insensitive(self):
        nodes = [_node(1, "Feature"), _node(2, "feature"), _node(3, "MAIN")]
        layout = calculate_lanes(nodes)
        assert layout.lane_assignments == {"pr-1": 1, "pr-2": 1, "pr-3": 0}

    def test_custom_main_branch(self):
        nodes = [_node(1, "trunk"), _node(2, "main")]
        layout = TimelineLaneCalculator("trunk").calculate(nodes)
        assert layout.lane_assignments == {"pr-1": 0, "pr-2": 1}

    def test_active_lanes_are_snapshots(self):
        nodes = [_node(1, "a"), _node(2, "main")]
        layout = calculate_lanes(nodes)
        assert layout.row_infos[0].active_lanes == frozenset({0, 1})
        assert layout.row_infos[1].active_lanes == frozenset({0})


class TestLayoutOfBuiltGraphs:
    def _graph(self):
        prs = [
            make_pr(1, "merged", day=1),
            make_pr(2, "closed", day=2),
            make_pr(3, "merged", day=3),
            make_pr(4, day=4, branch_name="feat/a"),
            make_pr(5, day=5, branch_name="feat/b"),
        ]
        issues = [
            make_issue("A"), make_issue("B"), make_issue("C", blocked_by=["A"]),
            make_issue("o1", group="ui"), make_issue("o2", group="ui"), make_issue("o3"),
        ]
        return build_graph(prs, issues, [blocks("A", "B")])

    def test_main_nodes_always_lane_zero(self):
        graph = self._graph()
        layout = calculate_lanes(graph.nodes)
        for node in graph.nodes:
            if node.branch_name == "main":
                assert layout.lane_assignments[node.id] == 0
        assert all(0 in r.active_lanes for r in layout.row_infos)

    def test_lane_minimality(self):
        graph = self._graph()
        layout = calculate_lanes(graph.nodes)
        for index, row in enumerate(layout.row_infos):
            pending = {n.branch_name.casefold() for n in graph.nodes[index:]
                       if n.branch_name != "main"}
            assert len(row.active_lanes) <= len(pending) + 1

    def test_max_lanes_matches_highest_lane(self):
        graph = self._graph()
        layout = calculate_lanes(graph.nodes)
        assert layout.max_lanes == max(layout.lane_assignments.values()) + 1

    def test_dependent_issue_connects_to_blocker_lane(self):
        graph = build_graph([make_pr(1, "merged")], [make_issue("A"), make_issue("B")],
                            [blocks("A", "B")])
        layout = calculate_lanes(graph.nodes)
        a_row, b_row = layout.row_infos[1], layout.row_infos[2]
        assert a_row.connector_from_lane == 0
        # issue-A's lane is free again by the time issue-B opens its branch.
        assert b_row.node_lane == a_row.node_lane
        assert b_row.connector_from_lane == a_row.node_lane

    def test_deterministic(self):
        graph = self._graph()
        assert calculate_lanes(graph.nodes) == calculate_lanes(graph.nodes)
