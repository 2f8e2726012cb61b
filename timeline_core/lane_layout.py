"""Lane allocation for the timeline graph.

Lanes are vertical tracks.  The main branch always owns lane 0; every
other branch claims the lowest free lane when its first node appears and
gives it back after its last node, so concurrent branches pack as tightly
as possible and a branch with gaps keeps its lane throughout.

The allocator only looks at the shared node attributes (``id``,
``branch_name``, ``parent_ids``) and the emission order produced by
:mod:`timeline_core.graph_builder`.
"""

from __future__ import annotations

from typing import Optional, Sequence

from timeline_core.models import GraphNode, RowLaneInfo, TimelineLaneLayout

MAIN_LANE = 0


def _branch_key(name: str) -> str:
    return name.casefold()


def _next_free_lane(active_lanes: set[int]) -> int:
    """Lowest lane >= 1 not currently in use."""
    lane = MAIN_LANE + 1
    while lane in active_lanes:
        lane += 1
    return lane


def _parent_lane(node: GraphNode, lane_assignments: dict[str, int]) -> int:
    """Lane of the node's first parent; nodes without parents fork from main."""
    if not node.parent_ids:
        return MAIN_LANE
    return lane_assignments.get(node.parent_ids[0], MAIN_LANE)


def calculate_lanes(nodes: Sequence[GraphNode], main_branch: str = "main") -> TimelineLaneLayout:
    """Assign a lane to every node and collect per-row rendering info.

    Args:
        nodes: Nodes in display order (as returned by the graph builder).
        main_branch: Branch pinned to lane 0.

    Returns:
        A :class:`TimelineLaneLayout`.  An empty input yields one lane and
        no rows.
    """
    if not nodes:
        return TimelineLaneLayout(lane_assignments={}, max_lanes=1, row_infos=())

    main_key = _branch_key(main_branch)

    # Last node of every branch, for lane release.
    branch_last_node: dict[str, str] = {}
    for node in nodes:
        branch_last_node[_branch_key(node.branch_name)] = node.id

    lane_assignments: dict[str, int] = {}
    branch_to_lane: dict[str, int] = {main_key: MAIN_LANE}
    active_lanes: set[int] = {MAIN_LANE}
    row_infos: list[RowLaneInfo] = []
    max_lane_used = MAIN_LANE

    for node in nodes:
        key = _branch_key(node.branch_name)
        connector_from_lane: Optional[int] = None

        if key == main_key:
            node_lane = MAIN_LANE
        elif key in branch_to_lane:
            node_lane = branch_to_lane[key]
        else:
            node_lane = _next_free_lane(active_lanes)
            branch_to_lane[key] = node_lane
            active_lanes.add(node_lane)
            max_lane_used = max(max_lane_used, node_lane)
            connector_from_lane = _parent_lane(node, lane_assignments)

        lane_assignments[node.id] = node_lane
        row_infos.append(RowLaneInfo(
            node_id=node.id,
            node_lane=node_lane,
            active_lanes=frozenset(active_lanes),
            connector_from_lane=connector_from_lane,
        ))

        if key != main_key and branch_last_node.get(key) == node.id:
            active_lanes.discard(node_lane)

    return TimelineLaneLayout(
        lane_assignments=lane_assignments,
        max_lanes=max_lane_used + 1,
        row_infos=tuple(row_infos),
    )


class TimelineLaneCalculator:
    """Lane allocator bound to a main branch name."""

    def __init__(self, main_branch: str = "main"):
        self.main_branch = main_branch

    def calculate(self, nodes: Sequence[GraphNode]) -> TimelineLaneLayout:
        return calculate_lanes(nodes, self.main_branch)
