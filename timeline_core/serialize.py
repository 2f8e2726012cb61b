"""JSON export of a timeline graph for the browser-side graph widget."""

import json
from typing import Optional

from timeline_core.models import Graph, GraphNode, TimelineLaneLayout


def _commit(node: GraphNode) -> dict:
    is_pr = node.kind == "pr"
    return {
        "hash": node.id,
        "subject": node.title,
        "branch": node.branch_name,
        "parentIds": list(node.parent_ids),
        "color": node.color,
        "tag": node.tag,
        "nodeType": node.node_type,
        "status": node.node_status,
        "url": node.url,
        "timeDimension": node.time_dimension,
        "pullRequestNumber": node.pull_request.number if is_pr else None,
        "issueId": None if is_pr else node.issue.id,
    }


def layout_to_dict(layout: TimelineLaneLayout) -> dict:
    return {
        "laneAssignments": dict(layout.lane_assignments),
        "maxLanes": layout.max_lanes,
        "rows": [
            {
                "nodeId": row.node_id,
                "nodeLane": row.node_lane,
                "activeLanes": sorted(row.active_lanes),
                "connectorFromLane": row.connector_from_lane,
            }
            for row in layout.row_infos
        ],
    }


def graph_to_dict(graph: Graph, layout: Optional[TimelineLaneLayout] = None) -> dict:
    """Convert a graph (and optionally its lane layout) to plain JSON data."""
    data = {
        "mainBranchName": graph.main_branch_name,
        "branches": [
            {
                "name": b.name,
                "color": b.color,
                "parentBranch": b.parent_branch,
                "parentCommitId": b.parent_commit_id,
            }
            for b in graph.branches.values()
        ],
        "commits": [_commit(n) for n in graph.nodes],
        "hasMorePastPRs": graph.has_more_past_prs,
        "totalPastPRsShown": graph.shown_past_pr_count,
        "totalPastPRs": graph.total_past_prs,
    }
    if layout is not None:
        data["layout"] = layout_to_dict(layout)
    return data


def graph_to_json(graph: Graph, layout: Optional[TimelineLaneLayout] = None,
                  indent: Optional[int] = None) -> str:
    """Serialize to a JSON string (compact unless *indent* is given)."""
    separators = (",", ":") if indent is None else None
    return json.dumps(graph_to_dict(graph, layout), indent=indent, separators=separators)
