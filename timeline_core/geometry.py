"""SVG geometry for timeline rows.

Each row of the timeline is drawn as its own small SVG: one vertical line
per active lane, an L-shaped connector when a branch starts, and the node
glyph (circle for PRs, diamond for issues, badge for "load more").
"""

from html import escape
from typing import Literal, Optional

from timeline_core import colors
from timeline_core.models import Graph, GraphNode, TimelineLaneLayout

LANE_WIDTH = 24
ROW_HEIGHT = 40
NODE_RADIUS = 6
DIAMOND_SIZE = 7
LINE_STROKE_WIDTH = 2

RowKind = Literal["circle", "diamond", "load_more"]


def _attr(value: str) -> str:
    return escape(value, quote=True).replace("&#x27;", "&apos;")


def svg_width(max_lanes: int) -> int:
    """Width needed for *max_lanes* lanes plus half a lane of padding."""
    return LANE_WIDTH * max(max_lanes, 1) + LANE_WIDTH // 2


def lane_center_x(lane: int) -> int:
    return LANE_WIDTH // 2 + lane * LANE_WIDTH


def row_center_y() -> int:
    return ROW_HEIGHT // 2


def vertical_line(lane: int, has_node_in_lane: bool) -> str:
    """Path for a lane line; broken around the node when the lane holds one."""
    x = lane_center_x(lane)
    center_y = row_center_y()
    if has_node_in_lane:
        top = f"M {x} 0 L {x} {center_y - NODE_RADIUS - 2}"
        bottom = f"M {x} {center_y + NODE_RADIUS + 2} L {x} {ROW_HEIGHT}"
        return f"{top} {bottom}"
    return f"M {x} 0 L {x} {ROW_HEIGHT}"


def connector(from_lane: int, to_lane: int) -> str:
    """L-shaped path: down the source lane, across, then down to the node."""
    from_x = lane_center_x(from_lane)
    to_x = lane_center_x(to_lane)
    center_y = row_center_y()
    bend_y = center_y - NODE_RADIUS - 4
    return (f"M {from_x} 0 L {from_x} {bend_y} "
            f"L {to_x} {bend_y} L {to_x} {center_y - NODE_RADIUS - 2}")


def circle_node(lane: int, color: str) -> str:
    cx = lane_center_x(lane)
    cy = row_center_y()
    return f'<circle cx="{cx}" cy="{cy}" r="{NODE_RADIUS}" fill="{_attr(color)}" />'


def diamond_node(lane: int, color: str) -> str:
    cx = lane_center_x(lane)
    cy = row_center_y()
    s = DIAMOND_SIZE
    path = f"M {cx} {cy - s} L {cx + s} {cy} L {cx} {cy + s} L {cx - s} {cy} Z"
    return f'<path d="{path}" fill="{_attr(color)}" />'


def load_more_node(lane: int, color: str) -> str:
    cx = lane_center_x(lane)
    cy = row_center_y()
    r = NODE_RADIUS + 2
    return (
        f'<circle cx="{cx}" cy="{cy}" r="{r}" fill="{_attr(color)}" '
        f'stroke="white" stroke-width="2" />'
        f'<text x="{cx}" y="{cy}" text-anchor="middle" dominant-baseline="central" '
        f'fill="white" font-size="14" font-weight="bold">+</text>'
    )


def row_kind(node: GraphNode) -> RowKind:
    return "diamond" if node.kind == "issue" else "circle"


def row_svg(
    node_lane: int,
    active_lanes: frozenset[int] | set[int],
    connector_from_lane: Optional[int],
    max_lanes: int,
    node_color: str,
    kind: RowKind = "circle",
    lane_colors: Optional[dict[int, str]] = None,
) -> str:
    """Complete SVG element for one row's graph cell."""
    width = svg_width(max_lanes)
    stroke = f'stroke-width="{LINE_STROKE_WIDTH}" fill="none"'
    parts = [f'<svg width="{width}" height="{ROW_HEIGHT}" xmlns="http://www.w3.org/2000/svg">']

    for lane in sorted(active_lanes):
        line_color = (lane_colors or {}).get(lane, colors.DEFAULT_COLOR)
        path = vertical_line(lane, lane == node_lane)
        parts.append(f'<path d="{path}" stroke="{_attr(line_color)}" {stroke} />')

    if connector_from_lane is not None and connector_from_lane != node_lane:
        path = connector(connector_from_lane, node_lane)
        parts.append(f'<path d="{path}" stroke="{_attr(node_color)}" {stroke} />')

    if kind == "load_more":
        parts.append(load_more_node(node_lane, node_color))
    elif kind == "diamond":
        parts.append(diamond_node(node_lane, node_color))
    else:
        parts.append(circle_node(node_lane, node_color))

    parts.append("</svg>")
    return "".join(parts)


def lane_colors(graph: Graph, layout: TimelineLaneLayout) -> dict[int, dict[int, str]]:
    """Per-row lane colors: row index -> lane -> color of the branch in that lane.

    Lanes are reused over time, so the color of a lane depends on which
    branch holds it at that row.
    """
    branch_colors = {name.casefold(): b.color for name, b in graph.branches.items()}
    holder: dict[int, str] = {0: branch_colors.get(graph.main_branch_name.casefold(),
                                                   colors.DEFAULT_COLOR)}
    result: dict[int, dict[int, str]] = {}
    for index, (node, row) in enumerate(zip(graph.nodes, layout.row_infos)):
        holder[row.node_lane] = branch_colors.get(node.branch_name.casefold(), node.color)
        result[index] = {lane: holder.get(lane, colors.DEFAULT_COLOR) for lane in row.active_lanes}
    return result


def load_more_svg(max_lanes: int, color: str = colors.DEFAULT_COLOR) -> str:
    """Row shown above the oldest PR when older PRs were left out."""
    return row_svg(0, frozenset({0}), None, max_lanes, color, kind="load_more")


def render_rows(graph: Graph, layout: TimelineLaneLayout) -> list[str]:
    """One SVG string per row, prefixed by a load-more row when truncated."""
    rows = []
    if graph.has_more_past_prs:
        rows.append(load_more_svg(layout.max_lanes))
    per_row_colors = lane_colors(graph, layout)
    for index, (node, row) in enumerate(zip(graph.nodes, layout.row_infos)):
        rows.append(row_svg(
            row.node_lane,
            row.active_lanes,
            row.connector_from_lane,
            layout.max_lanes,
            node.color,
            kind=row_kind(node),
            lane_colors=per_row_colors[index],
        ))
    return rows
