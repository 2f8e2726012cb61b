"""Terminal rendering of the timeline, one line per node.

Lanes become two-character columns: ``●`` for a PR, ``◆`` for an issue,
``│`` for a lane passing through.  A branch that starts on a row gets an
extra connector line above it, e.g. ``├─╮`` from lane 0 to lane 1.
"""

from rich.text import Text

from timeline_core import colors
from timeline_core.geometry import lane_colors
from timeline_core.models import Graph, RowLaneInfo, TimelineLaneLayout

NODE_GLYPHS = {"pr": "●", "issue": "◆"}
LANE_GLYPH = "│"


def _connector_line(row: RowLaneInfo, max_lanes: int, row_colors: dict[int, str], color: str) -> Text:
    src, dst = row.connector_from_lane, row.node_lane
    lo, hi = min(src, dst), max(src, dst)
    line = Text()
    for lane in range(max_lanes):
        if lane == src:
            line.append("├" if src < dst else "┤", style=color)
        elif lane == dst:
            line.append("╮" if src < dst else "╭", style=color)
        elif lo < lane < hi:
            glyph = "┼" if lane in row.active_lanes else "─"
            line.append(glyph, style=color)
        elif lane in row.active_lanes:
            line.append(LANE_GLYPH, style=row_colors.get(lane, colors.DEFAULT_COLOR))
        else:
            line.append(" ")
        line.append("─" if lo <= lane < hi else " ", style=color)
    return line


def render_lines(graph: Graph, layout: TimelineLaneLayout) -> list[Text]:
    """Render every row (plus connector lines) as rich Text."""
    lines: list[Text] = []
    per_row_colors = lane_colors(graph, layout)

    for index, (node, row) in enumerate(zip(graph.nodes, layout.row_infos)):
        row_colors = per_row_colors[index]
        if row.connector_from_lane is not None and row.connector_from_lane != row.node_lane:
            lines.append(_connector_line(row, layout.max_lanes, row_colors, node.color))

        line = Text()
        for lane in range(layout.max_lanes):
            if lane == row.node_lane:
                line.append(NODE_GLYPHS.get(node.kind, "●"), style=node.color)
            elif lane in row.active_lanes:
                line.append(LANE_GLYPH, style=row_colors.get(lane, colors.DEFAULT_COLOR))
            else:
                line.append(" ")
            line.append(" ")
        line.append(" ")
        line.append(node.title, style="bold" if node.kind == "pr" else "")
        if node.tag:
            line.append(f"  [{node.tag}]", style="dim")
        lines.append(line)
    return lines


def render_timeline(graph: Graph, layout: TimelineLaneLayout) -> list[Text]:
    """Rendered lines including the "older PRs" header and empty-state text."""
    if not graph.nodes:
        return [Text("No items to show.", style="dim")]
    lines = []
    if graph.has_more_past_prs:
        hidden = graph.total_past_prs - graph.shown_past_pr_count
        lines.append(Text(f"+ {hidden} older PRs not shown", style="dim"))
    lines.extend(render_lines(graph, layout))
    return lines


def render_static_timeline(graph: Graph, layout: TimelineLaneLayout) -> str:
    """Plain-text version of :func:`render_timeline`."""
    return "\n".join(line.plain.rstrip() for line in render_timeline(graph, layout))
