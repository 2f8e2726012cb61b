"""Color palette shared by the graph builder, SVG geometry and text views."""

from typing import Optional

DEFAULT_COLOR = "#6b7280"  # gray

BLUE = "#3b82f6"
YELLOW = "#eab308"
GREEN = "#22c55e"
RED = "#ef4444"
ORANGE = "#f97316"
PURPLE = "#a855f7"

PR_STATUS_COLORS = {
    "in_progress": BLUE,
    "ready_for_review": YELLOW,
    "ready_for_merging": GREEN,
    "checks_failing": RED,
    "conflict": ORANGE,
    "merged": PURPLE,
    "closed": DEFAULT_COLOR,
}

ISSUE_TYPE_COLORS = {
    "bug": RED,
    "feature": PURPLE,
    "task": BLUE,
    "epic": ORANGE,
    "chore": DEFAULT_COLOR,
}


def pr_status_color(status: Optional[str]) -> str:
    return PR_STATUS_COLORS.get(status or "", DEFAULT_COLOR)


def issue_type_color(issue_type: Optional[str]) -> str:
    return ISSUE_TYPE_COLORS.get(issue_type or "", DEFAULT_COLOR)
