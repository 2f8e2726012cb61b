"""Records and graph values for the PR/issue timeline.

Input records (``PullRequest``, ``Issue``, ``Dependency``) are snapshots
handed over by whatever fetched them.  Graph values (nodes, branches,
``Graph``, ``TimelineLaneLayout``) are built once per render and never
mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Optional, Union

from timeline_core import colors

PRStatus = Literal[
    "in_progress",
    "ready_for_review",
    "ready_for_merging",
    "checks_failing",
    "conflict",
    "merged",
    "closed",
]

VALID_PR_STATES = {
    "in_progress",
    "ready_for_review",
    "ready_for_merging",
    "checks_failing",
    "conflict",
    "merged",
    "closed",
}

PAST_PR_STATES = {"merged", "closed"}

IssueType = Literal["bug", "feature", "task", "epic", "chore"]

VALID_ISSUE_TYPES = {"bug", "feature", "task", "epic", "chore"}

BLOCKS = "blocks"


def _squash(value: str) -> str:
    return "".join(ch for ch in value.lower() if ch.isalnum())


_PR_STATUS_KEYS = {_squash(s): s for s in VALID_PR_STATES}
_ISSUE_TYPE_KEYS = {_squash(t): t for t in VALID_ISSUE_TYPES}


def normalize_pr_status(value: object) -> Optional[PRStatus]:
    """Map a status spelling to a ``PRStatus``.

    Accepts the snake_case names as well as the CamelCase, kebab-case and
    upper-case spellings other tools emit.

    Examples:
        >>> normalize_pr_status("ReadyForReview")
        'ready_for_review'
        >>> normalize_pr_status("MERGED")
        'merged'
        >>> normalize_pr_status("bogus") is None
        True
    """
    if not isinstance(value, str):
        return None
    return _PR_STATUS_KEYS.get(_squash(value))  # type: ignore[return-value]


def normalize_issue_type(value: object) -> Optional[IssueType]:
    """Map an issue type spelling to an ``IssueType`` (None when unknown)."""
    if not isinstance(value, str):
        return None
    return _ISSUE_TYPE_KEYS.get(_squash(value))  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Input records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PullRequest:
    number: int
    title: str
    status: PRStatus
    created_at: datetime
    updated_at: datetime
    branch_name: Optional[str] = None
    merged_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    url: Optional[str] = None
    issue_id: Optional[str] = None  # issue this PR implements, if any

    @property
    def is_past(self) -> bool:
        return self.status in PAST_PR_STATES

    @property
    def close_date(self) -> datetime:
        """Merge date for merged PRs, close date for closed ones.

        Falls back to ``updated_at`` when the specific timestamp is missing.
        """
        if self.status == "merged":
            return self.merged_at or self.updated_at
        if self.status == "closed":
            return self.closed_at or self.updated_at
        return self.updated_at


@dataclass(frozen=True)
class Issue:
    id: str
    title: str
    created_at: datetime
    type: Optional[IssueType] = None
    priority: Optional[int] = None
    group: Optional[str] = None
    parent_issues: tuple[str, ...] = ()  # ids of issues blocking this one


@dataclass(frozen=True)
class Dependency:
    """Edge meaning ``from_issue_id`` is blocked by ``to_issue_id``."""

    from_issue_id: str
    to_issue_id: str
    type: str = BLOCKS


# ---------------------------------------------------------------------------
# Graph nodes
# ---------------------------------------------------------------------------

_PR_NODE_STATUS = {
    "merged": "completed",
    "closed": "abandoned",
    "in_progress": "in_progress",
    "ready_for_review": "pending",
    "ready_for_merging": "pending",
    "checks_failing": "blocked",
    "conflict": "blocked",
}


@dataclass(frozen=True)
class PullRequestNode:
    """A pull request placed on the timeline."""

    pull_request: PullRequest
    branch_name: str
    time_dimension: int
    parent_ids: tuple[str, ...] = ()
    kind: Literal["pr"] = field(default="pr", init=False)

    @property
    def id(self) -> str:
        return f"pr-{self.pull_request.number}"

    @property
    def title(self) -> str:
        return f"#{self.pull_request.number}: {self.pull_request.title}"

    @property
    def status(self) -> PRStatus:
        return self.pull_request.status

    @property
    def node_type(self) -> str:
        if self.status == "merged":
            return "merged_pull_request"
        if self.status == "closed":
            return "closed_pull_request"
        return "open_pull_request"

    @property
    def node_status(self) -> str:
        return _PR_NODE_STATUS.get(self.status, "open")

    @property
    def color(self) -> str:
        return colors.pr_status_color(self.status)

    @property
    def tag(self) -> str:
        return self.status

    @property
    def url(self) -> Optional[str]:
        return self.pull_request.url

    @property
    def sort_date(self) -> datetime:
        pr = self.pull_request
        return pr.close_date if pr.is_past else pr.created_at


@dataclass(frozen=True)
class IssueNode:
    """An issue placed on the timeline, either dependency-ordered or orphan."""

    issue: Issue
    branch_name: str
    time_dimension: int
    parent_ids: tuple[str, ...] = ()
    is_orphan: bool = False
    linked_pr_status: Optional[PRStatus] = None
    kind: Literal["issue"] = field(default="issue", init=False)

    @property
    def id(self) -> str:
        return f"issue-{self.issue.id}"

    @property
    def title(self) -> str:
        return self.issue.title

    @property
    def node_type(self) -> str:
        return "orphan_issue" if self.is_orphan else "issue"

    @property
    def node_status(self) -> str:
        if self.linked_pr_status:
            return _PR_NODE_STATUS.get(self.linked_pr_status, "open")
        return "open"

    @property
    def color(self) -> str:
        if self.linked_pr_status:
            return colors.pr_status_color(self.linked_pr_status)
        return colors.issue_type_color(self.issue.type)

    @property
    def tag(self) -> Optional[str]:
        return self.issue.type

    @property
    def url(self) -> Optional[str]:
        return None

    @property
    def priority(self) -> Optional[int]:
        return self.issue.priority

    @property
    def group(self) -> Optional[str]:
        return self.issue.group

    @property
    def sort_date(self) -> datetime:
        return self.issue.created_at


GraphNode = Union[PullRequestNode, IssueNode]


# ---------------------------------------------------------------------------
# Graph and layout
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Branch:
    name: str
    color: str = colors.DEFAULT_COLOR
    parent_branch: Optional[str] = None
    parent_commit_id: Optional[str] = None


@dataclass(frozen=True)
class Graph:
    """Ordered timeline nodes plus the branch registry.

    ``nodes`` order is significant: parents always precede their children
    and lane allocation walks the list front to back.
    """

    nodes: tuple[GraphNode, ...] = ()
    branches: dict[str, Branch] = field(default_factory=dict)
    main_branch_name: str = "main"
    has_more_past_prs: bool = False
    shown_past_pr_count: int = 0
    total_past_prs: int = 0

    def node_by_id(self, node_id: str) -> Optional[GraphNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None


@dataclass(frozen=True)
class RowLaneInfo:
    node_id: str
    node_lane: int
    active_lanes: frozenset[int]
    # Lane the branch forks from; only set on the row that opens the branch.
    connector_from_lane: Optional[int] = None


@dataclass(frozen=True)
class TimelineLaneLayout:
    lane_assignments: dict[str, int] = field(default_factory=dict)
    max_lanes: int = 1
    row_infos: tuple[RowLaneInfo, ...] = ()
