"""Builds the timeline graph from pull requests and issues.

Nodes are emitted in four phases, and emission order is the display order:

1. Closed/merged PRs, oldest first by close/merge date (most recent at time 0)
2. Open PRs by creation date (time 1), each branching off main
3. Issues with dependencies, depth-first from root issues (time 2 + depth)
4. Orphan issues, chained per group (one time value per group)

Every parent id refers to a node emitted earlier.  Malformed input never
raises: missing branch names, priorities or blockers fall back to defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Iterator, Mapping, Optional

from timeline_core import colors
from timeline_core.graph import (
    IssueClassification,
    build_blocks_lookup,
    build_dependency_lookup,
    classify_issues,
    in_set_blockers,
    issue_key,
)
from timeline_core.models import (
    Branch,
    Dependency,
    Graph,
    GraphNode,
    Issue,
    IssueNode,
    PRStatus,
    PullRequest,
    PullRequestNode,
    normalize_pr_status,
)

DEFAULT_MAX_PAST_PRS = 5
OPEN_PR_TIME = 1
ISSUE_TIME_START = 2
ORPHAN_BRANCH = "orphan-issues"


def _utc(value: datetime) -> datetime:
    # Naive and aware timestamps may be mixed in hand-written snapshots.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _priority_key(issue: Issue) -> tuple:
    """Priority ascending (missing priority sorts last), then oldest first."""
    return (
        issue.priority is None,
        issue.priority if issue.priority is not None else 0,
        _utc(issue.created_at),
    )


@dataclass
class _Emission:
    """Nodes and branches accumulated while building one graph."""

    main_branch: str
    nodes: list[GraphNode] = field(default_factory=list)
    branches: dict[str, Branch] = field(default_factory=dict)
    node_branches: dict[str, str] = field(default_factory=dict)

    def add(self, node: GraphNode) -> None:
        self.nodes.append(node)
        self.node_branches[node.id] = node.branch_name

    def claim(self, name: str) -> str:
        """Return *name*, or *name* with a numeric suffix if a branch already uses it.

        Names compare case-insensitively, as the lane allocator does.
        """
        taken = {b.casefold() for b in self.branches}
        candidate, n = name, 2
        while candidate.casefold() in taken:
            candidate = f"{name}-{n}"
            n += 1
        return candidate

    def register(self, branch: Branch) -> None:
        self.branches[branch.name] = branch

    def register_new(self, branch: Branch) -> None:
        if branch.name not in self.branches:
            self.branches[branch.name] = branch


@dataclass
class _PastPRs:
    nodes: list[PullRequestNode]
    total: int
    has_more: bool


def _add_past_prs(
    prs: list[PullRequest],
    out: _Emission,
    max_past_prs: Optional[int],
) -> _PastPRs:
    """Phase 1: closed and merged PRs, keeping only the most recent ones."""
    all_past = sorted((pr for pr in prs if pr.is_past),
                      key=lambda pr: _utc(pr.close_date))
    total = len(all_past)

    shown = all_past
    has_more = False
    if max_past_prs is not None:
        limit = max(max_past_prs, 0)
        if limit < total:
            shown = all_past[total - limit:]
            has_more = True

    nodes: list[PullRequestNode] = []
    time_dimension = -len(shown) + 1
    for pr in shown:
        if pr.status == "merged":
            branch_name = out.main_branch
        else:
            branch_name = pr.branch_name or f"pr-{pr.number}"
            out.register_new(Branch(
                name=branch_name,
                color=colors.pr_status_color(pr.status),
                parent_branch=out.main_branch,
                parent_commit_id=nodes[-1].id if nodes else None,
            ))
        node = PullRequestNode(pr, branch_name, time_dimension)
        out.add(node)
        nodes.append(node)
        time_dimension += 1

    return _PastPRs(nodes=nodes, total=total, has_more=has_more)


def _add_open_prs(prs: list[PullRequest], out: _Emission, anchor: Optional[str]) -> None:
    """Phase 2: open PRs, oldest first, each on a branch off main."""
    open_prs = sorted((pr for pr in prs if not pr.is_past),
                      key=lambda pr: _utc(pr.created_at))
    parent_ids = (anchor,) if anchor else ()
    for pr in open_prs:
        branch_name = pr.branch_name or f"pr-{pr.number}"
        out.register_new(Branch(
            name=branch_name,
            color=colors.pr_status_color(pr.status),
            parent_branch=out.main_branch,
            parent_commit_id=anchor,
        ))
        out.add(PullRequestNode(pr, branch_name, OPEN_PR_TIME, parent_ids))


@dataclass
class _IssueWalk:
    """Traversal state for the depth-first issue pass."""

    issues: dict[str, Issue]
    blocking: dict[str, list[str]]
    blocks: dict[str, list[str]]
    anchor: Optional[str]
    linked: dict[str, PRStatus]
    visited: set[str] = field(default_factory=set)

    def children(self, key: str) -> Iterator[str]:
        return iter(self.blocks.get(key, []))

    def ready(self, key: str) -> bool:
        """True when every in-set blocker of *key* has been visited."""
        keys = self.issues.keys()
        return all(issue_key(b) in self.visited
                   for b in in_set_blockers(key, self.blocking, keys))


def _emit_issue(walk: _IssueWalk, out: _Emission, key: str, depth: int, forced: bool = False) -> None:
    issue = walk.issues[key]

    # Only blockers already on the timeline can be parents; issues forced
    # out of a cycle may still have unvisited blockers.  An issue with
    # blockers, none of them shown, gets no parent at all.
    parent_ids = []
    for blocker_id in in_set_blockers(key, walk.blocking, walk.issues.keys()):
        blocker_key = issue_key(blocker_id)
        if blocker_key != key and blocker_key in walk.visited:
            parent_ids.append(f"issue-{walk.issues[blocker_key].id}")
    if not parent_ids and walk.anchor and (forced or key not in walk.blocking):
        parent_ids = [walk.anchor]

    walk.visited.add(key)

    linked_status = walk.linked.get(key)
    branch_name = out.claim(f"issue-{issue.id}")
    first_parent = parent_ids[0] if parent_ids else None
    out.register(Branch(
        name=branch_name,
        color=(colors.pr_status_color(linked_status) if linked_status
               else colors.issue_type_color(issue.type)),
        parent_branch=(out.node_branches[first_parent]
                       if first_parent and first_parent.startswith("issue-")
                       else out.main_branch),
        parent_commit_id=first_parent,
    ))
    out.add(IssueNode(
        issue,
        branch_name,
        ISSUE_TIME_START + depth,
        tuple(parent_ids),
        is_orphan=False,
        linked_pr_status=linked_status,
    ))


def _visit(walk: _IssueWalk, out: _Emission, key: str, depth: int, forced: bool = False) -> None:
    """Pre-order depth-first visit starting at *key*.

    A child is entered only once all of its in-set blockers were visited,
    which also keeps mutually blocking issues out of the main pass.
    """
    if key in walk.visited:
        return
    _emit_issue(walk, out, key, depth, forced)

    stack = [(walk.children(key), depth)]
    while stack:
        children, parent_depth = stack[-1]
        for child in children:
            if child in walk.visited or child not in walk.issues or not walk.ready(child):
                continue
            _emit_issue(walk, out, child, parent_depth + 1)
            stack.append((walk.children(child), parent_depth + 1))
            break
        else:
            stack.pop()


def _add_dependent_issues(
    classification: IssueClassification,
    blocking: dict[str, list[str]],
    out: _Emission,
    anchor: Optional[str],
    linked: dict[str, PRStatus],
) -> None:
    """Phase 3: roots and their dependents, depth first."""
    members = classification.roots + classification.dependents
    issues = {issue_key(i.id): i for i in members}
    walk = _IssueWalk(
        issues=issues,
        blocking=blocking,
        blocks=build_blocks_lookup(blocking, set(issues)),
        anchor=anchor,
        linked=linked,
    )

    for root in sorted(classification.roots, key=_priority_key):
        _visit(walk, out, issue_key(root.id), 0)

    # Dependents left over after the main pass sit on dependency cycles.
    for issue in classification.dependents:
        _visit(walk, out, issue_key(issue.id), 0, forced=True)


def _add_orphan_issues(
    orphans: list[Issue],
    out: _Emission,
    anchor: Optional[str],
    linked: dict[str, PRStatus],
) -> None:
    """Phase 4: orphan issues chained per group, groups alphabetically."""
    groups: dict[str, list[Issue]] = {}
    ungrouped: list[Issue] = []
    for issue in orphans:
        group = (issue.group or "").strip()
        if group:
            groups.setdefault(group.casefold(), []).append(issue)
        else:
            ungrouped.append(issue)

    buckets = [(f"{ORPHAN_BRANCH}-{name}", groups[name]) for name in sorted(groups)]
    if ungrouped:
        buckets.append((ORPHAN_BRANCH, ungrouped))

    time_dimension = ISSUE_TIME_START
    for bucket_name, members in buckets:
        branch_name = out.claim(bucket_name)
        out.register(Branch(
            name=branch_name,
            color=colors.DEFAULT_COLOR,
            parent_branch=out.main_branch,
            parent_commit_id=anchor,
        ))
        previous_id = anchor
        for issue in sorted(members, key=_priority_key):
            node = IssueNode(
                issue,
                branch_name,
                time_dimension,
                (previous_id,) if previous_id else (),
                is_orphan=True,
                linked_pr_status=linked.get(issue_key(issue.id)),
            )
            out.add(node)
            previous_id = node.id
        time_dimension += 1


def _unique_prs(pull_requests: Iterable[PullRequest]) -> list[PullRequest]:
    seen: set[int] = set()
    result = []
    for pr in pull_requests:
        if pr.number in seen:
            continue
        seen.add(pr.number)
        result.append(pr)
    return result


def _unique_issues(issues: Iterable[Issue]) -> list[Issue]:
    seen: set[str] = set()
    result = []
    for issue in issues:
        if not issue.id:
            continue
        key = issue_key(issue.id)
        if key in seen:
            continue
        seen.add(key)
        result.append(issue)
    return result


def build_graph(
    pull_requests: Iterable[PullRequest],
    issues: Iterable[Issue],
    dependencies: Iterable[Dependency] = (),
    max_past_prs: Optional[int] = DEFAULT_MAX_PAST_PRS,
    *,
    main_branch: str = "main",
    linked_pr_status: Optional[Mapping[str, str]] = None,
) -> Graph:
    """Build the ordered timeline graph.

    Args:
        pull_requests: Open, merged and closed PRs in any order.
        issues: Issues to place after the PRs.
        dependencies: Issue edges; only ``blocks`` edges are used.  Blockers
            listed in ``Issue.parent_issues`` are merged in as well.
        max_past_prs: Keep only this many of the most recent closed/merged
            PRs.  ``None`` keeps all of them.
        main_branch: Name of the trunk branch (always registered first).
        linked_pr_status: Issue id -> status of the PR working on it; used
            to color the issue instead of its type color.

    Returns:
        A :class:`Graph` whose node order is the display order.
    """
    prs = _unique_prs(pull_requests)
    issue_list = _unique_issues(issues)
    linked: dict[str, PRStatus] = {}
    for issue_id, status in (linked_pr_status or {}).items():
        normalized = normalize_pr_status(status)
        if issue_id and normalized:
            linked[issue_key(issue_id)] = normalized

    out = _Emission(main_branch=main_branch)
    out.register(Branch(name=main_branch, color=colors.DEFAULT_COLOR))

    past = _add_past_prs(prs, out, max_past_prs)
    anchor = past.nodes[-1].id if past.nodes else None
    _add_open_prs(prs, out, anchor)

    blocking = build_dependency_lookup(issue_list, dependencies)
    classification = classify_issues(issue_list, blocking)
    _add_dependent_issues(classification, blocking, out, anchor, linked)
    _add_orphan_issues(classification.orphans, out, anchor, linked)

    return Graph(
        nodes=tuple(out.nodes),
        branches=dict(out.branches),
        main_branch_name=main_branch,
        has_more_past_prs=past.has_more,
        shown_past_pr_count=len(past.nodes),
        total_past_prs=past.total,
    )


class GraphBuilder:
    """Reusable builder bound to a main branch name."""

    def __init__(self, main_branch: str = "main"):
        self.main_branch = main_branch

    def build(
        self,
        pull_requests: Iterable[PullRequest],
        issues: Iterable[Issue],
        dependencies: Iterable[Dependency] = (),
        max_past_prs: Optional[int] = DEFAULT_MAX_PAST_PRS,
        linked_pr_status: Optional[Mapping[str, str]] = None,
    ) -> Graph:
        return build_graph(
            pull_requests,
            issues,
            dependencies,
            max_past_prs,
            main_branch=self.main_branch,
            linked_pr_status=linked_pr_status,
        )
