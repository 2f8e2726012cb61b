"""Gathers PRs, issues and dependencies and turns them into a timeline.

Every source is fetched in isolation: a failing source is logged and
treated as empty, so the timeline always renders whatever data is
available.  Per-issue dependency lookups are isolated from each other
as well.
"""

import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, Iterable, Optional

from timeline_core import gh_ops
from timeline_core.graph import issue_key
from timeline_core.graph_builder import build_graph
from timeline_core.lane_layout import calculate_lanes
from timeline_core.models import (
    Dependency,
    Graph,
    Issue,
    PullRequest,
    TimelineLaneLayout,
)
from timeline_core.store import Snapshot, TimelineConfig

_log = logging.getLogger("timeline.service")

DEFAULT_CLOSED_LIMIT = 50


def _none() -> list:
    return []


@dataclass
class TimelineSources:
    """Callables supplying the raw data for one timeline."""

    open_prs: Callable[[], Iterable[PullRequest]] = _none
    closed_prs: Callable[[], Iterable[PullRequest]] = _none
    issues: Callable[[], Iterable[Issue]] = _none
    dependencies: Callable[[], Iterable[Dependency]] = _none
    issue_dependencies: Optional[Callable[[Issue], Iterable[Dependency]]] = None
    linked_pr_status: Callable[[], dict[str, str]] = dict


@dataclass(frozen=True)
class Timeline:
    graph: Graph
    layout: TimelineLaneLayout
    hidden_issue_ids: tuple[str, ...] = field(default_factory=tuple)


def _safe(fetch: Callable[[], Iterable], what: str) -> list:
    try:
        return list(fetch())
    except Exception as e:
        _log.warning("Failed to fetch %s: %s", what, e)
        return []


def _dependency_key(dep: Dependency) -> tuple[str, str, str]:
    return (issue_key(dep.from_issue_id), issue_key(dep.to_issue_id), (dep.type or "").casefold())


def _fetch_dependencies(sources: TimelineSources, issues: list[Issue]) -> list[Dependency]:
    deps = _safe(sources.dependencies, "dependencies")
    if sources.issue_dependencies is not None:
        for issue in issues:
            try:
                deps.extend(sources.issue_dependencies(issue))
            except Exception as e:
                _log.warning("Failed to fetch dependencies for issue %s: %s", issue.id, e)

    unique: dict[tuple[str, str, str], Dependency] = {}
    for dep in deps:
        unique.setdefault(_dependency_key(dep), dep)
    return list(unique.values())


def gather(sources: TimelineSources, config: Optional[TimelineConfig] = None) -> Snapshot:
    """Fetch every source into a :class:`Snapshot`, absorbing failures."""
    config = config or TimelineConfig()
    open_prs = _safe(sources.open_prs, "open PRs")
    closed_prs = _safe(sources.closed_prs, "closed PRs")
    issues = _safe(sources.issues, "issues")
    dependencies = _fetch_dependencies(sources, issues)

    linked: dict[str, str] = {}
    try:
        linked = dict(sources.linked_pr_status())
    except Exception as e:
        _log.warning("Failed to fetch linked PR statuses: %s", e)

    _log.debug(
        "gathered %d open PRs, %d closed PRs, %d issues, %d dependencies",
        len(open_prs), len(closed_prs), len(issues), len(dependencies),
    )
    return Snapshot(
        pull_requests=closed_prs + open_prs,
        issues=issues,
        dependencies=dependencies,
        linked_pr_status=linked,
        config=config,
    )


def linked_statuses(pull_requests: list[PullRequest]) -> dict[str, str]:
    """Issue key -> status of the PR implementing it.

    Open PRs win over past ones when several PRs point at the same issue.
    """
    result: dict[str, str] = {}
    for pr in sorted(pull_requests, key=lambda p: not p.is_past):
        if pr.issue_id:
            result[issue_key(pr.issue_id)] = pr.status
    return result


def build_from_snapshot(snapshot: Snapshot, config: Optional[TimelineConfig] = None) -> Timeline:
    """Build graph and lane layout from already-fetched data.

    Issues that a PR already implements are dropped when
    ``config.hide_linked_issues`` is set; otherwise they stay and take the
    PR's status color.  Explicit ``snapshot.linked_pr_status`` entries
    always apply.
    """
    config = config or snapshot.config
    from_prs = linked_statuses(snapshot.pull_requests)

    issues = snapshot.issues
    hidden: list[str] = []
    linked: dict[str, str] = {}
    if config.hide_linked_issues:
        issues = []
        for issue in snapshot.issues:
            if issue_key(issue.id) in from_prs:
                hidden.append(issue.id)
            else:
                issues.append(issue)
        if hidden:
            _log.debug("hiding %d issues linked to PRs: %s", len(hidden), ", ".join(hidden))
    else:
        linked.update(from_prs)
    linked.update({issue_key(k): v for k, v in snapshot.linked_pr_status.items()})

    graph = build_graph(
        snapshot.pull_requests,
        issues,
        snapshot.dependencies,
        config.max_past_prs,
        main_branch=config.main_branch,
        linked_pr_status=linked,
    )
    layout = calculate_lanes(graph.nodes, config.main_branch)
    _log.info("built timeline: %d nodes, %d lanes", len(graph.nodes), layout.max_lanes)
    return Timeline(graph=graph, layout=layout, hidden_issue_ids=tuple(hidden))


def build_timeline(sources: TimelineSources, config: Optional[TimelineConfig] = None) -> Timeline:
    """Fetch all sources and build the timeline."""
    config = config or TimelineConfig()
    return build_from_snapshot(gather(sources, config), config)


# ---------------------------------------------------------------------------
# Source factories
# ---------------------------------------------------------------------------

def snapshot_sources(snapshot: Snapshot) -> TimelineSources:
    """Sources that replay a loaded snapshot."""
    return TimelineSources(
        open_prs=lambda: [pr for pr in snapshot.pull_requests if not pr.is_past],
        closed_prs=lambda: [pr for pr in snapshot.pull_requests if pr.is_past],
        issues=lambda: list(snapshot.issues),
        dependencies=lambda: list(snapshot.dependencies),
        linked_pr_status=lambda: dict(snapshot.linked_pr_status),
    )


def github_sources(
    workdir: str,
    issues_snapshot: Optional[Snapshot] = None,
    closed_limit: int = DEFAULT_CLOSED_LIMIT,
) -> TimelineSources:
    """PRs from GitHub via gh; issues and dependencies from *issues_snapshot*."""
    sources = TimelineSources(
        open_prs=partial(gh_ops.list_prs, workdir, "open"),
        closed_prs=partial(gh_ops.list_prs, workdir, "closed", closed_limit),
    )
    if issues_snapshot is not None:
        sources.issues = lambda: list(issues_snapshot.issues)
        sources.dependencies = lambda: list(issues_snapshot.dependencies)
        sources.linked_pr_status = lambda: dict(issues_snapshot.linked_pr_status)
    return sources
