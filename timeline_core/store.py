"""YAML read/write for timeline snapshots and configuration.

A snapshot file holds everything one render needs::

    timeline:
      main_branch: main
      max_past_prs: 5
      hide_linked_issues: true
    pull_requests:
      - number: 12
        title: Add login page
        status: merged
        branch: feature/login
        created_at: 2026-01-03T10:00:00Z
        merged_at: 2026-01-05T16:30:00Z
    issues:
      - id: web-7
        title: Password reset
        type: feature
        priority: 2
        group: auth
        created_at: 2026-01-04T09:00:00Z
        parent_issues: [web-3]
    dependencies:
      - {from: web-9, to: web-7, type: blocks}
    linked_pr_status:
      web-3: ready_for_review

JSON snapshots work too since YAML is a superset of JSON.  Individual
records are parsed leniently (bad values fall back to defaults); only a
file that is not a snapshot at all raises :class:`SnapshotError`.
"""

import logging
import os
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Optional

import yaml

from timeline_core.models import (
    BLOCKS,
    Dependency,
    Issue,
    PullRequest,
    normalize_issue_type,
    normalize_pr_status,
)

_log = logging.getLogger("timeline.store")

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

DEFAULT_STATUS = "in_progress"


class SnapshotError(Exception):
    """Raised when a snapshot file cannot be read or is not a snapshot."""


@dataclass(frozen=True)
class TimelineConfig:
    main_branch: str = "main"
    max_past_prs: Optional[int] = 5  # None shows every past PR
    hide_linked_issues: bool = True


@dataclass
class Snapshot:
    pull_requests: list[PullRequest] = field(default_factory=list)
    issues: list[Issue] = field(default_factory=list)
    dependencies: list[Dependency] = field(default_factory=list)
    linked_pr_status: dict[str, str] = field(default_factory=dict)
    config: TimelineConfig = field(default_factory=TimelineConfig)


# ---------------------------------------------------------------------------
# Field parsing
# ---------------------------------------------------------------------------

def parse_datetime(value: Any, default: Optional[datetime] = None) -> Optional[datetime]:
    """Parse a YAML datetime or ISO-8601 string; naive values are read as UTC."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            _log.debug("unparsable timestamp %r", value)
            return default
    else:
        return default
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _parse_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _parse_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_pull_request(raw: dict) -> Optional[PullRequest]:
    """Build a PullRequest from a snapshot entry (None if it has no number)."""
    number = _parse_int(raw.get("number"))
    if number is None:
        _log.debug("skipping PR entry without number: %r", raw)
        return None
    created_at = parse_datetime(raw.get("created_at"), EPOCH)
    return PullRequest(
        number=number,
        title=_parse_str(raw.get("title")) or "",
        status=normalize_pr_status(raw.get("status")) or DEFAULT_STATUS,
        created_at=created_at,
        updated_at=parse_datetime(raw.get("updated_at"), created_at),
        branch_name=_parse_str(raw.get("branch") or raw.get("branch_name")),
        merged_at=parse_datetime(raw.get("merged_at")),
        closed_at=parse_datetime(raw.get("closed_at")),
        url=_parse_str(raw.get("url")),
        issue_id=_parse_str(raw.get("issue_id")),
    )


def parse_issue(raw: dict) -> Optional[Issue]:
    """Build an Issue from a snapshot entry (None if it has no id)."""
    issue_id = _parse_str(raw.get("id"))
    if issue_id is None:
        _log.debug("skipping issue entry without id: %r", raw)
        return None
    parents = raw.get("parent_issues") or []
    if isinstance(parents, str):
        parents = [parents]
    return Issue(
        id=issue_id,
        title=_parse_str(raw.get("title")) or "",
        created_at=parse_datetime(raw.get("created_at"), EPOCH),
        type=normalize_issue_type(raw.get("type")),
        priority=_parse_int(raw.get("priority")),
        group=_parse_str(raw.get("group")),
        parent_issues=tuple(p for p in (_parse_str(x) for x in parents) if p),
    )


def parse_dependency(raw: dict) -> Optional[Dependency]:
    from_id = _parse_str(raw.get("from") or raw.get("from_issue_id"))
    to_id = _parse_str(raw.get("to") or raw.get("to_issue_id"))
    if not from_id or not to_id:
        return None
    return Dependency(from_id, to_id, _parse_str(raw.get("type")) or BLOCKS)


def parse_config(raw: Any) -> TimelineConfig:
    config = TimelineConfig()
    if not isinstance(raw, dict):
        return config
    if _parse_str(raw.get("main_branch")):
        config = replace(config, main_branch=_parse_str(raw["main_branch"]))
    if "max_past_prs" in raw:
        value = raw["max_past_prs"]
        if value is None:
            config = replace(config, max_past_prs=None)
        elif _parse_int(value) is not None:
            config = replace(config, max_past_prs=_parse_int(value))
    if "hide_linked_issues" in raw:
        config = replace(config, hide_linked_issues=bool(raw["hide_linked_issues"]))
    return config


def _entries(data: dict, key: str) -> list[dict]:
    value = data.get(key) or []
    if not isinstance(value, list):
        _log.warning("snapshot key %r is not a list, ignoring", key)
        return []
    return [e for e in value if isinstance(e, dict)]


def parse_snapshot(data: Any) -> Snapshot:
    if data is None:
        return Snapshot()
    if not isinstance(data, dict):
        raise SnapshotError("Snapshot must be a mapping with pull_requests/issues keys")

    linked = data.get("linked_pr_status") or {}
    if not isinstance(linked, dict):
        linked = {}

    return Snapshot(
        pull_requests=[pr for pr in map(parse_pull_request, _entries(data, "pull_requests")) if pr],
        issues=[i for i in map(parse_issue, _entries(data, "issues")) if i],
        dependencies=[d for d in map(parse_dependency, _entries(data, "dependencies")) if d],
        linked_pr_status={str(k): str(v) for k, v in linked.items() if k and v},
        config=parse_config(data.get("timeline")),
    )


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------

def load_snapshot(path: Path) -> Snapshot:
    """Load a snapshot from a YAML or JSON file."""
    path = Path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise SnapshotError(f"Snapshot not found: {path}") from None
    except yaml.YAMLError as e:
        raise SnapshotError(f"Could not parse {path}: {e}") from e
    snapshot = parse_snapshot(data)
    _log.debug("loaded %s: %d PRs, %d issues, %d dependencies", path,
               len(snapshot.pull_requests), len(snapshot.issues), len(snapshot.dependencies))
    return snapshot


def _dt(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def snapshot_to_dict(snapshot: Snapshot) -> dict:
    config = snapshot.config
    return {
        "timeline": {
            "main_branch": config.main_branch,
            "max_past_prs": config.max_past_prs,
            "hide_linked_issues": config.hide_linked_issues,
        },
        "pull_requests": [
            {
                "number": pr.number,
                "title": pr.title,
                "status": pr.status,
                "branch": pr.branch_name,
                "created_at": _dt(pr.created_at),
                "updated_at": _dt(pr.updated_at),
                "merged_at": _dt(pr.merged_at),
                "closed_at": _dt(pr.closed_at),
                "url": pr.url,
                "issue_id": pr.issue_id,
            }
            for pr in snapshot.pull_requests
        ],
        "issues": [
            {
                "id": issue.id,
                "title": issue.title,
                "type": issue.type,
                "priority": issue.priority,
                "group": issue.group,
                "created_at": _dt(issue.created_at),
                "parent_issues": list(issue.parent_issues),
            }
            for issue in snapshot.issues
        ],
        "dependencies": [
            {"from": d.from_issue_id, "to": d.to_issue_id, "type": d.type}
            for d in snapshot.dependencies
        ],
        "linked_pr_status": dict(snapshot.linked_pr_status),
    }


def save_snapshot(snapshot: Snapshot, path: Path) -> None:
    """Write a snapshot as YAML."""
    with open(path, "w") as f:
        yaml.dump(snapshot_to_dict(snapshot), f, default_flow_style=False,
                  sort_keys=False, allow_unicode=True)


def resolve_config(
    base: TimelineConfig,
    main_branch: Optional[str] = None,
    max_past_prs: Optional[int] = None,
    show_all: bool = False,
    hide_linked_issues: Optional[bool] = None,
) -> TimelineConfig:
    """Layer explicit options and environment variables over *base*.

    Precedence: explicit argument > $TIMELINE_MAIN_BRANCH /
    $TIMELINE_MAX_PAST_PRS > *base* (snapshot section or defaults).
    """
    config = base

    env_branch = _parse_str(os.environ.get("TIMELINE_MAIN_BRANCH"))
    if main_branch or env_branch:
        config = replace(config, main_branch=main_branch or env_branch)

    env_max = _parse_int(os.environ.get("TIMELINE_MAX_PAST_PRS"))
    if show_all:
        config = replace(config, max_past_prs=None)
    elif max_past_prs is not None:
        config = replace(config, max_past_prs=max_past_prs)
    elif env_max is not None:
        config = replace(config, max_past_prs=env_max)

    if hide_linked_issues is not None:
        config = replace(config, hide_linked_issues=hide_linked_issues)
    return config
