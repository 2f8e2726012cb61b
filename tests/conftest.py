"""Shared test helpers for timeline_core tests."""

from datetime import datetime, timedelta, timezone

import pytest

from timeline_core.models import Dependency, Issue, PullRequest

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def at(days: float) -> datetime:
    """Timestamp *days* after T0 (negative for earlier)."""
    return T0 + timedelta(days=days)


def make_pr(number: int, status: str = "ready_for_review", day: float = 0, **kwargs) -> PullRequest:
    """PullRequest created on *day*; past PRs are merged/closed on the same day."""
    when = at(day)
    if status == "merged":
        kwargs.setdefault("merged_at", when)
    elif status == "closed":
        kwargs.setdefault("closed_at", when)
    kwargs.setdefault("created_at", when)
    kwargs.setdefault("updated_at", when)
    kwargs.setdefault("title", f"PR {number}")
    return PullRequest(number=number, status=status, **kwargs)


def make_issue(issue_id: str, day: float = 0, blocked_by=(), **kwargs) -> Issue:
    kwargs.setdefault("title", f"Issue {issue_id}")
    kwargs.setdefault("created_at", at(day))
    return Issue(id=issue_id, parent_issues=tuple(blocked_by), **kwargs)


def blocks(blocker: str, blocked: str, type: str = "blocks") -> Dependency:
    """Edge saying *blocker* blocks *blocked*."""
    return Dependency(from_issue_id=blocked, to_issue_id=blocker, type=type)


@pytest.fixture(autouse=True)
def timeline_env(tmp_path, monkeypatch):
    """Keep logs and config overrides out of the developer's environment."""
    monkeypatch.setenv("TIMELINE_HOME", str(tmp_path / "timeline-home"))
    for var in ("TIMELINE_MAIN_BRANCH", "TIMELINE_MAX_PAST_PRS", "TIMELINE_DEBUG"):
        monkeypatch.delenv(var, raising=False)
