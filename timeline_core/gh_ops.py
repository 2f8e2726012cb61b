"""GitHub CLI wrapper for fetching pull requests."""

import json
import logging
import re
import shutil
import subprocess
from typing import Optional

from timeline_core.models import PRStatus, PullRequest
from timeline_core.paths import log_shell_command
from timeline_core.store import EPOCH, parse_datetime

_log = logging.getLogger("timeline.gh_ops")

PR_FIELDS = ",".join([
    "number", "title", "headRefName", "state", "url", "isDraft",
    "createdAt", "updatedAt", "mergedAt", "closedAt",
    "mergeable", "reviewDecision", "statusCheckRollup", "closingIssuesReferences",
])

_FAILED_CONCLUSIONS = {"FAILURE", "TIMED_OUT", "CANCELLED", "ACTION_REQUIRED", "STARTUP_FAILURE"}
_FAILED_STATES = {"FAILURE", "ERROR"}

_ISSUE_BRANCH_RE = re.compile(r"^issues?[-/](?P<id>[^/]+)$", re.IGNORECASE)


class GhUnavailable(Exception):
    """Raised when the gh CLI is missing or not authenticated."""


def check_gh() -> None:
    """Check that gh CLI is installed and authenticated."""
    if not shutil.which("gh"):
        raise GhUnavailable(
            "The GitHub CLI (gh) is required to fetch pull requests.\n"
            "Install it: https://cli.github.com"
        )
    result = subprocess.run(
        ["gh", "auth", "status"],
        capture_output=True,
        text=True,
    )
    if result.returncode != 0:
        raise GhUnavailable("gh CLI is not authenticated. Run: gh auth login")


def run_gh(*args: str, cwd: Optional[str] = None, check: bool = True) -> subprocess.CompletedProcess:
    """Run a gh CLI command, logging it to the timeline log."""
    check_gh()
    cmd = ["gh", *args]
    log_shell_command(cmd, prefix="gh")
    result = subprocess.run(
        cmd,
        cwd=cwd,
        capture_output=True,
        text=True,
        check=check,
    )
    if result.returncode != 0:
        log_shell_command(cmd, prefix="gh", returncode=result.returncode)
    return result


def _checks_failing(rollup) -> bool:
    for check in rollup or []:
        if not isinstance(check, dict):
            continue
        if (check.get("conclusion") or "").upper() in _FAILED_CONCLUSIONS:
            return True
        if (check.get("state") or "").upper() in _FAILED_STATES:
            return True
    return False


def pr_status_from_gh(item: dict) -> PRStatus:
    """Map a ``gh pr list --json`` entry to a timeline PR status.

    Merged/closed state wins, then conflicts, failing checks, drafts and
    approvals; anything else open is waiting for review.
    """
    state = (item.get("state") or "").upper()
    if state == "MERGED" or item.get("mergedAt"):
        return "merged"
    if state == "CLOSED":
        return "closed"
    if (item.get("mergeable") or "").upper() == "CONFLICTING":
        return "conflict"
    if _checks_failing(item.get("statusCheckRollup")):
        return "checks_failing"
    if item.get("isDraft"):
        return "in_progress"
    if (item.get("reviewDecision") or "").upper() == "APPROVED":
        return "ready_for_merging"
    return "ready_for_review"


def linked_issue_id(item: dict) -> Optional[str]:
    """Issue implemented by the PR: first closing reference, else an issue-<id> branch."""
    for ref in item.get("closingIssuesReferences") or []:
        if isinstance(ref, dict) and ref.get("number") is not None:
            return str(ref["number"])
    m = _ISSUE_BRANCH_RE.match(item.get("headRefName") or "")
    return m.group("id") if m else None


def pr_from_gh(item: dict) -> Optional[PullRequest]:
    number = item.get("number")
    if not isinstance(number, int):
        return None
    created_at = parse_datetime(item.get("createdAt"), EPOCH)
    return PullRequest(
        number=number,
        title=item.get("title") or "",
        status=pr_status_from_gh(item),
        created_at=created_at,
        updated_at=parse_datetime(item.get("updatedAt"), created_at),
        branch_name=item.get("headRefName") or None,
        merged_at=parse_datetime(item.get("mergedAt")),
        closed_at=parse_datetime(item.get("closedAt")),
        url=item.get("url") or None,
        issue_id=linked_issue_id(item),
    )


def list_prs(workdir: str, state: str = "open", limit: Optional[int] = None) -> list[PullRequest]:
    """List PRs for the repo in *workdir*.

    Returns an empty list when gh fails or prints nothing.  Raises
    :class:`GhUnavailable` when gh is missing or unauthenticated.
    """
    args = ["pr", "list", "--state", state, "--json", PR_FIELDS]
    if limit is not None:
        args += ["--limit", str(limit)]
    result = run_gh(*args, cwd=workdir, check=False)
    if result.returncode != 0 or not result.stdout.strip():
        return []
    try:
        items = json.loads(result.stdout)
    except json.JSONDecodeError:
        _log.warning("gh pr list returned invalid JSON")
        return []
    return [pr for pr in (pr_from_gh(i) for i in items if isinstance(i, dict)) if pr]
