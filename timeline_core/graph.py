"""Issue dependency graph logic: adjacency maps and root/dependent/orphan classification.

Issue ids are matched case-insensitively everywhere in this module; maps are
keyed by the case-folded id (see :func:`issue_key`).
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable

from timeline_core.models import BLOCKS, Dependency, Issue


def issue_key(issue_id: str) -> str:
    """Case-insensitive lookup key for an issue id."""
    return issue_id.casefold()


def build_dependency_lookup(
    issues: Iterable[Issue],
    dependencies: Iterable[Dependency] = (),
) -> dict[str, list[str]]:
    """Build the blocking lookup: issue key -> ids of the issues that block it.

    Both edge representations feed the same map: explicit ``Dependency``
    edges (only ``blocks`` edges count) and each issue's ``parent_issues``.
    Blocker ids keep their original spelling and first-seen order;
    case-insensitive duplicates are dropped.
    """
    lookup: dict[str, list[str]] = {}
    seen: dict[str, set[str]] = defaultdict(set)

    def add(blocked_id: str, blocker_id: str) -> None:
        if not blocked_id or not blocker_id:
            return
        key = issue_key(blocked_id)
        blocker_key = issue_key(blocker_id)
        if blocker_key in seen[key]:
            return
        seen[key].add(blocker_key)
        lookup.setdefault(key, []).append(blocker_id)

    for dep in dependencies:
        if (dep.type or "").casefold() != BLOCKS:
            continue
        add(dep.from_issue_id, dep.to_issue_id)

    for issue in issues:
        for blocker_id in issue.parent_issues:
            add(issue.id, blocker_id)

    return lookup


def build_blocks_lookup(
    blocking: dict[str, list[str]],
    issue_keys: set[str],
    blocked_in_set: bool = True,
) -> dict[str, list[str]]:
    """Reverse lookup: blocker key -> keys of the issues it blocks.

    Blockers must be present in *issue_keys*.  Blocked issues must be too,
    unless *blocked_in_set* is False.
    """
    blocks: dict[str, list[str]] = {}
    for blocked_key, blocker_ids in blocking.items():
        if blocked_in_set and blocked_key not in issue_keys:
            continue
        for blocker_id in blocker_ids:
            blocker_key = issue_key(blocker_id)
            if blocker_key not in issue_keys:
                continue
            blocked = blocks.setdefault(blocker_key, [])
            if blocked_key not in blocked:
                blocked.append(blocked_key)
    return blocks


def in_set_blockers(
    key: str,
    blocking: dict[str, list[str]],
    issue_keys: set[str],
) -> list[str]:
    """Blocker ids of *key* that are themselves in *issue_keys*."""
    return [b for b in blocking.get(key, []) if issue_key(b) in issue_keys]


@dataclass
class IssueClassification:
    """Disjoint split of an issue list by dependency role."""

    roots: list[Issue] = field(default_factory=list)
    dependents: list[Issue] = field(default_factory=list)
    orphans: list[Issue] = field(default_factory=list)


def classify_issues(
    issues: list[Issue],
    blocking: dict[str, list[str]],
) -> IssueClassification:
    """Classify issues into roots, dependents and orphans.

    - orphan: blocks nothing and has no in-set blocker
    - root: blocks something and has no in-set blocker
    - dependent: has at least one in-set blocker

    Blockers that are not part of *issues* are ignored, so an issue whose
    only blockers are missing degrades to root or orphan.  Blocking a
    missing (e.g. hidden) issue still makes an issue a root.
    """
    issue_keys = {issue_key(i.id) for i in issues}
    blocks = build_blocks_lookup(blocking, issue_keys, blocked_in_set=False)

    result = IssueClassification()
    for issue in issues:
        key = issue_key(issue.id)
        blocks_others = key in blocks
        has_in_set_parent = bool(in_set_blockers(key, blocking, issue_keys))

        if not blocks_others and not has_in_set_parent:
            result.orphans.append(issue)
        elif blocks_others and not has_in_set_parent:
            result.roots.append(issue)
        else:
            result.dependents.append(issue)
    return result
