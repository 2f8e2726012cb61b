"""Tests for timeline_core.store: snapshot parsing and configuration."""

from datetime import date, datetime, timezone

import pytest

from timeline_core import store
from timeline_core.store import (
    EPOCH,
    Snapshot,
    SnapshotError,
    TimelineConfig,
    load_snapshot,
    parse_config,
    parse_datetime,
    parse_snapshot,
    resolve_config,
    save_snapshot,
)

from tests.conftest import blocks, make_issue, make_pr

SNAPSHOT_YAML = """\
timeline:
  main_branch: trunk
  max_past_prs: 3
pull_requests:
  - number: 12
    title: Add login page
    status: Merged
    branch: feature/login
    created_at: 2026-01-03T10:00:00Z
    merged_at: 2026-01-05T16:30:00Z
  - number: 13
    title: Fix typo
    status: ready-for-review
    created_at: "2026-01-06T09:00:00+02:00"
  - title: no number, skipped
issues:
  - id: web-7
    title: Password reset
    type: Feature
    priority: 2
    group: auth
    created_at: 2026-01-04
    parent_issues: [web-3]
  - id: web-3
    title: Session store
dependencies:
  - {from: web-9, to: web-7, type: blocks}
  - {from: web-9}
linked_pr_status:
  web-3: ready_for_review
"""


class TestParseDatetime:
    def test_iso_string_with_z(self):
        assert parse_datetime("2026-01-03T10:00:00Z") == datetime(2026, 1, 3, 10, tzinfo=timezone.utc)

    def test_offset_preserved(self):
        dt = parse_datetime("2026-01-03T12:00:00+02:00")
        assert dt == datetime(2026, 1, 3, 10, tzinfo=timezone.utc)

    def test_naive_read_as_utc(self):
        assert parse_datetime(datetime(2026, 1, 3)).tzinfo == timezone.utc
        assert parse_datetime("2026-01-03T10:00:00").tzinfo == timezone.utc

    def test_date(self):
        assert parse_datetime(date(2026, 1, 3)) == datetime(2026, 1, 3, tzinfo=timezone.utc)

    def test_garbage_returns_default(self):
        assert parse_datetime("yesterday") is None
        assert parse_datetime(None, EPOCH) == EPOCH
        assert parse_datetime(42, EPOCH) == EPOCH


class TestParseSnapshot:
    def test_none_is_empty(self):
        assert parse_snapshot(None) == Snapshot()

    def test_non_mapping_raises(self):
        with pytest.raises(SnapshotError):
            parse_snapshot(["not", "a", "snapshot"])

    def test_lenient_records(self):
        snapshot = parse_snapshot({
            "pull_requests": [{"number": "5", "status": "weird"}, "junk"],
            "issues": [{"title": "no id"}, {"id": 17, "type": "story", "priority": "high"}],
            "dependencies": "not a list",
        })
        pr = snapshot.pull_requests[0]
        assert pr.number == 5
        assert pr.status == "in_progress"
        assert pr.created_at == EPOCH
        assert pr.title == ""
        issue = snapshot.issues[0]
        assert issue.id == "17"
        assert issue.type is None
        assert issue.priority is None
        assert snapshot.dependencies == []

    def test_parent_issues_string(self):
        snapshot = parse_snapshot({"issues": [{"id": "b", "parent_issues": "a"}]})
        assert snapshot.issues[0].parent_issues == ("a",)


class TestParseConfig:
    def test_defaults(self):
        assert parse_config(None) == TimelineConfig()

    def test_null_max_means_unlimited(self):
        assert parse_config({"max_past_prs": None}).max_past_prs is None

    def test_bad_max_keeps_default(self):
        assert parse_config({"max_past_prs": "lots"}).max_past_prs == 5

    def test_all_fields(self):
        config = parse_config({"main_branch": "trunk", "max_past_prs": 2, "hide_linked_issues": False})
        assert config == TimelineConfig("trunk", 2, False)


class TestLoadSnapshot:
    def test_yaml_file(self, tmp_path):
        path = tmp_path / "snap.yaml"
        path.write_text(SNAPSHOT_YAML)
        snapshot = load_snapshot(path)

        assert snapshot.config == TimelineConfig("trunk", 3, True)
        assert [pr.number for pr in snapshot.pull_requests] == [12, 13]
        merged, open_pr = snapshot.pull_requests
        assert merged.status == "merged"
        assert merged.branch_name == "feature/login"
        assert merged.merged_at == datetime(2026, 1, 5, 16, 30, tzinfo=timezone.utc)
        assert open_pr.status == "ready_for_review"
        assert open_pr.created_at == datetime(2026, 1, 6, 7, tzinfo=timezone.utc)
        assert open_pr.updated_at == open_pr.created_at

        web7 = snapshot.issues[0]
        assert web7.type == "feature"
        assert web7.priority == 2
        assert web7.group == "auth"
        assert web7.created_at == datetime(2026, 1, 4, tzinfo=timezone.utc)
        assert web7.parent_issues == ("web-3",)

        assert len(snapshot.dependencies) == 1
        assert snapshot.dependencies[0].from_issue_id == "web-9"
        assert snapshot.linked_pr_status == {"web-3": "ready_for_review"}

    def test_json_file(self, tmp_path):
        path = tmp_path / "snap.json"
        path.write_text('{"pull_requests": [{"number": 1, "status": "closed"}]}')
        snapshot = load_snapshot(path)
        assert snapshot.pull_requests[0].status == "closed"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_snapshot(path) == Snapshot()

    def test_missing_file(self, tmp_path):
        with pytest.raises(SnapshotError, match="not found"):
            load_snapshot(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("pull_requests: [unclosed\n")
        with pytest.raises(SnapshotError, match="Could not parse"):
            load_snapshot(path)

    def test_save_then_load(self, tmp_path):
        snapshot = Snapshot(
            pull_requests=[make_pr(1, "merged", branch_name="b", url="u", issue_id="X")],
            issues=[make_issue("X", type="bug", priority=1, group="g", blocked_by=["Y"])],
            dependencies=[blocks("Y", "X")],
            linked_pr_status={"X": "merged"},
            config=TimelineConfig("trunk", None, False),
        )
        path = tmp_path / "out.yaml"
        save_snapshot(snapshot, path)
        assert load_snapshot(path) == snapshot


class TestResolveConfig:
    def test_base_used_without_overrides(self):
        base = TimelineConfig("trunk", 3, True)
        assert resolve_config(base) == base

    def test_env_overrides_snapshot(self, monkeypatch):
        monkeypatch.setenv("TIMELINE_MAIN_BRANCH", "develop")
        monkeypatch.setenv("TIMELINE_MAX_PAST_PRS", "9")
        config = resolve_config(TimelineConfig("trunk", 3))
        assert config.main_branch == "develop"
        assert config.max_past_prs == 9

    def test_arguments_override_env(self, monkeypatch):
        monkeypatch.setenv("TIMELINE_MAIN_BRANCH", "develop")
        monkeypatch.setenv("TIMELINE_MAX_PAST_PRS", "9")
        config = resolve_config(TimelineConfig(), main_branch="release", max_past_prs=1)
        assert config.main_branch == "release"
        assert config.max_past_prs == 1

    def test_show_all(self):
        assert resolve_config(TimelineConfig(), max_past_prs=2, show_all=True).max_past_prs is None

    def test_bad_env_ignored(self, monkeypatch):
        monkeypatch.setenv("TIMELINE_MAX_PAST_PRS", "many")
        assert resolve_config(TimelineConfig()).max_past_prs == 5

    def test_hide_linked_override(self):
        assert resolve_config(TimelineConfig(), hide_linked_issues=False).hide_linked_issues is False


def test_snapshot_to_dict_uses_iso_timestamps():
    data = store.snapshot_to_dict(Snapshot(pull_requests=[make_pr(1)]))
    assert data["pull_requests"][0]["created_at"] == "2026-01-01T12:00:00+00:00"
    assert list(data) == ["timeline", "pull_requests", "issues", "dependencies", "linked_pr_status"]
