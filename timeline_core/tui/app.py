"""Textual TUI App for browsing a timeline snapshot."""

import logging
from pathlib import Path

from rich.markup import escape
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.widgets import Footer, Static

from timeline_core import store
from timeline_core.service import Timeline, build_from_snapshot
from timeline_core.store import SnapshotError
from timeline_core.tui.timeline_view import TimelineView

_log = logging.getLogger("timeline.tui")


def status_text(timeline: Timeline, snapshot_path: Path) -> str:
    """Markup for the status bar above the graph."""
    graph = timeline.graph
    past = f"{graph.shown_past_pr_count}/{graph.total_past_prs} past PRs"
    parts = [
        f" [bold]{escape(snapshot_path.name)}[/bold]",
        f"[bold]{len(graph.nodes)}[/bold] items",
        f"{timeline.layout.max_lanes} lanes",
        past,
    ]
    if timeline.hidden_issue_ids:
        parts.append(f"[dim]{len(timeline.hidden_issue_ids)} issues with PRs hidden[/dim]")
    return "    ".join(parts)


class StatusBar(Static):
    """Top status bar showing snapshot info."""


class TimelineApp(App):
    """Interactive viewer for a PR/issue timeline snapshot."""

    TITLE = "timeline"

    CSS = """
    Screen {
        layout: vertical;
    }
    StatusBar {
        height: 1;
        background: $surface;
        color: $text;
        padding: 0 1;
    }
    #timeline-container {
        height: 1fr;
        overflow: auto auto;
    }
    TimelineView {
        height: auto;
        width: auto;
        padding: 1 2;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("r", "reload", "Reload", show=True),
        Binding("a", "toggle_all", "All past PRs", show=True),
    ]

    def __init__(self, snapshot_path: Path, overrides: dict | None = None, **kwargs):
        super().__init__(**kwargs)
        self.snapshot_path = Path(snapshot_path)
        self.overrides = dict(overrides or {})
        self.timeline: Timeline | None = None

    def compose(self) -> ComposeResult:
        yield StatusBar(id="status-bar")
        with Vertical(id="timeline-container"):
            yield TimelineView(id="timeline-view")
        yield Footer()

    def on_mount(self) -> None:
        _log.info("TUI mounted for %s", self.snapshot_path)
        self.load_timeline()

    def load_timeline(self) -> None:
        status = self.query_one("#status-bar", StatusBar)
        try:
            snapshot = store.load_snapshot(self.snapshot_path)
        except SnapshotError as e:
            _log.warning("reload failed: %s", e)
            status.update(f" [red]{escape(str(e))}[/red]")
            return

        config = store.resolve_config(
            snapshot.config,
            main_branch=self.overrides.get("main_branch"),
            max_past_prs=self.overrides.get("max_past_prs"),
            show_all=bool(self.overrides.get("show_all")),
            hide_linked_issues=False if self.overrides.get("show_linked") else None,
        )
        self.timeline = build_from_snapshot(snapshot, config)
        self.query_one("#timeline-view", TimelineView).update_timeline(self.timeline)
        status.update(status_text(self.timeline, self.snapshot_path))

    def action_reload(self) -> None:
        self.load_timeline()

    def action_toggle_all(self) -> None:
        self.overrides["show_all"] = not self.overrides.get("show_all")
        self.load_timeline()
