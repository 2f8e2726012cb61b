"""Click CLI definitions for timeline.

Commands:
- show: render a snapshot as text, JSON or per-row SVG
- fetch: pull PRs from GitHub (gh) and write a snapshot
- tui: interactive viewer for a snapshot
"""

from pathlib import Path

import click
import yaml
from rich.console import Console

from timeline_core import gh_ops, store
from timeline_core.geometry import render_rows
from timeline_core.paths import configure_logger
from timeline_core.render import render_timeline
from timeline_core.serialize import graph_to_json
from timeline_core.service import DEFAULT_CLOSED_LIMIT, gather, github_sources
from timeline_core.store import TimelineConfig

from timeline_core.cli.helpers import (
    CONTEXT_SETTINGS,
    HelpGroup,
    load_snapshot_or_fail,
    timeline_for,
)

_log = configure_logger("timeline")

SNAPSHOT_PATH = click.Path(dir_okay=False, path_type=Path)


_TIMELINE_OPTIONS = [
    click.option("--main-branch", default=None,
                 help="Trunk branch name (env: TIMELINE_MAIN_BRANCH, default: main)"),
    click.option("--max-past-prs", type=click.IntRange(min=0), default=None,
                 help="How many closed/merged PRs to show (env: TIMELINE_MAX_PAST_PRS, default: 5)"),
    click.option("--all", "show_all", is_flag=True, default=False,
                 help="Show every closed/merged PR"),
    click.option("--show-linked", is_flag=True, default=False,
                 help="Keep issues that already have a PR (colored by PR status)"),
]


def timeline_options(fn):
    """Options shared by every command that renders a snapshot."""
    for option in reversed(_TIMELINE_OPTIONS):
        fn = option(fn)
    return fn


def _overrides(main_branch, max_past_prs, show_all, show_linked) -> dict:
    return dict(main_branch=main_branch, max_past_prs=max_past_prs,
                show_all=show_all, show_linked=show_linked)


@click.group(invoke_without_command=True, cls=HelpGroup, context_settings=CONTEXT_SETTINGS)
@click.option("--debug", is_flag=True, default=False, help="Log at DEBUG level")
@click.pass_context
def cli(ctx, debug: bool):
    """timeline: PRs and issues as one git-log-style graph."""
    configure_logger("timeline", debug=True if debug else None)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command("show")
@click.argument("snapshot", type=SNAPSHOT_PATH)
@click.option("--format", "fmt", type=click.Choice(["text", "json", "svg"]), default="text",
              show_default=True, help="Output format")
@timeline_options
def show(snapshot: Path, fmt: str, main_branch, max_past_prs, show_all, show_linked):
    """Render SNAPSHOT (YAML or JSON) as a timeline graph."""
    timeline, config = timeline_for(
        snapshot, _overrides(main_branch, max_past_prs, show_all, show_linked))
    _log.info("show %s format=%s max_past_prs=%s", snapshot, fmt, config.max_past_prs)

    if fmt == "json":
        click.echo(graph_to_json(timeline.graph, timeline.layout, indent=2))
    elif fmt == "svg":
        for row in render_rows(timeline.graph, timeline.layout):
            click.echo(row)
    else:
        console = Console(highlight=False)
        for line in render_timeline(timeline.graph, timeline.layout):
            console.print(line)


@cli.command("fetch")
@click.option("--repo", "repo_dir", default=".", show_default=True,
              type=click.Path(file_okay=False, path_type=Path),
              help="Repository to list PRs for")
@click.option("--issues", "issues_path", type=SNAPSHOT_PATH, default=None,
              help="Snapshot providing issues and dependencies")
@click.option("--closed-limit", type=click.IntRange(min=0), default=DEFAULT_CLOSED_LIMIT,
              show_default=True, help="Closed/merged PRs to request from GitHub")
@click.option("-o", "--output", type=SNAPSHOT_PATH, default=None,
              help="Write the snapshot here instead of stdout")
def fetch(repo_dir: Path, issues_path: Path | None, closed_limit: int, output: Path | None):
    """Fetch PRs from GitHub and write a timeline snapshot."""
    try:
        gh_ops.check_gh()
    except gh_ops.GhUnavailable as e:
        raise click.ClickException(str(e)) from e

    issues_snapshot = load_snapshot_or_fail(issues_path) if issues_path else None
    config = issues_snapshot.config if issues_snapshot else TimelineConfig()
    snapshot = gather(github_sources(str(repo_dir), issues_snapshot, closed_limit), config)
    _log.info("fetched %d PRs for %s", len(snapshot.pull_requests), repo_dir)

    if output:
        store.save_snapshot(snapshot, output)
        click.echo(f"Wrote {output}: {len(snapshot.pull_requests)} PRs, "
                   f"{len(snapshot.issues)} issues")
    else:
        click.echo(yaml.dump(store.snapshot_to_dict(snapshot), default_flow_style=False,
                             sort_keys=False, allow_unicode=True), nl=False)


@cli.command("tui")
@click.argument("snapshot", type=SNAPSHOT_PATH)
@timeline_options
def tui_cmd(snapshot: Path, main_branch, max_past_prs, show_all, show_linked):
    """Browse SNAPSHOT interactively."""
    from timeline_core.tui.app import TimelineApp

    overrides = _overrides(main_branch, max_past_prs, show_all, show_linked)
    timeline_for(snapshot, overrides)  # fail fast on a bad snapshot
    TimelineApp(snapshot, overrides).run()


def main():
    cli()
