"""Shared helpers for the timeline CLI package."""

from pathlib import Path
from typing import Optional

import click

from timeline_core import store
from timeline_core.service import Timeline, build_from_snapshot
from timeline_core.store import SnapshotError, TimelineConfig

# Shared Click settings: make -h and --help both work everywhere
CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])


class HelpGroup(click.Group):
    """``timeline help`` and ``timeline <command> help`` act like --help."""

    def resolve_command(self, ctx, args):
        if args[:1] == ["help"]:
            click.echo(ctx.get_help())
            ctx.exit()
        cmd_name, cmd, remaining = super().resolve_command(ctx, args)
        if remaining[:1] == ["help"]:
            remaining = ["--help", *remaining[1:]]
        return cmd_name, cmd, remaining


def load_snapshot_or_fail(path: Path) -> store.Snapshot:
    """Load a snapshot, turning snapshot errors into a CLI error."""
    try:
        return store.load_snapshot(path)
    except SnapshotError as e:
        raise click.ClickException(str(e)) from e


def snapshot_config(
    snapshot: store.Snapshot,
    main_branch: Optional[str],
    max_past_prs: Optional[int],
    show_all: bool,
    show_linked: bool,
) -> TimelineConfig:
    """Merge CLI options and environment over the snapshot's own config."""
    return store.resolve_config(
        snapshot.config,
        main_branch=main_branch,
        max_past_prs=max_past_prs,
        show_all=show_all,
        hide_linked_issues=False if show_linked else None,
    )


def timeline_for(path: Path, config_overrides: dict) -> tuple[Timeline, TimelineConfig]:
    snapshot = load_snapshot_or_fail(path)
    config = snapshot_config(snapshot, **config_overrides)
    return build_from_snapshot(snapshot, config), config
