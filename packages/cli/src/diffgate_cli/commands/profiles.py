"""profiles command — list the built-in review profiles."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from diffgate_core.config import resolve_profile
from diffgate_core.errors import ConfigurationError
from diffgate_core.profiles import PROFILES

console = Console()


@click.command("profiles")
@click.pass_context
def profiles_cmd(ctx):
    """Show every review profile with the overrides from .diffgate.yml applied."""
    config = ctx.obj.get("config", {}) if ctx.obj else {}

    table = Table(title="Review Profiles", show_header=True, header_style="bold cyan")
    table.add_column("Name", style="bold", no_wrap=True)
    table.add_column("Title", max_width=32)
    table.add_column("Model", no_wrap=True)
    table.add_column("Tokens", justify="right")
    table.add_column("Timeout", justify="right")
    table.add_column("Trigger")
    table.add_column("Diff")
    table.add_column("Blocking")

    for name in PROFILES:
        try:
            profile = resolve_profile(name, config)
        except ConfigurationError as e:
            raise click.ClickException(str(e))
        blocking = ", ".join(profile.blocking) if profile.blocking else "[dim]advisory[/dim]"
        table.add_row(
            profile.name,
            profile.title,
            profile.model,
            str(profile.max_tokens),
            f"{profile.timeout_seconds:g}s",
            profile.trigger,
            profile.diff_strategy,
            blocking,
        )

    console.print(table)
