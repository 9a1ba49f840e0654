"""install command — wire diffgate into a repository's git hooks.

Writes a starter .diffgate.yml (keeping any keys already present) and the
pre-commit / pre-push hook scripts that call `diffgate review`. Existing hook
scripts are left alone unless --force is given, so hooks from other tools
are never overwritten by accident.
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

import click
import yaml
from rich.console import Console

from diffgate_core.errors import VersionControlError
from diffgate_core.git import run_git

console = Console()
logger = logging.getLogger(__name__)

_HOOK_TEMPLATE = """\
#!/bin/sh
# Installed by diffgate. Exit code 1 blocks the {action}.
exec diffgate review {profile}
"""

HOOKS = {
    "pre-commit": ("precommit", "commit"),
    "pre-push": ("prepush", "push"),
}


@click.command("install")
@click.option(
    "--provider",
    type=click.Choice(["openai", "anthropic"]),
    default=None,
    help="Evaluation service to record in .diffgate.yml. Prompts when omitted.",
)
@click.option("--hooks-dir", default=None, help="Hook directory. Defaults to git's configured hooks path.")
@click.option("--force", is_flag=True, help="Overwrite existing hook scripts.")
@click.option("--no-config", "no_config", is_flag=True, help="Only write the hook scripts.")
@click.pass_context
def install_cmd(ctx, provider: str | None, hooks_dir: str | None, force: bool, no_config: bool):
    """Install the pre-commit and pre-push review hooks."""
    console.print("\n[bold cyan]diffgate install[/bold cyan]\n")

    if hooks_dir is None:
        hooks_dir = _detect_hooks_dir()
        if hooks_dir is None:
            raise click.ClickException("Not inside a git repository. Run this from your project root.")

    if not no_config:
        if provider is None:
            provider = click.prompt(
                "AI provider",
                type=click.Choice(["openai", "anthropic"]),
                default="openai",
            )
        config_path = ctx.obj.get("config_path", ".diffgate.yml") if ctx.obj else ".diffgate.yml"
        _write_config(Path(config_path), {"provider": provider})
        console.print(f"[green]Wrote {config_path}[/green]")

        api_key_env = "ANTHROPIC_API_KEY" if provider == "anthropic" else "OPENAI_API_KEY"
        console.print(f"[yellow]Remember to set [bold]{api_key_env}[/bold] in your environment or .env file.[/yellow]")

    for hook_name, (profile, action) in HOOKS.items():
        path = Path(hooks_dir) / hook_name
        if path.exists() and not force:
            console.print(f"[yellow]Skipping {path}: already exists (use --force to overwrite).[/yellow]")
            continue
        _write_hook(path, profile, action)
        console.print(f"[green]Installed {path}[/green]")

    console.print("\n[bold green]Setup complete![/bold green]")


def _detect_hooks_dir() -> str | None:
    """Ask git where hooks live (respects core.hooksPath)."""
    try:
        return run_git(["rev-parse", "--git-path", "hooks"]).strip() or None
    except VersionControlError as e:
        logger.debug("Could not locate hooks directory: %s", e)
        return None


def _write_config(path: Path, config: dict) -> None:
    """Write or update the config file, preserving any existing keys."""
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(config)
    existing.setdefault("log_dir", ".diffgate/logs")
    existing.setdefault("default_branch", "main")
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))


def _write_hook(path: Path, profile: str, action: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(_HOOK_TEMPLATE.format(profile=profile, action=action))
    mode = os.stat(path).st_mode
    os.chmod(path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
