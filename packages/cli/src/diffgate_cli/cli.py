"""CLI entry point for diffgate.

Commands:
  review    — review staged or pushed changes and exit 0 (allow) or 1 (block)
  profiles  — list the built-in review profiles
  install   — write .diffgate.yml and the git hook scripts
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from diffgate_cli.commands.install import install_cmd
from diffgate_cli.commands.profiles import profiles_cmd
from diffgate_cli.commands.review import review_cmd

console = Console()


def _build_store(config: dict):
    """Instantiate the log store from .diffgate.yml settings.

      write_logs: true  (default) → MarkdownLogStore under log_dir
      write_logs: false           → NoOpStore (nothing persisted)
    """
    from diffgate_store.noop import NoOpStore

    if not config.get("write_logs", True):
        return NoOpStore()

    from diffgate_store.markdown import MarkdownLogStore

    return MarkdownLogStore(log_dir=config.get("log_dir", ".diffgate/logs"))


@click.group()
@click.version_option(
    version=importlib.metadata.version("diffgate"),
    prog_name="diffgate",
)
@click.option(
    "--config",
    "config_path",
    default=".diffgate.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="DIFFGATE_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """AI review gate for git pre-commit and pre-push hooks."""
    from diffgate_core.config import load_config
    from diffgate_core.errors import ConfigurationError

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )

    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        if ctx.invoked_subcommand != "review":
            raise click.ClickException(str(e))
        # review decides whether a broken config blocks, based on the profile.
        ctx.obj["config_error"] = e
        config = {"write_logs": False}

    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.obj["config"] = config
    ctx.obj["config_path"] = config_path
    ctx.call_on_close(store.close)


main.add_command(review_cmd)
main.add_command(profiles_cmd)
main.add_command(install_cmd)
