"""review command — run the AI review gate for one hook invocation."""

from __future__ import annotations

import logging

import click
from rich.console import Console
from rich.markup import escape

from diffgate_core.config import api_key_env_var, api_key_for, resolve_profile
from diffgate_core.decision import summarize
from diffgate_core.errors import ConfigurationError
from diffgate_core.profiles import DEFAULT_PROFILE, TRIGGERS, get_profile
from diffgate_core.reviewer import ReviewOutcome, build_evaluator, print_review, run_review
from diffgate_store.models import ReviewLogRecord

console = Console()
logger = logging.getLogger(__name__)


def _outcome_to_record(outcome: ReviewOutcome) -> ReviewLogRecord:
    """Map a ReviewOutcome returned by run_review() to a ReviewLogRecord for the store.

    The CLI owns this mapping: diffgate_core has no store knowledge and
    diffgate_store has no core knowledge.
    """
    decision = outcome.decision
    response = outcome.response
    if response is not None and response.failure is not None:
        body = f"AI review failed ({response.failure.kind}): {response.failure.message}"
    elif response is not None and response.text:
        body = response.text
    else:
        body = outcome.message
    model = response.model if response is not None and response.model else outcome.profile.model

    return ReviewLogRecord(
        profile=outcome.profile.name,
        title=outcome.profile.title,
        trigger=outcome.trigger,
        started_at=outcome.started_at,
        status=outcome.status,
        duration_seconds=outcome.elapsed_seconds,
        model=model,
        files=list(outcome.files),
        scores=dict(decision.scores) if decision else {},
        overall_score=decision.overall_score if decision else None,
        assessment=decision.assessment if decision else None,
        summary=summarize(decision) if decision else outcome.message,
        body=body,
    )


def _is_fast_path(kind: str) -> bool:
    try:
        return get_profile(kind).fast_path
    except ConfigurationError:
        return False


def _save_log(store, outcome: ReviewOutcome) -> None:
    try:
        path = store.save(_outcome_to_record(outcome))
    except OSError as e:
        console.print(f"[yellow]Could not write review log: {escape(str(e))}[/yellow]")
        return
    if path:
        console.print(f"[blue]Review log saved to: {path}[/blue]")


@click.command("review")
@click.argument("kind", default=DEFAULT_PROFILE)
@click.option(
    "--trigger",
    type=click.Choice(TRIGGERS),
    default=None,
    help="Which changes to review. Defaults to the profile's trigger.",
)
@click.option(
    "--provider",
    type=click.Choice(["openai", "anthropic"]),
    default=None,
    help="Evaluation service. Overrides config file.",
)
@click.option("--model", default=None, help="Model identifier. Overrides the profile and OPENAI_MODEL.")
@click.option("--no-log", "no_log", is_flag=True, help="Do not write a review log file.")
@click.pass_context
def review_cmd(ctx, kind: str, trigger: str | None, provider: str | None, model: str | None, no_log: bool):
    """Review changes with the KIND profile and exit 1 to block.

    KIND is a profile name: precommit, prepush (default), or one of the
    specialised profiles listed by `diffgate profiles`.

    \b
    Environment variables:
      OPENAI_API_KEY          Required when using --provider openai (default)
      ANTHROPIC_API_KEY       Required when using --provider anthropic
      OPENAI_MODEL            Model override
      MAX_TOKENS              Response token ceiling
      MAX_TOKENS_PRECOMMIT    Response token ceiling for the precommit profile
    """
    from diffgate_store.noop import NoOpStore

    config = dict(ctx.obj["config"])
    for key, value in {"provider": provider, "model": model}.items():
        if value is not None:
            config[key] = value

    error = ctx.obj.get("config_error")
    if error is None:
        try:
            profile = resolve_profile(kind, config)
            api_key = api_key_for(config)
        except ConfigurationError as e:
            error = e
    if error is not None:
        if _is_fast_path(kind):
            console.print(f"[yellow]Configuration error: {escape(str(error))}[/yellow]")
            console.print("[yellow]Skipping AI review, allowing commit.[/yellow]")
            ctx.exit(0)
        raise click.ClickException(str(error))

    console.print(f"[bold]Starting AI code review ({profile.name})...[/bold]")

    if not api_key:
        env_var = api_key_env_var(config)
        if profile.fast_path:
            console.print(f"[yellow]{env_var} not found. Skipping AI review, allowing commit.[/yellow]")
            ctx.exit(0)
        raise click.ClickException(f"{env_var} environment variable is not set.")

    store = NoOpStore() if no_log else ctx.obj["store"]

    try:
        evaluator = build_evaluator(config)
        outcome = run_review(profile, config, evaluator, trigger=trigger)
        print_review(outcome)
        if outcome.evaluated:
            _save_log(store, outcome)
    except Exception as e:
        # Fast-path profiles never block on an unexpected error; the others do.
        logger.debug("Unexpected error during review", exc_info=True)
        console.print(f"[red]Unexpected error: {escape(str(e))}[/red]")
        if profile.fast_path:
            console.print("[yellow]Error occurred, but allowing commit.[/yellow]")
            ctx.exit(0)
        ctx.exit(1)

    ctx.exit(outcome.exit_code)
