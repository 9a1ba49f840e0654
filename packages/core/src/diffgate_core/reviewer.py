"""Core review orchestration: one hook invocation, one decision."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone

from rich.console import Console
from rich.markup import escape

from diffgate_core.config import api_key_for
from diffgate_core.decision import Decision, extract_decision, summarize
from diffgate_core.diff import count_changes, extract_records, files_in_diff
from diffgate_core.git import ChangeSet, collect_changes
from diffgate_core.profiles import ReviewProfile
from diffgate_core.prompts import build_request
from diffgate_core.providers.base import BaseEvaluator, EvaluationResponse

console = Console()
logger = logging.getLogger(__name__)

STATUS_NO_CHANGES = "no_changes"
STATUS_NOTHING_STAGED = "nothing_staged"
STATUS_ALLOWED = "allowed"
STATUS_BLOCKED = "blocked"

EXIT_ALLOW = 0
EXIT_BLOCK = 1


@dataclass
class ReviewOutcome:
    """Result returned by run_review. Carries enough for the CLI to report and log.

    Decoupled from diffgate_store; the CLI converts this to a ReviewLogRecord.
    """

    profile: ReviewProfile
    status: str
    exit_code: int
    trigger: str
    message: str = ""
    files: list[str] = field(default_factory=list)
    additions: int = 0
    deletions: int = 0
    decision: Decision | None = None
    response: EvaluationResponse | None = None
    warnings: list[str] = field(default_factory=list)
    started_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    elapsed_seconds: float = 0.0

    @property
    def evaluated(self) -> bool:
        return self.response is not None


def build_evaluator(config: dict) -> BaseEvaluator:
    provider = config.get("provider", "openai")
    api_key = api_key_for(config)
    if provider == "openai":
        from diffgate_core.providers.openai import OpenAIEvaluator

        return OpenAIEvaluator(api_key=api_key)
    if provider == "anthropic":
        from diffgate_core.providers.anthropic import AnthropicEvaluator

        return AnthropicEvaluator(api_key=api_key)
    raise ValueError(f"Unknown provider: {provider!r}. Choose 'openai' or 'anthropic'.")


def _early_exit(profile, changes: ChangeSet, status: str, exit_code: int, message: str, start: float) -> ReviewOutcome:
    return ReviewOutcome(
        profile=profile,
        status=status,
        exit_code=exit_code,
        trigger=changes.trigger,
        message=message,
        files=list(changes.files),
        warnings=list(changes.warnings),
        elapsed_seconds=time.monotonic() - start,
    )


def run_review(
    profile: ReviewProfile,
    config: dict,
    evaluator: BaseEvaluator,
    trigger: str | None = None,
    cwd: str | None = None,
) -> ReviewOutcome:
    """Run the review pipeline for one hook invocation.

    Never makes a remote call when there is nothing to review. The only
    blocking early exit is a pre-commit run with no staged files.
    """
    start = time.monotonic()
    changes = collect_changes(trigger or profile.trigger, config, cwd=cwd)

    for warning in changes.warnings:
        console.print(f"[yellow]Warning: {escape(warning)}[/yellow]")

    if changes.trigger == "precommit" and not changes.failed and not changes.files:
        return _early_exit(
            profile,
            changes,
            STATUS_NOTHING_STAGED,
            EXIT_BLOCK,
            "No files are staged. Stage your changes with `git add` before committing.",
            start,
        )

    if changes.is_empty:
        return _early_exit(profile, changes, STATUS_NO_CHANGES, EXIT_ALLOW, "No changes to review.", start)

    bundle = extract_records(
        changes.diff,
        max_per_kind=config.get("max_changes_per_kind", 50),
        max_line_length=config.get("max_line_length", 200),
    )
    additions, deletions = count_changes(changes.diff)
    files = changes.files or files_in_diff(changes.diff)

    if profile.diff_strategy == "records" and bundle.is_empty:
        return _early_exit(profile, changes, STATUS_NO_CHANGES, EXIT_ALLOW, "No code changes to review.", start)
    if profile.diff_strategy == "additions_only" and additions == 0:
        # Deletions are never findings, so a deletion-only change has nothing to judge.
        return _early_exit(profile, changes, STATUS_NO_CHANGES, EXIT_ALLOW, "Only deletions; nothing to review.", start)

    console.print(
        f"[cyan]Analyzing {len(files)} file(s) with {additions} addition(s) and {deletions} deletion(s) "
        f"({profile.title}, {evaluator.resolve_model(profile)})...[/cyan]"
    )

    request = build_request(
        profile,
        changes.diff,
        files=files,
        bundle=bundle,
        file_list_limit=config.get("file_list_limit", 10),
        change_list_limit=config.get("change_list_limit", 20),
    )
    response = evaluator.evaluate(request)
    decision = extract_decision(profile, response)

    if decision.failed:
        status, exit_code = STATUS_ALLOWED, EXIT_ALLOW
        message = "AI review failed, allowing the operation to continue."
    elif decision.blocked:
        status, exit_code = STATUS_BLOCKED, EXIT_BLOCK
        message = summarize(decision)
    else:
        status, exit_code = STATUS_ALLOWED, EXIT_ALLOW
        message = summarize(decision)

    return ReviewOutcome(
        profile=profile,
        status=status,
        exit_code=exit_code,
        trigger=changes.trigger,
        message=message,
        files=list(files),
        additions=additions,
        deletions=deletions,
        decision=decision,
        response=response,
        warnings=list(changes.warnings),
        elapsed_seconds=time.monotonic() - start,
    )


def print_review(outcome: ReviewOutcome) -> None:
    """Print the model's answer and the verdict to the terminal."""
    if not outcome.evaluated:
        color = "red" if outcome.exit_code else "yellow"
        console.print(f"[{color}]{escape(outcome.message)}[/{color}]")
        return

    response = outcome.response
    decision = outcome.decision
    if response.text:
        console.print(f"\n[bold]{outcome.profile.title} results[/bold]")
        console.rule()
        console.print(response.text, markup=False, highlight=False)
        console.rule()

    for diagnostic in decision.diagnostics:
        console.print(f"[yellow]{escape(diagnostic)}[/yellow]")

    if decision.scores:
        scores = ", ".join(f"{name} {value}/10" for name, value in decision.scores.items())
        console.print(f"[dim]Scores: {scores}[/dim]")

    if decision.failed:
        console.print(f"[yellow]{escape(outcome.message)}[/yellow]")
    elif decision.blocked:
        console.print(f"\n[bold red]{escape(outcome.message)}[/bold red]")
        console.print("[red]Fix the issues above before proceeding.[/red]")
    else:
        console.print(f"\n[green]{escape(outcome.message)}[/green]")
