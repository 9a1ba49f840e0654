"""Review log data models.

Decoupled from diffgate_core so the store layer can be used independently
and diffgate_core has no knowledge of persistence concerns.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ReviewLogRecord:
    """One hook invocation persisted to the store.

    Created by the CLI layer after run_review() returns a ReviewOutcome.
    ``body`` is the raw model response, or the error message when the
    evaluation failed.
    """

    profile: str
    title: str
    trigger: str
    started_at: str  # ISO-8601 UTC timestamp
    status: str  # "allowed" | "blocked" | "no_changes" | "nothing_staged"
    duration_seconds: float
    model: str = ""
    files: list[str] = field(default_factory=list)
    scores: dict[str, int] = field(default_factory=dict)
    overall_score: float | None = None
    assessment: str | None = None
    summary: str = ""
    body: str = ""
