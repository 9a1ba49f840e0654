"""MarkdownLogStore — one markdown file per hook invocation.

Files are named ``<profile>-<timestamp>.md`` inside the log directory, which
is created on first use. Existing files are never modified; a name clash
within the same timestamp gets a numeric suffix instead.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from diffgate_store.base import BaseStore

if TYPE_CHECKING:
    from diffgate_store.models import ReviewLogRecord

logger = logging.getLogger(__name__)


def _file_stamp(iso_timestamp: str) -> str:
    return iso_timestamp.replace(":", "-").replace(".", "-").replace("+", "_")


def _display_date(iso_timestamp: str) -> str:
    try:
        return datetime.fromisoformat(iso_timestamp).strftime("%Y-%m-%d %H:%M:%S %Z").strip()
    except ValueError:
        return iso_timestamp


def render_markdown(record: ReviewLogRecord) -> str:
    lines = [
        f"# {record.title} Log",
        f"**Date:** {_display_date(record.started_at)}",
        f"**Type:** {record.title}",
        f"**Profile:** {record.profile}",
        f"**Trigger:** {record.trigger}",
    ]
    if record.model:
        lines.append(f"**Model:** {record.model}")
    lines.append(f"**Changed Files:** {', '.join(record.files) if record.files else '(none)'}")
    lines.append(f"**Duration:** {record.duration_seconds:.1f}s")
    lines.append(f"**Status:** {record.status}")
    if record.assessment:
        lines.append(f"**Assessment:** {record.assessment}")
    if record.scores:
        scores = ", ".join(f"{name} {value}/10" for name, value in record.scores.items())
        lines.append(f"**Scores:** {scores}")
    if record.overall_score is not None:
        lines.append(f"**Overall Score:** {record.overall_score:.1f}/10")
    if record.summary:
        lines.append(f"**Summary:** {record.summary}")

    body = record.body.strip() or "Review completed"
    return "\n".join(lines) + f"\n\n{body}\n"


class MarkdownLogStore(BaseStore):
    """Writes each record to its own markdown file under ``log_dir``."""

    def __init__(self, log_dir: str = ".diffgate/logs"):
        self.log_dir = Path(log_dir)

    def save(self, record: ReviewLogRecord) -> str | None:
        self.log_dir.mkdir(parents=True, exist_ok=True)
        stem = f"{record.profile}-{_file_stamp(record.started_at)}"
        path = self.log_dir / f"{stem}.md"
        counter = 1
        while path.exists():
            path = self.log_dir / f"{stem}-{counter}.md"
            counter += 1

        path.write_text(render_markdown(record), encoding="utf-8")
        logger.debug("Wrote review log %s", path)
        return str(path)
