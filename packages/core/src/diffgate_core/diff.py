"""Diff normalization: bound a raw unified diff before it goes into a prompt.

Two strategies share one definition of what an added or deleted line is:

- extract_records() turns the diff into capped lists of ChangeRecord
  (additions and deletions separately) plus the set of touched files.
- filter_additions() rewrites the diff text without its deletion lines so a
  model never sees removed code as something to criticise.

A line is an addition if it starts with '+' but not '+++', and a deletion if
it starts with '-' but not '---'.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

MAX_CHANGES_PER_KIND = 50
MAX_LINE_LENGTH = 200

_FILE_HEADER_RE = re.compile(r"diff --git a/(.+) b/(.+)")


@dataclass(frozen=True)
class ChangeRecord:
    file: str | None
    text: str
    kind: str  # "addition" | "deletion"


@dataclass
class DiffBundle:
    added: list[ChangeRecord] = field(default_factory=list)
    removed: list[ChangeRecord] = field(default_factory=list)
    files: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.added and not self.removed


def is_addition(line: str) -> bool:
    return line.startswith("+") and not line.startswith("+++")


def is_deletion(line: str) -> bool:
    return line.startswith("-") and not line.startswith("---")


def extract_records(
    diff: str,
    max_per_kind: int = MAX_CHANGES_PER_KIND,
    max_line_length: int = MAX_LINE_LENGTH,
) -> DiffBundle:
    """Scan a unified diff into a DiffBundle.

    Lines are stripped of their marker and surrounding whitespace; empty
    results and results of ``max_line_length`` characters or more are
    skipped. Each kind stops collecting at ``max_per_kind`` on its own, while
    file headers keep being recorded until the end of the diff.
    """
    bundle = DiffBundle()
    if not diff or not diff.strip():
        return bundle

    current_file: str | None = None
    seen: set[str] = set()

    for line in diff.split("\n"):
        if line.startswith("diff --git"):
            match = _FILE_HEADER_RE.match(line)
            if match:
                current_file = match.group(2)
                if current_file not in seen:
                    seen.add(current_file)
                    bundle.files.append(current_file)
        elif is_addition(line):
            if len(bundle.added) < max_per_kind:
                text = line[1:].strip()
                if text and len(text) < max_line_length:
                    bundle.added.append(ChangeRecord(file=current_file, text=text, kind="addition"))
        elif is_deletion(line):
            if len(bundle.removed) < max_per_kind:
                text = line[1:].strip()
                if text and len(text) < max_line_length:
                    bundle.removed.append(ChangeRecord(file=current_file, text=text, kind="deletion"))

    return bundle


def filter_additions(diff: str) -> str:
    """Return ``diff`` with every deletion line removed.

    Headers, hunk markers, context and added lines pass through unchanged,
    which makes the function idempotent.
    """
    return "\n".join(line for line in diff.split("\n") if not is_deletion(line))


def count_changes(diff: str) -> tuple[int, int]:
    """Return the raw (additions, deletions) line counts of a diff."""
    additions = deletions = 0
    for line in diff.split("\n"):
        if is_addition(line):
            additions += 1
        elif is_deletion(line):
            deletions += 1
    return additions, deletions


def files_in_diff(diff: str) -> list[str]:
    """Return the new-side paths of every ``diff --git`` header, first-seen order."""
    return extract_records(diff, max_per_kind=0).files
