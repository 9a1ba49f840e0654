"""Diff source: read the changes a hook is about to commit or push.

Every git failure is recovered here. A failed command yields an empty
ChangeSet with ``failed=True`` and a warning, so the pipeline reports
"no changes to review" instead of crashing the hook. The only hard stop
lives in the pipeline: a pre-commit run whose staged-file listing
succeeded but came back empty.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field

from diffgate_core.errors import VersionControlError

logger = logging.getLogger(__name__)

_GIT_TIMEOUT = 30


@dataclass
class ChangeSet:
    trigger: str  # "precommit" | "prepush"
    diff: str = ""
    files: list[str] = field(default_factory=list)
    base_ref: str | None = None
    warnings: list[str] = field(default_factory=list)
    failed: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.diff.strip()


def run_git(args: list[str], cwd: str | None = None) -> str:
    """Run one git command and return its stdout.

    Raises VersionControlError on a non-zero exit, a missing git binary or a
    timeout.
    """
    try:
        result = subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            cwd=cwd,
            timeout=_GIT_TIMEOUT,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        raise VersionControlError(args, str(e)) from e
    if result.returncode != 0:
        raise VersionControlError(args, result.stderr.strip() or f"exit code {result.returncode}")
    return result.stdout


def _split_names(output: str) -> list[str]:
    return [name for name in output.strip().splitlines() if name.strip()]


def ref_exists(ref: str, cwd: str | None = None) -> bool:
    try:
        run_git(["rev-parse", "--verify", "--quiet", ref], cwd=cwd)
    except VersionControlError:
        return False
    return True


def base_candidates(remote: str = "origin", default_branch: str = "main", fallback_branch: str = "master") -> list[str]:
    return [
        f"{remote}/{default_branch}",
        f"{remote}/{fallback_branch}",
        default_branch,
        fallback_branch,
        "HEAD~1",
    ]


def resolve_base_ref(candidates: list[str], cwd: str | None = None) -> str | None:
    """Return the first candidate ref that git can resolve, or None."""
    for ref in candidates:
        if ref_exists(ref, cwd=cwd):
            logger.debug("Resolved push base to %s", ref)
            return ref
    return None


def get_staged_changes(cwd: str | None = None) -> ChangeSet:
    changes = ChangeSet(trigger="precommit")
    try:
        changes.files = _split_names(run_git(["diff", "--cached", "--name-only"], cwd=cwd))
        changes.diff = run_git(["diff", "--cached"], cwd=cwd)
    except VersionControlError as e:
        return _failed(changes, e)
    return changes


def get_push_changes(candidates: list[str], cwd: str | None = None) -> ChangeSet:
    changes = ChangeSet(trigger="prepush")
    try:
        base = resolve_base_ref(candidates, cwd=cwd)
        if base is not None:
            changes.base_ref = base
            changes.diff = run_git(["diff", f"{base}...HEAD"], cwd=cwd)
            changes.files = _split_names(run_git(["diff", "--name-only", f"{base}...HEAD"], cwd=cwd))
        else:
            changes.warnings.append("No base reference found; reviewing the working tree against HEAD.")

        if changes.is_empty:
            # Nothing between base and HEAD: review uncommitted work instead.
            changes.diff = run_git(["diff", "HEAD"], cwd=cwd)
            changes.files = _split_names(run_git(["diff", "--name-only", "HEAD"], cwd=cwd))
    except VersionControlError as e:
        return _failed(changes, e)
    return changes


def collect_changes(trigger: str, config: dict | None = None, cwd: str | None = None) -> ChangeSet:
    """Return the ChangeSet for a trigger point.

    ``auto`` reviews staged changes when there are any, otherwise the push
    range.
    """
    config = config or {}
    candidates = base_candidates(
        remote=config.get("remote", "origin"),
        default_branch=config.get("default_branch", "main"),
        fallback_branch=config.get("fallback_branch", "master"),
    )

    if trigger == "precommit":
        return get_staged_changes(cwd=cwd)
    if trigger == "prepush":
        return get_push_changes(candidates, cwd=cwd)
    if trigger == "auto":
        staged = get_staged_changes(cwd=cwd)
        if not staged.failed and not staged.is_empty:
            return staged
        return get_push_changes(candidates, cwd=cwd)
    raise ValueError(f"Unknown trigger: {trigger!r}")


def _failed(changes: ChangeSet, error: VersionControlError) -> ChangeSet:
    logger.warning("Could not read changes from git: %s", error)
    return ChangeSet(
        trigger=changes.trigger,
        base_ref=changes.base_ref,
        warnings=[*changes.warnings, str(error)],
        failed=True,
    )
