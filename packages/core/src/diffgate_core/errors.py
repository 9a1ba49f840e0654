"""Exception hierarchy for the review pipeline.

Only ConfigurationError is allowed to reach the CLI as a hard failure.
VersionControlError is recovered inside the git source, and the
RemoteServiceError family is converted into an EvaluationFailure value by
the evaluator before it can propagate.
"""

from __future__ import annotations


class DiffgateError(Exception):
    """Base class for every error raised by diffgate."""


class VersionControlError(DiffgateError):
    """A git command failed or could not be started."""

    def __init__(self, args: list[str], message: str):
        self.git_args = list(args)
        super().__init__(f"git {' '.join(args)} failed: {message}")


class ConfigurationError(DiffgateError):
    """Missing credential or invalid configuration."""


class UnknownProfileError(ConfigurationError):
    def __init__(self, name: str, valid: list[str]):
        self.name = name
        self.valid = list(valid)
        super().__init__(f"Unknown review profile {name!r}. Valid profiles: {', '.join(self.valid)}")


class RemoteServiceError(DiffgateError):
    """The evaluation service could not produce a response."""


class MissingCredentialError(RemoteServiceError):
    pass


class EvaluatorTimeoutError(RemoteServiceError):
    def __init__(self, seconds: float):
        self.seconds = seconds
        super().__init__(f"Evaluation did not complete within {seconds:g}s")
