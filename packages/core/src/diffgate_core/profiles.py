"""Declarative review profiles.

A profile is pure data: which model to call and how, which diff strategy and
prompt template to use, and which decision matchers read the answer. The
pipeline never branches on a profile's name, so adding a review flavour means
adding one entry to PROFILES and (if needed) one template in prompts.py.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from diffgate_core.errors import UnknownProfileError

TRIGGERS = ("precommit", "prepush", "auto")
DIFF_STRATEGIES = ("records", "additions_only")


@dataclass(frozen=True)
class StatusContract:
    """A labelled status line such as ``**STATUS:** PASS``.

    ``fail_values`` block, everything in ``pass_values`` allows. A missing or
    unrecognised value resolves to ``default``.
    """

    label: str
    fail_values: tuple[str, ...]
    pass_values: tuple[str, ...]
    default: str


@dataclass(frozen=True)
class ReviewProfile:
    name: str
    title: str
    model: str
    max_tokens: int
    temperature: float
    timeout_seconds: float
    focus: tuple[str, ...]
    blocking: tuple[str, ...]
    trigger: str
    diff_strategy: str
    template: str
    matchers: tuple[str, ...]
    score_thresholds: Mapping[str, float] = field(default_factory=dict)
    status_contract: StatusContract | None = None
    score_label: str | None = None
    # Fast path: a missing credential or an unexpected error lets the commit through.
    fast_path: bool = False
    tier: str = "standard"  # "fast" | "standard"

    @property
    def is_blocking(self) -> bool:
        return bool(self.blocking)


def _profile(**kwargs) -> ReviewProfile:
    kwargs["score_thresholds"] = MappingProxyType(dict(kwargs.get("score_thresholds", {})))
    return ReviewProfile(**kwargs)


_PROFILES = (
    _profile(
        name="precommit",
        title="Pre-commit Critical Review",
        model="gpt-4o-mini",
        max_tokens=500,
        temperature=0.1,
        timeout_seconds=30,
        focus=("syntax_errors", "security_critical", "style_violations", "type_errors"),
        blocking=("syntax_errors", "security_critical"),
        trigger="precommit",
        diff_strategy="additions_only",
        template="precommit",
        matchers=("labeled_status",),
        status_contract=StatusContract(label="STATUS", fail_values=("FAIL",), pass_values=("PASS",), default="PASS"),
        fast_path=True,
        tier="fast",
    ),
    _profile(
        name="prepush",
        title="Pre-push Comprehensive Review",
        model="gpt-4o",
        max_tokens=1500,
        temperature=0.3,
        timeout_seconds=60,
        focus=(
            "code_quality",
            "performance",
            "security",
            "testing",
            "documentation",
            "accessibility",
            "architecture",
            "best_practices",
        ),
        blocking=("security", "code_quality"),
        trigger="prepush",
        diff_strategy="additions_only",
        template="prepush",
        matchers=("score_thresholds",),
        score_thresholds={"security": 6, "quality": 5, "overall": 6},
    ),
    _profile(
        name="unified",
        title="Unified Categorised Review",
        model="gpt-4o",
        max_tokens=1500,
        temperature=0.1,
        timeout_seconds=60,
        focus=(
            "syntax_build",
            "security_vulnerabilities",
            "code_style",
            "code_quality",
            "performance",
            "architecture",
            "documentation",
        ),
        blocking=("syntax_build", "security_vulnerabilities", "code_style"),
        trigger="auto",
        diff_strategy="records",
        template="unified",
        matchers=("approval_status",),
    ),
    _profile(
        name="critical",
        title="Critical Category Sweep",
        model="gpt-4o",
        max_tokens=1000,
        temperature=0.1,
        timeout_seconds=45,
        focus=("syntax_build", "security_vulnerabilities", "code_style", "code_quality"),
        blocking=("syntax_build", "security_vulnerabilities", "code_style"),
        trigger="auto",
        diff_strategy="records",
        template="critical",
        matchers=("category_sections",),
    ),
    _profile(
        name="security",
        title="Security-Focused Review",
        model="gpt-4o",
        max_tokens=800,
        temperature=0.1,
        timeout_seconds=45,
        focus=(
            "security_vulnerabilities",
            "authentication",
            "authorization",
            "data_validation",
            "input_sanitization",
            "dependency_security",
        ),
        blocking=("security_vulnerabilities",),
        trigger="auto",
        diff_strategy="additions_only",
        template="security",
        matchers=("labeled_status",),
        status_contract=StatusContract(
            label="SECURITY ASSESSMENT",
            fail_values=("MAJOR_VULNERABILITIES", "CRITICAL_VULNERABILITIES"),
            pass_values=("SECURE", "MINOR_ISSUES"),
            default="SECURE",
        ),
    ),
    _profile(
        name="performance",
        title="Performance Analysis",
        model="gpt-4o",
        max_tokens=800,
        temperature=0.2,
        timeout_seconds=45,
        focus=(
            "algorithm_efficiency",
            "memory_usage",
            "database_optimization",
            "bundle_size",
            "rendering_optimization",
            "caching_strategies",
        ),
        blocking=(),
        trigger="auto",
        diff_strategy="additions_only",
        template="performance",
        matchers=("single_score",),
        score_label="PERFORMANCE SCORE",
    ),
    _profile(
        name="accessibility",
        title="Accessibility Review",
        model="gpt-4o",
        max_tokens=600,
        temperature=0.2,
        timeout_seconds=45,
        focus=(
            "wcag_compliance",
            "screen_reader",
            "keyboard_navigation",
            "color_contrast",
            "aria_labels",
            "semantic_html",
        ),
        blocking=(),
        trigger="auto",
        diff_strategy="additions_only",
        template="accessibility",
        matchers=("single_score",),
        score_label="ACCESSIBILITY SCORE",
    ),
    _profile(
        name="testing",
        title="Testing Quality Review",
        model="gpt-4o",
        max_tokens=700,
        temperature=0.2,
        timeout_seconds=45,
        focus=(
            "test_coverage",
            "test_quality",
            "edge_cases",
            "mock_usage",
            "integration_tests",
            "error_handling",
        ),
        blocking=(),
        trigger="auto",
        diff_strategy="additions_only",
        template="testing",
        matchers=("single_score",),
        score_label="TESTING SCORE",
    ),
    _profile(
        name="documentation",
        title="Documentation Review",
        model="gpt-4o",
        max_tokens=600,
        temperature=0.3,
        timeout_seconds=30,
        focus=(
            "code_comments",
            "api_documentation",
            "readme_updates",
            "inline_docs",
            "examples",
            "changelog",
        ),
        blocking=(),
        trigger="auto",
        diff_strategy="additions_only",
        template="documentation",
        matchers=("single_score",),
        score_label="DOCUMENTATION SCORE",
    ),
)

PROFILES: Mapping[str, ReviewProfile] = MappingProxyType({p.name: p for p in _PROFILES})
DEFAULT_PROFILE = "prepush"


def get_profile(name: str) -> ReviewProfile:
    """Return the built-in profile called ``name``.

    Raises UnknownProfileError (a ConfigurationError) listing the valid keys.
    """
    try:
        return PROFILES[name]
    except KeyError:
        raise UnknownProfileError(name, list(PROFILES)) from None
