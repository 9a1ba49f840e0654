"""Turn a free-text model answer into an allow/block Decision.

Each matcher is a pure, total function of the response text: it always
returns a Decision, falling back to the permissive outcome with a diagnostic
when the text does not follow its contract. A profile lists the matchers it
trusts; extract_decision() runs them in order and the first confident result
wins.

Failed evaluations never block. Blocking a developer's commit or push on
third-party availability is not acceptable, so every failure is allowed with
a warning, including on profiles that have blocking categories.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Mapping

from diffgate_core.profiles import StatusContract

if TYPE_CHECKING:
    from diffgate_core.profiles import ReviewProfile
    from diffgate_core.providers.base import EvaluationResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Decision:
    blocked: bool
    rationale: str = ""
    scores: Mapping[str, int] = field(default_factory=dict)
    assessment: str | None = None
    overall_score: float | None = None
    reasons: tuple[str, ...] = ()
    diagnostics: tuple[str, ...] = ()
    confident: bool = True
    failed: bool = False
    matcher: str = ""


# --------------------------------------------------------------------------- #
# (a) explicit binary token                                                    #
# --------------------------------------------------------------------------- #

_APPROVAL_RE = re.compile(r"APPROVAL_STATUS:\s*([01])")


def approval_status(text: str, profile: ReviewProfile | None = None) -> Decision:
    match = _APPROVAL_RE.search(text)
    if match is None:
        return Decision(
            blocked=False,
            rationale=text,
            diagnostics=("No APPROVAL_STATUS found in response; assuming approved.",),
            confident=False,
            matcher="approval_status",
        )
    blocked = match.group(1) == "0"
    return Decision(
        blocked=blocked,
        rationale=text,
        reasons=("Critical issues reported (APPROVAL_STATUS: 0)",) if blocked else (),
        matcher="approval_status",
    )


# --------------------------------------------------------------------------- #
# (b) labelled status token                                                    #
# --------------------------------------------------------------------------- #

DEFAULT_STATUS_CONTRACT = StatusContract(label="STATUS", fail_values=("FAIL",), pass_values=("PASS",), default="PASS")


def _status_pattern(contract: StatusContract) -> re.Pattern:
    # Longest first so MINOR_ISSUES is not shadowed by a shorter prefix.
    values = sorted({*contract.fail_values, *contract.pass_values}, key=len, reverse=True)
    return re.compile(
        rf"(?<![A-Z_])(?:\*\*)?{re.escape(contract.label)}:(?:\*\*)?\s*\[?\s*({'|'.join(map(re.escape, values))})\b",
        re.IGNORECASE,
    )


def labeled_status(text: str, profile: ReviewProfile | None = None) -> Decision:
    contract = (profile.status_contract if profile is not None else None) or DEFAULT_STATUS_CONTRACT
    match = _status_pattern(contract).search(text)
    if match is None:
        status = contract.default
        diagnostics = (f"No {contract.label} found in response; assuming {status}.",)
        confident = False
    else:
        status = match.group(1).upper()
        diagnostics = ()
        confident = True

    blocked = status in contract.fail_values
    return Decision(
        blocked=blocked,
        rationale=text,
        assessment=status,
        reasons=(f"{contract.label}: {status}",) if blocked else (),
        diagnostics=diagnostics,
        confident=confident,
        matcher="labeled_status",
    )


# --------------------------------------------------------------------------- #
# (c) category-section heuristic                                               #
# --------------------------------------------------------------------------- #

CRITICAL_SECTIONS = (
    (1, "syntax & build issues"),
    (2, "security vulnerabilities"),
    (3, "code style & standards"),
)
SECTION_WINDOW_CHARS = 500
CLEAN_PHRASES = ("none identified", "no issues", "not found", "all good")

_BULLET_RE = re.compile(r"^\s*[-*•]\s+\S", re.MULTILINE)
_NUMBERED_RE = re.compile(r"^\s*\d+[.)]\s+\S", re.MULTILINE)
_ISSUE_WORD_RE = re.compile(r"\b(?:errors?|issues?|problems?|violations?)\b")
_HEADING_RE = re.compile(r"^[\s*#]*(\d+)\.\s+\S", re.MULTILINE)


def _section_window(lowered: str, number: int, title: str) -> str | None:
    heading = f"{number}. {title}"
    idx = lowered.find(heading)
    if idx == -1:
        return None
    start = idx + len(heading)
    end = start + SECTION_WINDOW_CHARS
    for match in _HEADING_RE.finditer(lowered, start):
        if int(match.group(1)) > number:
            end = match.start()
            break
    return lowered[start:end]


def _has_issue_indicator(window: str) -> bool:
    return bool(_BULLET_RE.search(window) or _NUMBERED_RE.search(window) or _ISSUE_WORD_RE.search(window))


def category_sections(text: str, profile: ReviewProfile | None = None) -> Decision:
    """Block on the first critical section that reads like it lists a problem.

    Approximate by nature: a clean section that still says "error" trips it.
    The only guarantee is determinism for identical text.
    """
    lowered = text.lower()
    located = 0
    for number, title in CRITICAL_SECTIONS:
        window = _section_window(lowered, number, title)
        if window is None:
            continue
        located += 1
        if any(phrase in window for phrase in CLEAN_PHRASES):
            continue
        if _has_issue_indicator(window):
            return Decision(
                blocked=True,
                rationale=text,
                reasons=(f"Issues reported under '{number}. {title.title()}'",),
                matcher="category_sections",
            )

    if not located:
        return Decision(
            blocked=False,
            rationale=text,
            diagnostics=("No critical category headings found in response; assuming approved.",),
            confident=False,
            matcher="category_sections",
        )
    return Decision(blocked=False, rationale=text, matcher="category_sections")


# --------------------------------------------------------------------------- #
# (d) score thresholds                                                         #
# --------------------------------------------------------------------------- #

SCORE_CATEGORIES = (
    ("quality", "CODE QUALITY"),
    ("performance", "PERFORMANCE"),
    ("security", "SECURITY"),
    ("testing", "TESTING"),
    ("documentation", "DOCUMENTATION"),
    ("react", "REACT/FRONTEND"),
)
DEFAULT_SCORE = 7
DEFAULT_THRESHOLDS = {"security": 6, "quality": 5, "overall": 6}
ASSESSMENTS = ("EXCELLENT", "GOOD", "NEEDS_IMPROVEMENT", "CRITICAL_ISSUES")
DEFAULT_ASSESSMENT = "NEEDS_IMPROVEMENT"

_ASSESSMENT_RE = re.compile(
    r"\*\*OVERALL ASSESSMENT:\*\*\s*\[?\s*(" + "|".join(ASSESSMENTS) + r")",
    re.IGNORECASE,
)


def _score_pattern(label: str) -> re.Pattern:
    # Tolerates an emoji prefix and a suffix such as "DOCUMENTATION & A11Y".
    return re.compile(
        rf"\*\*[^*\n]*?\b{re.escape(label)}[^*\n]*:\*\*\s*\[Score:\s*(\d+)\s*/\s*10\]",
        re.IGNORECASE,
    )


def extract_score(text: str, label: str, default: int | None = DEFAULT_SCORE) -> int | None:
    match = _score_pattern(label).search(text)
    if match is None:
        return default
    return min(int(match.group(1)), 10)


def score_thresholds(text: str, profile: ReviewProfile | None = None) -> Decision:
    thresholds = {**DEFAULT_THRESHOLDS, **(profile.score_thresholds if profile is not None else {})}

    scores: dict[str, int] = {}
    missing = []
    for key, label in SCORE_CATEGORIES:
        found = extract_score(text, label, default=None)
        if found is None:
            missing.append(label)
            found = DEFAULT_SCORE
        scores[key] = found
    overall = sum(scores.values()) / len(SCORE_CATEGORIES)

    match = _ASSESSMENT_RE.search(text)
    assessment = match.group(1).upper() if match else DEFAULT_ASSESSMENT

    diagnostics = []
    if missing:
        diagnostics.append(f"No score found for {', '.join(missing)}; defaulted to {DEFAULT_SCORE}/10.")
    if match is None:
        diagnostics.append(f"No OVERALL ASSESSMENT found; assuming {DEFAULT_ASSESSMENT}.")

    reasons = []
    if assessment == "CRITICAL_ISSUES":
        reasons.append("Overall assessment is CRITICAL_ISSUES")
    if scores["security"] < thresholds["security"]:
        reasons.append(f"Security score {scores['security']}/10 is below {thresholds['security']:g}")
    if scores["quality"] < thresholds["quality"]:
        reasons.append(f"Code quality score {scores['quality']}/10 is below {thresholds['quality']:g}")
    if overall < thresholds["overall"]:
        reasons.append(f"Overall score {overall:.1f}/10 is below {thresholds['overall']:g}")

    return Decision(
        blocked=bool(reasons),
        rationale=text,
        scores=scores,
        assessment=assessment,
        overall_score=overall,
        reasons=tuple(reasons),
        diagnostics=tuple(diagnostics),
        confident=match is not None or len(missing) < len(SCORE_CATEGORIES),
        matcher="score_thresholds",
    )


# --------------------------------------------------------------------------- #
# single labelled score (specialised profiles)                                 #
# --------------------------------------------------------------------------- #


def single_score(text: str, profile: ReviewProfile | None = None) -> Decision:
    label = (profile.score_label if profile is not None else None) or "SCORE"
    key = label.lower().replace(" score", "").replace(" ", "_") or "score"
    match = re.search(rf"\*\*{re.escape(label)}:\*\*\s*\[?\s*(\d+)\s*/\s*10", text, re.IGNORECASE)
    if match is None:
        return Decision(
            blocked=False,
            rationale=text,
            diagnostics=(f"No {label} found in response.",),
            confident=False,
            matcher="single_score",
        )

    score = min(int(match.group(1)), 10)
    reasons: tuple[str, ...] = ()
    if profile is not None and profile.is_blocking:
        threshold = profile.score_thresholds.get("overall")
        if threshold is not None and score < threshold:
            reasons = (f"{label.title()} {score}/10 is below {threshold:g}",)
    return Decision(
        blocked=bool(reasons),
        rationale=text,
        scores={key: score},
        overall_score=float(score),
        reasons=reasons,
        matcher="single_score",
    )


Matcher = Callable[[str, "ReviewProfile | None"], Decision]

MATCHERS: Mapping[str, Matcher] = {
    "approval_status": approval_status,
    "labeled_status": labeled_status,
    "category_sections": category_sections,
    "score_thresholds": score_thresholds,
    "single_score": single_score,
}


def extract_decision(profile: ReviewProfile, response: EvaluationResponse) -> Decision:
    """Reduce one evaluation response to a Decision for ``profile``."""
    if not response.ok:
        failure = response.failure
        message = failure.message if failure is not None else "empty response"
        kind = failure.kind if failure is not None else "other"
        logger.warning("Evaluation failed (%s); allowing the operation: %s", kind, message)
        return Decision(
            blocked=False,
            rationale=message,
            diagnostics=(f"Evaluation failed ({kind}): {message}",),
            confident=False,
            failed=True,
        )

    text = response.text or ""
    first: Decision | None = None
    diagnostics: list[str] = []
    for name in profile.matchers:
        decision = MATCHERS[name](text, profile)
        if decision.confident:
            return decision
        diagnostics.extend(decision.diagnostics)
        if first is None:
            first = decision

    if first is None:
        raise ValueError(f"Profile {profile.name!r} declares no decision matchers")
    for message in diagnostics:
        logger.warning(message)
    return Decision(
        blocked=first.blocked,
        rationale=first.rationale,
        scores=first.scores,
        assessment=first.assessment,
        overall_score=first.overall_score,
        reasons=first.reasons,
        diagnostics=tuple(diagnostics),
        confident=False,
        matcher=first.matcher,
    )


def summarize(decision: Decision) -> str:
    """One-line severity summary for console and log output."""
    if decision.failed:
        return "Review unavailable - allowed without AI review"
    parts = []
    if decision.assessment:
        parts.append(decision.assessment)
    if decision.overall_score is not None:
        parts.append(f"overall {decision.overall_score:.1f}/10")
    head = "BLOCKED" if decision.blocked else "ALLOWED"
    detail = "; ".join(decision.reasons) if decision.reasons else ", ".join(parts)
    return f"{head}: {detail}" if detail else head
