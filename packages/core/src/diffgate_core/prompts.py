"""Prompt construction for every review profile.

Templates are fixed text with three slots: ``{files}``, ``{changes}`` and
the diff-polarity rules in ``{polarity}``. The
output-format section of each template is the contract the decision matchers
in decision.py parse, so field labels and their order must stay stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from diffgate_core.diff import ChangeRecord, DiffBundle, extract_records, filter_additions
from diffgate_core.profiles import ReviewProfile

FILE_LIST_LIMIT = 10
CHANGE_LIST_LIMIT = 20


@dataclass(frozen=True)
class EvaluationRequest:
    profile: ReviewProfile
    system_prompt: str
    prompt: str
    changed_files: tuple[str, ...] = field(default_factory=tuple)


DIFF_POLARITY_RULES = """\
IMPORTANT - GIT DIFF ANALYSIS:
You are analyzing a GIT DIFF from which removed lines have already been stripped.
- Lines starting with "+" are NEWLY ADDED code (ONLY ANALYZE THESE)
- Lines starting with " " (space) are unchanged context
- Removed code is never a finding: deleting bad code is a positive change.
Only flag issues in lines that start with "+"."""

RECORD_POLARITY_RULES = """\
IMPORTANT: Only the ADDED lines can introduce new risk. DELETED lines are listed
for context only and must never be reported as issues; removing bad code is a
positive change."""

_SYSTEM_PROMPTS = {
    "precommit": (
        "You are a fast pre-commit code reviewer. Focus only on critical, build-breaking issues. Be concise."
    ),
    "prepush": (
        "You are a senior code reviewer and architect specializing in comprehensive code analysis across "
        "multiple dimensions: quality, performance, security, testing, documentation, and framework-specific "
        "best practices."
    ),
    "unified": (
        "You are an expert code reviewer with deep knowledge of software engineering best practices, security, "
        "performance optimization, and architecture design. Analyze code changes comprehensively across syntax, "
        "security, style, quality, performance, architecture, and documentation aspects. Provide specific, "
        "actionable feedback categorized by severity and impact."
    ),
    "critical": (
        "You are an expert code reviewer. Report critical, build-breaking and security problems in clearly "
        "numbered sections and say 'None identified' for every section without problems."
    ),
    "security": "You are a security specialist reviewing code changes for vulnerabilities.",
    "performance": "You are a performance optimization expert analyzing code efficiency.",
    "accessibility": "You are an accessibility expert ensuring inclusive design.",
    "testing": "You are a testing quality expert reviewing test coverage and quality.",
    "documentation": "You are a documentation expert ensuring code clarity and maintainability.",
}

_SYSTEM_POLARITY_WARNING = (
    " The diff you receive contains only added lines ('+') and unchanged context (' '); "
    "deleted lines were removed before sending. Never report removed code as a problem."
)

_TEMPLATES = {
    "precommit": """\
You are a CRITICAL ISSUE DETECTOR for pre-commit checks. Focus ONLY on issues that would break the build or pose immediate risks.

CRITICAL CHECKS:
1. **Syntax & Build**: Syntax errors, missing brackets, import/export problems
2. **Security Critical**: Hardcoded secrets in SOURCE CODE (not documentation showing how to configure)
3. **Style Violations**: Major linting errors, formatting issues that break builds
4. **Type Errors**: Type errors, undefined variables, wrong types

{polarity}

WHAT NOT TO FLAG:
- Documentation showing how to configure environment variables
- Warning messages about API keys (these are helpful user guidance)
- Template/placeholder values in docs (like "your_api_key_here")

Staged files: {files}

{changes}

Respond in this exact format:
**STATUS:** [PASS/FAIL]

**CRITICAL ISSUES** (only in + lines):
- [SYNTAX] Issue description (specify file)
- [SECURITY] Issue description (actual secrets, not warnings about them)
- [STYLE] Issue description (only if it breaks builds)
- [TYPE] Issue description (actual type errors)

**PASSED CHECKS**:
- Syntax validation of added code
- Security scan of added code
- Style compliance of added code
- Type checking of added code

Keep under 300 words. Focus on BUILD-BREAKING issues only.""",
    "prepush": """\
You are a COMPREHENSIVE CODE REVIEWER for pre-push analysis. Perform a thorough multi-dimensional review of the changes.

REVIEW CATEGORIES (score each out of 10):
- CODE QUALITY: Architecture, SOLID principles, maintainability
- PERFORMANCE: Algorithm efficiency, memory usage, optimization
- SECURITY: Vulnerabilities, authentication, data validation
- TESTING: Coverage, quality, edge cases
- DOCUMENTATION & A11Y: Docs, accessibility, WCAG compliance
- REACT/FRONTEND: Hooks, state management, component design

{polarity}

Changed files: {files}

{changes}

RESPONSE FORMAT (keep these labels exactly):
**OVERALL ASSESSMENT:** [EXCELLENT/GOOD/NEEDS_IMPROVEMENT/CRITICAL_ISSUES]
**CODE QUALITY:** [Score: X/10] - Issues/recommendations
**PERFORMANCE:** [Score: X/10] - Issues/recommendations
**SECURITY:** [Score: X/10] - Issues/recommendations
**TESTING:** [Score: X/10] - Issues/recommendations
**DOCUMENTATION & A11Y:** [Score: X/10] - Issues/recommendations
**REACT/FRONTEND:** [Score: X/10] - Issues/recommendations
**POSITIVE HIGHLIGHTS:**
**ACTION ITEMS:**
1. [CRITICAL/HIGH/MEDIUM/LOW] Specific action needed

Provide actionable, specific feedback with file references when possible.""",
    "unified": """\
You are an expert code reviewer. Please analyze the following code changes and provide feedback on code quality, potential issues, and recommendations.

**Files Modified:** {files}

{changes}

{polarity}

**Please analyze the code changes and categorize issues using these EXACT categories:**

CRITICAL/BLOCKING REVIEWS (will block the commit/push if issues are found):

**1. SYNTAX & BUILD ISSUES**: syntax errors, import/export issues, type errors, build-breaking changes
**2. SECURITY VULNERABILITIES**: hardcoded secrets/API keys, SQL injection, XSS, unsafe eval()
**3. CODE STYLE & STANDARDS**: linting violations, formatting, naming convention violations

QUALITY & OPTIMIZATION REVIEWS (informational, never block):

**4. CODE QUALITY & BEST PRACTICES**: SOLID violations, complexity, maintainability
**5. PERFORMANCE REVIEW**: inefficient algorithms, memory leaks, query optimization
**6. ARCHITECTURE & DESIGN**: component structure, dependencies, scalability
**7. DOCUMENTATION REVIEW**: missing docs, API documentation, comment quality

**IMPORTANT**:
- START your response with exactly one of these two lines:
  * "APPROVAL_STATUS: 1" (if NO critical issues found in categories 1-3)
  * "APPROVAL_STATUS: 0" (if ANY critical issues found in categories 1-3)
- For each category, write "None identified" if no issues found in that category
- Provide specific file names when possible
- Only categories 1-3 may cause blocking (APPROVAL_STATUS: 0)""",
    "critical": """\
You are an expert code reviewer. Check the following code changes for critical problems only.

**Files Modified:** {files}

{changes}

{polarity}

Answer with exactly these numbered sections, in this order:

1. Syntax & Build Issues
2. Security Vulnerabilities
3. Code Style & Standards
4. Code Quality & Best Practices

Under each heading either write "None identified" or list each problem as a bullet ("- ") with the file name.
Do not use the words "error", "issue", "problem" or "violation" in a section that has nothing to report.""",
    "security": """\
You are a SECURITY SPECIALIST reviewing code for vulnerabilities and security best practices.

SECURITY FOCUS AREAS:
- Authentication & Authorization flaws
- Input validation & sanitization
- SQL injection, XSS, CSRF vulnerabilities
- Sensitive data exposure
- Dependency vulnerabilities
- Cryptographic implementations
- Access control issues

{polarity}

Changed files: {files}

{changes}

RESPONSE FORMAT:
**SECURITY ASSESSMENT:** [SECURE/MINOR_ISSUES/MAJOR_VULNERABILITIES/CRITICAL_VULNERABILITIES]
**SECURITY ISSUES:**
**SECURITY RECOMMENDATIONS:**
**SECURITY STRENGTHS:**""",
    "performance": """\
You are a PERFORMANCE OPTIMIZATION EXPERT analyzing code efficiency.

PERFORMANCE FOCUS AREAS:
- Algorithm complexity and efficiency
- Memory usage and leaks
- Database query optimization
- Bundle size and loading performance
- Rendering optimization
- Caching strategies

{polarity}

Changed files: {files}

{changes}

RESPONSE FORMAT:
**PERFORMANCE SCORE:** [X/10]
**PERFORMANCE ISSUES:**
**OPTIMIZATION RECOMMENDATIONS:**
**PERFORMANCE STRENGTHS:**""",
    "accessibility": """\
You are an ACCESSIBILITY EXPERT ensuring inclusive design.

ACCESSIBILITY FOCUS AREAS:
- WCAG 2.1 AA compliance
- Screen reader compatibility
- Keyboard navigation
- Color contrast and visual design
- ARIA labels and semantic HTML
- Focus management

{polarity}

Changed files: {files}

{changes}

RESPONSE FORMAT:
**ACCESSIBILITY SCORE:** [X/10]
**ACCESSIBILITY ISSUES:**
**A11Y RECOMMENDATIONS:**
**ACCESSIBILITY STRENGTHS:**""",
    "testing": """\
You are a TESTING QUALITY EXPERT reviewing test coverage and quality.

TESTING FOCUS AREAS:
- Test coverage completeness
- Test quality and maintainability
- Edge case handling
- Mock and stub usage
- Integration test strategy
- Error handling coverage

{polarity}

Changed files: {files}

{changes}

RESPONSE FORMAT:
**TESTING SCORE:** [X/10]
**TESTING ISSUES:**
**TESTING RECOMMENDATIONS:**
**TESTING STRENGTHS:**""",
    "documentation": """\
You are a DOCUMENTATION EXPERT ensuring code clarity and maintainability.

DOCUMENTATION FOCUS AREAS:
- Code comments and inline documentation
- API documentation completeness
- README and setup instructions
- Code examples and usage
- Changelog and version notes
- Architecture documentation

{polarity}

Changed files: {files}

{changes}

RESPONSE FORMAT:
**DOCUMENTATION SCORE:** [X/10]
**DOCUMENTATION ISSUES:**
**DOCUMENTATION RECOMMENDATIONS:**
**DOCUMENTATION STRENGTHS:**""",
}

TEMPLATE_KEYS = tuple(_TEMPLATES)


def format_file_list(files: list[str], limit: int = FILE_LIST_LIMIT) -> str:
    """Join the first ``limit`` file names, then note how many were left out."""
    if not files:
        return "(none)"
    shown = ", ".join(files[:limit])
    if len(files) > limit:
        shown += f" and {len(files) - limit} more..."
    return shown


def format_changes(records: list[ChangeRecord], limit: int = CHANGE_LIST_LIMIT) -> str:
    """Render a numbered listing of additions or deletions.

    Returns an empty string for an empty list so the section is dropped from
    the prompt entirely.
    """
    if not records:
        return ""
    deleted = records[0].kind == "deletion"
    heading = "CODE DELETIONS" if deleted else "CODE ADDITIONS"
    verb = "Deleted" if deleted else "Added"
    noun = "deletions" if deleted else "additions"

    lines = [
        f"**{heading} ({len(records)} total):**",
        f"The following lines were {verb.upper()} {'from' if deleted else 'to'} the codebase:",
    ]
    for index, record in enumerate(records[:limit], 1):
        lines.append(f"{index}. File: {record.file or '(unknown)'}")
        lines.append(f"   {verb}: {record.text}")
    if len(records) > limit:
        lines.append(f"... and {len(records) - limit} more {noun}")
    return "\n".join(lines)


def _render_records(bundle: DiffBundle, limit: int) -> str:
    sections = [format_changes(bundle.removed, limit), format_changes(bundle.added, limit)]
    return "\n\n".join(s for s in sections if s)


def _render_diff_block(filtered_diff: str) -> str:
    return f"Git diff (additions and context only):\n```diff\n{filtered_diff.strip()}\n```"


def build_system_prompt(profile: ReviewProfile) -> str:
    system = _SYSTEM_PROMPTS.get(profile.template, _SYSTEM_PROMPTS["unified"])
    if profile.diff_strategy == "additions_only":
        system += _SYSTEM_POLARITY_WARNING
    return system


def build_request(
    profile: ReviewProfile,
    diff: str,
    files: list[str] | None = None,
    bundle: DiffBundle | None = None,
    file_list_limit: int = FILE_LIST_LIMIT,
    change_list_limit: int = CHANGE_LIST_LIMIT,
) -> EvaluationRequest:
    """Render the evaluation request for ``profile``.

    ``records`` profiles list capped deletions then additions; the bundle is
    extracted from ``diff`` when not supplied. ``additions_only`` profiles
    embed the deletion-free diff verbatim in a fenced block.
    """
    if profile.diff_strategy == "records":
        if bundle is None:
            bundle = extract_records(diff)
        changed = list(files) if files else list(bundle.files)
        changes = _render_records(bundle, change_list_limit)
        polarity = RECORD_POLARITY_RULES
    elif profile.diff_strategy == "additions_only":
        changed = list(files or [])
        changes = _render_diff_block(filter_additions(diff))
        polarity = DIFF_POLARITY_RULES
    else:
        raise ValueError(f"Unknown diff strategy: {profile.diff_strategy!r}")

    prompt = _TEMPLATES[profile.template].format(
        files=format_file_list(changed, file_list_limit),
        changes=changes,
        polarity=polarity,
    )
    return EvaluationRequest(
        profile=profile,
        system_prompt=build_system_prompt(profile),
        prompt=prompt,
        changed_files=tuple(changed),
    )
