"""
EARS compliance validation and scoring.

A requirement is compliant only when it matches an EARS shape with
confidence >= 0.7 AND raises no quality issue (modal verb, length,
ambiguous words, vague terms).
"""

import re
from datetime import date

from specsafe.models import Spec
from specsafe.ears.models import EARSValidationResult, RequirementValidation, UNKNOWN
from specsafe.ears.parser import parse_ears_requirement

MIN_CONFIDENCE = 0.7
MIN_WORDS = 5
MAX_WORDS = 40
DEFAULT_THRESHOLD = 80

AMBIGUOUS_WORDS = ["should", "may", "might", "could", "possibly", "probably", "usually", "maybe", "perhaps"]
VAGUE_TERMS = ["appropriate", "adequate", "reasonable", "efficient", "user-friendly", "as needed"]

_AMBIGUOUS_PATTERNS = [(w, re.compile(rf'\b{re.escape(w)}\b', re.I)) for w in AMBIGUOUS_WORDS]
_VAGUE_PATTERNS = [(t, re.compile(rf'\b{re.escape(t)}\b', re.I)) for t in VAGUE_TERMS]
_MODAL_RE = re.compile(r'\b(shall|must|will)\b', re.I)

# (keyword regex, suggestion) checked in order; ubiquitous is the fallback
_SUGGESTIONS = [
    (
        re.compile(r'\b(after|once|following|receives|detects|triggers)\b', re.I),
        'Consider event-driven EARS: "When [event occurs], the system shall [action]"\n'
        'Example: "When user submits the form, the system shall validate all fields"',
    ),
    (
        re.compile(r'\b(during|active|running|enabled|in\s+\w+\s+mode)\b', re.I),
        'Consider state-driven EARS: "While [state exists], the system shall [action]"\n'
        'Example: "While user is logged in, the system shall display the dashboard"',
    ),
    (
        re.compile(r'^(?!.*then).*\b(if|when|in case|for|with)\b', re.I | re.S),
        'Consider optional EARS: "Where [condition], the system shall [action]"\n'
        'Example: "Where user has admin privileges, the system shall allow access to settings"',
    ),
    (
        re.compile(r'\b(error|fail|invalid|incorrect|wrong|exception)\b', re.I),
        'Consider unwanted behavior EARS: "If [unwanted condition], then the system shall [action]"\n'
        'Example: "If user enters invalid credentials, then the system shall display an error message"',
    ),
]
_UBIQUITOUS_SUGGESTION = (
    'Consider ubiquitous EARS: "The system shall [action]"\n'
    'Example: "The system shall encrypt all sensitive data at rest"'
)

TYPE_LABELS = {
    "ubiquitous": "Ubiquitous",
    "event": "Event-driven",
    "state": "State-driven",
    "optional": "Optional",
    "unwanted": "Unwanted behavior",
    "complex": "Complex",
    "unknown": "Unknown",
}


def generate_suggestion(text: str) -> str:
    """Recommend the EARS template whose keywords appear in text."""
    for pattern, suggestion in _SUGGESTIONS:
        if pattern.search(text):
            return suggestion
    return _UBIQUITOUS_SUGGESTION


def validate_requirement(text: str) -> RequirementValidation:
    ears = parse_ears_requirement(text)
    issues: list[str] = []
    suggestion = None

    if ears.type == UNKNOWN:
        issues.append("Does not follow any EARS pattern")
        suggestion = generate_suggestion(text)
    elif ears.confidence < MIN_CONFIDENCE:
        issues.append("Weak EARS pattern match")
        suggestion = generate_suggestion(text)

    if not _MODAL_RE.search(text):
        issues.append("Missing modal verb (shall/must/will)")

    word_count = len(text.split())
    if word_count < MIN_WORDS:
        issues.append("Requirement is too short - may lack necessary detail")
    if word_count > MAX_WORDS:
        issues.append("Requirement is too long - consider splitting into multiple requirements")

    for word, pattern in _AMBIGUOUS_PATTERNS:
        if pattern.search(text):
            issues.append(f'Contains ambiguous word: "{word}"')

    for term, pattern in _VAGUE_PATTERNS:
        if pattern.search(text):
            issues.append(f'Contains vague term: "{term}" - specify measurable criteria')

    return RequirementValidation(
        text=text,
        is_compliant=not issues,
        ears_requirement=ears if ears.type != UNKNOWN else None,
        issues=issues,
        suggestion=suggestion,
    )


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def _recommendation(score: int) -> str:
    if score >= 90:
        return "Excellent EARS compliance! Requirements are well-structured and testable."
    if score >= 70:
        return "Good EARS compliance, but some requirements could be improved for better testability."
    if score >= 50:
        return "Moderate EARS compliance. Consider rewriting requirements using EARS patterns."
    return "Low EARS compliance. Requirements should be rewritten using EARS patterns for testability."


def validate_requirements(spec: Spec) -> EARSValidationResult:
    validations = [validate_requirement(r.text) for r in spec.requirements]
    total = len(validations)
    compliant = sum(1 for v in validations if v.is_compliant)
    score = _round_half_up(compliant / total * 100) if total else 0

    counts: dict[str, int] = {}
    for v in validations:
        if v.ears_requirement:
            counts[v.ears_requirement.type] = counts.get(v.ears_requirement.type, 0) + 1

    return EARSValidationResult(
        score=score,
        total_requirements=total,
        compliant_count=compliant,
        requirements=validations,
        summary=list(counts.items()),
        recommendation=_recommendation(score),
    )


def get_ears_score(spec: Spec) -> int:
    return validate_requirements(spec).score


def meets_ears_threshold(spec: Spec, threshold: int = DEFAULT_THRESHOLD, precomputed_score: int | None = None) -> bool:
    """True if the spec's EARS score reaches threshold. Pass precomputed_score to skip re-validation."""
    score = precomputed_score if precomputed_score is not None else get_ears_score(spec)
    return score >= threshold


def generate_ears_report(spec: Spec, result: EARSValidationResult | None = None) -> str:
    """Markdown compliance report for a spec."""
    result = result or validate_requirements(spec)
    out = [
        "# EARS Compliance Report",
        "",
        f"**Spec ID:** {spec.id}",
        f"**Spec Name:** {spec.name}",
        f"**Date:** {date.today().isoformat()}",
        "",
        f"## Overall Score: {result.score}/100",
        "",
        result.recommendation,
        "",
        "### Summary",
        f"- **Total Requirements:** {result.total_requirements}",
        f"- **Compliant:** {result.compliant_count}",
        f"- **Non-Compliant:** {result.total_requirements - result.compliant_count}",
        "",
    ]

    if result.summary:
        out += ["### Requirements by EARS Type", ""]
        out += [f"- **{TYPE_LABELS.get(t, t)}:** {count}" for t, count in result.summary]
        out.append("")

    out += ["## Detailed Analysis", ""]
    for req, v in zip(spec.requirements, result.requirements):
        status = "PASS" if v.is_compliant else "FAIL"
        out += [f"### [{status}] {req.id}", "", f'**Text:** "{v.text}"', ""]

        ears = v.ears_requirement
        if ears:
            out += [f"**EARS Type:** {ears.type}", f"**Confidence:** {_round_half_up(ears.confidence * 100)}%", ""]
            if ears.event:
                out.append(f"- **Event:** {ears.event}")
            if ears.state:
                out.append(f"- **State:** {ears.state}")
            if ears.condition:
                out.append(f"- **Condition:** {ears.condition}")
            if ears.unwanted_condition:
                out.append(f"- **Unwanted Condition:** {ears.unwanted_condition}")
            if ears.conditions:
                out.append("- **Conditions:**")
                out += [f"  - {c.type}: {c.value}" for c in ears.conditions]
            out += [f"- **Action:** {ears.action}", ""]

        if v.issues:
            out.append("**Issues:**")
            out += [f"- {issue}" for issue in v.issues]
            out.append("")

        if v.suggestion:
            out += ["**Suggestion:**", v.suggestion, ""]

        out += ["---", ""]

    return "\n".join(out)
