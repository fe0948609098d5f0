"""
EARS (Easy Approach to Requirements Syntax) pattern parser.

Shapes are tried from most to least specific:

    complex      When E, while S, the system shall X                (0.85)
    unwanted     If C, then the system shall X                       (0.95)
    event        When E, the system shall X                          (0.95)
    state        While S, the system shall X                         (0.95)
    optional     Where C, the system shall X                         (0.95)
    ubiquitous   The system shall X                                  (0.9)

Anything else is "unknown" with confidence 0.
"""

import re

from specsafe.ears.models import (
    COMPLEX,
    EVENT,
    OPTIONAL,
    STATE,
    UBIQUITOUS,
    UNKNOWN,
    UNWANTED,
    EARSCondition,
    EARSRequirement,
)

_SUBJECT = r'(?:the\s+)?(?:system|application|service)\s+(?:shall|must|will)\s+(.+)$'

UBIQUITOUS_PATTERNS = [
    re.compile(r'^(?:the\s+)?(?:system|application|service|software|product)\s+(?:shall|must|will)\s+(.+)$', re.I),
]
EVENT_PATTERNS = [
    re.compile(r'^when\s+(.+?),\s*' + _SUBJECT, re.I),
    re.compile(r'^(?:upon|on)\s+(.+?),\s*' + _SUBJECT, re.I),
]
STATE_PATTERNS = [
    re.compile(r'^while\s+(.+?),\s*' + _SUBJECT, re.I),
    re.compile(r'^(?:during|throughout)\s+(.+?),\s*' + _SUBJECT, re.I),
    re.compile(r'^as long as\s+(.+?),\s*' + _SUBJECT, re.I),
]
OPTIONAL_PATTERNS = [
    re.compile(r'^where\s+(.+?),\s*' + _SUBJECT, re.I),
    re.compile(r'^in cases?\s+(?:where\s+)?(.+?),\s*' + _SUBJECT, re.I),
]
UNWANTED_PATTERNS = [
    re.compile(r'^if\s+(.+?),\s*then\s+' + _SUBJECT, re.I),
    re.compile(r'^(?:in the event that|should)\s+(.+?),\s*' + _SUBJECT, re.I),
]
COMPLEX_RE = re.compile(
    r'^((?:when|while|where|if).+?(?:,\s*(?:and|while|where|when)\s+.+?)*),\s*' + _SUBJECT, re.I
)
TRIGGER_SPLIT_RE = re.compile(r',?\s+(and|while|where|when|if)\s+', re.I)

KEYWORD_TYPES = {"if": OPTIONAL, "when": EVENT, "while": STATE, "where": OPTIONAL}

EARS_KEYWORDS_RE = re.compile(r'\b(when|while|where|if\s+.+\s+then|system\s+shall|shall|must|will)\b', re.I)
MODAL_RE = re.compile(r'(?:shall|must|will)', re.I)
SUBJECT_RE = re.compile(r'(?:system|application|service)', re.I)
TRIGGER_RE = re.compile(r'(?:when|while|where|if)\s+', re.I)
BULLET_RE = re.compile(r'^[-*•]\s*')


def _match_complex(text: str) -> EARSRequirement | None:
    m = COMPLEX_RE.match(text)
    if not m:
        return None

    conditions: list[EARSCondition] = []
    keyword = ""
    last_type: str | None = None

    for i, part in enumerate(TRIGGER_SPLIT_RE.split(m.group(1).strip())):
        part = part.strip()
        if part.lower() in ("and", "while", "where", "when", "if"):
            # "and" continues the previous trigger type
            if part.lower() != "and":
                keyword = part.lower()
            continue

        if i == 0:
            first, _, rest = part.partition(" ")
            cond_type = KEYWORD_TYPES.get(first.lower())
            if cond_type:
                conditions.append(EARSCondition(cond_type, rest.strip()))
                last_type = cond_type
            continue

        cond_type = KEYWORD_TYPES.get(keyword) or last_type
        if cond_type:
            conditions.append(EARSCondition(cond_type, part))
            last_type = cond_type

    if len(conditions) < 2:
        return None

    return EARSRequirement(text=text, type=COMPLEX, action=m.group(2).strip(), confidence=0.85, conditions=conditions)


def _first_match(patterns: list[re.Pattern], text: str) -> re.Match | None:
    for pattern in patterns:
        m = pattern.match(text)
        if m:
            return m
    return None


def parse_ears_requirement(text: str) -> EARSRequirement:
    """Classify requirement text into an EARS shape."""
    normalized = text.strip()

    complex_req = _match_complex(normalized)
    if complex_req:
        return complex_req

    m = _first_match(UNWANTED_PATTERNS, normalized)
    if m:
        return EARSRequirement(normalized, UNWANTED, m.group(2).strip(), 0.95, unwanted_condition=m.group(1).strip())

    m = _first_match(EVENT_PATTERNS, normalized)
    if m:
        return EARSRequirement(normalized, EVENT, m.group(2).strip(), 0.95, event=m.group(1).strip())

    m = _first_match(STATE_PATTERNS, normalized)
    if m:
        return EARSRequirement(normalized, STATE, m.group(2).strip(), 0.95, state=m.group(1).strip())

    m = _first_match(OPTIONAL_PATTERNS, normalized)
    if m:
        return EARSRequirement(normalized, OPTIONAL, m.group(2).strip(), 0.95, condition=m.group(1).strip())

    m = _first_match(UBIQUITOUS_PATTERNS, normalized)
    if m:
        return EARSRequirement(normalized, UBIQUITOUS, m.group(1).strip(), 0.9)

    return EARSRequirement(normalized, UNKNOWN, normalized, 0)


def has_ears_keywords(text: str) -> bool:
    return bool(EARS_KEYWORDS_RE.search(text))


def extract_requirements(text: str) -> list[str]:
    """Pull requirement-looking lines (a modal plus a subject or trigger) out of free text."""
    found = []
    for line in text.split("\n"):
        line = line.strip()
        if line and MODAL_RE.search(line) and (SUBJECT_RE.search(line) or TRIGGER_RE.search(line)):
            found.append(BULLET_RE.sub('', line))
    return found
