"""
Delta spec parser.

Turns a delta markdown document into a DeltaSpec:

    **Description:** Add password reset

    ## ADDED Requirements
    ### FR-9
    Users can reset their password by email
    **Priority:** P1
    - Given a registered email, when reset is requested, then a link is sent

    ## MODIFIED Requirements
    **FR-2:** Sessions expire after 30 minutes ← (was Sessions expire after 1 hour)

    ## REMOVED Requirements
    - FR-4

The document is tokenized line by line (fenced code and HTML comments are
skipped), then a section tracker folds the tokens into requirements.
Malformed input never raises; it just yields fewer changes, which
DeltaParser.validate() reports.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator

from specsafe.lib.constants import REQUIREMENT_ID_RE
from specsafe.lib.specdoc import FENCE_RE, PRIORITY_RE, match_requirement_header
from specsafe.delta.models import DeltaRequirement, DeltaSpec, ValidationResult

logger = logging.getLogger(__name__)

SECTION_RE = re.compile(r'^##\s+(ADDED|MODIFIED|REMOVED)\s+Requirements?\b', re.IGNORECASE)
HEADING_RE = re.compile(r'^(#{1,6})\s+')
REMOVED_ITEM_RE = re.compile(rf'^[-*]\s+({REQUIREMENT_ID_RE})')
LIST_RE = re.compile(r'^[-*]\s+')
WAS_RE = re.compile(r'←\s*\(was\s+(.+)\)')
DESCRIPTION_RE = re.compile(r'\*\*Description:\*\*\s+(.+)')

DEFAULT_DESCRIPTION = "Delta spec change"


@dataclass
class Token:
    kind: str       # section, title, heading, subheading, header, priority, list, text
    value: str
    lineno: int
    req_id: str = ""


def tokenize(content: str) -> Iterator[Token]:
    """Yield one token per meaningful line. Blank lines produce nothing."""
    in_fence = False
    in_comment = False

    for lineno, raw in enumerate(content.split("\n"), 1):
        line = raw.strip()

        if FENCE_RE.match(line):
            in_fence = not in_fence
            continue
        if in_fence:
            continue

        if '<!--' in line:
            before = line.split('<!--', 1)[0].strip()
            in_comment = '-->' not in line.split('<!--', 1)[1]
            if not before:
                continue
            line = before
        elif in_comment:
            if '-->' in line:
                in_comment = False
                line = line.split('-->', 1)[1].strip()
            else:
                continue

        if not line:
            continue

        section = SECTION_RE.match(line)
        if section:
            yield Token("section", section.group(1).lower(), lineno)
            continue

        header = match_requirement_header(line)
        if header:
            req_id, _style, inline = header
            yield Token("header", inline, lineno, req_id=req_id)
            continue

        heading = HEADING_RE.match(line)
        if heading:
            level = len(heading.group(1))
            kind = "heading" if level == 2 else "title" if level == 1 else "subheading"
            yield Token(kind, line, lineno)
            continue

        if line.startswith("**Priority:**"):
            priority = PRIORITY_RE.search(line)
            yield Token("priority", priority.group(1) if priority else "", lineno)
            continue

        if LIST_RE.match(line):
            yield Token("list", line, lineno)
            continue

        yield Token("text", line, lineno)


@dataclass
class _Pending:
    """Requirement being accumulated from tokens."""
    id: str
    text_parts: list[str] = field(default_factory=list)
    priority: str | None = None
    scenarios: list[str] = field(default_factory=list)
    old_text: str | None = None

    def freeze(self) -> DeltaRequirement:
        return DeltaRequirement(
            id=self.id,
            text=" ".join(self.text_parts).strip(),
            priority=self.priority,
            scenarios=tuple(self.scenarios),
            old_text=self.old_text,
        )


class DeltaParser:
    """Parses and validates delta spec documents."""

    def parse(self, content: str, delta_spec_id: str, base_spec_id: str, author: str = "developer") -> DeltaSpec:
        added: list[DeltaRequirement] = []
        modified: list[DeltaRequirement] = []
        removed: list[str] = []

        section = "none"
        current: _Pending | None = None

        def flush() -> None:
            nonlocal current
            if current is not None and current.id:
                if section == "added":
                    added.append(current.freeze())
                elif section == "modified":
                    modified.append(current.freeze())
            current = None

        for token in tokenize(content):
            if token.kind == "section":
                flush()
                section = token.value
                continue

            if token.kind == "heading":
                flush()
                section = "none"
                continue

            if section == "none":
                continue

            if section == "removed":
                item = REMOVED_ITEM_RE.match(token.value) if token.kind == "list" else None
                if item:
                    removed.append(item.group(1))
                continue

            if token.kind == "header":
                flush()
                current = _Pending(id=token.req_id)
                if token.value:
                    self._add_text(current, token.value, section)
                continue

            if current is None or token.kind in ("title", "subheading"):
                continue

            if token.kind == "priority":
                if token.value:
                    current.priority = token.value
            elif token.kind == "list":
                current.scenarios.append(LIST_RE.sub('', token.value))
            elif token.kind == "text":
                self._add_text(current, token.value, section)

        flush()

        delta = DeltaSpec(
            id=delta_spec_id,
            base_spec_id=base_spec_id,
            description=self.extract_description(content),
            created_at=datetime.now(),
            author=author,
            added=tuple(added),
            modified=tuple(modified),
            removed=tuple(removed),
        )
        logger.debug(
            f"Parsed {delta_spec_id}: {len(added)} added, {len(modified)} modified, {len(removed)} removed"
        )
        return delta

    @staticmethod
    def _add_text(current: _Pending, line: str, section: str) -> None:
        if DESCRIPTION_RE.match(line):
            return
        was = WAS_RE.search(line)
        if was and section == "modified":
            current.old_text = was.group(1).strip()
            line = WAS_RE.sub('', line).strip()
            if not line:
                return
        current.text_parts.append(line)

    @staticmethod
    def extract_description(content: str) -> str:
        for line in content.split("\n"):
            m = DESCRIPTION_RE.search(line)
            if m:
                return m.group(1).strip()
        return DEFAULT_DESCRIPTION

    def validate(self, delta: DeltaSpec) -> ValidationResult:
        """Check a parsed delta for structural problems.

        Does not look at the base spec; missing targets surface as merge
        conflicts instead.
        """
        errors: list[str] = []

        if not delta.base_spec_id:
            errors.append("Missing base spec ID")

        if delta.change_count == 0:
            errors.append("Delta spec has no changes (no requirements added, modified, or removed)")

        added_ids: set[str] = set()
        for req in delta.added:
            if req.id in added_ids:
                errors.append(f"Duplicate requirement ID in ADDED section: {req.id}")
            added_ids.add(req.id)

        modified_ids: set[str] = set()
        for req in delta.modified:
            if req.id in modified_ids:
                errors.append(f"Duplicate requirement ID in MODIFIED section: {req.id}")
            modified_ids.add(req.id)

        removed_ids = set(delta.removed)

        for req_id in sorted(added_ids & modified_ids):
            errors.append(f"Requirement {req_id} appears in both ADDED and MODIFIED sections")
        for req_id in sorted(added_ids & removed_ids):
            errors.append(f"Requirement {req_id} appears in both ADDED and REMOVED sections")
        for req_id in sorted(modified_ids & removed_ids):
            errors.append(f"Requirement {req_id} appears in both MODIFIED and REMOVED sections")

        return ValidationResult(valid=not errors, errors=errors)
