"""
Spec document lexer for specsafe.

Locates requirement blocks inside a base spec's requirements section(s) so
they can be addressed by ID. Two shapes are recognised:

    | FR-1 | Users can log in | P0 | ... |      (table row)

    ### FR-2                                    (heading block)
    **FR-3:** The system shall ...              (bold block)

Table columns are mapped by header name, so the same lookup works for the
functional table (ID, Requirement, Priority, Acceptance Criteria) and the
non-functional one (ID, Requirement, Metric). Heading blocks run until the
next requirement header, the next heading, or the end of the section.

Line numbers are 0-based indexes into content.split("\\n"); end is inclusive.
"""

import re
from dataclasses import dataclass, field

from specsafe.lib.constants import REQUIREMENT_ID_RE, DEFAULT_PRIORITY
from specsafe.models import Requirement, Scenario

SECTION_RE = re.compile(r'^##\s+(Functional\s+|Non-Functional\s+)?Requirements?\b', re.IGNORECASE)
HEADING_RE = re.compile(r'^(#{1,6})\s+\S')
REQUIREMENT_HEADER_RE = re.compile(rf'^###\s+({REQUIREMENT_ID_RE})\b|^\*\*({REQUIREMENT_ID_RE}):')
PRIORITY_RE = re.compile(r'\*\*Priority:\*\*\s+(P[012])')
SEPARATOR_RE = re.compile(r'^\|?(\s*:?-{2,}:?\s*\|)+\s*:?-*:?\s*$')
CELL_SPLIT_RE = re.compile(r'(?<!\\)\|')
ID_CELL_RE = re.compile(rf'^{REQUIREMENT_ID_RE}$')
LIST_RE = re.compile(r'^[-*]\s+')
FENCE_RE = re.compile(r'^(```|~~~)')
GWT_RE = re.compile(r'^given\s+(.+?),?\s+when\s+(.+?),?\s+then\s+(.+)$', re.IGNORECASE)

DEFAULT_COLUMNS = ["ID", "Requirement", "Priority", "Acceptance Criteria"]


@dataclass
class Table:
    """A markdown table inside a requirements section."""
    columns: list[str]
    header_line: int | None     # None for a headerless run of rows
    start: int                  # first line of the table (header or first row)
    end: int                    # last row, inclusive

    def role_index(self, role: str) -> int | None:
        return column_roles(self.columns).get(role)


@dataclass
class RequirementBlock:
    id: str
    text: str
    priority: str | None
    start: int
    end: int
    style: str                              # "table", "heading" or "bold"
    table: Table | None = None
    cells: list[str] = field(default_factory=list)
    scenarios: list[str] = field(default_factory=list)


@dataclass
class Section:
    start: int      # line of the ## heading
    end: int        # exclusive: next top-level heading or len(lines)


@dataclass
class SpecDocument:
    lines: list[str]
    sections: list[Section] = field(default_factory=list)
    tables: list[Table] = field(default_factory=list)
    blocks: list[RequirementBlock] = field(default_factory=list)

    def find(self, req_id: str) -> RequirementBlock | None:
        for block in self.blocks:
            if block.id == req_id:
                return block
        return None

    def ids(self) -> list[str]:
        return [b.id for b in self.blocks]


def column_roles(columns: list[str]) -> dict[str, int]:
    """Map semantic roles (id, text, priority, criteria) to column indexes."""
    roles: dict[str, int] = {}
    for idx, name in enumerate(columns):
        n = name.strip().lower()
        if "id" not in roles and (n == "id" or n.endswith(" id")):
            roles["id"] = idx
        elif "priority" not in roles and "priority" in n:
            roles["priority"] = idx
        elif "criteria" not in roles and ("criteria" in n or "scenario" in n):
            roles["criteria"] = idx
        elif "text" not in roles and ("requirement" in n or "description" in n):
            roles["text"] = idx
    roles.setdefault("id", 0)
    if "text" not in roles:
        roles["text"] = 1 if len(columns) > 1 else 0
    return roles


def split_row(line: str) -> list[str]:
    """Split a markdown table row into stripped cells."""
    body = line.strip()
    if body.startswith("|"):
        body = body[1:]
    if body.endswith("|") and not body.endswith("\\|"):
        body = body[:-1]
    return [c.strip() for c in CELL_SPLIT_RE.split(body)]


def format_row(cells: list[str]) -> str:
    return "| " + " | ".join(cells) + " |"


def escape_cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


def match_requirement_header(line: str) -> tuple[str, str, str] | None:
    """Return (id, style, inline_text) for a requirement header line.

    Inline text is what follows a bold header (`**FR-1:** text`); heading
    titles (`### FR-1: Login`) are not requirement text.
    """
    m = REQUIREMENT_HEADER_RE.match(line)
    if not m:
        return None
    if m.group(1):
        return m.group(1), "heading", ""
    rest = line[m.end():]
    rest = re.sub(r'^\*\*', '', rest).strip()
    return m.group(2), "bold", rest


def parse_spec_document(content: str) -> SpecDocument:
    """Scan content and return the located requirements sections and blocks."""
    lines = content.split("\n")
    doc = SpecDocument(lines=lines)

    section: Section | None = None
    table: Table | None = None
    block: RequirementBlock | None = None
    text_parts: list[str] = []
    in_fence = False
    in_comment = False

    def close_block(end_exclusive: int) -> None:
        nonlocal block, text_parts
        if block is None:
            return
        end = end_exclusive - 1
        while end > block.start and not lines[end].strip():
            end -= 1
        block.end = end
        block.text = " ".join(text_parts).strip()
        doc.blocks.append(block)
        block = None
        text_parts = []

    def close_table() -> None:
        nonlocal table
        if table is not None:
            doc.tables.append(table)
            table = None

    for i, line in enumerate(lines):
        stripped = line.strip()

        if FENCE_RE.match(stripped):
            in_fence = not in_fence
            continue
        if in_fence:
            continue

        if '<!--' in stripped:
            in_comment = True
        if in_comment:
            if '-->' in stripped:
                in_comment = False
            continue

        heading = HEADING_RE.match(stripped)
        if heading and len(heading.group(1)) <= 2:
            # Top-level heading: closes the current section, may open another
            close_block(i)
            close_table()
            if section is not None:
                section.end = i
                doc.sections.append(section)
                section = None
            if SECTION_RE.match(stripped):
                section = Section(start=i, end=len(lines))
            continue

        if section is None:
            continue

        header = match_requirement_header(stripped)
        if header:
            close_block(i)
            close_table()
            req_id, style, inline = header
            block = RequirementBlock(id=req_id, text="", priority=None, start=i, end=i, style=style)
            text_parts = [inline] if inline else []
            continue

        if heading:
            # ### sub-heading that isn't a requirement: ends the block, not the section
            close_block(i)
            close_table()
            continue

        if block is not None and stripped.startswith("|"):
            # A table ends the block; its rows are requirements of their own
            close_block(i)

        if block is not None:
            priority = PRIORITY_RE.search(stripped)
            if priority:
                block.priority = priority.group(1)
            elif LIST_RE.match(stripped):
                block.scenarios.append(LIST_RE.sub('', stripped))
            elif stripped:
                text_parts.append(stripped)
            continue

        if stripped.startswith("|"):
            if SEPARATOR_RE.match(stripped):
                continue
            next_line = lines[i + 1].strip() if i + 1 < len(lines) else ""
            if table is None or SEPARATOR_RE.match(next_line):
                close_table()
                if SEPARATOR_RE.match(next_line):
                    table = Table(columns=split_row(stripped), header_line=i, start=i, end=i + 1)
                    continue
                table = Table(columns=list(DEFAULT_COLUMNS), header_line=None, start=i, end=i)
            table.end = i
            row = _row_block(stripped, i, table)
            if row:
                doc.blocks.append(row)
            continue

        close_table()

    close_block(len(lines))
    close_table()
    if section is not None:
        section.end = len(lines)
        doc.sections.append(section)

    return doc


def _row_block(line: str, lineno: int, table: Table) -> RequirementBlock | None:
    cells = split_row(line)
    roles = column_roles(table.columns)
    id_idx = roles["id"]
    if id_idx >= len(cells) or not ID_CELL_RE.match(cells[id_idx]):
        return None

    def cell(role: str) -> str:
        idx = roles.get(role)
        return cells[idx] if idx is not None and idx < len(cells) else ""

    priority = cell("priority")
    criteria = cell("criteria")
    return RequirementBlock(
        id=cells[id_idx],
        text=cell("text").replace("\\|", "|"),
        priority=priority if priority in ("P0", "P1", "P2") else None,
        start=lineno,
        end=lineno,
        style="table",
        table=table,
        cells=cells,
        scenarios=[s.strip() for s in criteria.split(";") if s.strip()],
    )


def to_scenario(req_id: str, index: int, text: str) -> Scenario:
    """Build a Scenario from `Given ..., when ..., then ...` text (or plain text)."""
    m = GWT_RE.match(text.replace("**", "").strip())
    if m:
        return Scenario(id=f"{req_id}-S{index}", given=m.group(1), when=m.group(2), then_outcome=m.group(3))
    return Scenario(id=f"{req_id}-S{index}", given="", when="", then_outcome=text)


def extract_requirements(content: str) -> list[Requirement]:
    """Return the requirements declared in a spec document.

    Template placeholder rows (an ID with no text) are skipped. The first
    occurrence of an ID wins.
    """
    doc = parse_spec_document(content)
    requirements: list[Requirement] = []
    seen = set()
    for block in doc.blocks:
        if not block.text or block.id in seen:
            continue
        seen.add(block.id)
        requirements.append(Requirement(
            id=block.id,
            text=block.text,
            priority=block.priority or DEFAULT_PRIORITY,
            scenarios=[to_scenario(block.id, n, s) for n, s in enumerate(block.scenarios, 1)],
        ))
    return requirements
