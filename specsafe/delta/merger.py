"""
Semantic merger: applies one DeltaSpec to base spec markdown.

Order of application is removed, then modified, then added. Each step
re-scans the current content with the spec document lexer, so line offsets
never go stale between edits.

Conflicts are advisory. A missing modify/remove target or a duplicate add
is recorded and the merge carries on; MergeResult.success only reports
that the merge ran to completion. Callers decide whether conflicts should
block writing the result.
"""

import logging

from specsafe.lib.constants import DEFAULT_PRIORITY
from specsafe.lib.specdoc import (
    DEFAULT_COLUMNS,
    RequirementBlock,
    SpecDocument,
    Table,
    column_roles,
    escape_cell,
    format_row,
    parse_spec_document,
)
from specsafe.delta.models import (
    DUPLICATE_ADD,
    INVALID_FORMAT,
    REQUIREMENT_NOT_FOUND,
    DeltaRequirement,
    DeltaSpec,
    MergeConflict,
    MergeResult,
    MergeStats,
)

logger = logging.getLogger(__name__)


def _id_prefix(req_id: str) -> str:
    return req_id.split("-", 1)[0]


def _standard_table(rows: list[str]) -> list[str]:
    header = format_row(DEFAULT_COLUMNS)
    separator = "|" + "|".join("-" * (len(c) + 2) for c in DEFAULT_COLUMNS) + "|"
    return [header, separator, *rows]


class SemanticMerger:
    """Merges delta specs into base spec content at the requirement level."""

    def merge(self, base_content: str, delta: DeltaSpec) -> MergeResult:
        conflicts: list[MergeConflict] = []
        stats = MergeStats()
        content = base_content

        for req_id in delta.removed:
            if not req_id:
                conflicts.append(MergeConflict(INVALID_FORMAT, "REMOVED entry has no requirement ID"))
                continue
            doc = parse_spec_document(content)
            block = doc.find(req_id)
            if block is None:
                conflicts.append(MergeConflict(
                    REQUIREMENT_NOT_FOUND,
                    f"Cannot remove requirement {req_id}: not found in base spec",
                    req_id,
                ))
                continue
            content = self._remove_block(doc, block)
            stats.removed += 1

        for req in delta.modified:
            if not req.id:
                conflicts.append(MergeConflict(INVALID_FORMAT, "MODIFIED entry has no requirement ID"))
                continue
            doc = parse_spec_document(content)
            block = doc.find(req.id)
            if block is None:
                conflicts.append(MergeConflict(
                    REQUIREMENT_NOT_FOUND,
                    f"Cannot modify requirement {req.id}: not found in base spec",
                    req.id,
                ))
                continue
            content = self._replace_block(doc, block, req)
            stats.modified += 1

        for req in delta.added:
            if not req.id:
                conflicts.append(MergeConflict(INVALID_FORMAT, "ADDED entry has no requirement ID"))
                continue
            doc = parse_spec_document(content)
            if doc.find(req.id) is not None:
                # Append policy: the duplicate is still inserted
                conflicts.append(MergeConflict(
                    DUPLICATE_ADD,
                    f"Requirement {req.id} already exists in base spec; added a second entry",
                    req.id,
                ))
            content = self._insert_block(doc, req)
            stats.added += 1

        stats.conflicts = len(conflicts)
        for conflict in conflicts:
            logger.warning(f"[MERGE] {delta.id}: {conflict.message}")
        logger.info(
            f"[MERGE] {delta.id} -> {delta.base_spec_id}: +{stats.added} ~{stats.modified} "
            f"-{stats.removed} ({stats.conflicts} conflict(s))"
        )

        return MergeResult(success=True, content=content, conflicts=conflicts, stats=stats)

    # -- block edits -------------------------------------------------------

    def _remove_block(self, doc: SpecDocument, block: RequirementBlock) -> str:
        lines = list(doc.lines)
        del lines[block.start:block.end + 1]
        start = block.start
        if 0 < start < len(lines) and not lines[start - 1].strip() and not lines[start].strip():
            del lines[start]
        return "\n".join(lines)

    def _replace_block(self, doc: SpecDocument, block: RequirementBlock, req: DeltaRequirement) -> str:
        lines = list(doc.lines)
        if block.style == "table":
            new_lines = [format_row(self._row_cells(block.table, req, base=block.cells))]
        else:
            header = lines[block.start] if block.style == "heading" else None
            new_lines = self._format_block(
                req,
                style=block.style,
                header=header,
                priority=req.priority or block.priority,
                scenarios=list(req.scenarios) or block.scenarios,
            )
        lines[block.start:block.end + 1] = new_lines
        return "\n".join(lines)

    def _insert_block(self, doc: SpecDocument, req: DeltaRequirement) -> str:
        lines = list(doc.lines)

        if doc.tables:
            table = self._pick_table(doc, req.id)
            row = format_row(self._row_cells(table, req))
            lines.insert(table.end + 1, row)
            return "\n".join(lines)

        if doc.blocks:
            last = doc.blocks[-1]
            new_lines = self._format_block(
                req, style=last.style, priority=req.priority or DEFAULT_PRIORITY, scenarios=list(req.scenarios)
            )
            lines[last.end + 1:last.end + 1] = ["", *new_lines]
            return "\n".join(lines)

        table_lines = _standard_table([format_row(self._row_cells(Table(list(DEFAULT_COLUMNS), None, 0, 0), req))])

        if doc.sections:
            section = doc.sections[0]
            pos = section.end
            while pos - 1 > section.start and not lines[pos - 1].strip():
                pos -= 1
            insert = ["", *table_lines]
            if pos < len(lines):
                insert.append("")
            lines[pos:pos] = insert
            return "\n".join(lines)

        body = "\n".join(lines).rstrip("\n")
        section_lines = ["## Requirements", "", *table_lines]
        if body:
            return body + "\n\n" + "\n".join(section_lines) + "\n"
        return "\n".join(section_lines) + "\n"

    # -- formatting --------------------------------------------------------

    @staticmethod
    def _pick_table(doc: SpecDocument, req_id: str) -> Table:
        """Table holding IDs with the same prefix (NFR-, FR-), else the first."""
        prefix = _id_prefix(req_id)
        for block in doc.blocks:
            if block.table is not None and _id_prefix(block.id) == prefix:
                return block.table
        return doc.tables[0]

    @staticmethod
    def _row_cells(table: Table, req: DeltaRequirement, base: list[str] | None = None) -> list[str]:
        width = max(len(table.columns), 2)
        cells = list(base) if base else []
        cells += [""] * (width - len(cells))

        roles = column_roles(table.columns)
        criteria = roles.get("criteria")
        text = req.text
        if req.scenarios and criteria is None:
            text = f"{text} (Scenarios: {'; '.join(req.scenarios)})"

        cells[roles["id"]] = req.id
        cells[roles["text"]] = escape_cell(text)
        if "priority" in roles:
            if req.priority:
                cells[roles["priority"]] = req.priority
            elif not cells[roles["priority"]]:
                cells[roles["priority"]] = DEFAULT_PRIORITY
        if criteria is not None and req.scenarios:
            cells[criteria] = escape_cell("; ".join(req.scenarios))
        return cells

    @staticmethod
    def _format_block(
        req: DeltaRequirement,
        style: str,
        header: str | None = None,
        priority: str | None = None,
        scenarios: list[str] | None = None,
    ) -> list[str]:
        if style == "bold":
            lines = [f"**{req.id}:** {req.text}".rstrip()]
        else:
            lines = [header or f"### {req.id}"]
            if req.text:
                lines.append(req.text)
        if priority:
            lines += ["", f"**Priority:** {priority}"]
        if scenarios:
            lines.append("")
            lines += [f"- {s}" for s in scenarios]
        return lines

    # -- preview -----------------------------------------------------------

    def diff(self, base_content: str, delta: DeltaSpec) -> str:
        """Human-readable preview of what merge() would do. Content is not changed."""
        doc = parse_spec_document(base_content)
        out = [
            f"# Delta Spec Preview: {delta.id}",
            "",
            f"**Base Spec:** {delta.base_spec_id}",
            f"**Description:** {delta.description}",
            "",
        ]

        if delta.added:
            out += [f"## Added Requirements ({len(delta.added)})", ""]
            for req in delta.added:
                note = "  (already exists in base spec)" if doc.find(req.id) else ""
                out.append(f"+ {req.id}: {req.text}{note}")
            out.append("")

        if delta.modified:
            out += [f"## Modified Requirements ({len(delta.modified)})", ""]
            for req in delta.modified:
                block = doc.find(req.id)
                out.append(f"~ {req.id}: {req.text}")
                if block is None:
                    out.append("  (not found in base spec)")
                elif req.old_text or block.text:
                    out.append(f"  (was: {req.old_text or block.text})")
            out.append("")

        if delta.removed:
            out += [f"## Removed Requirements ({len(delta.removed)})", ""]
            for req_id in delta.removed:
                note = "" if doc.find(req_id) else "  (not found in base spec)"
                out.append(f"- {req_id}{note}")
            out.append("")

        return "\n".join(out) + "\n"
