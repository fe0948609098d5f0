"""Tests for specsafe.lib.specdoc module."""

from specsafe.lib.specdoc import (
    column_roles,
    extract_requirements,
    match_requirement_header,
    parse_spec_document,
    split_row,
    to_scenario,
)
from specsafe.lib.templates import ears_template, standard_template

TABLE_SPEC = """# Auth Specification

**ID:** SPEC-20250211-001

## Requirements

### Functional Requirements
| ID | Requirement | Priority | Acceptance Criteria |
|----|-------------|----------|---------------------|
| FR-1 | Users can log in | P0 | Given a user, when they log in, then a session starts |
| FR-2 | Users can log out | P2 | |

### Non-Functional Requirements
| ID | Requirement | Metric |
|----|-------------|--------|
| NFR-1 | Login responds quickly | p95 < 200ms |

## Notes
| FR-99 | Not a requirement, outside the section | P0 | |
"""

HEADING_SPEC = """# Auth

## Requirements

### FR-1: Login
The system shall let users log in
with an email and password

**Priority:** P0

- Given a registered user, when they submit valid credentials, then a session starts

**FR-2:** The system shall let users log out
**Priority:** P1

### Design notes
FR-3 is not a header here.

## Out of Scope
"""


class TestSplitRow:
    def test_splits_and_strips(self):
        """Rows split on pipes with cells stripped."""
        assert split_row("| FR-1 | Login | P0 |") == ["FR-1", "Login", "P0"]

    def test_keeps_escaped_pipes(self):
        """Escaped pipes stay inside a cell."""
        assert split_row("| FR-1 | a \\| b | P0 |") == ["FR-1", "a \\| b", "P0"]


class TestColumnRoles:
    def test_standard_columns(self):
        """Standard headers map to id, text, priority and criteria."""
        roles = column_roles(["ID", "Requirement", "Priority", "Acceptance Criteria"])
        assert roles == {"id": 0, "text": 1, "priority": 2, "criteria": 3}

    def test_ears_columns(self):
        """EARS headers map the requirement column as text."""
        roles = column_roles(["ID", "EARS Pattern", "Requirement", "Priority"])
        assert roles["text"] == 2
        assert roles["priority"] == 3

    def test_defaults_when_unnamed(self):
        """Unnamed columns fall back to positional roles."""
        roles = column_roles(["A", "B"])
        assert roles == {"id": 0, "text": 1}


class TestMatchRequirementHeader:
    def test_heading(self):
        """### FR-N is a requirement header."""
        assert match_requirement_header("### FR-1: Login") == ("FR-1", "heading", "")

    def test_bold_with_inline_text(self):
        """**FR-N:** carries inline text."""
        assert match_requirement_header("**NFR-2:** Pages load fast") == ("NFR-2", "bold", "Pages load fast")

    def test_plain_heading_is_not_header(self):
        """Headings without an ID are not headers."""
        assert match_requirement_header("### Functional Requirements") is None


class TestParseSpecDocument:
    """Test locating requirement blocks."""

    def test_table_rows(self):
        """Table rows become requirement blocks."""
        doc = parse_spec_document(TABLE_SPEC)
        assert doc.ids() == ["FR-1", "FR-2", "NFR-1"]
        fr1 = doc.find("FR-1")
        assert fr1.style == "table"
        assert fr1.text == "Users can log in"
        assert fr1.priority == "P0"
        assert fr1.scenarios == ["Given a user, when they log in, then a session starts"]
        assert len(doc.tables) == 2

    def test_rows_outside_requirements_section_ignored(self):
        """Rows outside the requirements section are ignored."""
        doc = parse_spec_document(TABLE_SPEC)
        assert doc.find("FR-99") is None

    def test_nfr_table_has_no_priority(self):
        """NFR rows have no priority column."""
        nfr = parse_spec_document(TABLE_SPEC).find("NFR-1")
        assert nfr.priority is None
        assert nfr.table.columns == ["ID", "Requirement", "Metric"]

    def test_heading_and_bold_blocks(self):
        """Heading and bold blocks collect text, priority and scenarios."""
        doc = parse_spec_document(HEADING_SPEC)
        assert doc.ids() == ["FR-1", "FR-2"]

        fr1 = doc.find("FR-1")
        assert fr1.style == "heading"
        assert fr1.text == "The system shall let users log in with an email and password"
        assert fr1.priority == "P0"
        assert len(fr1.scenarios) == 1

        fr2 = doc.find("FR-2")
        assert fr2.style == "bold"
        assert fr2.text == "The system shall let users log out"
        assert fr2.priority == "P1"

    def test_block_end_excludes_trailing_blank_lines(self):
        """A block ends at its last non-blank line."""
        doc = parse_spec_document(HEADING_SPEC)
        fr1 = doc.find("FR-1")
        assert doc.lines[fr1.end].startswith("- Given")

    def test_fenced_code_skipped(self):
        """Content inside code fences is ignored."""
        content = "## Requirements\n\n```\n| FR-1 | inside a fence | P0 | |\n```\n"
        assert parse_spec_document(content).blocks == []

    def test_html_comments_skipped(self):
        """Content inside HTML comments is ignored."""
        content = "## Requirements\n\n<!--\n| FR-1 | commented out | P0 | |\n-->\n"
        assert parse_spec_document(content).blocks == []

    def test_headerless_table_uses_default_columns(self):
        """Tables without a header row use default columns."""
        content = "## Requirements\n\n| FR-1 | Users can log in | P1 | |\n"
        block = parse_spec_document(content).find("FR-1")
        assert block.text == "Users can log in"
        assert block.table.header_line is None

    def test_table_after_heading_block(self):
        """A table ends the open block and its rows are located on their own."""
        content = (
            "## Requirements\n\n### FR-1\nThe system shall let users log in\n\n"
            "| ID | Requirement | Priority | Acceptance Criteria |\n"
            "|----|-------------|----------|---------------------|\n"
            "| FR-2 | Users can log out | P1 | |\n\n## Notes\n"
        )
        doc = parse_spec_document(content)
        assert doc.ids() == ["FR-1", "FR-2"]
        fr1 = doc.find("FR-1")
        assert fr1.text == "The system shall let users log in"
        assert doc.lines[fr1.end] == "The system shall let users log in"
        assert doc.find("FR-2").style == "table"

    def test_sections_recorded(self):
        """Requirements sections are recorded with their start line."""
        doc = parse_spec_document(TABLE_SPEC)
        assert len(doc.sections) == 1
        assert doc.lines[doc.sections[0].start] == "## Requirements"


class TestToScenario:
    def test_given_when_then(self):
        """Given/when/then text splits into parts."""
        s = to_scenario("FR-1", 1, "Given a user, when they log in, then a session starts")
        assert s.id == "FR-1-S1"
        assert s.given == "a user"
        assert s.when == "they log in"
        assert s.then_outcome == "a session starts"

    def test_plain_text_goes_to_then(self):
        """Plain text becomes the outcome."""
        s = to_scenario("FR-1", 2, "Session cookie is set")
        assert s.given == ""
        assert s.then_outcome == "Session cookie is set"


class TestExtractRequirements:
    def test_from_table(self):
        """Requirements are extracted from table rows."""
        reqs = extract_requirements(TABLE_SPEC)
        assert [r.id for r in reqs] == ["FR-1", "FR-2", "NFR-1"]
        assert reqs[1].priority == "P2"
        # No priority column: default
        assert reqs[2].priority == "P1"
        assert reqs[0].scenarios[0].when == "they log in"

    def test_template_placeholders_skipped(self):
        """Empty template rows are skipped."""
        content = standard_template("SPEC-20250211-001", "Auth", "alice")
        assert extract_requirements(content) == []

    def test_ears_template_placeholders_skipped(self):
        """Empty EARS template rows are skipped."""
        content = ears_template("SPEC-20250211-001", "Auth", "alice")
        assert extract_requirements(content) == []

    def test_first_occurrence_wins(self):
        """The first row with an ID wins."""
        content = "## Requirements\n\n| FR-1 | first | P0 | |\n| FR-1 | second | P1 | |\n"
        reqs = extract_requirements(content)
        assert len(reqs) == 1
        assert reqs[0].text == "first"
