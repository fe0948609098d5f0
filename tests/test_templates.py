"""Tests for specsafe.lib.templates module."""

from specsafe.delta.parser import DeltaParser
from specsafe.lib.specdoc import parse_spec_document
from specsafe.lib.templates import delta_template, ears_template, standard_template

SPEC_ID = "SPEC-20250211-001"


class TestStandardTemplate:
    def test_header(self):
        """The header carries ID, author and priority."""
        content = standard_template(SPEC_ID, "User authentication", "alice", "P0")
        assert content.startswith("# User authentication Specification")
        assert f"**ID:** {SPEC_ID}" in content
        assert "**Author:** alice" in content
        assert "**Priority:** P0" in content

    def test_description_fills_problem_statement(self):
        """The description becomes the problem statement."""
        content = standard_template(SPEC_ID, "Auth", "alice", description="Users cannot log in")
        assert "## Problem Statement\nUsers cannot log in" in content

    def test_requirement_tables_located(self):
        """Both requirement tables are found by the lexer."""
        doc = parse_spec_document(standard_template(SPEC_ID, "Auth", "alice"))
        assert doc.ids() == ["FR-1", "NFR-1"]
        assert len(doc.tables) == 2


class TestEarsTemplate:
    def test_title_and_guide(self):
        """The EARS template has its title and pattern guide."""
        content = ears_template(SPEC_ID, "Auth", "alice")
        assert content.startswith("# Auth Specification (EARS Format)")
        assert "## Requirements (EARS Format)" in content
        assert "If [unwanted condition], then the system shall [action]" in content

    def test_examples_stay_in_comments(self):
        """Example requirements sit in comments and are not parsed."""
        doc = parse_spec_document(ears_template(SPEC_ID, "Auth", "alice"))
        assert doc.ids() == ["FR-1", "FR-2", "FR-3", "FR-4", "FR-5", "NFR-1"]
        assert all(block.text == "" for block in doc.blocks)


class TestDeltaTemplate:
    def test_sections(self):
        """The delta template has all three change sections."""
        content = delta_template("DELTA-X", SPEC_ID, "alice")
        assert content.startswith("# Delta Spec: DELTA-X")
        assert f"**Base Spec:** {SPEC_ID}" in content
        for section in ("## ADDED Requirements", "## MODIFIED Requirements", "## REMOVED Requirements"):
            assert section in content

    def test_filled_template_parses(self):
        """A filled-in delta template parses."""
        content = delta_template("DELTA-X", SPEC_ID, "alice").replace(
            "## REMOVED Requirements\n", "## REMOVED Requirements\n\n- FR-4\n"
        )
        delta = DeltaParser().parse(content, "DELTA-X", SPEC_ID)
        assert delta.removed == ("FR-4",)
        assert delta.description == "Describe the change"
