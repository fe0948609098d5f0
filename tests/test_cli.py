"""End-to-end tests for the specsafe CLI."""

import json
from datetime import date
from unittest.mock import patch

import pytest
import yaml

from specsafe.cli import main
from specsafe.lib.config import load_project_config
from specsafe.models import SpecStage
from specsafe.tracker import STATE_FILE, ProjectTracker

REQUIREMENT_ROWS = (
    "| FR-1 | The system shall hash all stored passwords | P0 | |\n"
    "| FR-2 | The system shall lock accounts after five failed logins | P1 | |"
)


def run(root, *argv):
    return main(["--root", str(root), *argv])


def load_record(root, spec_id):
    return ProjectTracker(load_project_config(root)).load_spec(spec_id)


@pytest.fixture
def project(tmp_path):
    """Initialized project with one spec whose requirements are filled in."""
    assert run(tmp_path, "init") == 0
    assert run(tmp_path, "new", "User authentication") == 0
    spec_path = next((tmp_path / "specs" / "active").glob("SPEC-*.md"))
    spec_path.write_text(spec_path.read_text().replace("| FR-1 | | P0 | |", REQUIREMENT_ROWS))
    return tmp_path, spec_path.stem


def advance_to_qa(root, spec_id, *qa_args):
    assert run(root, "spec", spec_id) == 0
    assert run(root, "test", spec_id) == 0
    assert run(root, "track", spec_id, "--test-file", "tests/test_auth.py") == 0
    assert run(root, "code", spec_id) == 0
    assert run(root, "track", spec_id, "--impl-file", "src/auth.py") == 0
    assert run(root, "qa", spec_id, *qa_args) == 0
    return root / "qa-reports" / f"qa-{spec_id}.json"


class TestInit:
    def test_creates_layout(self, tmp_path):
        """init creates the spec directories, config and state file."""
        assert run(tmp_path, "init", "--name", "shop") == 0
        for d in ("active", "completed", "archive", "deltas", "deltas/applied", "backups"):
            assert (tmp_path / "specs" / d).is_dir()
        assert (tmp_path / "qa-reports").is_dir()
        assert yaml.safe_load((tmp_path / ".specsafe" / "config.yaml").read_text())["project_name"] == "shop"
        assert "# Project State: shop" in (tmp_path / STATE_FILE).read_text()

    def test_keeps_existing_config(self, tmp_path, capsys):
        """Running init again leaves an existing config alone."""
        run(tmp_path, "init", "--name", "shop")
        run(tmp_path, "init", "--name", "other")
        assert "Config already exists" in capsys.readouterr().out
        assert load_project_config(tmp_path).project_name == "shop"


class TestNew:
    """Test specsafe new."""

    def test_creates_spec_and_record(self, tmp_path):
        """new writes the spec markdown and a tracked record."""
        run(tmp_path, "init")
        assert run(tmp_path, "new", "User authentication", "--author", "alice") == 0

        spec_id = f"SPEC-{date.today().strftime('%Y%m%d')}-001"
        assert (tmp_path / "specs" / "active" / f"{spec_id}.md").exists()
        record = load_record(tmp_path, spec_id)
        assert record.name == "User authentication"
        assert record.stage == SpecStage.SPEC
        assert record.metadata.author == "alice"

    def test_ids_increment(self, tmp_path):
        """Specs created the same day get consecutive IDs."""
        run(tmp_path, "init")
        run(tmp_path, "new", "First spec")
        run(tmp_path, "new", "Second spec")
        stems = sorted(p.stem for p in (tmp_path / "specs" / "active").glob("*.md"))
        assert [s[-3:] for s in stems] == ["001", "002"]

    def test_ears_template(self, tmp_path):
        """--ears uses the EARS template."""
        run(tmp_path, "init")
        run(tmp_path, "new", "Checkout", "--ears")
        spec_path = next((tmp_path / "specs" / "active").glob("*.md"))
        assert "## Requirements (EARS Format)" in spec_path.read_text()

    def test_short_name_is_usage_error(self, tmp_path, capsys):
        """Names under 3 characters exit with 2."""
        run(tmp_path, "init")
        assert run(tmp_path, "new", "ab") == 2
        assert "at least 3 characters" in capsys.readouterr().out

    def test_dry_run_writes_nothing(self, tmp_path, capsys):
        """--dry-run prints the spec without writing it."""
        run(tmp_path, "init")
        assert run(tmp_path, "new", "User authentication", "--dry-run") == 0
        assert "[dry-run] Would create" in capsys.readouterr().out
        assert list((tmp_path / "specs" / "active").glob("*.md")) == []


class TestLifecycle:
    """Drive a spec through every stage."""

    def test_happy_path(self, project):
        """A spec runs from SPEC to ARCHIVED and its markdown follows."""
        root, spec_id = project
        report_path = advance_to_qa(root, spec_id, "--go", "--notes", "All green")
        assert load_record(root, spec_id).stage == SpecStage.QA

        report = json.loads(report_path.read_text())
        assert report["specId"] == spec_id
        assert report["recommendation"] == "GO"
        assert report["testResults"][0]["file"] == "tests/test_auth.py"

        assert run(root, "complete", spec_id, "--report", str(report_path)) == 0
        record = load_record(root, spec_id)
        assert record.stage == SpecStage.COMPLETE
        assert record.qa_report.recommendation == "GO"
        assert record.completed_at is not None
        assert (root / "specs" / "completed" / f"{spec_id}.md").exists()
        assert not (root / "specs" / "active" / f"{spec_id}.md").exists()

        assert run(root, "archive", spec_id) == 0
        assert load_record(root, spec_id).stage == SpecStage.ARCHIVED
        assert (root / "specs" / "archive" / f"{spec_id}.md").exists()

    def test_spec_loads_requirements(self, project, capsys):
        """spec reads requirements from the markdown and scores them."""
        root, spec_id = project
        assert run(root, "spec", spec_id) == 0
        out = capsys.readouterr().out
        assert "EARS score: 100/100" in out
        assert [r.id for r in load_record(root, spec_id).requirements] == ["FR-1", "FR-2"]

    def test_cannot_skip_stages(self, project, capsys):
        """Moving to CODE straight from SPEC fails."""
        root, spec_id = project
        assert run(root, "code", spec_id) == 1
        assert "Cannot move to CODE from spec" in capsys.readouterr().out
        assert load_record(root, spec_id).stage == SpecStage.SPEC

    def test_test_needs_requirements(self, tmp_path, capsys):
        """test without requirements fails with a tip."""
        run(tmp_path, "init")
        run(tmp_path, "new", "Empty spec")
        spec_id = next((tmp_path / "specs" / "active").glob("*.md")).stem
        assert run(tmp_path, "test", spec_id) == 1
        out = capsys.readouterr().out
        assert "ERROR: Cannot move to TEST: No requirements defined" in out
        assert "Tip:" in out

    def test_code_needs_tracked_tests(self, project, capsys):
        """code without test files points at specsafe track."""
        root, spec_id = project
        run(root, "test", spec_id)
        assert run(root, "code", spec_id) == 1
        assert f"specsafe track {spec_id} --test-file" in capsys.readouterr().out

    def test_track_dedupes(self, project):
        """Tracking the same file twice keeps one entry."""
        root, spec_id = project
        run(root, "track", spec_id, "-t", "tests/a.py", "-t", "tests/a.py")
        run(root, "track", spec_id, "-t", "tests/a.py")
        assert load_record(root, spec_id).test_files == ["tests/a.py"]

    def test_track_without_files(self, project):
        """track with no files is a usage error."""
        root, spec_id = project
        assert run(root, "track", spec_id) == 2

    def test_unknown_spec(self, project, capsys):
        """Unknown spec IDs fail with a not-found error."""
        root, _ = project
        assert run(root, "test", "SPEC-20250211-999") == 1
        assert "Spec SPEC-20250211-999 not found" in capsys.readouterr().out

    def test_malformed_id(self, project, capsys):
        """Malformed spec IDs are rejected."""
        root, _ = project
        assert run(root, "test", "SPEC-1") == 1
        assert "Invalid spec ID format" in capsys.readouterr().out


class TestCompletion:
    """QA report gating on specsafe complete."""

    def test_no_go_blocks(self, project, capsys):
        """A NO-GO report keeps the spec in QA."""
        root, spec_id = project
        report_path = advance_to_qa(root, spec_id, "--notes", "Flaky login test")
        assert json.loads(report_path.read_text())["recommendation"] == "NO-GO"

        assert run(root, "complete", spec_id, "--report", str(report_path)) == 1
        assert "recommends NO-GO" in capsys.readouterr().out
        assert load_record(root, spec_id).stage == SpecStage.QA

    def test_dry_run(self, project, capsys):
        """--dry-run reports the spec can complete without moving it."""
        root, spec_id = project
        report_path = advance_to_qa(root, spec_id, "--go", "--notes", "ok")
        capsys.readouterr()

        assert run(root, "complete", spec_id, "--report", str(report_path), "--dry-run") == 0
        assert f"[dry-run] {spec_id} can be completed" in capsys.readouterr().out
        assert load_record(root, spec_id).stage == SpecStage.QA

    def test_report_without_notes_rejected(self, project, capsys):
        """Reports without notes are rejected on completion."""
        root, spec_id = project
        report_path = advance_to_qa(root, spec_id, "--go")
        data = json.loads(report_path.read_text())
        del data["notes"]
        report_path.write_text(json.dumps(data))

        assert run(root, "complete", spec_id, "--report", str(report_path)) == 1
        assert "missing required fields: notes" in capsys.readouterr().out

    def test_unparseable_timestamp_rejected(self, project, capsys):
        """A report whose timestamp is not ISO 8601 fails with an error, not a traceback."""
        root, spec_id = project
        report_path = advance_to_qa(root, spec_id, "--go", "--notes", "ok")
        data = json.loads(report_path.read_text())
        data["timestamp"] = "Feb 11 2025"
        report_path.write_text(json.dumps(data))
        capsys.readouterr()

        assert run(root, "complete", spec_id, "--report", str(report_path)) == 1
        out = capsys.readouterr().out
        assert f"ERROR: Invalid QA report {report_path}" in out
        assert "ISO 8601" in out
        assert load_record(root, spec_id).stage == SpecStage.QA

    def test_missing_report_file(self, project, capsys):
        """A missing report file fails cleanly."""
        root, spec_id = project
        advance_to_qa(root, spec_id, "--go")
        assert run(root, "complete", spec_id, "--report", str(root / "nope.json")) == 1
        assert "QA report not found" in capsys.readouterr().out


class TestListAndStatus:
    def test_list_json(self, project, capsys):
        """list --json prints the tracked records."""
        root, spec_id = project
        capsys.readouterr()
        assert run(root, "list", "--json") == 0
        data = json.loads(capsys.readouterr().out)
        assert [d["id"] for d in data] == [spec_id]

    def test_list_stage_filter(self, project, capsys):
        """list --stage filters by stage in any case."""
        root, spec_id = project
        capsys.readouterr()
        run(root, "list", "--stage", "QA")
        assert "Specs: none" in capsys.readouterr().out
        run(root, "list", "--stage", "spec")
        assert spec_id in capsys.readouterr().out

    def test_list_unknown_stage(self, project):
        """An unknown stage is a usage error."""
        root, _ = project
        assert run(root, "list", "--stage", "review") == 2

    def test_status(self, project, capsys):
        """status prints totals and completion rate."""
        root, _ = project
        capsys.readouterr()
        assert run(root, "status") == 0
        out = capsys.readouterr().out
        assert "Total specs:      1" in out
        assert "Completion rate:  0%" in out


class TestEars:
    def test_report_written(self, project):
        """ears --report writes the markdown report."""
        root, spec_id = project
        assert run(root, "ears", spec_id, "--report") == 0
        report = (root / "qa-reports" / f"ears-{spec_id}.md").read_text()
        assert "## Overall Score: 100/100" in report

    def test_below_threshold(self, project, capsys):
        """A score under the threshold exits with 1."""
        root, spec_id = project
        spec_path = root / "specs" / "active" / f"{spec_id}.md"
        spec_path.write_text(spec_path.read_text().replace(
            "The system shall lock accounts after five failed logins",
            "Accounts should maybe get locked",
        ))
        assert run(root, "ears", spec_id) == 1
        out = capsys.readouterr().out
        assert "EARS compliance for" in out
        assert "50/100" in out
        assert "Below threshold of 80" in out

    def test_threshold_flag(self, project):
        """--threshold overrides the configured threshold."""
        root, spec_id = project
        spec_path = root / "specs" / "active" / f"{spec_id}.md"
        spec_path.write_text(spec_path.read_text().replace(
            "The system shall lock accounts after five failed logins",
            "Accounts should maybe get locked",
        ))
        assert run(root, "ears", spec_id, "--threshold", "50") == 0


DELTA_BODY = """# Delta Spec

**Description:** Password reset

## ADDED Requirements

### FR-3
The system shall email a password reset link
**Priority:** P1

## REMOVED Requirements

- FR-2
"""


class TestDeltas:
    """specsafe delta / diff / apply."""

    def write_delta(self, root, spec_id, body=DELTA_BODY):
        assert run(root, "delta", spec_id) == 0
        path = root / "specs" / "deltas" / f"DELTA-{spec_id}-{date.today().strftime('%Y%m%d')}.md"
        path.write_text(body)
        return path

    def test_delta_creates_template(self, project):
        """delta writes a template naming the base spec."""
        root, spec_id = project
        assert run(root, "delta", spec_id) == 0
        path = root / "specs" / "deltas" / f"DELTA-{spec_id}-{date.today().strftime('%Y%m%d')}.md"
        assert f"**Base Spec:** {spec_id}" in path.read_text()

    def test_delta_needs_active_base(self, project, capsys):
        """delta needs the base spec in specs/active."""
        root, _ = project
        assert run(root, "delta", "SPEC-20250211-999") == 1
        assert "Base spec not found" in capsys.readouterr().out

    def test_delta_overwrite_declined(self, project):
        """Declining the overwrite prompt keeps the existing delta."""
        root, spec_id = project
        path = self.write_delta(root, spec_id)
        with patch("builtins.input", return_value="n"):
            assert run(root, "delta", spec_id) == 1
        assert path.read_text() == DELTA_BODY

    def test_diff(self, project, capsys):
        """diff previews added and removed requirements."""
        root, spec_id = project
        self.write_delta(root, spec_id)
        capsys.readouterr()
        assert run(root, "diff", spec_id) == 0
        out = capsys.readouterr().out
        assert "+ FR-3: The system shall email a password reset link" in out
        assert "- FR-2" in out

    def test_apply(self, project):
        """apply merges, backs up, archives the delta and resyncs requirements."""
        root, spec_id = project
        run(root, "spec", spec_id)
        delta_path = self.write_delta(root, spec_id)

        with patch("builtins.input", return_value="y"):
            assert run(root, "apply", spec_id) == 0

        content = (root / "specs" / "active" / f"{spec_id}.md").read_text()
        assert "The system shall email a password reset link" in content
        assert "lock accounts" not in content
        assert not delta_path.exists()
        assert (root / "specs" / "deltas" / "applied" / delta_path.name).exists()
        assert len(list((root / "specs" / "backups").glob("*.md"))) == 1
        assert [r.id for r in load_record(root, spec_id).requirements] == ["FR-1", "FR-3"]

    def test_apply_declined(self, project, capsys):
        """Declining apply leaves the base spec and delta untouched."""
        root, spec_id = project
        spec_path = root / "specs" / "active" / f"{spec_id}.md"
        before = spec_path.read_text()
        delta_path = self.write_delta(root, spec_id)

        with patch("builtins.input", return_value="n"):
            assert run(root, "apply", spec_id) == 1

        assert "Cancelled" in capsys.readouterr().out
        assert spec_path.read_text() == before
        assert delta_path.exists()

    def test_apply_yes_no_backup(self, project):
        """--yes skips the prompt and --no-backup skips the backup."""
        root, spec_id = project
        self.write_delta(root, spec_id)
        with patch("builtins.input") as mock_input:
            assert run(root, "apply", spec_id, "--yes", "--no-backup") == 0
        mock_input.assert_not_called()
        assert list((root / "specs" / "backups").glob("*.md")) == []

    def test_conflicts_ask_before_applying(self, project, capsys):
        """Conflicts prompt before applying even with --yes."""
        root, spec_id = project
        self.write_delta(root, spec_id, "## MODIFIED Requirements\n**FR-99:** Nope\n")
        with patch("builtins.input", return_value="n") as mock_input:
            assert run(root, "apply", spec_id, "--yes") == 1
        assert "Apply anyway" in mock_input.call_args[0][0]
        assert "[requirement_not_found]" in capsys.readouterr().out

    def test_force_applies_despite_conflicts(self, project):
        """--force applies without asking."""
        root, spec_id = project
        delta_path = self.write_delta(root, spec_id, "## MODIFIED Requirements\n**FR-99:** Nope\n")
        with patch("builtins.input") as mock_input:
            assert run(root, "apply", spec_id, "--force") == 0
        mock_input.assert_not_called()
        assert not delta_path.exists()

    def test_apply_without_deltas(self, project, capsys):
        """apply with no pending deltas fails."""
        root, spec_id = project
        assert run(root, "apply", spec_id) == 1
        assert "No delta specs found" in capsys.readouterr().out
