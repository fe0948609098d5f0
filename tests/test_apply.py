"""Tests for specsafe.delta.apply module."""

from datetime import datetime

import pytest

from specsafe.delta.apply import (
    DeltaValidationError,
    NoDeltasError,
    apply_deltas,
    backup_spec,
    find_delta_files,
    load_deltas,
)
from specsafe.lib.specdoc import extract_requirements

SPEC_ID = "SPEC-20250211-001"

BASE = """# Auth Specification

## Requirements

| ID | Requirement | Priority | Acceptance Criteria |
|----|-------------|----------|---------------------|
| FR-1 | Users can log in | P0 | |
| FR-2 | Sessions expire after 1 hour | P1 | |
"""


@pytest.fixture
def project(tmp_path):
    """Base spec plus empty deltas/applied/backups directories."""
    active = tmp_path / "active"
    active.mkdir()
    base_path = active / f"{SPEC_ID}.md"
    base_path.write_text(BASE)
    deltas = tmp_path / "deltas"
    deltas.mkdir()
    return {
        "base": base_path,
        "deltas": deltas,
        "applied": deltas / "applied",
        "backups": tmp_path / "backups",
    }


def write_delta(deltas_dir, suffix, body):
    path = deltas_dir / f"DELTA-{SPEC_ID}-{suffix}.md"
    path.write_text(body)
    return path


def run(project, **kwargs):
    return apply_deltas(
        project["base"], project["deltas"], project["applied"], SPEC_ID,
        backups_dir=kwargs.pop("backups_dir", project["backups"]), **kwargs,
    )


class TestFindDeltaFiles:
    def test_sorted_by_name(self, project):
        """Delta files come back sorted by filename."""
        write_delta(project["deltas"], "20250305", "x")
        write_delta(project["deltas"], "20250301", "x")
        (project["deltas"] / "DELTA-SPEC-20250211-002-20250301.md").write_text("other spec")
        names = [p.name for p in find_delta_files(project["deltas"], SPEC_ID)]
        assert names == [f"DELTA-{SPEC_ID}-20250301.md", f"DELTA-{SPEC_ID}-20250305.md"]

    def test_missing_dir(self, tmp_path):
        """A missing deltas directory yields no files."""
        assert find_delta_files(tmp_path / "nope", SPEC_ID) == []


class TestLoadDeltas:
    def test_invalid_delta_logged(self, project, caplog):
        """Deltas that fail validation are logged as warnings."""
        write_delta(project["deltas"], "20250301", "# nothing here\n")
        loaded = load_deltas(project["deltas"], SPEC_ID)
        assert len(loaded) == 1
        assert not loaded[0].validation.valid
        assert "failed validation" in caplog.text


class TestApplyDeltas:
    """Test folding deltas into the base spec on disk."""

    def test_sequential_fold(self, project):
        """Each delta merges into the output of the one before it."""
        write_delta(project["deltas"], "20250301", "## ADDED Requirements\n**FR-3:** Users can reset passwords\n")
        write_delta(project["deltas"], "20250302", "## MODIFIED Requirements\n**FR-3:** Users can reset passwords by email\n")

        result = run(project)

        assert result.written
        assert result.stats.added == 1
        assert result.stats.modified == 1
        assert result.conflicts == []
        reqs = {r.id: r.text for r in extract_requirements(project["base"].read_text())}
        assert reqs["FR-3"] == "Users can reset passwords by email"

    def test_applied_deltas_archived(self, project):
        """Applied deltas move to the applied directory."""
        path = write_delta(project["deltas"], "20250301", "## REMOVED Requirements\n- FR-2\n")
        result = run(project)
        assert not path.exists()
        assert result.archived == [project["applied"] / path.name]
        assert (project["applied"] / path.name).exists()

    def test_backup_written(self, project):
        """The base spec is backed up before it is overwritten."""
        write_delta(project["deltas"], "20250301", "## REMOVED Requirements\n- FR-2\n")
        result = run(project)
        assert result.backup_path.parent == project["backups"]
        assert result.backup_path.read_text() == BASE

    def test_no_backup(self, project):
        """No backup is written without a backups directory."""
        write_delta(project["deltas"], "20250301", "## REMOVED Requirements\n- FR-2\n")
        result = run(project, backups_dir=None)
        assert result.backup_path is None
        assert not project["backups"].exists()

    def test_invalid_delta_skipped_and_left_in_place(self, project):
        """Invalid deltas are skipped and stay in the deltas directory."""
        bad = write_delta(project["deltas"], "20250301", "## ADDED Requirements\n**FR-7:** a\n## REMOVED Requirements\n- FR-7\n")
        good = write_delta(project["deltas"], "20250302", "## REMOVED Requirements\n- FR-2\n")

        result = run(project)

        assert [item.path for item in result.skipped] == [bad]
        assert [item.path for item in result.applied] == [good]
        assert bad.exists()
        assert not good.exists()

    def test_conflicts_do_not_block(self, project):
        """Merge conflicts are reported but the merge is still written."""
        write_delta(project["deltas"], "20250301", "## MODIFIED Requirements\n**FR-99:** Nope\n")
        result = run(project)
        assert result.written
        assert [c.requirement_id for c in result.conflicts] == ["FR-99"]
        assert project["base"].read_text() == BASE

    def test_confirm_false_leaves_disk_untouched(self, project):
        """A declined confirmation writes, backs up and moves nothing."""
        path = write_delta(project["deltas"], "20250301", "## REMOVED Requirements\n- FR-2\n")
        seen = []

        def decline(result):
            seen.append(result.stats.removed)
            return False

        result = run(project, confirm=decline)
        assert seen == [1]
        assert not result.written
        assert project["base"].read_text() == BASE
        assert path.exists()

    def test_missing_base(self, project):
        """A missing base spec raises FileNotFoundError."""
        project["base"].unlink()
        with pytest.raises(FileNotFoundError):
            run(project)

    def test_no_deltas(self, project):
        """No pending deltas raises NoDeltasError."""
        with pytest.raises(NoDeltasError, match="No delta specs found"):
            run(project)

    def test_all_invalid(self, project):
        """Only invalid deltas raises DeltaValidationError."""
        write_delta(project["deltas"], "20250301", "just prose\n")
        with pytest.raises(DeltaValidationError) as exc:
            run(project)
        assert f"DELTA-{SPEC_ID}-20250301" in exc.value.errors


class TestBackupSpec:
    def test_timestamped_name(self, project):
        """Backup names carry a filesystem-safe timestamp."""
        path = backup_spec(project["base"], project["backups"], now=datetime(2025, 3, 1, 12, 30, 45, 123000))
        assert path.name == f"{SPEC_ID}-2025-03-01T12-30-45-123.md"
        assert path.read_text() == BASE
