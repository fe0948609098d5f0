"""
Apply pending delta files to a base spec.

Delta files for SPEC-X live in specs/deltas as DELTA-SPEC-X-<YYYYMMDD>.md.
They are sorted by filename (chronological given the date suffix), parsed,
validated and folded strictly one after another, each merge taking the
previous merge's output. After the merged base is written the consumed
deltas move to specs/deltas/applied/.

Nothing here is atomic: a crash between writing the base and archiving the
deltas leaves the deltas in place, and a later failure does not undo
earlier merges.
"""

import logging
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable

from specsafe.delta.models import DeltaSpec, MergeConflict, MergeResult, MergeStats, ValidationResult
from specsafe.delta.parser import DeltaParser
from specsafe.delta.merger import SemanticMerger

logger = logging.getLogger(__name__)


class NoDeltasError(Exception):
    """No delta files exist for the base spec."""

    def __init__(self, base_spec_id: str, deltas_dir: Path):
        self.base_spec_id = base_spec_id
        self.deltas_dir = deltas_dir
        super().__init__(f"No delta specs found for {base_spec_id} in {deltas_dir}")


class DeltaValidationError(Exception):
    """Every delta for the base spec failed validation."""

    def __init__(self, errors: dict[str, list[str]]):
        self.errors = errors
        details = "; ".join(f"{k}: {', '.join(v)}" for k, v in errors.items())
        super().__init__(f"No valid delta specs to apply ({details})")


@dataclass
class LoadedDelta:
    path: Path
    delta: DeltaSpec
    validation: ValidationResult


@dataclass
class ApplyResult:
    base_spec_id: str
    content: str
    applied: list[LoadedDelta] = field(default_factory=list)
    skipped: list[LoadedDelta] = field(default_factory=list)       # failed validation
    results: list[MergeResult] = field(default_factory=list)       # one per applied delta
    stats: MergeStats = field(default_factory=MergeStats)
    written: bool = False
    backup_path: Path | None = None
    archived: list[Path] = field(default_factory=list)

    @property
    def conflicts(self) -> list[MergeConflict]:
        return [c for r in self.results for c in r.conflicts]


def find_delta_files(deltas_dir: Path, base_spec_id: str) -> list[Path]:
    """Delta files for base_spec_id, sorted lexicographically by name."""
    if not deltas_dir.exists():
        return []
    return sorted(deltas_dir.glob(f"DELTA-{base_spec_id}-*.md"), key=lambda p: p.name)


def load_deltas(deltas_dir: Path, base_spec_id: str, author: str = "developer") -> list[LoadedDelta]:
    """Parse and validate every pending delta for base_spec_id."""
    parser = DeltaParser()
    loaded = []
    for path in find_delta_files(deltas_dir, base_spec_id):
        delta = parser.parse(path.read_text(), path.stem, base_spec_id, author)
        validation = parser.validate(delta)
        if not validation.valid:
            logger.warning(f"[MERGE] {path.stem} failed validation: {'; '.join(validation.errors)}")
        loaded.append(LoadedDelta(path=path, delta=delta, validation=validation))
    return loaded


def fold_deltas(base_content: str, loaded: list[LoadedDelta]) -> ApplyResult:
    """Merge the valid deltas in order, threading content through each merge."""
    merger = SemanticMerger()
    base_spec_id = loaded[0].delta.base_spec_id if loaded else ""
    result = ApplyResult(base_spec_id=base_spec_id, content=base_content)

    for item in loaded:
        if not item.validation.valid:
            result.skipped.append(item)
            continue
        merged = merger.merge(result.content, item.delta)
        result.content = merged.content
        result.results.append(merged)
        result.stats = result.stats + merged.stats
        result.applied.append(item)

    return result


def backup_spec(base_path: Path, backups_dir: Path, now: datetime | None = None) -> Path:
    """Copy base_path to backups_dir/<stem>-<timestamp>.md."""
    now = now or datetime.now()
    timestamp = now.isoformat(timespec="milliseconds").replace(":", "-").replace(".", "-")
    backups_dir.mkdir(parents=True, exist_ok=True)
    backup_path = backups_dir / f"{base_path.stem}-{timestamp}.md"
    shutil.copy2(base_path, backup_path)
    logger.info(f"[MERGE] Backed up {base_path.name} to {backup_path}")
    return backup_path


def archive_deltas(paths: list[Path], applied_dir: Path) -> list[Path]:
    """Move consumed delta files into applied_dir. Returns the new paths."""
    applied_dir.mkdir(parents=True, exist_ok=True)
    archived = []
    for path in paths:
        dest = applied_dir / path.name
        shutil.move(str(path), str(dest))
        archived.append(dest)
    return archived


def write_apply(result: ApplyResult, base_path: Path, applied_dir: Path, backups_dir: Path | None = None) -> ApplyResult:
    """Back up the base (optional), write merged content, archive applied deltas."""
    if backups_dir is not None:
        result.backup_path = backup_spec(base_path, backups_dir)
    base_path.write_text(result.content)
    result.written = True
    result.archived = archive_deltas([item.path for item in result.applied], applied_dir)
    logger.info(
        f"[MERGE] Applied {len(result.applied)} delta(s) to {result.base_spec_id}: "
        f"+{result.stats.added} ~{result.stats.modified} -{result.stats.removed}"
    )
    return result


def apply_deltas(
    base_path: Path,
    deltas_dir: Path,
    applied_dir: Path,
    base_spec_id: str,
    backups_dir: Path | None = None,
    author: str = "developer",
    confirm: Callable[[ApplyResult], bool] | None = None,
) -> ApplyResult:
    """Fold all pending deltas into base_path.

    confirm, if given, sees the merged-but-unwritten result and returns
    False to leave everything on disk untouched.

    Raises:
        FileNotFoundError: If the base spec doesn't exist
        NoDeltasError: If there are no delta files for the base spec
        DeltaValidationError: If no delta passes validation
    """
    if not base_path.exists():
        raise FileNotFoundError(f"Base spec not found: {base_path}")

    loaded = load_deltas(deltas_dir, base_spec_id, author)
    if not loaded:
        raise NoDeltasError(base_spec_id, deltas_dir)

    result = fold_deltas(base_path.read_text(), loaded)
    result.base_spec_id = base_spec_id
    if not result.applied:
        raise DeltaValidationError({item.delta.id: item.validation.errors for item in result.skipped})

    if confirm is not None and not confirm(result):
        logger.info(f"[MERGE] Apply to {base_spec_id} cancelled")
        return result

    return write_apply(result, base_path, applied_dir, backups_dir)
