"""Delta spec records: parsed deltas, merge conflicts and merge results."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

# MergeConflict.type values
REQUIREMENT_NOT_FOUND = "requirement_not_found"
DUPLICATE_ADD = "duplicate_add"
INVALID_FORMAT = "invalid_format"

CONFLICT_TYPES = (REQUIREMENT_NOT_FOUND, DUPLICATE_ADD, INVALID_FORMAT)


@dataclass(frozen=True)
class DeltaRequirement:
    id: str
    text: str
    priority: Optional[str] = None             # P0, P1, P2; None keeps the base value
    scenarios: tuple[str, ...] = ()
    old_text: Optional[str] = None             # only from a MODIFIED `(was ...)` annotation


@dataclass(frozen=True)
class DeltaSpec:
    """One parsed delta file. Immutable after parsing."""
    id: str                                    # DELTA-SPEC-20250211-001-20250301
    base_spec_id: str
    description: str
    created_at: datetime
    author: str
    added: tuple[DeltaRequirement, ...] = ()
    modified: tuple[DeltaRequirement, ...] = ()
    removed: tuple[str, ...] = ()

    @property
    def change_count(self) -> int:
        return len(self.added) + len(self.modified) + len(self.removed)


@dataclass
class MergeConflict:
    """Advisory conflict recorded during a merge. Never aborts the merge."""
    type: str
    message: str
    requirement_id: Optional[str] = None


@dataclass
class MergeStats:
    added: int = 0
    modified: int = 0
    removed: int = 0
    conflicts: int = 0

    def __add__(self, other: "MergeStats") -> "MergeStats":
        return MergeStats(
            added=self.added + other.added,
            modified=self.modified + other.modified,
            removed=self.removed + other.removed,
            conflicts=self.conflicts + other.conflicts,
        )


@dataclass
class MergeResult:
    success: bool
    content: str
    conflicts: list[MergeConflict] = field(default_factory=list)
    stats: MergeStats = field(default_factory=MergeStats)


@dataclass
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)
