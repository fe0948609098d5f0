"""Delta specs: parse incremental ADDED/MODIFIED/REMOVED changes and merge them into base specs."""

from specsafe.delta.models import (
    CONFLICT_TYPES,
    DUPLICATE_ADD,
    INVALID_FORMAT,
    REQUIREMENT_NOT_FOUND,
    DeltaRequirement,
    DeltaSpec,
    MergeConflict,
    MergeResult,
    MergeStats,
    ValidationResult,
)
from specsafe.delta.parser import DeltaParser
from specsafe.delta.merger import SemanticMerger
from specsafe.delta.apply import (
    ApplyResult,
    DeltaValidationError,
    NoDeltasError,
    apply_deltas,
    find_delta_files,
)

__all__ = [
    "CONFLICT_TYPES",
    "DUPLICATE_ADD",
    "INVALID_FORMAT",
    "REQUIREMENT_NOT_FOUND",
    "DeltaRequirement",
    "DeltaSpec",
    "MergeConflict",
    "MergeResult",
    "MergeStats",
    "ValidationResult",
    "DeltaParser",
    "SemanticMerger",
    "ApplyResult",
    "DeltaValidationError",
    "NoDeltasError",
    "apply_deltas",
    "find_delta_files",
]
