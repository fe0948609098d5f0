"""EARS requirement records."""

from dataclasses import dataclass, field
from typing import Optional

# EARSRequirement.type values
UBIQUITOUS = "ubiquitous"
EVENT = "event"
STATE = "state"
OPTIONAL = "optional"
UNWANTED = "unwanted"
COMPLEX = "complex"
UNKNOWN = "unknown"

EARS_TYPES = (UBIQUITOUS, EVENT, STATE, OPTIONAL, UNWANTED, COMPLEX, UNKNOWN)


@dataclass
class EARSCondition:
    """One trigger of a complex requirement."""
    type: str                                  # event, state, optional
    value: str


@dataclass
class EARSRequirement:
    text: str
    type: str
    action: str
    confidence: float
    event: Optional[str] = None
    state: Optional[str] = None
    condition: Optional[str] = None
    unwanted_condition: Optional[str] = None
    conditions: list[EARSCondition] = field(default_factory=list)


@dataclass
class RequirementValidation:
    text: str
    is_compliant: bool
    ears_requirement: Optional[EARSRequirement] = None    # None for unknown
    issues: list[str] = field(default_factory=list)
    suggestion: Optional[str] = None


@dataclass
class EARSValidationResult:
    score: int                                 # 0-100
    total_requirements: int
    compliant_count: int
    requirements: list[RequirementValidation] = field(default_factory=list)
    summary: list[tuple[str, int]] = field(default_factory=list)     # (type, count) in first-seen order
    recommendation: str = ""
