"""EARS (Easy Approach to Requirements Syntax) classification, validation and scoring."""

from specsafe.ears.models import (
    EARS_TYPES,
    EARSCondition,
    EARSRequirement,
    EARSValidationResult,
    RequirementValidation,
)
from specsafe.ears.parser import (
    extract_requirements,
    has_ears_keywords,
    parse_ears_requirement,
)
from specsafe.ears.validator import (
    generate_ears_report,
    get_ears_score,
    meets_ears_threshold,
    validate_requirement,
    validate_requirements,
)

__all__ = [
    "EARS_TYPES",
    "EARSCondition",
    "EARSRequirement",
    "EARSValidationResult",
    "RequirementValidation",
    "extract_requirements",
    "has_ears_keywords",
    "parse_ears_requirement",
    "generate_ears_report",
    "get_ears_score",
    "meets_ears_threshold",
    "validate_requirement",
    "validate_requirements",
]
