"""Shared constants for specsafe."""

import re
from datetime import date

# Spec ID validation: SPEC-YYYYMMDD-NNN
SPEC_ID_PATTERN = re.compile(r'^SPEC-\d{8}-\d{3}$')
SPEC_ID_EXAMPLE = "SPEC-20250211-001"

# Requirement IDs: FR-1, NFR-2, REQ-001, FR-AUTH-1
REQUIREMENT_ID_RE = r'[A-Z][A-Z0-9-]+'

# Path-safe identifier for CLI arguments that become file names
SAFE_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')

PRIORITIES = ("P0", "P1", "P2")
DEFAULT_PRIORITY = "P1"


class InvalidSpecIdError(ValueError):
    """Raised when a spec ID does not match SPEC-YYYYMMDD-NNN."""


def validate_spec_id(spec_id: str) -> None:
    """Validate a spec ID, including that the date portion is a real date.

    Raises:
        InvalidSpecIdError: If the ID is missing, malformed or has an impossible date.
    """
    if not spec_id or not isinstance(spec_id, str):
        raise InvalidSpecIdError("Spec ID is required and must be a string")

    if not SPEC_ID_PATTERN.match(spec_id):
        raise InvalidSpecIdError(
            f'Invalid spec ID format: "{spec_id}". '
            f"Expected format: SPEC-YYYYMMDD-NNN (e.g., {SPEC_ID_EXAMPLE})"
        )

    date_str = spec_id[5:13]
    try:
        date(int(date_str[:4]), int(date_str[4:6]), int(date_str[6:8]))
    except ValueError:
        raise InvalidSpecIdError(
            f'Invalid spec ID "{spec_id}": contains invalid date {date_str}. '
            "Expected format: SPEC-YYYYMMDD-NNN"
        ) from None


def is_valid_spec_id(spec_id: str) -> bool:
    """Return True if spec_id passes validate_spec_id()."""
    try:
        validate_spec_id(spec_id)
    except InvalidSpecIdError:
        return False
    return True
