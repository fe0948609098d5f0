"""
Schema validation for specsafe.

Enforces JSON Schema validation at every data boundary: QA report files
read from disk and spec records written by the tracker.
Fails hard with clear errors when data doesn't match schema.
"""

import json
from pathlib import Path

import jsonschema


class ValidationError(Exception):
    """Schema validation failed."""

    def __init__(self, schema_name: str, message: str, path: str = None):
        self.schema_name = schema_name
        self.path = path
        super().__init__(f"[{schema_name}] {message}" + (f" at {path}" if path else ""))


# Cache loaded schemas
_schema_cache: dict[str, dict] = {}


def _get_schemas_dir() -> Path:
    """Get path to schemas directory."""
    return Path(__file__).parent.parent / "schemas"


def _load_schema(schema_name: str) -> dict:
    """Load schema by name, with caching."""
    if schema_name not in _schema_cache:
        schema_path = _get_schemas_dir() / f"{schema_name}.schema.json"
        if not schema_path.exists():
            raise ValidationError(schema_name, f"Schema file not found: {schema_path}")
        _schema_cache[schema_name] = json.loads(schema_path.read_text())
    return _schema_cache[schema_name]


def validate(data: dict, schema_name: str) -> None:
    """
    Validate data against named schema.

    Args:
        data: Dictionary to validate
        schema_name: Schema name (e.g., "qa_report", "spec_record")

    Raises:
        ValidationError: If validation fails
    """
    schema = _load_schema(schema_name)

    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as e:
        path = ".".join(str(p) for p in e.absolute_path) if e.absolute_path else "(root)"
        raise ValidationError(schema_name, e.message, path) from None


def validate_qa_report(data: dict, strict: bool = False) -> None:
    """
    Validate a QA report dict.

    The schema requires id, specId, timestamp, recommendation, testResults,
    coverage and issues. Completion call sites pass strict=True, which also
    requires notes.

    Raises:
        ValidationError: If the report is invalid
    """
    if isinstance(data, dict):
        missing = [
            f for f in _load_schema("qa_report")["required"] if f not in data
        ]
        if strict and "notes" not in data:
            missing.append("notes")
        if missing:
            raise ValidationError(
                "qa_report",
                f"Invalid QA report: missing required fields: {', '.join(missing)}",
            )
    validate(data, "qa_report")


def validate_before_write(data: dict, schema_name: str, filepath: Path) -> None:
    """
    Validate data before writing to file. Ensures we never write invalid data.

    Raises:
        ValidationError: If data doesn't match schema
    """
    try:
        validate(data, schema_name)
    except ValidationError as e:
        raise ValidationError(
            schema_name,
            f"Refusing to write invalid data to {filepath}: {e}"
        ) from None
