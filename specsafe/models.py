"""
Data models for specsafe.

Specs move through SPEC -> TEST -> CODE -> QA -> COMPLETE -> ARCHIVED.
Records are plain dataclasses; to_dict()/from_dict() give the JSON shape
stored by the tracker and written in QA reports.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class SpecStage(Enum):
    """Lifecycle stages. Values are the strings stored on disk."""

    SPEC = "spec"
    TEST = "test"
    CODE = "code"
    QA = "qa"
    COMPLETE = "complete"
    ARCHIVED = "archived"


STAGE_ORDER = [stage.value for stage in SpecStage]


def parse_stage(value: str | None) -> SpecStage | None:
    """Parse a stage string (any case) into SpecStage, or None if unknown."""
    if value is None:
        return None
    value = value.strip().lower()
    for stage in SpecStage:
        if stage.value == value:
            return stage
    return None


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse_dt(value) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    # JSON written by other tools may use a trailing Z
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


@dataclass
class Scenario:
    """Given/When/Then scenario owned by a requirement."""
    id: str
    given: str
    when: str
    then_outcome: str

    def to_dict(self) -> dict:
        return {"id": self.id, "given": self.given, "when": self.when, "then": self.then_outcome}

    @classmethod
    def from_dict(cls, data: dict) -> "Scenario":
        return cls(
            id=data.get("id", ""),
            given=data.get("given", ""),
            when=data.get("when", ""),
            then_outcome=data.get("then", data.get("then_outcome", "")),
        )


@dataclass
class Requirement:
    id: str
    text: str
    priority: str = "P1"                       # P0, P1, P2
    scenarios: list[Scenario] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "priority": self.priority,
            "scenarios": [s.to_dict() for s in self.scenarios],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Requirement":
        return cls(
            id=data["id"],
            text=data.get("text", ""),
            priority=data.get("priority", "P1"),
            scenarios=[Scenario.from_dict(s) for s in data.get("scenarios", [])],
        )


@dataclass
class TestResult:
    file: str
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    duration: float = 0

    __test__ = False  # not a pytest class


@dataclass
class CoverageReport:
    statements: float = 0
    branches: float = 0
    functions: float = 0
    lines: float = 0


@dataclass
class Issue:
    severity: str                              # critical, high, medium, low
    description: str
    file: Optional[str] = None
    line: Optional[int] = None


@dataclass
class QAReport:
    """QA outcome for a spec. GO is required to complete the spec."""
    id: str
    spec_id: str
    timestamp: datetime
    recommendation: str                        # GO, NO-GO
    test_results: list[TestResult] = field(default_factory=list)
    coverage: CoverageReport = field(default_factory=CoverageReport)
    issues: list[Issue] = field(default_factory=list)
    notes: str = ""

    def to_dict(self) -> dict:
        """JSON shape of a QA report file (camelCase keys)."""
        return {
            "id": self.id,
            "specId": self.spec_id,
            "timestamp": _iso(self.timestamp),
            "testResults": [vars(r).copy() for r in self.test_results],
            "coverage": vars(self.coverage).copy(),
            "recommendation": self.recommendation,
            "issues": [
                {k: v for k, v in vars(i).items() if v is not None}
                for i in self.issues
            ],
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "QAReport":
        return cls(
            id=data["id"],
            spec_id=data["specId"],
            timestamp=_parse_dt(data["timestamp"]),
            recommendation=data["recommendation"],
            test_results=[TestResult(**r) for r in data.get("testResults", [])],
            coverage=CoverageReport(**data.get("coverage", {})),
            issues=[Issue(**i) for i in data.get("issues", [])],
            notes=data.get("notes", ""),
        )


@dataclass
class SpecMetadata:
    author: str
    project: str
    tags: list[str] = field(default_factory=list)


@dataclass
class Spec:
    """A tracked unit of work moving through the stage lifecycle."""
    id: str                                    # SPEC-20250211-001
    name: str
    description: str
    stage: SpecStage
    created_at: datetime
    updated_at: datetime
    metadata: SpecMetadata
    completed_at: Optional[datetime] = None
    requirements: list[Requirement] = field(default_factory=list)
    test_files: list[str] = field(default_factory=list)
    implementation_files: list[str] = field(default_factory=list)
    qa_report: Optional[QAReport] = None

    def add_requirement(self, requirement: Requirement) -> None:
        """Append a requirement, rejecting IDs already present."""
        if any(r.id == requirement.id for r in self.requirements):
            raise ValueError(f"Requirement {requirement.id} already exists in {self.id}")
        self.requirements.append(requirement)

    @property
    def progress(self) -> int:
        """Percent of the lifecycle reached (spec=0 ... complete/archived=100)."""
        index = STAGE_ORDER.index(self.stage.value)
        complete_index = STAGE_ORDER.index(SpecStage.COMPLETE.value)
        return min(100, round(index / complete_index * 100))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "stage": self.stage.value,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
            "completedAt": _iso(self.completed_at),
            "requirements": [r.to_dict() for r in self.requirements],
            "testFiles": list(self.test_files),
            "implementationFiles": list(self.implementation_files),
            "qaReport": self.qa_report.to_dict() if self.qa_report else None,
            "metadata": {
                "author": self.metadata.author,
                "project": self.metadata.project,
                "tags": list(self.metadata.tags),
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Spec":
        stage = parse_stage(data.get("stage"))
        if stage is None:
            raise ValueError(f"Unknown stage '{data.get('stage')}' for spec {data.get('id')}")
        meta = data.get("metadata") or {}
        qa = data.get("qaReport")
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            description=data.get("description", ""),
            stage=stage,
            created_at=_parse_dt(data["createdAt"]),
            updated_at=_parse_dt(data.get("updatedAt") or data["createdAt"]),
            completed_at=_parse_dt(data.get("completedAt")),
            requirements=[Requirement.from_dict(r) for r in data.get("requirements", [])],
            test_files=list(data.get("testFiles", [])),
            implementation_files=list(data.get("implementationFiles", [])),
            qa_report=QAReport.from_dict(qa) if qa else None,
            metadata=SpecMetadata(
                author=meta.get("author", "developer"),
                project=meta.get("project", ""),
                tags=list(meta.get("tags", [])),
            ),
        )
