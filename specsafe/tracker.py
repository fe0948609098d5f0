"""
Project tracker: persistent Spec records plus a readable project summary.

Records are stored as JSON, one file per spec:
  .specsafe/specs/SPEC-YYYYMMDD-NNN.json

Every save regenerates PROJECT_STATE.md at the project root, a table of
specs with their stage and progress, for humans and code review.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from specsafe.lib.config import ProjectConfig
from specsafe.lib.constants import SPEC_ID_PATTERN
from specsafe.lib.validate import ValidationError, validate, validate_before_write
from specsafe.models import Spec, SpecStage
from specsafe.workflow.engine import Workflow

logger = logging.getLogger(__name__)

STATE_FILE = "PROJECT_STATE.md"


@dataclass
class SpecSummary:
    id: str
    name: str
    stage: str
    progress: int
    last_updated: datetime
    created_at: datetime
    completed_at: Optional[datetime] = None


@dataclass
class ProjectMetrics:
    total_specs: int = 0
    by_stage: dict[str, int] = field(default_factory=dict)
    completion_rate: int = 0                   # percent of specs complete or archived


@dataclass
class ProjectState:
    project_name: str
    last_updated: datetime
    specs: list[SpecSummary] = field(default_factory=list)
    metrics: ProjectMetrics = field(default_factory=ProjectMetrics)


def generate_spec_id(search_dirs: list[Path], today: date | None = None) -> str:
    """Next SPEC-YYYYMMDD-NNN for today: highest existing suffix + 1.

    Looks at spec markdown and record files (*.md, *.json) in search_dirs.
    """
    prefix = f"SPEC-{(today or date.today()).strftime('%Y%m%d')}-"
    nums = []
    for d in search_dirs:
        if not d.exists():
            continue
        for f in d.glob(f"{prefix}*"):
            if f.suffix not in (".md", ".json") or not SPEC_ID_PATTERN.match(f.stem):
                continue
            nums.append(int(f.stem.rsplit("-", 1)[1]))
    return f"{prefix}{max(nums, default=0) + 1:03d}"


class ProjectTracker:
    """Reads and writes Spec records for one project."""

    def __init__(self, config: ProjectConfig):
        self.config = config
        self.records_dir = config.state_dir / "specs"
        self.state_path = config.root / STATE_FILE

    def record_path(self, spec_id: str) -> Path:
        return self.records_dir / f"{spec_id}.json"

    def list_specs(self) -> list[Spec]:
        """Load every stored record. Unreadable or invalid records are skipped with a warning."""
        if not self.records_dir.exists():
            return []

        specs = []
        for path in sorted(self.records_dir.glob("SPEC-*.json")):
            try:
                data = json.loads(path.read_text())
                validate(data, "spec_record")
                specs.append(Spec.from_dict(data))
            except (json.JSONDecodeError, ValidationError, KeyError, ValueError) as e:
                logger.warning(f"[TRACKER] Skipping {path.name}: {e}")
        return specs

    def load_spec(self, spec_id: str) -> Spec | None:
        path = self.record_path(spec_id)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text())
            validate(data, "spec_record")
            return Spec.from_dict(data)
        except (json.JSONDecodeError, ValidationError, KeyError, ValueError) as e:
            logger.warning(f"[TRACKER] Failed to load {spec_id}: {e}")
            return None

    def load_specs_into_workflow(self, workflow: Workflow) -> int:
        """Hydrate workflow with every stored record. Returns the count loaded."""
        specs = self.list_specs()
        for spec in specs:
            workflow.load_spec(spec)
        logger.debug(f"[TRACKER] Loaded {len(specs)} spec(s) into workflow")
        return len(specs)

    def save_spec(self, spec: Spec) -> Path:
        """Validate and write the record, then refresh PROJECT_STATE.md.

        Raises:
            ValidationError: If the record doesn't match the spec_record schema
        """
        self.records_dir.mkdir(parents=True, exist_ok=True)
        path = self.record_path(spec.id)
        data = spec.to_dict()
        validate_before_write(data, "spec_record", path)
        path.write_text(json.dumps(data, indent=2))
        logger.debug(f"[TRACKER] Saved {spec.id} ({spec.stage.value})")
        self.write_state()
        return path

    def on_transition(self, spec_id: str, from_stage: str, to_stage: str, trigger: str) -> None:
        """Workflow callback: log each stage change against the project."""
        logger.info(f"[TRACKER] {self.config.project_name}: {spec_id} {from_stage} -> {to_stage} ({trigger})")

    def read_state(self) -> ProjectState:
        specs = self.list_specs()
        by_stage = {stage.value: 0 for stage in SpecStage}
        for spec in specs:
            by_stage[spec.stage.value] += 1

        done = by_stage[SpecStage.COMPLETE.value] + by_stage[SpecStage.ARCHIVED.value]
        completion_rate = int(done / len(specs) * 100 + 0.5) if specs else 0

        summaries = [
            SpecSummary(
                id=s.id,
                name=s.name,
                stage=s.stage.value,
                progress=s.progress,
                last_updated=s.updated_at,
                created_at=s.created_at,
                completed_at=s.completed_at,
            )
            for s in specs
        ]
        last_updated = max((s.updated_at for s in specs), default=datetime.now())
        return ProjectState(
            project_name=self.config.project_name,
            last_updated=last_updated,
            specs=summaries,
            metrics=ProjectMetrics(total_specs=len(specs), by_stage=by_stage, completion_rate=completion_rate),
        )

    def write_state(self) -> Path:
        self.state_path.write_text(render_state(self.read_state()))
        return self.state_path


def render_state(state: ProjectState) -> str:
    """Markdown for PROJECT_STATE.md."""
    lines = [
        f"# Project State: {state.project_name}",
        "",
        f"**Last Updated:** {state.last_updated.isoformat(timespec='seconds')}",
        f"**Total Specs:** {state.metrics.total_specs}",
        f"**Completion Rate:** {state.metrics.completion_rate}%",
        "",
        "## Stage Counts",
        "",
        "| Stage | Count |",
        "|-------|-------|",
    ]
    lines += [f"| {stage.upper()} | {count} |" for stage, count in state.metrics.by_stage.items()]
    lines += [
        "",
        "## Specs",
        "",
        "| ID | Name | Stage | Progress | Last Updated |",
        "|----|------|-------|----------|--------------|",
    ]
    for s in state.specs:
        lines.append(
            f"| {s.id} | {s.name} | {s.stage.upper()} | {s.progress}% | {s.last_updated.date().isoformat()} |"
        )
    if not state.specs:
        lines.append("| - | No specs yet | - | - | - |")
    return "\n".join(lines) + "\n"
