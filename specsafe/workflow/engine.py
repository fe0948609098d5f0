"""
Workflow engine: in-memory registry of specs with gated stage transitions.

    SPEC -> TEST      requirements defined
    TEST -> CODE      test files attached
    CODE -> QA        implementation files attached
    QA -> COMPLETE    QA report for this spec recommending GO
    COMPLETE -> ARCHIVED

Transitions mutate the Spec in place (stage, updated_at, and on completion
qa_report and completed_at). Persisting the result is the caller's job,
usually via ProjectTracker.save_spec().
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from specsafe.lib.constants import validate_spec_id
from specsafe.models import QAReport, Spec, SpecMetadata, SpecStage, parse_stage
from specsafe.workflow.fsm import PREVIOUS_STAGE, TRIGGER_FOR, SpecLifecycle

logger = logging.getLogger(__name__)


class WorkflowError(Exception):
    """Base class for workflow failures."""


class InvalidTransition(WorkflowError):
    """Raised when a stage transition is out of order or its gate fails."""

    def __init__(self, message: str, spec_id: str = "", from_stage: str = "", to_stage: str = ""):
        self.spec_id = spec_id
        self.from_stage = from_stage
        self.to_stage = to_stage
        super().__init__(message)


class SpecNotFoundError(WorkflowError):
    def __init__(self, spec_id: str):
        self.spec_id = spec_id
        super().__init__(f"Spec {spec_id} not found")


class DuplicateSpecError(WorkflowError):
    def __init__(self, spec_id: str):
        self.spec_id = spec_id
        super().__init__(
            f"Spec with ID {spec_id} already exists. "
            "Use a different name or archive the existing spec first."
        )


@dataclass
class TransitionCheck:
    valid: bool
    reason: Optional[str] = None


class Workflow:
    """Holds Spec records and moves them through the lifecycle."""

    def __init__(self, on_transition: Callable[[str, str, str, str], None] | None = None):
        """
        Args:
            on_transition: Optional callback(spec_id, from_stage, to_stage, trigger),
                called after every successful transition
        """
        self.specs: dict[str, Spec] = {}
        self.on_transition = on_transition

    # -- registry ----------------------------------------------------------

    def create_spec(self, spec_id: str, name: str, description: str, author: str, project: str) -> Spec:
        """Register a new spec in the SPEC stage.

        Raises:
            InvalidSpecIdError: If spec_id is not SPEC-YYYYMMDD-NNN
            DuplicateSpecError: If spec_id is already registered
        """
        validate_spec_id(spec_id)
        if spec_id in self.specs:
            raise DuplicateSpecError(spec_id)

        now = datetime.now()
        spec = Spec(
            id=spec_id,
            name=name,
            description=description,
            stage=SpecStage.SPEC,
            created_at=now,
            updated_at=now,
            metadata=SpecMetadata(author=author, project=project),
        )
        self.specs[spec_id] = spec
        logger.info(f"[WORKFLOW] Created {spec_id}: {name}")
        return spec

    def load_spec(self, spec: Spec) -> None:
        """Add or replace a spec hydrated from disk."""
        self.specs[spec.id] = spec

    def get_spec(self, spec_id: str) -> Spec | None:
        return self.specs.get(spec_id)

    def require_spec(self, spec_id: str) -> Spec:
        spec = self.specs.get(spec_id)
        if spec is None:
            raise SpecNotFoundError(spec_id)
        return spec

    def get_all_specs(self) -> list[Spec]:
        return list(self.specs.values())

    def get_specs_by_stage(self, stage: SpecStage) -> list[Spec]:
        return [s for s in self.specs.values() if s.stage == stage]

    def get_status(self) -> list[tuple[SpecStage, int]]:
        """(stage, count) for every stage, in lifecycle order."""
        return [(stage, len(self.get_specs_by_stage(stage))) for stage in SpecStage]

    # -- transitions -------------------------------------------------------

    def move_to_test(self, spec_id: str) -> Spec:
        spec = self._require_stage(spec_id, SpecStage.TEST)
        if not spec.requirements:
            raise self._gate_failure(spec, SpecStage.TEST, "Cannot move to TEST: No requirements defined")
        return self._fire(spec, SpecStage.TEST)

    def move_to_code(self, spec_id: str) -> Spec:
        spec = self._require_stage(spec_id, SpecStage.CODE)
        if not spec.test_files:
            raise self._gate_failure(spec, SpecStage.CODE, "Cannot move to CODE: No test files generated")
        return self._fire(spec, SpecStage.CODE)

    def move_to_qa(self, spec_id: str) -> Spec:
        spec = self._require_stage(spec_id, SpecStage.QA)
        if not spec.implementation_files:
            raise self._gate_failure(spec, SpecStage.QA, "Cannot move to QA: No implementation files")
        return self._fire(spec, SpecStage.QA)

    def move_to_complete(self, spec_id: str, qa_report: QAReport | None) -> Spec:
        spec = self._require_stage(spec_id, SpecStage.COMPLETE)
        if qa_report is None:
            raise self._gate_failure(spec, SpecStage.COMPLETE, "Cannot complete: QA report is required")
        if qa_report.spec_id != spec_id:
            raise self._gate_failure(
                spec,
                SpecStage.COMPLETE,
                f"QA report spec ID ({qa_report.spec_id}) does not match target spec ({spec_id})",
            )
        if qa_report.recommendation != "GO":
            raise self._gate_failure(
                spec, SpecStage.COMPLETE, "Cannot complete: QA report recommends NO-GO. Address issues first."
            )

        spec.qa_report = qa_report
        spec = self._fire(spec, SpecStage.COMPLETE)
        spec.completed_at = spec.updated_at
        return spec

    def archive_spec(self, spec_id: str) -> Spec:
        spec = self.require_spec(spec_id)
        if spec.stage != SpecStage.COMPLETE:
            raise InvalidTransition(
                f"Cannot archive spec in {spec.stage.value} stage. Must be COMPLETE.",
                spec_id, spec.stage.value, SpecStage.ARCHIVED.value,
            )
        return self._fire(spec, SpecStage.ARCHIVED)

    def can_transition(self, spec_id: str, to_stage: SpecStage | str) -> TransitionCheck:
        """Dry-run check of a transition. Never mutates.

        qa -> complete reports valid without looking at a QA report, since
        none is supplied here; move_to_complete() enforces it.
        """
        spec = self.get_spec(spec_id)
        if spec is None:
            return TransitionCheck(False, "Spec not found")

        target = to_stage if isinstance(to_stage, SpecStage) else parse_stage(to_stage)
        if target is None:
            return TransitionCheck(False, f"Unknown stage: {to_stage}")

        # Edges come from the lifecycle machine
        trigger = TRIGGER_FOR.get((spec.stage.value, target.value))
        if trigger is None or not SpecLifecycle(spec).can(trigger):
            return TransitionCheck(False, f"Cannot transition from {spec.stage.value} to {target.value}")

        if target == SpecStage.TEST and not spec.requirements:
            return TransitionCheck(False, "Cannot move to TEST: No requirements defined")
        if target == SpecStage.CODE and not spec.test_files:
            return TransitionCheck(False, "Cannot move to CODE: No test files generated")
        if target == SpecStage.QA and not spec.implementation_files:
            return TransitionCheck(False, "Cannot move to QA: No implementation files")

        return TransitionCheck(True)

    # -- internals ---------------------------------------------------------

    def _require_stage(self, spec_id: str, target: SpecStage) -> Spec:
        """Fetch the spec and check it sits in the stage target is entered from."""
        spec = self.require_spec(spec_id)
        required = PREVIOUS_STAGE[target.value]
        if spec.stage.value != required:
            raise InvalidTransition(
                f"Cannot move to {target.value.upper()} from {spec.stage.value}. "
                f"Must be in {required.upper()} stage.",
                spec_id, spec.stage.value, target.value,
            )
        return spec

    def _gate_failure(self, spec: Spec, target: SpecStage, message: str) -> InvalidTransition:
        logger.debug(f"[WORKFLOW] {spec.id}: gate failed for {target.value}: {message}")
        return InvalidTransition(message, spec.id, spec.stage.value, target.value)

    def _fire(self, spec: Spec, target: SpecStage) -> Spec:
        trigger = TRIGGER_FOR[(spec.stage.value, target.value)]
        lifecycle = SpecLifecycle(spec, on_transition=self.on_transition)
        getattr(lifecycle, trigger)()
        return spec
