"""Spec lifecycle state machine using the transitions library.

The lifecycle is linear:

    spec -> test -> code -> qa -> complete -> archived

Each edge has one named trigger. Stage gates (requirements present, test
files present, QA report GO, ...) are checked by Workflow before a trigger
fires; the machine itself only knows which edges exist.

Usage:
    from specsafe.workflow.fsm import SpecLifecycle

    lifecycle = SpecLifecycle(spec)
    lifecycle.write_tests()   # spec -> test
    lifecycle.implement()     # test -> code
"""

import logging
from datetime import datetime
from typing import Callable

from transitions import Machine

from specsafe.models import Spec, SpecStage

logger = logging.getLogger(__name__)


# State values match SpecStage values
STAGES = [stage.value for stage in SpecStage]

TRANSITIONS = [
    {"trigger": "write_tests", "source": "spec", "dest": "test"},
    {"trigger": "implement", "source": "test", "dest": "code"},
    {"trigger": "submit_for_qa", "source": "code", "dest": "qa"},
    {"trigger": "complete", "source": "qa", "dest": "complete"},
    {"trigger": "archive", "source": "complete", "dest": "archived"},
]


# Pre-computed lookup: (source, dest) -> trigger name
def _build_trigger_lookup() -> dict[tuple[str, str], str]:
    """Build lookup from (source, dest) -> trigger name."""
    lookup: dict[tuple[str, str], str] = {}
    for t in TRANSITIONS:
        key = (t["source"], t["dest"])
        if key not in lookup:
            lookup[key] = t["trigger"]
    return lookup


TRIGGER_FOR = _build_trigger_lookup()

# stage -> the stage it must be entered from
PREVIOUS_STAGE = {t["dest"]: t["source"] for t in TRANSITIONS}


class SpecLifecycle:
    """State machine bound to one Spec.

    Wraps the transitions library with spec-specific behaviour:
    - Starts from the spec's current stage
    - Writes the new stage and updated_at back onto the spec
    - Logs all transitions
    """

    def __init__(self, spec: Spec, on_transition: Callable[[str, str, str, str], None] | None = None):
        """Initialize the lifecycle for a spec.

        Args:
            spec: Spec record, mutated in place on every transition
            on_transition: Optional callback(spec_id, from_stage, to_stage, trigger)
        """
        self.spec = spec
        self.on_transition = on_transition

        self.machine = Machine(
            model=self,
            states=STAGES,
            transitions=TRANSITIONS,
            initial=spec.stage.value,
            auto_transitions=False,  # Only explicit transitions
            send_event=True,  # Pass EventData to callbacks
            after_state_change="on_state_change",
        )

    def on_state_change(self, event) -> None:
        """Callback after any transition: sync the spec and notify."""
        from_stage = event.transition.source
        to_stage = event.transition.dest
        trigger = event.event.name

        self.spec.stage = SpecStage(to_stage)
        self.spec.updated_at = datetime.now()

        logger.info(f"[WORKFLOW] {self.spec.id}: {from_stage} -> {to_stage} ({trigger})")

        if self.on_transition:
            self.on_transition(self.spec.id, from_stage, to_stage, trigger)

    def can(self, trigger: str) -> bool:
        """Check if a trigger can be executed in current state."""
        return trigger in self.machine.get_triggers(self.state)
