"""
Helpers shared by CLI commands: workflow hydration, spec file locations,
requirement sync and confirmation prompts.
"""

import logging
from pathlib import Path

from specsafe.lib.config import ProjectConfig
from specsafe.lib.constants import InvalidSpecIdError, validate_spec_id
from specsafe.lib.specdoc import extract_requirements
from specsafe.models import Spec, SpecStage
from specsafe.tracker import ProjectTracker
from specsafe.workflow.engine import Workflow

logger = logging.getLogger(__name__)


def open_workflow(config: ProjectConfig) -> tuple[Workflow, ProjectTracker]:
    """Workflow hydrated from the tracker, with transitions logged by it."""
    tracker = ProjectTracker(config)
    workflow = Workflow(on_transition=tracker.on_transition)
    tracker.load_specs_into_workflow(workflow)
    return workflow, tracker


def stage_dir(config: ProjectConfig, stage: SpecStage) -> Path:
    """Directory holding the markdown for a spec in this stage."""
    if stage == SpecStage.COMPLETE:
        return config.completed_dir
    if stage == SpecStage.ARCHIVED:
        return config.archive_dir
    return config.active_dir


def find_spec_markdown(config: ProjectConfig, spec_id: str) -> Path | None:
    for d in (config.active_dir, config.completed_dir, config.archive_dir):
        path = d / f"{spec_id}.md"
        if path.exists():
            return path
    return None


def move_spec_markdown(config: ProjectConfig, spec: Spec) -> Path | None:
    """Move the spec's markdown into the directory for its current stage."""
    current = find_spec_markdown(config, spec.id)
    if current is None:
        logger.warning(f"No markdown file found for {spec.id}")
        return None
    dest_dir = stage_dir(config, spec.stage)
    dest = dest_dir / current.name
    if current != dest:
        dest_dir.mkdir(parents=True, exist_ok=True)
        current.rename(dest)
    return dest


def sync_requirements(config: ProjectConfig, spec: Spec) -> bool:
    """Replace spec.requirements with those declared in its markdown.

    Returns True if the markdown declared any requirements.
    """
    path = find_spec_markdown(config, spec.id)
    if path is None:
        return False
    requirements = extract_requirements(path.read_text())
    if not requirements:
        return False
    spec.requirements = []
    for req in requirements:
        spec.add_requirement(req)
    return True


def check_spec_id(spec_id: str) -> bool:
    """Print an error and return False if spec_id is malformed."""
    try:
        validate_spec_id(spec_id)
    except InvalidSpecIdError as e:
        print(f"ERROR: {e}")
        return False
    return True


def confirm(prompt: str, default: bool = False) -> bool:
    suffix = "[Y/n]" if default else "[y/N]"
    try:
        response = input(f"{prompt} {suffix}: ").strip().lower()
    except EOFError:
        return default
    if not response:
        return default
    return response in ("y", "yes")
