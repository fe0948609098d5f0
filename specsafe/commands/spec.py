"""
specsafe spec - Load requirements from a spec's markdown into its record.
"""

from pathlib import Path

from specsafe.ears.validator import meets_ears_threshold, validate_requirements
from specsafe.lib.config import ProjectConfig
from specsafe.lib.project import check_spec_id, find_spec_markdown, open_workflow, sync_requirements
from specsafe.workflow.engine import SpecNotFoundError


def cmd_spec(args, root: Path, config: ProjectConfig) -> int:
    """Read requirements from specs/active/<id>.md and report EARS quality."""
    if not check_spec_id(args.id):
        return 2

    workflow, tracker = open_workflow(config)
    try:
        spec = workflow.require_spec(args.id)
    except SpecNotFoundError as e:
        print(f"ERROR: {e}")
        print("Tip: specsafe list")
        return 1

    if find_spec_markdown(config, spec.id) is None:
        print(f"ERROR: Spec file not found: {config.active_dir / (spec.id + '.md')}")
        return 1

    if not sync_requirements(config, spec):
        print(f"No requirements found in {spec.id}.md")
        print("Tip: add rows to the Functional Requirements table (| FR-1 | text | P0 | |)")
        return 1

    tracker.save_spec(spec)

    print(f"{spec.id}: {len(spec.requirements)} requirement(s)")
    for req in spec.requirements:
        print(f"  {req.id:<10} {req.priority:<4} {req.text}")

    result = validate_requirements(spec)
    print()
    print(f"EARS score: {result.score}/100 ({result.compliant_count}/{result.total_requirements} compliant)")
    if not meets_ears_threshold(spec, config.ears_threshold, precomputed_score=result.score):
        print(f"  Below threshold of {config.ears_threshold}. Run: specsafe ears {spec.id}")

    print()
    print(f"Next: specsafe test {spec.id}")
    return 0
