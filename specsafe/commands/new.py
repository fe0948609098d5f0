"""
specsafe new - Create a new spec.

Allocates the next SPEC-YYYYMMDD-NNN ID, writes specs/active/<ID>.md from
the standard or EARS template and records the spec in the tracker.
"""

from pathlib import Path

from specsafe.lib.config import ProjectConfig
from specsafe.lib.constants import PRIORITIES
from specsafe.lib.project import open_workflow
from specsafe.lib.templates import ears_template, standard_template
from specsafe.tracker import generate_spec_id
from specsafe.workflow.engine import WorkflowError


def cmd_new(args, root: Path, config: ProjectConfig) -> int:
    """Create a new spec in the SPEC stage."""
    name = (args.name or "").strip()
    if len(name) < 3:
        print("ERROR: Spec name must be at least 3 characters")
        print('Tip: specsafe new "User authentication"')
        return 2

    priority = args.priority or "P1"
    if priority not in PRIORITIES:
        print(f"ERROR: Invalid priority '{priority}'. Use one of: {', '.join(PRIORITIES)}")
        return 2

    author = args.author or config.default_author
    description = args.description or f"Spec for {name}"

    workflow, tracker = open_workflow(config)
    spec_id = generate_spec_id([config.active_dir, config.completed_dir, config.archive_dir, tracker.records_dir])

    template = ears_template if args.ears else standard_template
    content = template(spec_id, name, author, priority, description=args.description or "")
    spec_path = config.active_dir / f"{spec_id}.md"

    if args.dry_run:
        print(f"[dry-run] Would create {spec_path}")
        print()
        print(content)
        return 0

    try:
        spec = workflow.create_spec(spec_id, name, description, author, config.project_name)
    except (WorkflowError, ValueError) as e:
        print(f"ERROR: {e}")
        return 1

    config.active_dir.mkdir(parents=True, exist_ok=True)
    spec_path.write_text(content)
    tracker.save_spec(spec)

    print(f"Created spec: {spec_id}")
    print(f"  Name:     {name}")
    print(f"  Location: {spec_path}")
    print()
    print("Next steps:")
    print(f"  1. Fill in requirements in {spec_path}")
    if args.ears:
        print("  2. Follow the EARS patterns in the template")
    print(f"  {3 if args.ears else 2}. Run: specsafe spec {spec_id}")
    return 0
