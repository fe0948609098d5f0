"""
specsafe list / specsafe status - Show tracked specs and project progress.
"""

import json
from pathlib import Path

from specsafe.lib.config import ProjectConfig
from specsafe.models import parse_stage
from specsafe.tracker import ProjectTracker


def cmd_list(args, root: Path, config: ProjectConfig) -> int:
    """List tracked specs, optionally filtered by stage."""
    tracker = ProjectTracker(config)
    specs = tracker.list_specs()

    if args.stage:
        stage = parse_stage(args.stage)
        if stage is None:
            print(f"ERROR: Unknown stage '{args.stage}'")
            print("Tip: use one of spec, test, code, qa, complete, archived")
            return 2
        specs = [s for s in specs if s.stage == stage]

    if args.json:
        print(json.dumps([s.to_dict() for s in specs], indent=2))
        return 0

    if not specs:
        print("Specs: none")
        print()
        print("Get started:")
        print('  specsafe new "Feature name"')
        return 0

    print("Specs")
    print("-" * 72)
    for spec in specs:
        name = spec.name[:36] + "..." if len(spec.name) > 36 else spec.name
        print(f"  {spec.id:<20} {spec.stage.value:<9} {spec.progress:>3}%  {name}")
    print()
    print(f"{len(specs)} spec(s)")
    return 0


def cmd_status(args, root: Path, config: ProjectConfig) -> int:
    """Show stage counts and completion rate for the project."""
    state = ProjectTracker(config).read_state()
    metrics = state.metrics

    print(f"Project: {state.project_name}")
    print("=" * 60)
    print()
    print(f"Total specs:      {metrics.total_specs}")
    print(f"Completion rate:  {metrics.completion_rate}%")
    print()
    for stage, count in metrics.by_stage.items():
        print(f"  {stage.upper():<10} {count}")
    return 0
