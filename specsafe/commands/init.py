"""
specsafe init - Set up a project for spec-driven development.

Creates:
- specs/{active,completed,archive,deltas,deltas/applied,backups}
- qa-reports/
- .specsafe/config.yaml (unless one exists)
- PROJECT_STATE.md
"""

from pathlib import Path

from specsafe.lib.config import ProjectConfig, get_config_path, save_project_config
from specsafe.tracker import ProjectTracker


def cmd_init(args, root: Path, config: ProjectConfig) -> int:
    """Initialize specsafe directories and config."""
    if args.name:
        config.project_name = args.name

    for d in config.spec_dirs():
        d.mkdir(parents=True, exist_ok=True)

    config_path = get_config_path(root)
    if config_path.exists():
        print(f"Config already exists: {config_path}")
    else:
        save_project_config(config)
        print(f"Created {config_path}")

    state_path = ProjectTracker(config).write_state()

    print(f"Initialized specsafe project: {config.project_name}")
    print(f"  Specs:   {config.specs_path}")
    print(f"  State:   {state_path}")
    print()
    print("Next: specsafe new <name>")
    return 0
