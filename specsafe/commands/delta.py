"""
Brownfield changes to existing specs.

specsafe delta <id>   create specs/deltas/DELTA-<id>-YYYYMMDD.md
specsafe diff <id>    preview what pending deltas would change
specsafe apply <id>   merge pending deltas into specs/active/<id>.md
"""

import logging
from datetime import date
from pathlib import Path

from specsafe.delta.apply import (
    ApplyResult,
    DeltaValidationError,
    NoDeltasError,
    apply_deltas,
    load_deltas,
)
from specsafe.delta.merger import SemanticMerger
from specsafe.lib.config import ProjectConfig
from specsafe.lib.constants import SAFE_ID_PATTERN
from specsafe.lib.project import confirm, open_workflow, sync_requirements
from specsafe.lib.templates import delta_template

logger = logging.getLogger(__name__)


def _base_path(args, config: ProjectConfig) -> Path | None:
    """Path to the active base spec, or None after printing an error."""
    if not SAFE_ID_PATTERN.match(args.id):
        print(f"ERROR: Invalid spec ID '{args.id}': use letters, digits, '-' and '_' only")
        return None
    base_path = config.active_dir / f"{args.id}.md"
    if not base_path.exists():
        print(f"ERROR: Base spec not found: {base_path}")
        print("Tip: deltas apply to specs in specs/active. specsafe list shows what is tracked")
        return None
    return base_path


def cmd_delta(args, root: Path, config: ProjectConfig) -> int:
    """Create a delta spec skeleton for an existing spec."""
    if _base_path(args, config) is None:
        return 1

    author = args.author or config.default_author
    delta_id = f"DELTA-{args.id}-{date.today().strftime('%Y%m%d')}"
    delta_path = config.deltas_dir / f"{delta_id}.md"

    if delta_path.exists() and not args.force:
        if not confirm(f"{delta_path.name} already exists. Overwrite?"):
            print("Cancelled")
            return 1

    config.deltas_dir.mkdir(parents=True, exist_ok=True)
    delta_path.write_text(delta_template(delta_id, args.id, author))

    print(f"Created delta spec: {delta_id}")
    print(f"  Location: {delta_path}")
    print()
    print("Next steps:")
    print(f"  1. Describe changes under ADDED / MODIFIED / REMOVED in {delta_path}")
    print(f"  2. Preview: specsafe diff {args.id}")
    print(f"  3. Merge:   specsafe apply {args.id}")
    return 0


def cmd_diff(args, root: Path, config: ProjectConfig) -> int:
    """Preview pending deltas against the base spec without writing anything."""
    base_path = _base_path(args, config)
    if base_path is None:
        return 1

    loaded = load_deltas(config.deltas_dir, args.id, config.default_author)
    if not loaded:
        print(f"No pending delta specs for {args.id}")
        print(f"Tip: specsafe delta {args.id}")
        return 0

    merger = SemanticMerger()
    content = base_path.read_text()
    for item in loaded:
        if not item.validation.valid:
            print(f"# {item.delta.id}: INVALID, will be skipped")
            for error in item.validation.errors:
                print(f"  - {error}")
            print()
            continue

        print(merger.diff(content, item.delta))
        # Later deltas preview against the result of earlier ones
        merged = merger.merge(content, item.delta)
        content = merged.content
        if args.detail and merged.conflicts:
            print("Conflicts:")
            for c in merged.conflicts:
                print(f"  [{c.type}] {c.message}")
            print()

    if args.detail:
        print("# Merged Result")
        print()
        print(content)
    return 0


def _print_summary(result: ApplyResult) -> None:
    stats = result.stats
    print(f"Deltas for {result.base_spec_id}: {len(result.applied)} valid, {len(result.skipped)} invalid")
    print(f"  Added:    {stats.added}")
    print(f"  Modified: {stats.modified}")
    print(f"  Removed:  {stats.removed}")
    for item in result.skipped:
        print(f"  Skipping {item.delta.id}: {'; '.join(item.validation.errors)}")
    if result.conflicts:
        print()
        print(f"Conflicts ({len(result.conflicts)}):")
        for c in result.conflicts:
            print(f"  [{c.type}] {c.message}")


def cmd_apply(args, root: Path, config: ProjectConfig) -> int:
    """Merge pending deltas into the base spec."""
    base_path = _base_path(args, config)
    if base_path is None:
        return 1

    def approve(result: ApplyResult) -> bool:
        _print_summary(result)
        print()
        if (result.conflicts or result.skipped) and not args.force:
            if not confirm("Apply anyway (may result in incomplete merge)?"):
                return False
        if args.yes or args.force:
            return True
        return confirm("Apply these changes to the base spec?", default=True)

    backups_dir = config.backups_dir if config.backup_on_apply and not args.no_backup else None
    try:
        result = apply_deltas(
            base_path,
            config.deltas_dir,
            config.applied_dir,
            args.id,
            backups_dir=backups_dir,
            author=config.default_author,
            confirm=approve,
        )
    except NoDeltasError as e:
        print(f"ERROR: {e}")
        print(f"Tip: specsafe delta {args.id}")
        return 1
    except DeltaValidationError as e:
        print("ERROR: No valid delta specs to apply")
        for delta_id, errors in e.errors.items():
            print(f"  {delta_id}:")
            for error in errors:
                print(f"    - {error}")
        return 1

    if not result.written:
        print("Cancelled, nothing written")
        return 1

    workflow, tracker = open_workflow(config)
    spec = workflow.get_spec(args.id)
    if spec is not None and sync_requirements(config, spec):
        tracker.save_spec(spec)

    print(f"Applied {len(result.applied)} delta(s) to {base_path}")
    if result.backup_path:
        print(f"  Backup:   {result.backup_path}")
    for path in result.archived:
        print(f"  Archived: {path}")
    return 0
