"""
Stage transition commands.

specsafe test <id>       SPEC -> TEST
specsafe track <id>      attach test / implementation files
specsafe code <id>       TEST -> CODE
specsafe qa <id>         CODE -> QA, writes a QA report
specsafe complete <id>   QA -> COMPLETE with a GO report
specsafe archive <id>    COMPLETE -> ARCHIVED
"""

import json
import logging
from datetime import datetime
from pathlib import Path

from specsafe.lib.config import ProjectConfig
from specsafe.lib.project import check_spec_id, move_spec_markdown, open_workflow, sync_requirements
from specsafe.lib.validate import ValidationError, validate_before_write, validate_qa_report
from specsafe.models import QAReport, SpecStage, TestResult
from specsafe.workflow.engine import InvalidTransition, SpecNotFoundError

logger = logging.getLogger(__name__)

TIPS = {
    "Cannot move to TEST: No requirements defined": "Add requirements to the spec file, then run: specsafe spec {id}",
    "Cannot move to CODE: No test files generated": "Attach tests with: specsafe track {id} --test-file <path>",
    "Cannot move to QA: No implementation files": "Attach code with: specsafe track {id} --impl-file <path>",
}


def _print_transition_error(e: InvalidTransition, spec_id: str) -> None:
    print(f"ERROR: {e}")
    tip = TIPS.get(str(e))
    if tip:
        print(f"Tip: {tip.format(id=spec_id)}")
    else:
        print("Tip: specsafe list shows each spec's current stage")


def _load(args, config: ProjectConfig):
    """Return (workflow, tracker, spec) or None after printing an error."""
    if not check_spec_id(args.id):
        return None
    workflow, tracker = open_workflow(config)
    try:
        spec = workflow.require_spec(args.id)
    except SpecNotFoundError as e:
        print(f"ERROR: {e}")
        print("Tip: create it with: specsafe new <name>")
        return None
    return workflow, tracker, spec


def cmd_test(args, root: Path, config: ProjectConfig) -> int:
    """Move a spec from SPEC to TEST."""
    loaded = _load(args, config)
    if loaded is None:
        return 1
    workflow, tracker, spec = loaded

    if spec.stage == SpecStage.SPEC:
        sync_requirements(config, spec)

    try:
        workflow.move_to_test(spec.id)
    except InvalidTransition as e:
        _print_transition_error(e, spec.id)
        return 1

    tracker.save_spec(spec)
    print(f"{spec.id} moved to TEST ({len(spec.requirements)} requirement(s))")
    print(f"Next: write tests, then: specsafe track {spec.id} --test-file <path>")
    return 0


def cmd_track(args, root: Path, config: ProjectConfig) -> int:
    """Attach test and implementation files to a spec."""
    loaded = _load(args, config)
    if loaded is None:
        return 1
    _workflow, tracker, spec = loaded

    if not args.test_file and not args.impl_file:
        print("ERROR: Nothing to track. Use --test-file and/or --impl-file")
        return 2

    added = 0
    for path in args.test_file or []:
        if path not in spec.test_files:
            spec.test_files.append(path)
            added += 1
    for path in args.impl_file or []:
        if path not in spec.implementation_files:
            spec.implementation_files.append(path)
            added += 1

    if added:
        spec.updated_at = datetime.now()
        tracker.save_spec(spec)

    print(f"{spec.id}: {len(spec.test_files)} test file(s), {len(spec.implementation_files)} implementation file(s)")
    return 0


def cmd_code(args, root: Path, config: ProjectConfig) -> int:
    """Move a spec from TEST to CODE."""
    loaded = _load(args, config)
    if loaded is None:
        return 1
    workflow, tracker, spec = loaded

    try:
        workflow.move_to_code(spec.id)
    except InvalidTransition as e:
        _print_transition_error(e, spec.id)
        return 1

    tracker.save_spec(spec)
    print(f"{spec.id} moved to CODE")
    print(f"Next: implement, then: specsafe track {spec.id} --impl-file <path>")
    return 0


def cmd_qa(args, root: Path, config: ProjectConfig) -> int:
    """Move a spec from CODE to QA and write a QA report."""
    loaded = _load(args, config)
    if loaded is None:
        return 1
    workflow, tracker, spec = loaded

    if spec.stage != SpecStage.QA:
        try:
            workflow.move_to_qa(spec.id)
        except InvalidTransition as e:
            _print_transition_error(e, spec.id)
            return 1
        tracker.save_spec(spec)

    now = datetime.now()
    report = QAReport(
        id=f"QA-{spec.id}-{now.strftime('%Y%m%d%H%M%S')}",
        spec_id=spec.id,
        timestamp=now,
        recommendation="GO" if args.go else "NO-GO",
        test_results=[TestResult(file=f) for f in spec.test_files],
        notes=args.notes or "",
    )

    output = Path(args.output) if args.output else config.qa_reports_dir / f"qa-{spec.id}.json"
    data = report.to_dict()
    try:
        validate_before_write(data, "qa_report", output)
    except ValidationError as e:
        print(f"ERROR: {e}")
        return 1
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(data, indent=2))

    print(f"{spec.id} is in QA")
    print(f"  Report:         {output}")
    print(f"  Recommendation: {report.recommendation}")
    print()
    if report.recommendation == "GO":
        print(f"Next: specsafe complete {spec.id} --report {output}")
    else:
        print("Next: fill in test results in the report, set recommendation to GO, then:")
        print(f"  specsafe complete {spec.id} --report {output}")
    return 0


def cmd_complete(args, root: Path, config: ProjectConfig) -> int:
    """Move a spec from QA to COMPLETE using a GO QA report."""
    loaded = _load(args, config)
    if loaded is None:
        return 1
    workflow, tracker, spec = loaded

    report_path = Path(args.report)
    if not report_path.exists():
        print(f"ERROR: QA report not found: {report_path}")
        print(f"Tip: generate one with: specsafe qa {spec.id}")
        return 1

    try:
        data = json.loads(report_path.read_text())
    except json.JSONDecodeError as e:
        print(f"ERROR: Invalid JSON in {report_path}: {e}")
        return 1

    try:
        validate_qa_report(data, strict=True)
    except ValidationError as e:
        print(f"ERROR: {e}")
        return 1

    try:
        report = QAReport.from_dict(data)
    except ValueError as e:
        print(f"ERROR: Invalid QA report {report_path}: {e}")
        print("Tip: timestamp must be ISO 8601, e.g. 2025-02-11T14:30:00")
        return 1

    if args.dry_run:
        check = workflow.can_transition(spec.id, SpecStage.COMPLETE)
        problems = [] if check.valid else [check.reason]
        if report.spec_id != spec.id:
            problems.append(f"QA report spec ID ({report.spec_id}) does not match target spec ({spec.id})")
        if report.recommendation != "GO":
            problems.append("QA report recommends NO-GO")
        if problems:
            print(f"[dry-run] {spec.id} cannot be completed:")
            for p in problems:
                print(f"  - {p}")
            return 1
        print(f"[dry-run] {spec.id} can be completed")
        return 0

    try:
        workflow.move_to_complete(spec.id, report)
    except InvalidTransition as e:
        _print_transition_error(e, spec.id)
        return 1

    moved = move_spec_markdown(config, spec)
    tracker.save_spec(spec)

    print(f"{spec.id} is COMPLETE")
    if moved:
        print(f"  Spec moved to: {moved}")
    print(f"Next: specsafe archive {spec.id} (when it no longer needs to be listed)")
    return 0


def cmd_archive(args, root: Path, config: ProjectConfig) -> int:
    """Move a spec from COMPLETE to ARCHIVED."""
    loaded = _load(args, config)
    if loaded is None:
        return 1
    workflow, tracker, spec = loaded

    try:
        workflow.archive_spec(spec.id)
    except InvalidTransition as e:
        _print_transition_error(e, spec.id)
        return 1

    moved = move_spec_markdown(config, spec)
    tracker.save_spec(spec)

    print(f"{spec.id} archived")
    if moved:
        print(f"  Spec moved to: {moved}")
    return 0
