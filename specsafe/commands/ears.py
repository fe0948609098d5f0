"""
specsafe ears - Check a spec's requirements against EARS patterns.
"""

from pathlib import Path

from specsafe.ears.validator import generate_ears_report, meets_ears_threshold, validate_requirements
from specsafe.lib.config import ProjectConfig
from specsafe.lib.project import check_spec_id, open_workflow, sync_requirements
from specsafe.workflow.engine import SpecNotFoundError


def cmd_ears(args, root: Path, config: ProjectConfig) -> int:
    """Score EARS compliance. Returns 1 when the score is below the threshold."""
    if not check_spec_id(args.id):
        return 2

    workflow, _tracker = open_workflow(config)
    try:
        spec = workflow.require_spec(args.id)
    except SpecNotFoundError as e:
        print(f"ERROR: {e}")
        print("Tip: specsafe list")
        return 1

    # Score what the markdown says now; the stored record is left alone
    sync_requirements(config, spec)
    if not spec.requirements:
        print(f"ERROR: {spec.id} has no requirements to check")
        print(f"Tip: add requirements to {spec.id}.md, then run: specsafe spec {spec.id}")
        return 1

    threshold = args.threshold if args.threshold is not None else config.ears_threshold
    result = validate_requirements(spec)

    print(f"EARS compliance for {spec.id}: {result.score}/100")
    print(f"  {result.compliant_count}/{result.total_requirements} requirement(s) compliant")
    print(f"  {result.recommendation}")
    print()
    for req, v in zip(spec.requirements, result.requirements):
        mark = "PASS" if v.is_compliant else "FAIL"
        kind = v.ears_requirement.type if v.ears_requirement else "unknown"
        print(f"  [{mark}] {req.id:<10} {kind}")
        for issue in v.issues:
            print(f"         - {issue}")

    if args.report:
        report_path = config.qa_reports_dir / f"ears-{spec.id}.md"
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path.write_text(generate_ears_report(spec, result))
        print()
        print(f"Report written: {report_path}")

    if not meets_ears_threshold(spec, threshold, precomputed_score=result.score):
        print()
        print(f"Below threshold of {threshold}")
        return 1
    return 0
