#!/usr/bin/env python3
"""specsafe CLI entrypoint."""

import sys
import argparse
import logging
from pathlib import Path

from specsafe.lib.config import load_project_config
from specsafe.lib.constants import PRIORITIES
from specsafe.models import STAGE_ORDER
from specsafe.commands import init as cmd_init_module
from specsafe.commands import new as cmd_new_module
from specsafe.commands import spec as cmd_spec_module
from specsafe.commands import lifecycle as cmd_lifecycle_module
from specsafe.commands import list as cmd_list_module
from specsafe.commands import ears as cmd_ears_module
from specsafe.commands import delta as cmd_delta_module


def configure_logging(level: str, verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level, logging.INFO),
        format="%(levelname)s %(name)s: %(message)s",
    )


def get_project_config(args):
    """Load config for --root (default: current directory) and set up logging."""
    root = Path(args.root) if args.root else Path.cwd()
    config = load_project_config(root)
    configure_logging(config.log_level, args.verbose)
    return config, root


def cmd_init(args):
    project_config, root = get_project_config(args)
    return cmd_init_module.cmd_init(args, root, project_config)


def cmd_new(args):
    project_config, root = get_project_config(args)
    return cmd_new_module.cmd_new(args, root, project_config)


def cmd_spec(args):
    project_config, root = get_project_config(args)
    return cmd_spec_module.cmd_spec(args, root, project_config)


def cmd_test(args):
    project_config, root = get_project_config(args)
    return cmd_lifecycle_module.cmd_test(args, root, project_config)


def cmd_track(args):
    project_config, root = get_project_config(args)
    return cmd_lifecycle_module.cmd_track(args, root, project_config)


def cmd_code(args):
    project_config, root = get_project_config(args)
    return cmd_lifecycle_module.cmd_code(args, root, project_config)


def cmd_qa(args):
    project_config, root = get_project_config(args)
    return cmd_lifecycle_module.cmd_qa(args, root, project_config)


def cmd_complete(args):
    project_config, root = get_project_config(args)
    return cmd_lifecycle_module.cmd_complete(args, root, project_config)


def cmd_archive(args):
    project_config, root = get_project_config(args)
    return cmd_lifecycle_module.cmd_archive(args, root, project_config)


def cmd_list(args):
    project_config, root = get_project_config(args)
    return cmd_list_module.cmd_list(args, root, project_config)


def cmd_status(args):
    project_config, root = get_project_config(args)
    return cmd_list_module.cmd_status(args, root, project_config)


def cmd_ears(args):
    project_config, root = get_project_config(args)
    return cmd_ears_module.cmd_ears(args, root, project_config)


def cmd_delta(args):
    project_config, root = get_project_config(args)
    return cmd_delta_module.cmd_delta(args, root, project_config)


def cmd_diff(args):
    project_config, root = get_project_config(args)
    return cmd_delta_module.cmd_diff(args, root, project_config)


def cmd_apply(args):
    project_config, root = get_project_config(args)
    return cmd_delta_module.cmd_apply(args, root, project_config)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='specsafe', description='Spec-driven development workflow')
    parser.add_argument('--root', '-r', help='Project root (default: current directory)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # specsafe init
    p_init = subparsers.add_parser('init', help='Create specs directories and config')
    p_init.add_argument('--name', help='Project name (default: root directory name)')
    p_init.set_defaults(func=cmd_init)

    # specsafe new
    p_new = subparsers.add_parser('new', help='Create a new spec')
    p_new.add_argument('name', nargs='?', help='Spec name')
    p_new.add_argument('--description', '-d', help='One-line description')
    p_new.add_argument('--author', '-a', help='Author (default: config default_author)')
    p_new.add_argument('--priority', '-p', choices=PRIORITIES, default='P1', help='Spec priority')
    p_new.add_argument('--ears', action='store_true', help='Use the EARS requirements template')
    p_new.add_argument('--dry-run', action='store_true', help='Print the spec instead of writing it')
    p_new.set_defaults(func=cmd_new)

    # specsafe spec
    p_spec = subparsers.add_parser('spec', help='Load requirements from the spec markdown')
    p_spec.add_argument('id', help='Spec ID (SPEC-YYYYMMDD-NNN)')
    p_spec.set_defaults(func=cmd_spec)

    # specsafe test
    p_test = subparsers.add_parser('test', help='Move spec to TEST')
    p_test.add_argument('id', help='Spec ID')
    p_test.set_defaults(func=cmd_test)

    # specsafe track
    p_track = subparsers.add_parser('track', help='Attach test or implementation files')
    p_track.add_argument('id', help='Spec ID')
    p_track.add_argument('--test-file', '-t', action='append', help='Test file (repeatable)')
    p_track.add_argument('--impl-file', '-i', action='append', help='Implementation file (repeatable)')
    p_track.set_defaults(func=cmd_track)

    # specsafe code
    p_code = subparsers.add_parser('code', help='Move spec to CODE')
    p_code.add_argument('id', help='Spec ID')
    p_code.set_defaults(func=cmd_code)

    # specsafe qa
    p_qa = subparsers.add_parser('qa', help='Move spec to QA and write a QA report')
    p_qa.add_argument('id', help='Spec ID')
    p_qa.add_argument('--go', action='store_true', help='Recommend GO (default: NO-GO)')
    p_qa.add_argument('--notes', '-n', help='Reviewer notes')
    p_qa.add_argument('--output', '-o', help='Report path (default: qa-reports/qa-<id>.json)')
    p_qa.set_defaults(func=cmd_qa)

    # specsafe complete
    p_complete = subparsers.add_parser('complete', help='Complete spec with a GO QA report')
    p_complete.add_argument('id', help='Spec ID')
    p_complete.add_argument('--report', required=True, help='QA report JSON')
    p_complete.add_argument('--dry-run', action='store_true', help='Check without changing anything')
    p_complete.set_defaults(func=cmd_complete)

    # specsafe archive
    p_archive = subparsers.add_parser('archive', help='Archive a completed spec')
    p_archive.add_argument('id', help='Spec ID')
    p_archive.set_defaults(func=cmd_archive)

    # specsafe list
    p_list = subparsers.add_parser('list', help='List specs')
    p_list.add_argument('--stage', '-s', help=f"Only specs in this stage ({', '.join(STAGE_ORDER)})")
    p_list.add_argument('--json', action='store_true', help='Print records as JSON')
    p_list.set_defaults(func=cmd_list)

    # specsafe status
    p_status = subparsers.add_parser('status', help='Show project progress')
    p_status.set_defaults(func=cmd_status)

    # specsafe ears
    p_ears = subparsers.add_parser('ears', help='Check EARS compliance')
    p_ears.add_argument('id', help='Spec ID')
    p_ears.add_argument('--report', action='store_true', help='Write qa-reports/ears-<id>.md')
    p_ears.add_argument('--threshold', type=int, help='Minimum score (default: config ears_threshold)')
    p_ears.set_defaults(func=cmd_ears)

    # specsafe delta
    p_delta = subparsers.add_parser('delta', help='Create a delta spec for an existing spec')
    p_delta.add_argument('id', help='Base spec ID')
    p_delta.add_argument('--author', '-a', help='Author (default: config default_author)')
    p_delta.add_argument('--force', action='store_true', help='Overwrite an existing delta without asking')
    p_delta.set_defaults(func=cmd_delta)

    # specsafe diff
    p_diff = subparsers.add_parser('diff', help='Preview pending deltas')
    p_diff.add_argument('id', help='Base spec ID')
    p_diff.add_argument('--verbose', dest='detail', action='store_true', help='Show conflicts and merged result')
    p_diff.set_defaults(func=cmd_diff)

    # specsafe apply
    p_apply = subparsers.add_parser('apply', help='Merge pending deltas into the base spec')
    p_apply.add_argument('id', help='Base spec ID')
    p_apply.add_argument('--force', action='store_true', help='Apply despite conflicts without asking')
    p_apply.add_argument('--yes', '-y', action='store_true', help='Skip the final confirmation')
    p_apply.add_argument('--no-backup', action='store_true', help='Do not back up the base spec')
    p_apply.set_defaults(func=cmd_apply)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
