"""Main CLI entry point for Conveyor."""

from __future__ import annotations

import argparse
import sys

from conveyor.cli import commands


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="conveyor",
        description="Conveyor - build and deploy pipeline runner",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # run command
    run_parser = subparsers.add_parser("run", help="Run the pipeline for one revision")
    run_parser.add_argument("--revision", required=True, help="Revision (commit SHA) to build")
    run_parser.add_argument("--ref", default="refs/tags/manual", help="Ref the revision was pushed to")
    run_parser.add_argument("--prior-revision", help="Revision to compare against for change detection")
    run_parser.add_argument("--definition", help="Pipeline definition YAML file (default: built-in web app pipeline)")
    run_parser.add_argument("--repo", default=".", help="Local repository used for change detection")
    run_parser.add_argument(
        "--dry-run-notify",
        action="store_true",
        help="Record the deploy notification instead of requesting an invalidation",
    )
    run_parser.add_argument(
        "--keep-artifacts",
        action="store_true",
        help="Keep run artifacts in the store after the run completes",
    )

    # validate command
    validate_parser = subparsers.add_parser("validate", help="Validate a pipeline definition file")
    validate_parser.add_argument("file", help="Pipeline definition YAML file")

    # trigger-config command
    trigger_parser = subparsers.add_parser("trigger-config", help="Show the trigger configuration")
    trigger_parser.add_argument(
        "--environment",
        help="Environment mode (local, production); default from CONVEYOR_ENVIRONMENT",
    )

    # decide command
    decide_parser = subparsers.add_parser("decide", help="Decide whether the conditional stage may be skipped")
    decide_parser.add_argument("--revision", required=True, help="Revision to decide for")
    decide_parser.add_argument("--prior-revision", help="Revision to compare against (default: parent)")
    decide_parser.add_argument("--repo", default=".", help="Local repository path")
    decide_parser.add_argument("--watch", nargs="+", required=True, help="Watched paths or globs")

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "run":
        code = commands.run(
            args.revision,
            args.ref,
            prior_revision=args.prior_revision,
            definition_path=args.definition,
            repo=args.repo,
            dry_run_notify=args.dry_run_notify,
            keep_artifacts=args.keep_artifacts,
        )
    elif args.command == "validate":
        code = commands.validate(args.file)
    elif args.command == "trigger-config":
        code = commands.trigger_config(args.environment)
    elif args.command == "decide":
        code = commands.decide(args.revision, args.watch, prior_revision=args.prior_revision, repo=args.repo)
    else:
        parser.print_help()
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
