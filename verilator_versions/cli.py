#!/usr/bin/env python3
"""
verilator-versions - build and manage multiple Verilator versions.

Usage:
    verilator-versions setup                       # Clone/update the repository
    verilator-versions build v5.024                # Build one version
    verilator-versions build-multiple v5.020 v5.024
    verilator-versions list                        # Release tags in the mirror
    verilator-versions installed                   # Installed versions
    verilator-versions test v5.024                 # Smoke-test a version
    verilator-versions switcher                    # Write switch_verilator.sh
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Sequence

from .builder import build_multiple, build_version, generate_build_plan
from .config import Config, load_config
from .errors import VersionManagerError
from .launcher import create_switcher_script
from .logging_config import get_logger, setup_logging
from .mirror import ensure_mirror, list_tags
from .registry import list_installed, sort_versions
from .render import BLUE, colorize, render_build_summary, render_installed
from .tester import smoke_test_version


EXAMPLES = """\
Examples:
  verilator-versions setup
  verilator-versions list
  verilator-versions build v5.024
  verilator-versions build-multiple v5.020 v5.024 v5.026
  verilator-versions test v5.024
"""


def cmd_setup(args: argparse.Namespace, config: Config) -> int:
    """Clone or update the repository mirror."""
    ensure_mirror(config.repo_url, config.repo_path, verbose=args.verbose)
    return 0


def cmd_build(args: argparse.Namespace, config: Config) -> int:
    """Build a single version (after updating the mirror)."""
    if args.dry_run:
        plan = generate_build_plan(args.version, config.install_dir(args.version), config)
        print(json.dumps([step.to_dict() for step in plan], indent=2))
        return 0

    ensure_mirror(config.repo_url, config.repo_path, verbose=args.verbose)
    build_version(args.version, config, verbose=args.verbose)
    return 0


def cmd_build_multiple(args: argparse.Namespace, config: Config) -> int:
    """Build several versions in order; failures do not stop the batch."""
    ensure_mirror(config.repo_url, config.repo_path, verbose=args.verbose)
    results = build_multiple(args.versions, config, verbose=args.verbose)
    render_build_summary(results)
    return 0 if all(r.success for r in results) else 1


def cmd_list(args: argparse.Namespace, config: Config) -> int:
    """List release tags available in the mirror."""
    logger = get_logger()
    if not config.repo_path.is_dir():
        logger.warning("Repository not set up. Run 'verilator-versions setup' first.")
        return 1

    logger.info("Available Verilator versions in repository:")
    for tag in list_tags(
        config.repo_path,
        pattern=config.build.tag_pattern,
        limit=config.build.list_limit,
        verbose=args.verbose,
    ):
        print(tag)
    return 0


def cmd_installed(args: argparse.Namespace, config: Config) -> int:
    """List installed versions."""
    get_logger().info("Installed Verilator versions:")
    versions = sort_versions(list_installed(config.base_path, config.install_prefix, config.binary))
    render_installed(versions)
    return 0


def cmd_test(args: argparse.Namespace, config: Config) -> int:
    """Smoke-test an installed version."""
    smoke_test_version(args.version, config, verbose=args.verbose)
    return 0


def cmd_switcher(args: argparse.Namespace, config: Config) -> int:
    """Write the switcher launcher into the base directory."""
    create_switcher_script(config)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="verilator-versions",
        description="Verilator Multi-Version Management",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", help="Path to a configuration file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--log-file", help="Also write a full log to this file")

    sub = parser.add_subparsers(dest="command", metavar="<command>")

    p = sub.add_parser("setup", help="Clone/update Verilator repository")
    p.set_defaults(func=cmd_setup)

    p = sub.add_parser("build", help="Build specific version")
    p.add_argument("version", help="Version tag, e.g. v5.024")
    p.add_argument("--dry-run", action="store_true", help="Print the build plan without running it")
    p.set_defaults(func=cmd_build)

    p = sub.add_parser("build-multiple", help="Build multiple versions")
    p.add_argument("versions", nargs="+", metavar="version")
    p.set_defaults(func=cmd_build_multiple)

    p = sub.add_parser("list", help="List available versions")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("installed", help="List installed versions")
    p.set_defaults(func=cmd_installed)

    p = sub.add_parser("test", help="Test specific version")
    p.add_argument("version")
    p.set_defaults(func=cmd_test)

    p = sub.add_parser("switcher", help="Create version switcher script")
    p.set_defaults(func=cmd_switcher)

    sub.add_parser("help", help="Show this help message")
    return parser


def report_error(error: VersionManagerError) -> None:
    logger = get_logger()
    logger.error(error.message)
    if error.remediation:
        logger.warning(error.remediation)


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the builder tool."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, log_file=args.log_file)

    if args.command in (None, "help"):
        parser.print_help()
        return 0

    try:
        config = load_config(args.config, verbose=args.verbose)
    except ValueError as e:
        get_logger().error(str(e))
        return 1

    try:
        return args.func(args, config)
    except VersionManagerError as e:
        report_error(e)
        return 1


def run() -> None:
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print(f"\n{colorize('Interrupted', BLUE)}", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()
