#!/usr/bin/env python3
"""
verilator-switch - permanent Verilator version switching via the shell rc file.

Usage:
    verilator-switch switch v4.228     # Switch permanently (asks first)
    verilator-switch v4.228            # Same as 'switch v4.228'
    verilator-switch current           # Show current configuration
    verilator-switch list              # List installed versions
    verilator-switch restore-bashrc    # Restore the original rc file
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import Mapping, Sequence

from .common import confirm, run_command
from .config import Config, load_config
from .errors import UnknownVersionError, VersionManagerError
from .logging_config import get_logger, setup_logging
from .registry import list_installed, sort_versions
from .render import BLUE, CYAN, GREEN, YELLOW, colorize, field_line, render_installed, section
from .switcher import ShellConfig, switch_version


HELP_TEXT = """\
Verilator Version Switcher - Permanent .bashrc Integration

Usage: verilator-switch <command> [version]

Commands:
  switch <version>        - Switch to specified verilator version permanently
  current                 - Show current version configuration
  list                    - List all available versions
  restore-bashrc          - Restore original .bashrc configuration
  help                    - Show this help message

Examples:
  verilator-switch switch v4.228
  source ~/.bashrc  # Apply to current session
  verilator-switch current
  verilator-switch list
  verilator-switch restore-bashrc

Important Notes:
  * All switches are permanent and update .bashrc
  * Changes affect all new shell sessions
  * Use 'source ~/.bashrc' to apply changes to the current session

Direct usage (for convenience):
  verilator-switch <version>            - Same as 'switch <version>'
"""


def version_banner(binary: str) -> str | None:
    """First line of `<binary> --version`, or None."""
    result = run_command([binary, "--version"])
    if result.returncode != 0 or not result.stdout:
        return None
    return result.stdout.strip().splitlines()[0]


def list_available(config: Config, shell: ShellConfig) -> int:
    print(colorize("Available Verilator versions:", GREEN))
    versions = sort_versions(list_installed(config.base_path, config.install_prefix, config.binary))
    render_installed(
        versions,
        current_root=shell.environ.get(shell.variable),
        empty_hint="Run 'verilator-versions build <version>' to install versions",
    )
    return 0


def show_current(config: Config, shell: ShellConfig) -> int:
    state = shell.current()

    section("Current Environment")
    if state.env_root:
        if state.env_tag:
            field_line("Current version", colorize(state.env_tag, BLUE), GREEN)
            field_line(shell.variable, state.env_root)
            binary = os.path.join(state.env_root, config.binary)
            if os.path.isfile(binary):
                field_line("Version info", version_banner(binary) or "unknown")
            else:
                field_line("Warning", f"Verilator binary not found at current {shell.variable}", YELLOW)
        else:
            print(colorize(f"{shell.variable} is set but doesn't match expected pattern", YELLOW))
    else:
        print(colorize(f"No {shell.variable} set in current environment", YELLOW))

    print("")
    section(f"{shell.path.name} Configuration")
    if not state.file_exists:
        print(colorize(f"No {shell.path.name} file found", YELLOW))
    elif state.file_root is None:
        print(colorize(f"No {shell.variable} found in {shell.path.name}", YELLOW))
    elif state.file_tag:
        field_line(f"{shell.path.name} version", colorize(state.file_tag, BLUE), GREEN)
        field_line(f"{shell.path.name} {shell.variable}", state.file_root)
        if state.pending_switch:
            print(colorize(f"Open a new shell or run 'source {shell.path}' to use it", YELLOW))
    else:
        print(colorize(f"{shell.path.name} {shell.variable} doesn't match expected pattern", YELLOW))

    print("")
    section("Available in PATH")
    if state.path_binary:
        field_line("Verilator path", state.path_binary)
        field_line("Active version", version_banner(state.path_binary) or "unknown")
    else:
        print(colorize("No verilator found in PATH", YELLOW))
    return 0


def do_switch(tag: str, config: Config, shell: ShellConfig, verbose: bool = False) -> int:
    logger = get_logger()
    try:
        result = switch_version(tag, config, shell, verbose=verbose)
    except UnknownVersionError as e:
        logger.error(e.message)
        if e.remediation:
            logger.warning(e.remediation)
        else:
            print("")
            list_available(config, shell)
        return 1

    logger.info("Permanent switch completed")
    logger.warning("Changes will take effect in new shell sessions")
    logger.warning(f"To apply to current session, run: source {shell.path}")
    print("")
    print(colorize(f"Switched to Verilator {result.tag}", GREEN))
    print(colorize(f"{shell.variable}: {result.install_dir}", CYAN))
    banner = version_banner(str(config.binary_path(tag)))
    if banner:
        print(colorize(f"Version info: {banner}", CYAN))
    return 0


def confirm_switch(tag: str, config: Config, shell: ShellConfig, verbose: bool, bare: bool) -> int:
    logger = get_logger()
    if bare:
        logger.warning(f"Switching to Verilator {tag}")
        logger.warning(f"This will update {shell.path.name} permanently")
    else:
        logger.warning(f"Performing permanent switch by updating {shell.path.name}")
        logger.warning("This will affect all new shell sessions")

    if not confirm():
        logger.warning("Switch cancelled")
        return 0
    return do_switch(tag, config, shell, verbose)


def do_restore(shell: ShellConfig) -> int:
    logger = get_logger()
    logger.warning(f"This will restore the original {shell.path.name} configuration")
    if not confirm():
        logger.warning(f"{shell.path.name} restore cancelled")
        return 0

    result = shell.restore()
    if result.from_backup:
        logger.info(f"{shell.path.name} restored from backup")
    else:
        logger.info(f"{shell.variable} lines removed ({result.lines_removed})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="verilator-switch",
        description="Verilator Version Switcher - Permanent .bashrc Integration",
        add_help=False,
    )
    parser.add_argument("--config", help="Path to a configuration file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--help", "-h", action="store_true")
    parser.add_argument("command", nargs="?", default="help")
    parser.add_argument("version", nargs="?")
    return parser


def main(argv: Sequence[str] | None = None, environ: Mapping[str, str] | None = None) -> int:
    """Main entry point for the switcher tool."""
    args = build_parser().parse_args(argv)
    setup_logging(verbose=args.verbose)
    logger = get_logger()

    if args.help or args.command == "help":
        print(HELP_TEXT, end="")
        return 0

    try:
        config = load_config(args.config, environ=environ, verbose=args.verbose)
    except ValueError as e:
        logger.error(str(e))
        return 1
    shell = ShellConfig.from_config(config, environ)

    try:
        if args.command == "switch":
            if not args.version:
                logger.error("Please specify a version to switch to")
                print("")
                list_available(config, shell)
                return 1
            return confirm_switch(args.version, config, shell, args.verbose, bare=False)
        if args.command == "current":
            return show_current(config, shell)
        if args.command == "list":
            return list_available(config, shell)
        if args.command == "restore-bashrc":
            return do_restore(shell)
        # bare version tag
        return confirm_switch(args.command, config, shell, args.verbose, bare=True)
    except VersionManagerError as e:
        logger.error(e.message)
        if e.remediation:
            logger.warning(e.remediation)
        return 1


def run() -> None:
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()
