"""
Command-line entry point.

Usage:
    devtools-installer                      # Check and install everything in installer.yaml
    devtools-installer go amass             # Only these tools
    devtools-installer -c tools.yaml --dry-run
"""

from __future__ import annotations

import argparse
import json
import os
import sys

from .config import DEFAULT_CONFIG_PATH, ConfigError, load_catalog
from .installer import Installer
from .logging_config import get_logger, setup_logging
from .render import Console, OutputStyle


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devtools-installer",
        description="Check for development tools and install the missing ones",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config", "-c",
        default=DEFAULT_CONFIG_PATH,
        help=f"Tool catalog YAML file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--use-default",
        action="store_true",
        help="Install tools without their own entry using the 'default' entry",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show install commands without running them",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Kill an install command after this many seconds (default: wait forever)",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the run result as JSON after the summary",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose diagnostics on stderr",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="No diagnostics on stderr (--log-file still records everything)",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write diagnostics to this file",
    )
    parser.add_argument(
        "tools",
        nargs="*",
        help="Specific tools to check (default: tool_list from the catalog)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)

    setup_logging(
        level=os.environ.get("DEVTOOLS_INSTALLER_LOG_LEVEL", "WARNING"),
        verbose=args.verbose,
        quiet=args.quiet,
        log_file=args.log_file,
    )
    logger = get_logger()

    style = OutputStyle.detect(sys.stdout, use_color=False if args.no_color else None)
    console = Console(sys.stdout, style)

    try:
        catalog = load_catalog(args.config)
    except ConfigError as e:
        logger.debug("Config load failed: %s", e.message)
        console.error(e.message)
        return 1

    if args.tools:
        catalog = catalog.select(args.tools)

    installer = Installer(
        catalog=catalog,
        console=console,
        use_default=args.use_default,
        timeout=args.timeout,
        dry_run=args.dry_run,
    )
    summary = installer.run()

    if args.json:
        print(json.dumps(summary.to_dict(), indent=2, ensure_ascii=False))

    # Individual tool failures never change the exit code
    return 0


def run() -> None:
    """Console-script wrapper translating Ctrl-C into exit code 130."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)
