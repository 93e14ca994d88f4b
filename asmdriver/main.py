"""Main CLI entry point for asmdriver.

Positional arguments are assemblies (.exe/.dll), solutions (.sln),
configuration files (.buildconfig) or assembly-qualified names.
"""

import argparse
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler

from asmdriver import __version__
from asmdriver.cli.build import build_command

logger = logging.getLogger("asmdriver.cli")

USAGE_TEXT = """\
Specify one or more compiled assemblies (dll/exe) to translate them.
You can also specify solution files (sln) to build them and automatically
translate their output(s).
Specify the path of a .buildconfig file to load settings from it.
"""


def setup_logging(
    verbose: bool = False,
    console: Optional[Console] = None,
    log_file: Optional[str] = None,
) -> None:
    """Setup logging configuration with Rich integration.

    Args:
        verbose: Enable verbose logging.
        console: Rich Console instance for coordinated output (optional).
        log_file: Also write log records to this file (optional).
    """
    level = logging.DEBUG if verbose else logging.INFO

    handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        log_time_format="[%H:%M:%S]",
    )
    handlers: List[logging.Handler] = [handler]

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(name)s] [%(levelname)s] %(message)s")
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format="[%(name)s] [%(levelname)s] %(message)s",
        handlers=handlers,
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="asmdriver",
        description=f"asmdriver v{__version__} - multi-assembly translation driver",
        epilog=USAGE_TEXT,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "files",
        nargs="*",
        help="Assemblies, solutions, .buildconfig files or assembly-qualified names",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--log-file", help="Also write the console log to this file")
    parser.add_argument(
        "--toolchain",
        help="Collaborator toolchain as MODULE:ATTR (default: first installed entry point)",
    )
    parser.add_argument(
        "-o", "--out", help="Output directory for translated files and build logs"
    )
    parser.add_argument(
        "--no-auto-config",
        action="store_true",
        help="Do not load same-named .buildconfig files next to solutions and assemblies",
    )
    parser.add_argument(
        "--no-threads",
        action="store_true",
        help="Do not let the translator use multiple threads",
    )
    parser.add_argument(
        "--suppress-bug-check",
        action="store_true",
        help="Skip bug checks against the runtime and standard libraries",
    )

    builder = parser.add_argument_group("Solution builder options")
    builder.add_argument("--configuration", help="Build configuration to use (like 'Debug')")
    builder.add_argument("--platform", help="Build platform to use (like 'x86')")
    builder.add_argument("--target", help="Build target to use (default: 'Build')")
    builder.add_argument(
        "--log-verbosity",
        choices=["Quiet", "Minimal", "Normal", "Detailed", "Diagnostic"],
        help="Build tool log verbosity",
    )

    assemblies = parser.add_argument_group("Assembly options")
    assemblies.add_argument(
        "-p", "--proxy", action="append", help="Load a type proxy assembly (repeatable)"
    )
    assemblies.add_argument(
        "-i",
        "--ignore",
        action="append",
        help="Regular expression for assemblies to ignore (repeatable)",
    )
    assemblies.add_argument(
        "-s",
        "--stub",
        action="append",
        help="Regular expression for assemblies to stub (repeatable)",
    )
    assemblies.add_argument(
        "--no-deps", action="store_true", help="Do not translate assembly dependencies"
    )
    assemblies.add_argument(
        "--no-defaults",
        action="store_true",
        help="Do not apply the built-in default configuration",
    )
    assemblies.add_argument(
        "--no-local-proxies",
        action="store_true",
        help="Do not use proxy types from translated assemblies",
    )
    assemblies.add_argument(
        "--framework-version",
        type=float,
        help="Version of the framework proxies to use (default: 4.0)",
    )

    profiles = parser.add_argument_group("Profile options")
    profiles.add_argument(
        "--no-autoload-profiles",
        action="store_true",
        help="Do not load profiles advertised by installed packages",
    )
    profiles.add_argument(
        "--no-autoload-analyzers",
        action="store_true",
        help="Do not load analyzers advertised by installed packages",
    )
    profiles.add_argument(
        "--profile-module",
        action="append",
        help="Load profiles/analyzers from MODULE:ATTR (repeatable)",
    )
    profiles.add_argument("--default-profile", help="Name of the profile to use by default")

    codegen = parser.add_argument_group("Code generator options")
    codegen.add_argument(
        "--no-struct-copy-elimination", action="store_true", help="Keep struct copies"
    )
    codegen.add_argument(
        "--no-temporary-elimination", action="store_true", help="Keep temporary locals"
    )
    codegen.add_argument(
        "--no-operator-simplification",
        action="store_true",
        help="Do not simplify operators and special method calls",
    )
    codegen.add_argument(
        "--no-loop-simplification", action="store_true", help="Do not simplify loop blocks"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point.

    Returns:
        int: Exit code (the total translation failure count).
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.files:
        print(f"==== asmdriver v{__version__} ====")
        parser.print_help()
        return 0

    console = Console(stderr=True)
    setup_logging(args.verbose, console=console, log_file=args.log_file)

    return build_command(args, console=console)


if __name__ == "__main__":
    sys.exit(main())
