"""Build command implementation."""

from __future__ import annotations

import logging
import os
import sys
import time
import traceback
from functools import partial
from typing import Optional

from rich.console import Console

from asmdriver.config.schema import Configuration
from asmdriver.errors import FATAL_EXIT_CODE, AsmDriverError
from asmdriver.plugins.registry import (
    ANALYZER_ENTRY_POINT_GROUP,
    PROFILE_ENTRY_POINT_GROUP,
    PluginRegistry,
)
from asmdriver.runtime.context import RunContext
from asmdriver.runtime.orchestrator import BuildOrchestrator
from asmdriver.runtime.progress import RichTranslationListener, TranslationListener
from asmdriver.runtime.toolchain import Toolchain, load_toolchain

logger = logging.getLogger("asmdriver.cli.build")


def configuration_from_args(args) -> Configuration:
    """Build the command-line configuration layer from parsed flags.

    Only flags the user actually passed become present values; everything
    else stays ``None`` so lower layers decide.
    """
    config = Configuration()

    if args.out:
        config.output_directory = os.path.abspath(args.out)
    if args.no_auto_config:
        config.auto_load_config_files = False
    if args.no_threads:
        config.use_threads = False
    if args.suppress_bug_check:
        config.run_bug_checks = False
    if args.no_deps:
        config.include_dependencies = False
    if args.no_defaults:
        config.apply_defaults = False
    if args.no_local_proxies:
        config.use_local_proxies = False
    if args.framework_version is not None:
        config.framework_version = args.framework_version

    builder = config.solution_builder
    builder.configuration = args.configuration
    builder.platform = args.platform
    builder.target = args.target
    builder.log_verbosity = args.log_verbosity

    assemblies = config.assemblies
    assemblies.proxies.extend(os.path.abspath(p) for p in args.proxy or [])
    assemblies.ignored.extend(args.ignore or [])
    assemblies.stubbed.extend(args.stub or [])

    codegen = config.code_generator
    if args.no_struct_copy_elimination:
        codegen.eliminate_struct_copies = False
    if args.no_temporary_elimination:
        codegen.eliminate_temporaries = False
    if args.no_operator_simplification:
        codegen.simplify_operators = False
    if args.no_loop_simplification:
        codegen.simplify_loops = False

    return config


def build_registry(args, registry: Optional[PluginRegistry] = None) -> PluginRegistry:
    """Populate the plugin registry according to the profile/analyzer flags."""
    registry = registry or PluginRegistry.get_instance()

    if not args.no_autoload_profiles:
        registry.load_entry_points(PROFILE_ENTRY_POINT_GROUP)
    if not args.no_autoload_analyzers:
        registry.load_entry_points(ANALYZER_ENTRY_POINT_GROUP)

    for spec in args.profile_module or []:
        try:
            registry.load_from_module(spec)
        except (ImportError, AttributeError, TypeError, ValueError) as exc:
            logger.warning("Failed to load profile '%s': %s", spec, exc)

    if args.default_profile:
        registry.set_default_profile(args.default_profile)

    return registry


def build_command(
    args,
    toolchain: Optional[Toolchain] = None,
    registry: Optional[PluginRegistry] = None,
    console: Optional[Console] = None,
) -> int:
    """Execute the build.

    Args:
        args: Parsed command-line arguments.
        toolchain: Collaborators to use; loaded from ``args.toolchain``
            or entry points when omitted.
        registry: Plugin registry; the process-wide one when omitted.
        console: Rich console for progress output.

    Returns:
        int: Total translation failure count, or ``FATAL_EXIT_CODE``.
    """
    try:
        return _build_command_impl(args, toolchain, registry, console)
    except AsmDriverError as exc:
        logger.error("%s", exc)
        return FATAL_EXIT_CODE


def _build_command_impl(
    args,
    toolchain: Optional[Toolchain],
    registry: Optional[PluginRegistry],
    console: Optional[Console],
) -> int:
    started = time.perf_counter()

    registry = build_registry(args, registry)
    toolchain = toolchain or load_toolchain(args.toolchain)
    context = RunContext(registry=registry)

    if console is not None and console.is_terminal:
        listener_factory = partial(RichTranslationListener, console=console)
    else:
        listener_factory = TranslationListener

    orchestrator = BuildOrchestrator(
        toolchain=toolchain,
        context=context,
        command_line=configuration_from_args(args),
        listener_factory=listener_factory,
    )

    try:
        summary = orchestrator.run(args.files)
    except AsmDriverError:
        raise
    except KeyboardInterrupt:
        logger.warning("Build interrupted by user (Ctrl+C)")
        return 130
    except (OSError, RuntimeError) as exc:
        print(f"FATAL ERROR: {exc}", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)
        return FATAL_EXIT_CODE
    finally:
        context.close()

    elapsed = time.perf_counter() - started
    logger.info(
        "Translated %d file(s) in %d group(s) in %.2fs with %d failure(s)",
        len(summary.translated),
        len(summary.groups),
        elapsed,
        summary.failure_count,
    )
    return summary.exit_code


__all__ = ["build_command", "build_registry", "configuration_from_args"]
