"""Build-group orchestration.

The orchestrator turns command-line tokens into build groups and drives
every file of every group through the translation pipeline:

    CollectingInputs -> ResolvingSolutions -> ResolvingLooseAssemblies
    -> Deduplicating -> PerGroupPipeline -> Done

All planning (input validation, solution builds, deduplication) finishes
before the first translation starts, so a missing input aborts the run
before any output is written.
"""

from __future__ import annotations

import logging
import os
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from asmdriver.config.loader import load_configuration_file, load_defaults
from asmdriver.config.locator import CONFIG_EXTENSION, locate_config_file, solution_config_path
from asmdriver.config.schema import Configuration, merge_configurations
from asmdriver.errors import (
    ConfigurationError,
    FATAL_EXIT_CODE,
    MissingInputError,
    MissingOutputDirectoryError,
    ProfileNotFoundError,
    ToolchainError,
)
from asmdriver.graph.references import deduplicate
from asmdriver.plugins.base import BaseProfile
from asmdriver.runtime.build_group import COMMAND_LINE_GROUP, BuildGroup
from asmdriver.runtime.build_log import write_solution_log, write_translation_log
from asmdriver.runtime.context import RunContext
from asmdriver.runtime.lifecycle import BuildPhase
from asmdriver.runtime.progress import TranslationListener
from asmdriver.runtime.results import (
    ASSEMBLY_EXTENSIONS,
    BuildResult,
    TranslationRequest,
    TranslationResult,
    normalize_build_result,
)
from asmdriver.runtime.toolchain import Toolchain
from asmdriver.runtime.variables import LiteralBinding, VariableSet
from asmdriver.utils.path_utils import ensure_directory, map_path, shorten_path

logger = logging.getLogger("asmdriver.runtime.orchestrator")

SOLUTION_EXTENSION = ".sln"
DEFAULT_BUILD_TARGET = "Build"

ListenerFactory = Callable[[str], TranslationListener]


@dataclass
class CommandLineInputs:
    """Command-line tokens sorted by kind, each in command-line order."""

    config_files: List[str] = field(default_factory=list)
    solutions: List[str] = field(default_factory=list)
    assemblies: List[str] = field(default_factory=list)
    assembly_names: List[str] = field(default_factory=list)
    unrecognized: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (
            self.config_files or self.solutions or self.assemblies or self.assembly_names
        )


def _is_assembly_name(token: str) -> bool:
    # "Core, Version=1.0.0.0" has an "extension" containing ',', ' ' or '='.
    suffix = os.path.splitext(token)[1]
    return any(char in suffix for char in ", =")


def classify_inputs(
    tokens: Sequence[str], config_extension: str = CONFIG_EXTENSION
) -> CommandLineInputs:
    """Sort raw positional arguments into configuration files, solutions,
    binaries and assembly-qualified names."""
    inputs = CommandLineInputs()
    for token in tokens:
        suffix = os.path.splitext(token)[1].lower()
        if _is_assembly_name(token):
            inputs.assembly_names.append(token)
        elif suffix == config_extension:
            inputs.config_files.append(token)
        elif suffix == SOLUTION_EXTENSION:
            inputs.solutions.append(token)
        elif suffix in ASSEMBLY_EXTENSIONS:
            inputs.assemblies.append(token)
        else:
            inputs.unrecognized.append(token)
    return inputs


@dataclass
class GroupPlan:
    """A build group before deduplication."""

    name: str
    base_configuration: Configuration
    base_variables: VariableSet
    candidates: List[str]
    profile: BaseProfile
    deduplicate: bool = False


@dataclass
class RunSummary:
    """Outcome of a run.

    Attributes:
        groups: Build groups that were scheduled.
        translated: Files handed to the translator, in order.
        ignored: Files skipped by an ignore pattern.
        failure_count: Translation failures summed over all files.
    """

    groups: List[BuildGroup] = field(default_factory=list)
    translated: List[str] = field(default_factory=list)
    ignored: List[str] = field(default_factory=list)
    failure_count: int = 0

    @property
    def exit_code(self) -> int:
        """Process status: 0 for a clean run, else the failure count capped
        below ``FATAL_EXIT_CODE`` so it survives truncation to one byte."""
        if self.failure_count <= 0:
            return 0
        return min(self.failure_count, FATAL_EXIT_CODE - 1)


class BuildOrchestrator:
    """Plans build groups and runs the per-file translation pipeline."""

    def __init__(
        self,
        toolchain: Toolchain,
        context: RunContext,
        command_line: Optional[Configuration] = None,
        listener_factory: ListenerFactory = TranslationListener,
        defaults_loader: Callable[[], Configuration] = load_defaults,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            toolchain: External collaborators.
            context: Run-scoped registry and caches.
            command_line: Configuration layer built from command-line flags.
            listener_factory: Creates the translation listener for a file.
            defaults_loader: Returns the built-in default configuration.
        """
        self.toolchain = toolchain
        self.context = context
        self.flags = command_line or Configuration()
        self.listener_factory = listener_factory
        self.defaults_loader = defaults_loader

        self.phase: Optional[BuildPhase] = None
        self.command_line: Configuration = self.flags
        self.base_configuration: Configuration = Configuration()

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def run(self, tokens: Sequence[str]) -> RunSummary:
        """Plan and execute a full run for the given positional arguments."""
        inputs = self.collect_inputs(tokens)
        plans = self.resolve_solutions(inputs)
        plans.extend(self.resolve_loose_assemblies(inputs))
        groups = self.deduplicate(plans)
        summary = self.run_groups(groups)
        self._enter(BuildPhase.DONE)
        return summary

    def _enter(self, phase: BuildPhase) -> None:
        self.phase = phase
        logger.debug("Entering phase: %s", phase)

    # ------------------------------------------------------------------
    # CollectingInputs
    # ------------------------------------------------------------------

    def collect_inputs(self, tokens: Sequence[str]) -> CommandLineInputs:
        """Classify tokens and establish the command-line and base layers.

        Raises:
            MissingInputError: If a named input file does not exist.
            ConfigurationError: If a configuration file is malformed.
        """
        self._enter(BuildPhase.COLLECTING_INPUTS)
        inputs = classify_inputs(tokens)

        for token in inputs.unrecognized:
            logger.warning("Ignoring argument '%s': unrecognized file type", token)

        # Fail early on any missing input, before any heavy work begins.
        for filename in inputs.config_files + inputs.solutions + inputs.assemblies:
            if not os.path.isfile(filename):
                raise MissingInputError(filename)

        file_layers = [load_configuration_file(fn) for fn in inputs.config_files]
        self.command_line = merge_configurations(Configuration(), *file_layers, self.flags)

        if self.command_line.apply_defaults is False:
            self.base_configuration = Configuration()
        else:
            self.base_configuration = self.defaults_loader()

        return inputs

    def _auto_load_enabled(self, configuration: Configuration) -> bool:
        effective = merge_configurations(configuration, self.command_line)
        return effective.auto_load_config_files is not False

    # ------------------------------------------------------------------
    # ResolvingSolutions
    # ------------------------------------------------------------------

    def resolve_solutions(self, inputs: CommandLineInputs) -> List[GroupPlan]:
        """Build each solution and plan a group from its outputs."""
        self._enter(BuildPhase.RESOLVING_SOLUTIONS)
        if not inputs.solutions:
            return []

        if self.toolchain.builder is None:
            raise ToolchainError("Solutions were named but the toolchain has no solution builder")

        plans: List[GroupPlan] = []
        for solution in inputs.solutions:
            plan = self._resolve_solution(os.path.abspath(solution))
            if plan is not None:
                plans.append(plan)
        return plans

    def _resolve_solution(self, solution: str) -> Optional[GroupPlan]:
        solution_dir = os.path.dirname(solution)

        solution_layers: List[Configuration] = []
        if self._auto_load_enabled(self.base_configuration):
            config_path = solution_config_path(solution)
            if config_path is not None:
                solution_layers.append(load_configuration_file(config_path))

        merged_solution = merge_configurations(self.base_configuration, *solution_layers)
        config = merge_configurations(merged_solution, self.command_line)
        if not config.output_directory:
            raise MissingOutputDirectoryError(solution)
        builder_opts = config.solution_builder

        logger.info("Building solution '%s'", shorten_path(solution))
        build_started = time.perf_counter()
        build_result = self.toolchain.builder.build(  # type: ignore[union-attr]
            solution,
            builder_opts.configuration,
            builder_opts.platform,
            builder_opts.target or DEFAULT_BUILD_TARGET,
            builder_opts.log_verbosity,
        )
        build_result = normalize_build_result(build_result)
        build_seconds = time.perf_counter() - build_started

        profile = self.context.registry.select_profile(build_result)

        variables = config.apply_to(VariableSet())
        variables["SolutionDirectory"] = LiteralBinding(solution_dir)
        primary = self._primary_output(build_result)
        if primary is not None:
            variables.set_assembly_path(primary)

        # Strict expansion fails before anything is written for this solution.
        extra_outputs = [
            variables.expand_path(extra, strict=True)
            for extra in config.solution_builder.extra_outputs
        ]

        process_started = time.perf_counter()
        profile.process_build_result(variables, profile.adapt_configuration(config), build_result)
        process_seconds = time.perf_counter() - process_started

        log_dir = variables.expand_path("%OutputDirectory%")
        write_solution_log(
            log_dir, solution, build_result, build_seconds, profile.name, process_seconds
        )

        candidates = list(build_result.output_files) + extra_outputs

        if not candidates:
            logger.warning("Solution '%s' produced no output files", shorten_path(solution))
            return None

        return GroupPlan(
            name=solution,
            base_configuration=merged_solution,
            base_variables=variables,
            candidates=candidates,
            profile=profile,
            deduplicate=True,
        )

    @staticmethod
    def _primary_output(build_result: BuildResult) -> Optional[str]:
        for extension in (".exe", ".dll"):
            for output in build_result.output_files:
                if Path(output).suffix.lower() == extension:
                    return output
        return None

    # ------------------------------------------------------------------
    # ResolvingLooseAssemblies
    # ------------------------------------------------------------------

    def resolve_loose_assemblies(self, inputs: CommandLineInputs) -> List[GroupPlan]:
        """Plan one group for the binaries and assembly names given directly."""
        self._enter(BuildPhase.RESOLVING_LOOSE_ASSEMBLIES)

        resolved: List[str] = []
        if inputs.assembly_names:
            if self.toolchain.resolver is None:
                raise ToolchainError(
                    "Assembly names were given but the toolchain has no assembly resolver"
                )
            for name in inputs.assembly_names:
                path = self.toolchain.resolver.resolve(name)
                if path is None:
                    logger.warning("Could not resolve assembly '%s'", name)
                    continue
                resolved.append(path)

        files = list(inputs.assemblies) + resolved
        if not files:
            return []

        for filename in files:
            if not os.path.isfile(filename):
                raise MissingInputError(filename)

        return [
            GroupPlan(
                name=COMMAND_LINE_GROUP,
                base_configuration=self.base_configuration,
                base_variables=self.command_line.apply_to(VariableSet()),
                candidates=[os.path.abspath(fn) for fn in files],
                profile=self.context.registry.default_profile,
            )
        ]

    # ------------------------------------------------------------------
    # Deduplicating
    # ------------------------------------------------------------------

    def deduplicate(self, plans: Sequence[GroupPlan]) -> List[BuildGroup]:
        """Turn plans into build groups, suppressing redundant solution outputs."""
        self._enter(BuildPhase.DEDUPLICATING)
        groups: List[BuildGroup] = []

        for plan in plans:
            files = list(plan.candidates)
            skipped: List[str] = []
            if plan.deduplicate:
                result = deduplicate(plan.candidates, self.toolchain.reader)
                files, skipped = result.keep, result.skip

            groups.append(
                BuildGroup(
                    name=plan.name,
                    base_configuration=plan.base_configuration,
                    base_variables=plan.base_variables,
                    files_to_build=files,
                    profile=plan.profile,
                    skipped_assemblies=skipped,
                )
            )
        return groups

    # ------------------------------------------------------------------
    # PerGroupPipeline
    # ------------------------------------------------------------------

    def run_groups(self, groups: Sequence[BuildGroup]) -> RunSummary:
        """Translate every file of every group, in order."""
        self._enter(BuildPhase.PER_GROUP_PIPELINE)
        summary = RunSummary(groups=list(groups))

        if not groups:
            logger.warning("No assemblies specified to translate. Exiting.")
            return summary

        for group in groups:
            for filename in group.files_to_build:
                failures = self.translate_file(group, filename, summary)
                summary.failure_count += failures

        return summary

    def _is_ignored(self, configuration: Configuration, filename: str) -> bool:
        for pattern in configuration.assemblies.ignored:
            try:
                if re.search(pattern, filename, re.IGNORECASE):
                    return True
            except re.error as exc:
                raise ConfigurationError(f"invalid ignore pattern '{pattern}': {exc}") from exc
        return False

    def _resolve_profile(self, group: BuildGroup, configuration: Configuration) -> BaseProfile:
        if configuration.profile is None:
            return group.profile
        profile = self.context.registry.get_profile(configuration.profile)
        if profile is None:
            raise ProfileNotFoundError(configuration.profile)
        return profile

    def _map_existing(self, paths: List[str], variables: VariableSet) -> List[str]:
        mapped = (map_path(p, variables, ensure_exists=True, report_errors=True) for p in paths)
        return [p for p in mapped if p is not None]

    def _type_info(self, configuration: Configuration) -> object:
        translator = self.toolchain.translator
        if configuration.reuse_type_info_across_assemblies is False:
            self.context.type_info_cache.invalidate()
            return translator.load_type_info(configuration)
        return self.context.type_info_cache.get(
            configuration.assemblies_key(),
            lambda: translator.load_type_info(configuration),
        )

    def translate_file(self, group: BuildGroup, filename: str, summary: RunSummary) -> int:
        """Run the per-file pipeline and return the file's failure count."""
        group_config = group.base_configuration

        if self._is_ignored(merge_configurations(group_config, self.command_line), filename):
            logger.info("Ignoring build result '%s' based on configuration.", Path(filename).name)
            summary.ignored.append(filename)
            return 0

        file_layers: List[Configuration] = []
        if self._auto_load_enabled(group_config):
            config_path = locate_config_file(filename)
            if config_path is not None:
                file_layers.append(load_configuration_file(config_path))

        local = merge_configurations(group_config, *file_layers, self.command_line)
        profile = self._resolve_profile(group, local)
        local = profile.adapt_configuration(local)

        variables = local.apply_to(group.base_variables)
        variables.set_assembly_path(filename)

        local.assemblies.proxies = self._map_existing(local.assemblies.proxies, variables)
        local.assemblies.translate_additional = self._map_existing(
            local.assemblies.translate_additional, variables
        )

        if not local.output_directory:
            raise MissingOutputDirectoryError(filename)
        output_dir = variables.expand_path(local.output_directory)

        analyzers = self.context.registry.list_analyzers()
        for analyzer in analyzers:
            analyzer.set_configuration(local)

        listener = self.listener_factory(filename)
        try:
            result: TranslationResult = self.toolchain.translator.translate(
                TranslationRequest(
                    filename=filename,
                    configuration=local,
                    variables=variables,
                    listener=listener,
                    type_info=self._type_info(local),
                    analyzers=analyzers,
                )
            )
        finally:
            listener.close()
        summary.translated.append(filename)

        for skipped in group.skipped_assemblies:
            if not self.context.processed_assemblies.claim(skipped):
                continue
            logger.info("Processing '%s'", Path(skipped).name)
            profile.process_skipped_assembly(local, skipped, result)

        ensure_directory(output_dir)
        logger.info("Saving output to '%s'.", shorten_path(output_dir) + os.sep)

        # The log records the profile that was actually used.
        local.profile = profile.name

        if listener.ignored_methods:
            logger.warning(
                "%d method(s) were ignored during translation. See the log for a list.",
                len(listener.ignored_methods),
            )

        write_translation_log(output_dir, local, filename, result, listener.ignored_methods)
        profile.write_outputs(variables, result, output_dir, Path(filename).name + ".")

        if result.failure_count:
            logger.warning(
                "%d failure(s) while translating '%s'", result.failure_count, Path(filename).name
            )
        return result.failure_count


__all__ = [
    "BuildOrchestrator",
    "CommandLineInputs",
    "GroupPlan",
    "RunSummary",
    "classify_inputs",
]
