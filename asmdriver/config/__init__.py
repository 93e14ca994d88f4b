"""Configuration layers, loading and discovery for asmdriver."""

from .loader import load_configuration, load_configuration_file, load_defaults
from .locator import CONFIG_EXTENSION, locate_config_file, solution_config_path
from .schema import (
    AssemblyOptions,
    CodeGeneratorOptions,
    Configuration,
    SolutionBuilderOptions,
    merge_configurations,
)

__all__ = [
    "AssemblyOptions",
    "CodeGeneratorOptions",
    "Configuration",
    "SolutionBuilderOptions",
    "merge_configurations",
    "load_configuration",
    "load_configuration_file",
    "load_defaults",
    "CONFIG_EXTENSION",
    "locate_config_file",
    "solution_config_path",
]
