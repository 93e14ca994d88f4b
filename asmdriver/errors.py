"""Exception hierarchy shared by the configuration and build layers.

Fatal errors derive from ``AsmDriverError`` and abort the whole run; the
CLI converts them into ``FATAL_EXIT_CODE``. Non-fatal conditions
(unreadable binaries, missing path-valued settings) are logged where they
occur and never raised past their component.
"""

from __future__ import annotations

from typing import Optional

FATAL_EXIT_CODE = 255


class AsmDriverError(Exception):
    """Base class for all fatal driver errors."""


class ConfigurationError(AsmDriverError):
    """Raised when a configuration source is malformed or inconsistent."""

    def __init__(self, message: str, source: Optional[str] = None) -> None:
        self.source = source
        if source:
            message = f"{source}: {message}"
        super().__init__(message)


class ProfileNotFoundError(ConfigurationError):
    """Raised when a configuration names a profile that is not registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"No profile named '{name}' was found. "
            "Did you load the correct profile module?"
        )


class MissingOutputDirectoryError(ConfigurationError):
    """Raised when no output directory can be resolved for a build."""

    def __init__(self, target: str) -> None:
        self.target = target
        super().__init__(f"No output directory was specified for '{target}'")


class MissingInputError(AsmDriverError, FileNotFoundError):
    """Raised when a file named on the command line does not exist."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Input file not found: {path}")

    def __str__(self) -> str:
        return f"Input file not found: {self.path}"


class ToolchainError(AsmDriverError):
    """Raised when the collaborator toolchain cannot be loaded."""


class UnreadableAssemblyError(Exception):
    """Raised by metadata readers for foreign or corrupt binaries."""

    def __init__(self, path: str, reason: str = "") -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid assembly '{path}': {reason}" if reason else path)


class VariableExpansionError(ConfigurationError, ValueError):
    """Raised when a variable template cannot be expanded."""


class UnresolvedVariableError(VariableExpansionError):
    """Raised by strict expansion when a ``%name%`` token has no binding."""

    def __init__(self, template: str, names: list[str]) -> None:
        self.template = template
        self.names = names
        super().__init__(
            f"Unresolved variable(s) {', '.join(names)} in '{template}'"
        )


__all__ = [
    "FATAL_EXIT_CODE",
    "AsmDriverError",
    "ConfigurationError",
    "ProfileNotFoundError",
    "MissingOutputDirectoryError",
    "MissingInputError",
    "ToolchainError",
    "UnreadableAssemblyError",
    "VariableExpansionError",
    "UnresolvedVariableError",
]
