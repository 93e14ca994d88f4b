"""Bundles of external collaborators.

A toolchain package exposes a ``Toolchain`` (or a zero-argument factory
returning one) either under the ``asmdriver.toolchains`` entry-point group
or through an explicit ``module:attribute`` spec.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from importlib.metadata import entry_points
from typing import Optional

from asmdriver.errors import ToolchainError
from asmdriver.plugins.registry import import_object
from asmdriver.runtime.protocols import (
    AssemblyResolver,
    MetadataReader,
    SolutionBuilder,
    Translator,
)

logger = logging.getLogger("asmdriver.runtime.toolchain")

TOOLCHAIN_ENTRY_POINT_GROUP = "asmdriver.toolchains"


@dataclass
class Toolchain:
    """The collaborators a run delegates to.

    Attributes:
        translator: Translates assemblies.
        reader: Reads assembly metadata for deduplication.
        builder: Builds solutions; required only when solutions are named.
        resolver: Resolves assembly-qualified names; required only when
            such names are named.
    """

    translator: Translator
    reader: MetadataReader
    builder: Optional[SolutionBuilder] = None
    resolver: Optional[AssemblyResolver] = None


def _coerce(obj: object, origin: str) -> Toolchain:
    if not isinstance(obj, Toolchain) and callable(obj):
        obj = obj()
    if not isinstance(obj, Toolchain):
        raise ToolchainError(f"'{origin}' did not provide a Toolchain")
    return obj


def load_toolchain(spec: Optional[str] = None) -> Toolchain:
    """Load a toolchain from ``spec`` or the first advertised entry point.

    Raises:
        ToolchainError: If nothing usable is found.
    """
    if spec:
        try:
            obj = import_object(spec)
        except (ImportError, AttributeError, ValueError) as exc:
            raise ToolchainError(f"Cannot import toolchain '{spec}': {exc}") from exc
        return _coerce(obj, spec)

    for ep in entry_points(group=TOOLCHAIN_ENTRY_POINT_GROUP):
        logger.debug("Using toolchain entry point '%s'", ep.name)
        return _coerce(ep.load(), ep.name)

    raise ToolchainError(
        "No toolchain available: pass --toolchain MODULE:ATTR or install a package "
        f"providing the '{TOOLCHAIN_ENTRY_POINT_GROUP}' entry point"
    )


__all__ = ["TOOLCHAIN_ENTRY_POINT_GROUP", "Toolchain", "load_toolchain"]
