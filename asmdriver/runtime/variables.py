"""Variable sets used to expand ``%name%`` placeholders in path settings.

Bindings are plain data:

* ``LiteralBinding``  - a fixed string.
* ``TemplateBinding`` - a template expanded against the same set at
  lookup time, so ``OutputDirectory = "%AssemblyDirectory%/out"`` follows
  whichever assembly is currently being processed.
* ``DeferredBinding`` - a zero-argument producer for collaborators that
  compute values on demand.

Expansion is a function of (template, current bindings). Unresolved
tokens pass through unchanged unless ``strict`` is requested.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Union

from asmdriver.errors import UnresolvedVariableError, VariableExpansionError

logger = logging.getLogger("asmdriver.runtime.variables")

_TOKEN_RE = re.compile(r"%([A-Za-z_][A-Za-z0-9_.\-]*)%")

# Nested templates deeper than this are treated as a reference cycle.
MAX_EXPANSION_DEPTH = 16


@dataclass(frozen=True)
class LiteralBinding:
    """Binding to a fixed string value."""

    value: str

    def resolve(self, variables: "VariableSet", depth: int) -> str:
        return self.value


@dataclass(frozen=True)
class TemplateBinding:
    """Binding whose value is another template, expanded lazily."""

    template: str

    def resolve(self, variables: "VariableSet", depth: int) -> str:
        return variables._expand(self.template, strict=False, depth=depth + 1)


@dataclass(frozen=True)
class DeferredBinding:
    """Binding computed by a zero-argument producer on every lookup."""

    producer: Callable[[], str]

    def resolve(self, variables: "VariableSet", depth: int) -> str:
        return str(self.producer())


Binding = Union[LiteralBinding, TemplateBinding, DeferredBinding]
BindingValue = Union[Binding, str, Callable[[], str]]


def _to_binding(value: BindingValue) -> Binding:
    if isinstance(value, (LiteralBinding, TemplateBinding, DeferredBinding)):
        return value
    if isinstance(value, str):
        return TemplateBinding(value) if _TOKEN_RE.search(value) else LiteralBinding(value)
    if callable(value):
        return DeferredBinding(value)
    raise TypeError(f"Unsupported variable binding: {value!r}")


class VariableSet:
    """Case-insensitive mapping from variable names to bindings."""

    def __init__(self, bindings: Optional[Dict[str, BindingValue]] = None) -> None:
        # lower-case key -> (display name, binding)
        self._bindings: Dict[str, tuple[str, Binding]] = {}
        for name, value in (bindings or {}).items():
            self[name] = value

    def __setitem__(self, name: str, value: BindingValue) -> None:
        self._bindings[name.lower()] = (name, _to_binding(value))

    def __getitem__(self, name: str) -> str:
        try:
            _, binding = self._bindings[name.lower()]
        except KeyError:
            raise KeyError(name) from None
        return binding.resolve(self, 0)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._bindings

    def __delitem__(self, name: str) -> None:
        del self._bindings[name.lower()]

    def __iter__(self) -> Iterator[str]:
        return (display for display, _ in self._bindings.values())

    def __len__(self) -> int:
        return len(self._bindings)

    def __repr__(self) -> str:
        return f"VariableSet({sorted(self)!r})"

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        if name not in self:
            return default
        return self[name]

    def binding(self, name: str) -> Optional[Binding]:
        entry = self._bindings.get(name.lower())
        return entry[1] if entry else None

    def copy(self) -> "VariableSet":
        """Return an independent copy sharing no mutable state."""
        clone = VariableSet()
        clone._bindings = dict(self._bindings)
        return clone

    def set_assembly_path(self, path: Union[str, Path]) -> None:
        """Bind the assembly-derived variables for the file being processed."""
        full = os.path.abspath(str(path))
        self["AssemblyPath"] = LiteralBinding(full)
        self["AssemblyDirectory"] = LiteralBinding(os.path.dirname(full))
        self["AssemblyFileName"] = LiteralBinding(os.path.basename(full))
        self["AssemblyName"] = LiteralBinding(Path(full).stem)

    def unresolved_tokens(self, template: str) -> List[str]:
        """Return token names in ``template`` that have no binding."""
        return [
            match.group(1)
            for match in _TOKEN_RE.finditer(template)
            if match.group(1) not in self
        ]

    def expand(self, template: str, strict: bool = False) -> str:
        """Substitute every ``%name%`` token in ``template``.

        Args:
            template: String possibly containing ``%name%`` tokens.
            strict: Raise ``UnresolvedVariableError`` for unknown tokens
                instead of leaving them in place.

        Returns:
            The expanded string.
        """
        return self._expand(template, strict=strict, depth=0)

    def expand_path(self, path: Union[str, Path], strict: bool = False) -> str:
        """Expand ``path`` and normalize its separators."""
        expanded = self.expand(str(path), strict=strict)
        if not expanded:
            return expanded
        return os.path.normpath(expanded.replace("\\", "/"))

    def _expand(self, template: str, strict: bool, depth: int) -> str:
        if depth > MAX_EXPANSION_DEPTH:
            raise VariableExpansionError(
                f"Variable expansion of '{template}' exceeded {MAX_EXPANSION_DEPTH} levels"
            )

        missing = self.unresolved_tokens(template)
        if missing:
            if strict:
                raise UnresolvedVariableError(template, missing)
            logger.debug("Leaving unresolved variable(s) %s in '%s'", missing, template)

        def _substitute(match: "re.Match[str]") -> str:
            entry = self._bindings.get(match.group(1).lower())
            if entry is None:
                return match.group(0)
            return entry[1].resolve(self, depth)

        return _TOKEN_RE.sub(_substitute, template)


__all__ = [
    "VariableSet",
    "LiteralBinding",
    "TemplateBinding",
    "DeferredBinding",
    "Binding",
    "MAX_EXPANSION_DEPTH",
]
