"""Layered build configuration models and merge semantics.

A ``Configuration`` is one layer of settings. Layers are combined with
``merge_configurations`` in precedence order:

    built-in defaults < solution config < per-target config < command line

Models are validated with Pydantic; keys may be spelled in snake_case,
camelCase or PascalCase and unknown keys are rejected. Every field
declares how it merges through ``json_schema_extra``:

* scalar  - ``None`` means "unset, inherit"; a present override wins.
* listing - base entries followed by override entries (duplicates kept).
* mapping - key-wise, the override wins per key.
* section - nested model merged recursively with the same rules.
"""

from __future__ import annotations

import copy
import os
from typing import Any, Dict, Hashable, List, Optional

from pydantic import (
    AliasChoices,
    AliasGenerator,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    ValidationError,
    ValidationInfo,
    field_validator,
)
from pydantic.alias_generators import to_camel, to_pascal, to_snake

from asmdriver.errors import ConfigurationError
from asmdriver.runtime.variables import LiteralBinding, TemplateBinding, VariableSet

_KIND = "merge"
_PROVENANCE_FIELDS = ("path", "contributing_paths")


def scalar() -> Any:
    """Declare an optional scalar field."""
    return Field(default=None, json_schema_extra={_KIND: "scalar"})


def listing() -> Any:
    """Declare an additive list-of-strings field."""
    return Field(default_factory=list, json_schema_extra={_KIND: "listing"})


def mapping() -> Any:
    """Declare a key-wise right-biased mapping field."""
    return Field(default_factory=dict, json_schema_extra={_KIND: "mapping"})


def section(factory: type) -> Any:
    """Declare a nested, recursively merged section."""
    return Field(default_factory=factory, json_schema_extra={_KIND: "section"})


def _aliases(name: str) -> AliasChoices:
    return AliasChoices(name, to_camel(name), to_pascal(name))


def _format_errors(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
        for error in exc.errors()
    )


class _Section(BaseModel):
    """Shared merge / serialization behaviour for configuration sections."""

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        alias_generator=AliasGenerator(validation_alias=_aliases),
    )

    @classmethod
    def _merge_kinds(cls) -> Dict[str, str]:
        kinds = {}
        for name, info in cls.model_fields.items():
            extra = info.json_schema_extra
            if isinstance(extra, dict) and _KIND in extra:
                kinds[name] = str(extra[_KIND])
        return kinds

    def clone(self):
        return self.model_copy(deep=True)

    def merge_into(self, target: "_Section") -> None:
        """Apply ``self`` as an override layer onto ``target`` in place."""
        for name, kind in self._merge_kinds().items():
            value = getattr(self, name)
            if kind == "scalar":
                if value is not None:
                    setattr(target, name, value)
            elif kind == "listing":
                getattr(target, name).extend(value)
            elif kind == "mapping":
                getattr(target, name).update(copy.deepcopy(value))
            elif kind == "section":
                value.merge_into(getattr(target, name))

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: Optional[str] = None):
        """Build a section from a parsed mapping, validating keys and types.

        Args:
            data: Parsed configuration mapping.
            source: Where ``data`` came from, for error messages.

        Returns:
            The validated section.

        Raises:
            ConfigurationError: If ``data`` does not match the schema.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ConfigurationError(_format_errors(exc), source) from exc

    @field_validator("*", mode="before")
    @classmethod
    def _normalize_lists(cls, value: Any, info: ValidationInfo) -> Any:
        # A single string is accepted where a list of strings is expected.
        if cls._merge_kinds().get(info.field_name) == "listing":
            if value is None:
                return []
            if isinstance(value, str):
                return [value]
        return value


class AssemblyOptions(_Section):
    """Assembly filters and extra inputs for the translator."""

    proxies: List[StrictStr] = listing()
    ignored: List[StrictStr] = listing()
    stubbed: List[StrictStr] = listing()
    translate_additional: List[StrictStr] = listing()


class CodeGeneratorOptions(_Section):
    """Optimization toggles forwarded to the code generator."""

    eliminate_struct_copies: Optional[StrictBool] = scalar()
    eliminate_temporaries: Optional[StrictBool] = scalar()
    simplify_operators: Optional[StrictBool] = scalar()
    simplify_loops: Optional[StrictBool] = scalar()


class SolutionBuilderOptions(_Section):
    """Settings for the external solution build tool."""

    configuration: Optional[StrictStr] = scalar()
    platform: Optional[StrictStr] = scalar()
    target: Optional[StrictStr] = scalar()
    log_verbosity: Optional[StrictStr] = scalar()
    extra_outputs: List[StrictStr] = listing()


class Configuration(_Section):
    """One layer of driver settings plus the files it came from."""

    output_directory: Optional[StrictStr] = scalar()
    auto_load_config_files: Optional[StrictBool] = scalar()
    use_threads: Optional[StrictBool] = scalar()
    run_bug_checks: Optional[StrictBool] = scalar()
    framework_version: Optional[float] = scalar()
    profile: Optional[StrictStr] = scalar()
    apply_defaults: Optional[StrictBool] = scalar()
    include_dependencies: Optional[StrictBool] = scalar()
    use_local_proxies: Optional[StrictBool] = scalar()
    reuse_type_info_across_assemblies: Optional[StrictBool] = scalar()
    tune_garbage_collection: Optional[StrictBool] = scalar()

    variables: Dict[str, str] = mapping()
    profile_settings: Dict[str, Any] = mapping()
    analyzer_settings: Dict[str, Any] = mapping()

    assemblies: AssemblyOptions = section(AssemblyOptions)
    code_generator: CodeGeneratorOptions = section(CodeGeneratorOptions)
    solution_builder: SolutionBuilderOptions = section(SolutionBuilderOptions)

    # Provenance: excluded from serialization and value equality.
    path: Optional[str] = Field(default=None, exclude=True)
    contributing_paths: List[str] = Field(default_factory=list, exclude=True)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Configuration):
            return NotImplemented
        return self.model_dump() == other.model_dump()

    def merge_into(self, target: "Configuration") -> None:  # type: ignore[override]
        super().merge_into(target)
        target.contributing_paths.extend(self.contributing_paths)
        if self.path is not None:
            target.path = self.path

    def clone(self) -> "Configuration":
        return self.model_copy(deep=True)

    def to_dict(self) -> Dict[str, Any]:
        data = self.model_dump()
        data["contributing_paths"] = list(self.contributing_paths)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: Optional[str] = None) -> "Configuration":
        if isinstance(data, dict):
            data = {
                key: value
                for key, value in data.items()
                if to_snake(str(key)) not in _PROVENANCE_FIELDS
            }
        return super().from_dict(data, source)

    def apply_to(self, variables: VariableSet) -> VariableSet:
        """Return a copy of ``variables`` extended with this layer's bindings."""
        result = variables.copy()
        result["CurrentDirectory"] = LiteralBinding(os.getcwd())
        if self.path:
            result["ConfigDirectory"] = LiteralBinding(self.path)
        if self.output_directory:
            result["OutputDirectory"] = TemplateBinding(self.output_directory)
        if self.profile:
            result["Profile"] = LiteralBinding(self.profile)
        if self.framework_version is not None:
            result["FrameworkVersion"] = LiteralBinding(f"{self.framework_version:.1f}")
        for name, template in self.variables.items():
            result[name] = TemplateBinding(str(template))
        return result

    def assemblies_key(self) -> Hashable:
        """Hashable normalized view of the assembly options.

        Two configurations with the same key can share translator type
        information.
        """
        opts = self.assemblies
        return (
            tuple(opts.proxies),
            tuple(opts.ignored),
            tuple(opts.stubbed),
            tuple(opts.translate_additional),
            self.framework_version,
            self.use_local_proxies,
        )


def merge_configurations(base: Configuration, *overrides: Configuration) -> Configuration:
    """Merge override layers onto a clone of ``base``.

    Later overrides take precedence over earlier ones and all take
    precedence over ``base``. None of the operands is mutated.
    """
    result = base.clone()
    for layer in overrides:
        layer.merge_into(result)
    return result


__all__ = [
    "Configuration",
    "AssemblyOptions",
    "CodeGeneratorOptions",
    "SolutionBuilderOptions",
    "merge_configurations",
]
