"""Tests for reading configuration layers from disk and inline sources."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from asmdriver.config.loader import (
    load_configuration,
    load_configuration_file,
    load_defaults,
)
from asmdriver.config.schema import Configuration
from asmdriver.errors import ConfigurationError


def test_load_json_buildconfig_records_provenance(tmp_path: Path) -> None:
    cfg = tmp_path / "App.exe.buildconfig"
    cfg.write_text(
        json.dumps(
            {
                "OutputDirectory": "%ConfigDirectory%/out",
                "Assemblies": {"Proxies": ["Proxies.dll"]},
            }
        ),
        encoding="utf-8",
    )

    config = load_configuration_file(cfg)

    assert config.output_directory == "%ConfigDirectory%/out"
    assert config.assemblies.proxies == ["Proxies.dll"]
    assert config.path == str(tmp_path.resolve())
    assert config.contributing_paths == [str(cfg.resolve())]


def test_load_toml_buildconfig(tmp_path: Path) -> None:
    cfg = tmp_path / "Lib.dll.buildconfig"
    cfg.write_text(
        'profile = "Default"\n'
        "use_threads = false\n"
        "\n"
        "[code_generator]\n"
        "simplify_loops = false\n",
        encoding="utf-8",
    )

    config = load_configuration_file(cfg)

    assert config.profile == "Default"
    assert config.use_threads is False
    assert config.code_generator.simplify_loops is False
    assert config.code_generator.simplify_operators is None


def test_toml_starting_with_table_header(tmp_path: Path) -> None:
    cfg = tmp_path / "App.exe.buildconfig"
    cfg.write_text('[assemblies]\nproxies = ["P.dll"]\n', encoding="utf-8")

    config = load_configuration_file(cfg)

    assert config.assemblies.proxies == ["P.dll"]


def test_inline_toml_starting_with_table_header() -> None:
    config = load_configuration("[code_generator]\nsimplify_loops = false\n")
    assert config.code_generator.simplify_loops is False


def test_malformed_file_is_rejected(tmp_path: Path) -> None:
    cfg = tmp_path / "bad.buildconfig"
    cfg.write_text('{"output_directory": ', encoding="utf-8")

    with pytest.raises(ConfigurationError) as excinfo:
        load_configuration_file(cfg)

    assert excinfo.value.source == str(cfg.resolve())


def test_unknown_setting_is_rejected(tmp_path: Path) -> None:
    cfg = tmp_path / "odd.json"
    cfg.write_text('{"OutputDirectry": "/out"}', encoding="utf-8")

    with pytest.raises(ConfigurationError, match="OutputDirectry"):
        load_configuration_file(cfg)


def test_unreadable_file_raises_configuration_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_configuration_file(tmp_path / "absent.buildconfig")


def test_load_configuration_accepts_none_and_dict() -> None:
    assert load_configuration(None) == Configuration()
    config = load_configuration({"include_dependencies": False})
    assert config.include_dependencies is False


def test_load_configuration_parses_inline_strings() -> None:
    from_json = load_configuration('{"framework_version": 3.5}')
    from_toml = load_configuration("framework_version = 3.5")

    assert from_json.framework_version == 3.5
    assert from_toml == from_json


def test_load_configuration_rejects_other_types() -> None:
    with pytest.raises(TypeError):
        load_configuration(42)  # type: ignore[arg-type]


def test_defaults_are_complete() -> None:
    defaults = load_defaults()

    assert defaults.auto_load_config_files is True
    assert defaults.include_dependencies is True
    assert defaults.framework_version == 4.0
    assert defaults.output_directory is None
    assert "mscorlib," in defaults.assemblies.stubbed
    assert defaults.solution_builder.target == "Build"
    assert defaults.code_generator.eliminate_temporaries is True
    assert len(defaults.contributing_paths) == 1
