"""End-to-end tests of the build orchestrator against fake collaborators."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from asmdriver.config.schema import Configuration
from asmdriver.errors import (
    ConfigurationError,
    MissingInputError,
    MissingOutputDirectoryError,
    ProfileNotFoundError,
    ToolchainError,
    UnresolvedVariableError,
)
from asmdriver.runtime.build_group import COMMAND_LINE_GROUP
from asmdriver.runtime.lifecycle import BuildPhase
from asmdriver.runtime.orchestrator import BuildOrchestrator, RunSummary, classify_inputs
from asmdriver.runtime.progress import TranslationListener
from asmdriver.runtime.toolchain import Toolchain


def _orchestrator(toolchain, context, out=None, **settings) -> BuildOrchestrator:
    if out is not None:
        settings["output_directory"] = str(out)
    return BuildOrchestrator(toolchain, context, Configuration.from_dict(settings))


# ----------------------------------------------------------------------
# Input classification
# ----------------------------------------------------------------------


def test_classify_inputs_sorts_tokens_by_kind() -> None:
    inputs = classify_inputs(
        [
            "Game.sln",
            "bin/App.exe",
            "settings.buildconfig",
            "Core, Version=1.0.0.0, Culture=neutral",
            "lib/Util.DLL",
            "README.md",
        ]
    )

    assert inputs.solutions == ["Game.sln"]
    assert inputs.assemblies == ["bin/App.exe", "lib/Util.DLL"]
    assert inputs.config_files == ["settings.buildconfig"]
    assert inputs.assembly_names == ["Core, Version=1.0.0.0, Culture=neutral"]
    assert inputs.unrecognized == ["README.md"]


# ----------------------------------------------------------------------
# Loose assemblies
# ----------------------------------------------------------------------


def test_loose_assemblies_are_translated_in_order(
    tmp_path, make_files, toolchain, context, fake_translator
) -> None:
    app, lib = make_files("App.exe", "Lib.dll", directory=tmp_path / "bin")
    out = tmp_path / "out"

    orchestrator = _orchestrator(toolchain, context, out)
    summary = orchestrator.run([app, lib])

    assert fake_translator.translated_names == ["App.exe", "Lib.dll"]
    assert [g.name for g in summary.groups] == [COMMAND_LINE_GROUP]
    assert summary.groups[0].skipped_assemblies == []
    assert summary.exit_code == 0
    assert orchestrator.phase is BuildPhase.DONE

    assert (out / "App.js").read_text(encoding="utf-8") == "// App.exe\n"
    assert (out / "App.exe.manifest.txt").exists()
    assert (out / "App.exe.translog").exists()
    assert (out / "Lib.dll.translog").exists()


def test_requests_carry_merged_settings(
    tmp_path, make_files, toolchain, context, fake_translator
) -> None:
    (app,) = make_files("App.exe")

    _orchestrator(toolchain, context, tmp_path / "out", use_threads=False).run([app])

    request = fake_translator.requests[0]
    assert request.use_threads is False
    assert request.configuration.framework_version == 4.0
    assert "mscorlib," in request.configuration.assemblies.stubbed
    assert request.variables["AssemblyName"] == "App"


def test_missing_input_aborts_before_translation(
    tmp_path, make_files, toolchain, context, fake_translator
) -> None:
    (app,) = make_files("App.exe")
    missing = str(tmp_path / "Missing.exe")

    with pytest.raises(MissingInputError) as excinfo:
        _orchestrator(toolchain, context, tmp_path / "out").run([app, missing])

    assert excinfo.value.path == missing
    assert fake_translator.requests == []
    assert not (tmp_path / "out").exists()


def test_missing_output_directory_is_fatal(
    make_files, toolchain, context, fake_translator
) -> None:
    (app,) = make_files("App.exe")

    with pytest.raises(MissingOutputDirectoryError):
        _orchestrator(toolchain, context).run([app])

    assert fake_translator.requests == []


def test_output_directory_may_use_assembly_variables(
    tmp_path, make_files, toolchain, context
) -> None:
    (app,) = make_files("App.exe", directory=tmp_path / "a")
    (lib,) = make_files("Lib.dll", directory=tmp_path / "b")

    _orchestrator(toolchain, context, "%AssemblyDirectory%/js").run([app, lib])

    assert (tmp_path / "a" / "js" / "App.js").exists()
    assert (tmp_path / "b" / "js" / "Lib.js").exists()


def test_no_inputs_is_a_noop(toolchain, context, fake_translator, caplog) -> None:
    summary = _orchestrator(toolchain, context, "/unused").run([])

    assert summary.groups == []
    assert summary.exit_code == 0
    assert fake_translator.requests == []
    assert "No assemblies specified to translate" in caplog.text



def test_failures_are_summed(
    tmp_path, make_files, context, fake_reader_cls, fake_translator_cls
) -> None:
    app, lib = make_files("App.exe", "Lib.dll")
    translator = fake_translator_cls(failures={"App.exe": 2, "Lib.dll": 1})
    toolchain = Toolchain(translator=translator, reader=fake_reader_cls({}))

    summary = _orchestrator(toolchain, context, tmp_path / "out").run([app, lib])

    assert summary.failure_count == 3
    assert summary.exit_code == 3
    log = (tmp_path / "out" / "App.exe.translog").read_text(encoding="utf-8")
    assert "failure 1 in App.exe" in log


def test_listener_is_closed_after_each_file(tmp_path, make_files, toolchain, context) -> None:
    app, lib = make_files("App.exe", "Lib.dll")
    listeners = []

    class ClosingListener(TranslationListener):
        closed = False

        def close(self) -> None:
            self.closed = True

    def factory(filename):
        listener = ClosingListener(filename)
        listeners.append(listener)
        return listener

    orchestrator = BuildOrchestrator(
        toolchain,
        context,
        Configuration(output_directory=str(tmp_path / "out")),
        listener_factory=factory,
    )
    orchestrator.run([app, lib])

    assert [Path(listener.filename).name for listener in listeners] == ["App.exe", "Lib.dll"]
    assert all(listener.closed for listener in listeners)


# ----------------------------------------------------------------------
# Configuration layers
# ----------------------------------------------------------------------


def test_command_line_config_file_sits_below_flags(
    tmp_path, make_files, toolchain, context, fake_translator
) -> None:
    (app,) = make_files("App.exe")
    settings = tmp_path / "settings.buildconfig"
    settings.write_text(
        json.dumps({"output_directory": str(tmp_path / "from-file"), "use_threads": False}),
        encoding="utf-8",
    )

    _orchestrator(toolchain, context, tmp_path / "from-flag").run([str(settings), app])

    assert (tmp_path / "from-flag" / "App.js").exists()
    assert not (tmp_path / "from-file").exists()
    assert fake_translator.requests[0].use_threads is False


def test_per_file_config_is_discovered(
    tmp_path, make_files, toolchain, context, fake_translator
) -> None:
    (app,) = make_files("App.exe", directory=tmp_path / "proj" / "bin")
    cfg = tmp_path / "proj" / "App.exe.buildconfig"
    cfg.write_text(
        json.dumps(
            {
                "OutputDirectory": str(tmp_path / "ignored-by-flag"),
                "CodeGenerator": {"SimplifyLoops": False},
                "Variables": {"Flavor": "debug-%AssemblyName%"},
            }
        ),
        encoding="utf-8",
    )

    _orchestrator(toolchain, context, tmp_path / "out").run([app])

    request = fake_translator.requests[0]
    assert request.configuration.code_generator.simplify_loops is False
    assert request.configuration.code_generator.simplify_operators is True
    assert str(cfg.resolve()) in request.configuration.contributing_paths
    assert request.variables["Flavor"] == "debug-App"
    assert (tmp_path / "out" / "App.js").exists()


def test_auto_config_can_be_disabled(
    tmp_path, make_files, toolchain, context, fake_translator
) -> None:
    (app,) = make_files("App.exe")
    (tmp_path / "App.exe.buildconfig").write_text('{"use_threads": false}', encoding="utf-8")

    _orchestrator(
        toolchain, context, tmp_path / "out", auto_load_config_files=False
    ).run([app])

    assert fake_translator.requests[0].use_threads is True


def test_defaults_can_be_skipped(tmp_path, make_files, toolchain, context, fake_translator) -> None:
    (app,) = make_files("App.exe")

    _orchestrator(toolchain, context, tmp_path / "out", apply_defaults=False).run([app])

    assert fake_translator.requests[0].configuration.assemblies.stubbed == []


def test_ignore_pattern_skips_file(
    tmp_path, make_files, toolchain, context, fake_translator, caplog
) -> None:
    caplog.set_level(logging.INFO, logger="asmdriver")
    app, tool = make_files("App.exe", "Tool.vshost.exe")
    (extra,) = make_files("Extra.dll")

    summary = _orchestrator(
        toolchain, context, tmp_path / "out", assemblies={"ignored": ["^.*extra\\.dll$"]}
    ).run([app, tool, extra])

    assert fake_translator.translated_names == ["App.exe"]
    assert summary.ignored == [tool, extra]
    assert "Ignoring build result 'Tool.vshost.exe'" in caplog.text


def test_missing_proxies_are_dropped(
    tmp_path, make_files, toolchain, context, fake_translator, caplog
) -> None:
    app, proxies = make_files("App.exe", "Proxies.dll", directory=tmp_path / "bin")

    _orchestrator(
        toolchain,
        context,
        tmp_path / "out",
        assemblies={"proxies": ["%AssemblyDirectory%/Proxies.dll", "%AssemblyDirectory%/Nope.dll"]},
    ).run([app])

    assert fake_translator.requests[0].configuration.assemblies.proxies == [proxies]
    assert "Could not find file" in caplog.text


# ----------------------------------------------------------------------
# Profiles
# ----------------------------------------------------------------------


def test_configured_profile_overrides_group_profile(
    tmp_path, make_files, toolchain, context, registry, recording_profile_cls
) -> None:
    profile = registry.register_profile(recording_profile_cls())
    (app,) = make_files("App.exe")

    _orchestrator(toolchain, context, tmp_path / "out", profile="RecordingProfile").run([app])

    assert profile.written == ["App.exe."]
    log = (tmp_path / "out" / "App.exe.translog").read_text(encoding="utf-8")
    assert '"profile": "RecordingProfile"' in log


def test_unknown_profile_is_fatal(tmp_path, make_files, toolchain, context) -> None:
    (app,) = make_files("App.exe")

    with pytest.raises(ProfileNotFoundError):
        _orchestrator(toolchain, context, tmp_path / "out", profile="Nope").run([app])


def test_translation_log_contents(tmp_path, make_files, toolchain, context, fake_translator) -> None:
    (app,) = make_files("App.exe")
    fake_translator.ignored["App.exe"] = [("Game.Player::Update", ["ptr", "ref"])]

    _orchestrator(toolchain, context, tmp_path / "out").run([app])

    log = (tmp_path / "out" / "App.exe.translog").read_text(encoding="utf-8")
    assert log.startswith("// asmdriver v")
    assert "Build took 0000.25 second(s)." in log
    assert '"profile": "Default"' in log
    assert "App.js" in log
    assert "Game.Player::Update because of ptr, ref" in log
    assert log.rstrip().endswith("translated")


# ----------------------------------------------------------------------
# Assembly names
# ----------------------------------------------------------------------


def test_assembly_names_are_resolved(
    tmp_path, make_files, context, fake_translator, fake_reader_cls, fake_resolver_cls, caplog
) -> None:
    (core,) = make_files("Core.dll")
    toolchain = Toolchain(
        translator=fake_translator,
        reader=fake_reader_cls({}),
        resolver=fake_resolver_cls({"Core, Version=1.0.0.0, Culture=neutral": core}),
    )

    _orchestrator(toolchain, context, tmp_path / "out").run(
        ["Core, Version=1.0.0.0, Culture=neutral", "Gone, Version=2.0.0.0, Culture=neutral"]
    )

    assert fake_translator.translated_names == ["Core.dll"]
    assert "Could not resolve assembly 'Gone, Version=2.0.0.0, Culture=neutral'" in caplog.text


def test_assembly_names_need_a_resolver(tmp_path, toolchain, context) -> None:
    with pytest.raises(ToolchainError):
        _orchestrator(toolchain, context, tmp_path / "out").run(
            ["Core, Version=1.0.0.0, Culture=neutral"]
        )


# ----------------------------------------------------------------------
# Solutions
# ----------------------------------------------------------------------


def test_solution_outputs_are_deduplicated(
    tmp_path,
    make_files,
    context,
    registry,
    fake_translator,
    fake_reader_cls,
    fake_builder_cls,
    recording_profile_cls,
) -> None:
    (solution,) = make_files("Game.sln")
    game, engine, util = make_files("Game.exe", "Engine.dll", "Util.dll", directory=tmp_path / "bin")
    (addon,) = make_files("Addon.dll", directory=tmp_path / "extra")
    builder = fake_builder_cls({"Game.sln": [game, engine, util]})
    reader = fake_reader_cls({"Game.exe": ["Engine"], "Engine.dll": ["Util"]})
    toolchain = Toolchain(translator=fake_translator, reader=reader, builder=builder)
    profile = registry.register_profile(recording_profile_cls(accepts=True))
    out = tmp_path / "out"

    summary = _orchestrator(
        toolchain,
        context,
        out,
        solution_builder={"extra_outputs": ["%SolutionDirectory%/extra/Addon.dll"]},
    ).run([solution])

    assert builder.calls == [(solution, None, None, "Build", "Quiet")]
    assert fake_translator.translated_names == ["Game.exe", "Addon.dll"]
    group = summary.groups[0]
    assert group.name == solution
    assert group.profile is profile
    assert group.skipped_assemblies == [engine, util]
    assert profile.skipped == [engine, util]
    assert len(profile.processed_builds) == 1
    assert addon in group.files_to_build

    buildlog = (out / "Game.sln.buildlog").read_text(encoding="utf-8")
    assert "produced 3 result file(s)" in buildlog
    assert "Selected profile 'RecordingProfile'" in buildlog


def test_skipped_assembly_hook_runs_once_across_groups(
    tmp_path,
    make_files,
    context,
    registry,
    fake_translator,
    fake_reader_cls,
    fake_builder_cls,
    recording_profile_cls,
) -> None:
    first, second = make_files("First.sln", "Second.sln")
    a_exe, b_exe, shared = make_files("A.exe", "B.exe", "Shared.dll", directory=tmp_path / "bin")
    builder = fake_builder_cls({"First.sln": [a_exe, shared], "Second.sln": [b_exe, shared]})
    reader = fake_reader_cls({"A.exe": ["Shared"], "B.exe": ["Shared"]})
    toolchain = Toolchain(translator=fake_translator, reader=reader, builder=builder)
    profile = registry.register_profile(recording_profile_cls(accepts=True))

    summary = _orchestrator(toolchain, context, tmp_path / "out").run([first, second])

    assert [g.skipped_assemblies for g in summary.groups] == [[shared], [shared]]
    assert profile.skipped == [shared]
    assert shared in context.processed_assemblies


def test_solution_config_applies_to_its_outputs(
    tmp_path, make_files, context, fake_translator, fake_reader_cls, fake_builder_cls
) -> None:
    (solution,) = make_files("Game.sln")
    (tmp_path / "Game.sln.buildconfig").write_text(
        json.dumps(
            {
                "OutputDirectory": "%SolutionDirectory%/web",
                "SolutionBuilder": {"Configuration": "Release"},
            }
        ),
        encoding="utf-8",
    )
    (game,) = make_files("Game.exe", directory=tmp_path / "bin")
    builder = fake_builder_cls({"Game.sln": [game]})
    toolchain = Toolchain(
        translator=fake_translator, reader=fake_reader_cls({}), builder=builder
    )

    _orchestrator(toolchain, context).run([solution])

    assert builder.calls[0][1] == "Release"
    assert (tmp_path / "web" / "Game.js").exists()
    assert (tmp_path / "web" / "Game.sln.buildlog").exists()


def test_solutions_need_a_builder(tmp_path, make_files, toolchain, context) -> None:
    (solution,) = make_files("Game.sln")

    with pytest.raises(ToolchainError):
        _orchestrator(toolchain, context, tmp_path / "out").run([solution])


# ----------------------------------------------------------------------
# Type information reuse
# ----------------------------------------------------------------------


def test_type_info_is_reused_across_files(
    tmp_path, make_files, toolchain, context, fake_translator
) -> None:
    app, lib = make_files("App.exe", "Lib.dll")

    _orchestrator(toolchain, context, tmp_path / "out").run([app, lib])

    assert fake_translator.type_info_loads == 1
    first, second = fake_translator.requests
    assert first.type_info is second.type_info


def test_type_info_reload_when_reuse_disabled(
    tmp_path, make_files, toolchain, context, fake_translator
) -> None:
    app, lib = make_files("App.exe", "Lib.dll")

    _orchestrator(
        toolchain, context, tmp_path / "out", reuse_type_info_across_assemblies=False
    ).run([app, lib])

    assert fake_translator.type_info_loads == 2


def test_type_info_reloads_when_assembly_settings_change(
    tmp_path, make_files, toolchain, context, fake_translator
) -> None:
    (app,) = make_files("App.exe", directory=tmp_path / "one")
    (lib,) = make_files("Lib.dll", directory=tmp_path / "two")
    (tmp_path / "two" / "Lib.dll.buildconfig").write_text(
        '{"assemblies": {"stubbed": ["Extra.*"]}}', encoding="utf-8"
    )

    _orchestrator(toolchain, context, tmp_path / "out").run([app, lib])

    assert fake_translator.type_info_loads == 2


def test_unresolved_extra_output_aborts_before_solution_side_effects(
    tmp_path,
    make_files,
    context,
    registry,
    fake_translator,
    fake_reader_cls,
    fake_builder_cls,
    recording_profile_cls,
) -> None:
    (solution,) = make_files("Game.sln")
    (game,) = make_files("Game.exe", directory=tmp_path / "bin")
    toolchain = Toolchain(
        translator=fake_translator,
        reader=fake_reader_cls({}),
        builder=fake_builder_cls({"Game.sln": [game]}),
    )
    profile = registry.register_profile(recording_profile_cls(accepts=True))
    out = tmp_path / "out"

    with pytest.raises(UnresolvedVariableError) as excinfo:
        _orchestrator(
            toolchain,
            context,
            out,
            solution_builder={"extra_outputs": ["%Nope%/x.dll"]},
        ).run([solution])

    assert isinstance(excinfo.value, ConfigurationError)
    assert profile.processed_builds == []
    assert not (out / "Game.sln.buildlog").exists()
    assert fake_translator.requests == []


@pytest.mark.parametrize(
    ("failures", "expected"),
    [(0, 0), (3, 3), (254, 254), (255, 254), (256, 254), (1000, 254)],
)
def test_exit_code_stays_distinct_from_fatal(failures, expected) -> None:
    summary = RunSummary(failure_count=failures)

    assert summary.exit_code == expected
    assert summary.failure_count == failures
