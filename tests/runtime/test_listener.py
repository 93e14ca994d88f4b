"""Tests for translation listeners."""

from __future__ import annotations

import logging

from rich.console import Console

from asmdriver.runtime.progress import RichTranslationListener, TranslationListener


def test_listener_records_ignored_and_failed_methods(caplog) -> None:
    listener = TranslationListener("App.exe")

    listener.method_ignored("Game.Player::Update", ["ptr"])
    listener.method_failed("Game.Player::Draw", "unsupported opcode")
    listener.could_not_resolve("Missing", "file not found")

    assert listener.ignored_methods == [("Game.Player::Update", ("ptr",))]
    assert listener.failed_methods == ["Game.Player::Draw"]
    assert "Could not decompile method Game.Player::Draw" in caplog.text
    assert "Could not load module Missing" in caplog.text


def test_listener_logs_loads(caplog) -> None:
    caplog.set_level(logging.INFO, logger="asmdriver")
    listener = TranslationListener("App.exe")

    listener.assembly_loaded("/work/bin/Core.dll", "translated")
    listener.proxy_loaded("/work/proxies/Proxies.dll")

    assert "Core.dll (translated)" in caplog.text
    assert "Proxies.dll" in caplog.text


def test_rich_listener_tracks_stages() -> None:
    console = Console(record=True, force_terminal=False, width=100)
    listener = RichTranslationListener("App.exe", console=console)

    listener.progress("decompile", 0, 3)
    listener.progress("decompile", 2, 3)
    listener.stage_finished("decompile")
    listener.progress("write", 1, 0)
    listener.close()

    assert set(listener._tasks) == {"decompile", "write"}
    assert listener._totals == {"decompile": 3, "write": 1}
