"""Translator notifications and progress display.

The translator reports lifecycle events (assemblies loaded, stage
progress, per-method failures) through a ``TranslationListener``. The
base listener only logs and records what the build log needs;
``RichTranslationListener`` additionally renders stage progress bars.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from asmdriver.utils.path_utils import shorten_path

logger = logging.getLogger("asmdriver.runtime.progress")

STAGE_LABELS = {
    "decompile": "Decompiling ",
    "transform": "Translating ",
    "write": "Writing     ",
}


class TranslationListener:
    """Receives translator events for one input file.

    Attributes:
        ignored_methods: ``(method, offending variables)`` pairs reported
            as untranslatable, in report order.
        failed_methods: Names of methods the translator could not decompile.
    """

    def __init__(self, filename: str = "") -> None:
        self.filename = filename
        self.ignored_methods: List[Tuple[str, Sequence[str]]] = []
        self.failed_methods: List[str] = []

    def assembly_loaded(self, path: str, classification: str) -> None:
        logger.info("Loaded %s (%s)", shorten_path(path), classification)

    def proxy_loaded(self, path: str) -> None:
        logger.info("Loaded proxies from '%s'", shorten_path(path))

    def could_not_resolve(self, name: str, reason: str) -> None:
        logger.warning("Could not load module %s: %s", name, reason)

    def method_failed(self, method: str, reason: str) -> None:
        self.failed_methods.append(method)
        logger.warning("Could not decompile method %s: %s", method, reason)

    def method_ignored(self, method: str, variables: Sequence[str]) -> None:
        self.ignored_methods.append((method, tuple(variables)))

    def progress(self, stage: str, current: int, total: int) -> None:
        logger.debug("%s %d/%d", STAGE_LABELS.get(stage, stage).strip(), current, total)

    def stage_finished(self, stage: str) -> None:
        logger.debug("%s done.", STAGE_LABELS.get(stage, stage).strip())

    def close(self) -> None:
        """Release any display resources."""


class RichTranslationListener(TranslationListener):
    """Listener that shows one progress bar per translation stage."""

    def __init__(self, filename: str = "", console: Optional[Console] = None) -> None:
        super().__init__(filename)
        self._progress = Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(bar_width=40),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
            transient=False,
        )
        self._tasks: Dict[str, TaskID] = {}
        self._totals: Dict[str, int] = {}
        self._started = False

    def _task_for(self, stage: str, total: int) -> TaskID:
        if not self._started:
            self._progress.start()
            self._started = True
        task_id = self._tasks.get(stage)
        if task_id is None:
            task_id = self._progress.add_task(STAGE_LABELS.get(stage, stage), total=total)
            self._tasks[stage] = task_id
        return task_id

    def progress(self, stage: str, current: int, total: int) -> None:
        total = max(total, 1)
        task_id = self._task_for(stage, total)
        self._totals[stage] = total
        self._progress.update(task_id, completed=current, total=total)

    def stage_finished(self, stage: str) -> None:
        task_id = self._tasks.get(stage)
        if task_id is not None:
            self._progress.update(task_id, completed=self._totals.get(stage, 1))

    def close(self) -> None:
        if self._started:
            self._progress.stop()
            self._started = False


__all__ = ["TranslationListener", "RichTranslationListener", "STAGE_LABELS"]
