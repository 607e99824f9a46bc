from __future__ import annotations

import threading
from typing import Any, Optional, Sequence

try:
    from rich.console import Console
    from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn
    from rich.table import Table
except Exception:  # pragma: no cover - fallback when rich isn't available
    Console = None  # type: ignore[assignment]
    Progress = None  # type: ignore[assignment]
    BarColumn = None  # type: ignore[assignment]
    MofNCompleteColumn = None  # type: ignore[assignment]
    TextColumn = None  # type: ignore[assignment]
    TimeElapsedColumn = None  # type: ignore[assignment]
    Table = None  # type: ignore[assignment]


def _short(text: str, max_len: int = 40) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


class RunProgress:
    """
    Transient progress bars, one per filter, advanced once per resolved instance.
    Every method is a no-op when disabled or when rich is unavailable.
    """

    def __init__(self, *, enabled: bool, console: Optional[Console] = None) -> None:
        self._enabled = bool(enabled and Console and Progress)
        self._console = console or (Console(stderr=True) if Console else None)
        self._progress = None
        self._task: Optional[int] = None
        self._lock = threading.Lock()
        self._started = False
        if self._enabled:
            self._progress = Progress(
                TextColumn("{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                console=self._console,
                transient=True,
            )

    def __enter__(self) -> RunProgress:
        if self._enabled and self._progress and not self._started:
            self._progress.start()
            self._started = True
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        if self._enabled and self._progress and self._started:
            self._progress.stop()
            self._started = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    def start_filter(self, pattern: str, *, total: int) -> None:
        if not self._enabled or not self._progress:
            return
        with self._lock:
            if self._task is not None:
                self._progress.remove_task(self._task)
            self._task = self._progress.add_task(f"Resolving '{_short(pattern)}'", total=total)

    def advance_filter(self, *, count: int = 1) -> None:
        if not self._enabled or not self._progress or self._task is None:
            return
        with self._lock:
            self._progress.update(self._task, advance=count)


def render_artifact_summary_table(
    *,
    enabled: bool,
    artifacts: Sequence[Any],
    total_instances: int,
    console: Optional[Console] = None,
) -> None:
    """Print produced artifacts (pattern, path, rows) as a rich table."""
    if not enabled or not Table or not Console:
        return
    table = Table(title="Discovery Summary", show_header=True, header_style="bold")
    table.add_column("Artifact", style="cyan")
    table.add_column("Filter", style="white")
    table.add_column("Instances", justify="right")
    for art in artifacts:
        table.add_row(str(art.path), art.pattern, str(art.rows))
    table.caption = f"{total_instances} running instances discovered"
    (console or Console()).print(table)
