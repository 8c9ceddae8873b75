"""Progress reporting for sync runs.

The pipeline only needs "start a task with a total" and "advance by N";
rendering has no effect on what gets copied.
"""

import threading
from typing import Dict, Optional, Protocol, Set

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    MofNCompleteColumn,
    Progress,
    ProgressColumn,
    Task,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeRemainingColumn,
)
from rich.text import Text

BYTES = "bytes"
ITEMS = "items"


class ProgressReporter(Protocol):
    """Progress reporting interface."""

    def start(self, description: str, total: int, unit: str = ITEMS, transient: bool = False) -> int:
        """Start a progress task and return its handle."""
        ...

    def advance(self, task: int, amount: int = 1) -> None:
        """Advance a task by ``amount`` units."""
        ...

    def finish(self, task: int) -> None:
        """Mark a task finished; transient tasks disappear."""
        ...


class NullProgressReporter:
    """Reporter that renders nothing but keeps per-task totals.

    Used for --quiet runs and by tests to check what was reported.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._next = 0
        self.descriptions: Dict[int, str] = {}
        self.totals: Dict[int, int] = {}
        self.completed: Dict[int, int] = {}
        self.finished: Dict[int, bool] = {}

    def start(self, description: str, total: int, unit: str = ITEMS, transient: bool = False) -> int:
        with self._lock:
            task = self._next
            self._next += 1
            self.descriptions[task] = description
            self.totals[task] = total
            self.completed[task] = 0
            self.finished[task] = False
        return task

    def advance(self, task: int, amount: int = 1) -> None:
        with self._lock:
            self.completed[task] += amount

    def finish(self, task: int) -> None:
        with self._lock:
            self.finished[task] = True

    def task_named(self, description: str) -> Optional[int]:
        """Handle of the first task started with ``description``."""
        with self._lock:
            for task, desc in self.descriptions.items():
                if desc == description:
                    return task
        return None


class _AmountColumn(ProgressColumn):
    """Shows ``done/total`` for item tasks and sizes for byte tasks."""

    def __init__(self):
        super().__init__()
        self._items = MofNCompleteColumn()
        self._bytes = DownloadColumn()

    def render(self, task: Task) -> Text:
        if task.fields.get("unit") == BYTES:
            return self._bytes.render(task)
        return self._items.render(task)


class RichProgressReporter:
    """Reporter drawing ``rich`` progress bars.

    rich serialises task updates, so worker threads advance tasks directly.
    """

    def __init__(self, console: Optional[Console] = None):
        self._progress = Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(bar_width=80),
            _AmountColumn(),
            TaskProgressColumn(),
            TimeRemainingColumn(),
            console=console,
        )
        self._lock = threading.Lock()
        self._transient: Set[int] = set()

    def start(self, description: str, total: int, unit: str = ITEMS, transient: bool = False) -> int:
        task_id = self._progress.add_task(description, total=total, unit=unit)
        if transient:
            with self._lock:
                self._transient.add(task_id)
        return task_id

    def advance(self, task: int, amount: int = 1) -> None:
        self._progress.advance(TaskID(task), amount)

    def finish(self, task: int) -> None:
        with self._lock:
            transient = task in self._transient
            self._transient.discard(task)
        if transient:
            self._progress.remove_task(TaskID(task))
        else:
            self._progress.stop_task(TaskID(task))

    def __enter__(self) -> "RichProgressReporter":
        self._progress.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._progress.stop()
