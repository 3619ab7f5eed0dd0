import logging
import time
from typing import Any, Optional

import rich.progress
from rich.logging import RichHandler


def _logging_uses_rich() -> bool:
    return any(isinstance(handler, RichHandler) for handler in logging.getLogger().handlers)


class ProgressBar:
    """
    Shows how many of the given number of archives have been scanned so far.
    Renders a rich progress bar if logging goes through rich, else prints a line every few seconds.
    """

    def __init__(self, maxValue: int, description: str = "Scanning archives"):
        self.value = 0
        self.maxValue = maxValue
        self.description = description
        self.creationTime = time.time()
        self.lastUpdateTime = self.creationTime
        self.updateInterval = 2.0  # seconds
        self._richProgress: Optional[Any] = None
        self._taskID: Optional[Any] = None

    def __enter__(self):
        if _logging_uses_rich():
            self._richProgress = rich.progress.Progress(
                rich.progress.TextColumn("[progress.description]{task.description}"),
                rich.progress.BarColumn(bar_width=None),
                rich.progress.MofNCompleteColumn(),
                rich.progress.TimeElapsedColumn(),
                rich.progress.TimeRemainingColumn(elapsed_when_finished=True),
                auto_refresh=False,
                redirect_stdout=False,
                redirect_stderr=False,
            )
            self._richProgress.start()
            self._taskID = self._richProgress.add_task(self.description, total=self.maxValue)
            self.updateInterval = 0.2
        return self

    def __exit__(self, exception_type, exception_value, exception_traceback) -> None:
        if self._richProgress is None:
            return
        if self._taskID is not None:
            self._richProgress.update(self._taskID, completed=self.value)
            self._richProgress.refresh()
        self._richProgress.stop()
        self._richProgress = None
        self._taskID = None

    def update(self, value: int, currentItem: str = "") -> None:
        """Should be called after each processed item. Output is throttled to the update interval."""
        self.value = value
        now = time.time()
        if now - self.lastUpdateTime < self.updateInterval and value < self.maxValue:
            return
        self.lastUpdateTime = now

        if self._richProgress is not None and self._taskID is not None:
            self._richProgress.update(self._taskID, completed=value)
            self._richProgress.refresh()
            return

        spentTime = int(now - self.creationTime)
        percent = value / self.maxValue * 100.0 if self.maxValue else 100.0
        print(
            f"{self.description}: {value} of {self.maxValue} ({percent:.1f}%) "
            f"after {spentTime // 60} min {spentTime % 60} s. {currentItem}",
            flush=True,
        )
