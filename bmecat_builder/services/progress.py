from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display for article rendering with tqdm (TTY only).

A single tqdm bar counts rendered rows. In non-TTY environments (CI, piped
output) the bar is disabled so no ANSI control sequences end up in logs.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """Check if TTY output is enabled.

    Returns:
        True if stdout is a TTY and progress should be displayed, False otherwise
    """
    return sys.stdout.isatty()


class ProgressTracker:
    """Progress bar over the rows of one generation run."""

    def __init__(self, total: int, *, description: str = "Rendering articles") -> None:
        """Initialize progress tracker.

        Args:
            total: Number of rows that will be rendered
            description: Description for the progress bar
        """
        self.total = total
        self.description = description
        self.done = 0

        self.enabled = is_tty_enabled() and total > 0
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total,
                desc=description,
                unit="row",
                disable=False,
                leave=False,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def advance(self, count: int = 1) -> None:
        self.done += count
        if self.enabled and self.pbar is not None:
            self.pbar.update(count)

    def close(self) -> None:
        """Close the progress bar."""
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
