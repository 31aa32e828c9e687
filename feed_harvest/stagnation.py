from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque


@dataclass
class StagnationTracker:
    """
    Sliding window over per-iteration growth counts.

    With `min_new_total=1` this fires after `window_size` consecutive iterations
    that added nothing.
    """

    window_size: int
    min_new_total: int = 1
    _values: Deque[int] = field(default_factory=deque)
    _idle_streak: int = 0

    def __post_init__(self) -> None:
        if self.window_size <= 0:
            raise ValueError("window_size must be positive")
        if self.min_new_total < 0:
            raise ValueError("min_new_total must be non-negative")

    def push(self, new_value: int) -> bool:
        """
        Add a new value and return True if stagnation is detected.

        Stagnation is detected once the window is full and its sum is strictly less
        than `min_new_total`.
        """
        value = int(new_value)
        self._values.append(value)
        while len(self._values) > self.window_size:
            self._values.popleft()

        self._idle_streak = self._idle_streak + 1 if value <= 0 else 0

        if len(self._values) < self.window_size:
            return False

        return sum(self._values) < self.min_new_total

    def total(self) -> int:
        return sum(self._values)

    def idle_streak(self) -> int:
        """Consecutive most recent iterations that added nothing."""
        return self._idle_streak
