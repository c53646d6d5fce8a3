# rulescraper/progress.py
import threading
from typing import Callable, Optional

from tqdm import tqdm


class RuleProgress:
    """Counts evaluated rules; optionally renders a tqdm bar and notifies a callback."""

    def __init__(self, show_bar: bool = False, on_update: Optional[Callable[[int, int], None]] = None,
                 description: str = "Extracting"):
        self.show_bar = show_bar
        self.on_update = on_update
        self.description = description
        self._total = 0
        self._current = 0
        self._lock = threading.Lock()
        self._bar: Optional[tqdm] = None

    @property
    def total(self) -> int:
        return self._total

    @property
    def current(self) -> int:
        return self._current

    def _ensure_bar(self):
        if self.show_bar and self._bar is None:
            self._bar = tqdm(total=self._total, desc=self.description, unit="rule", leave=False)

    def set_total(self, value: int):
        with self._lock:
            self._total = value
            self._ensure_bar()
            if self._bar is not None:
                self._bar.total = value
                self._bar.refresh()

    def increment_total(self, value: int):
        if value <= 0:
            return
        with self._lock:
            self._total += value
            if self._bar is not None:
                self._bar.total = self._total
                self._bar.refresh()

    def add(self, value: int = 1):
        with self._lock:
            self._current += value
            if self._bar is not None:
                self._bar.update(value)
            current, total = self._current, self._total
        if self.on_update:
            self.on_update(current, total)

    def close(self):
        with self._lock:
            if self._bar is not None:
                self._bar.close()
                self._bar = None
