"""Warning de-duplication for a single optimization call."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field


@dataclass(slots=True)
class WarningTracker:
    """Count warning keys and report whether a key should be emitted.

    One tracker lives inside each :class:`~rosterlab.optimization.heuristics.common.ProblemContext`,
    so counts never leak between ``optimize`` calls. ``reset_interval`` (seconds) re-arms every key
    once it elapses; ``None`` keeps keys silenced for the tracker's lifetime.
    """

    reset_interval: float | None = 5.0
    _counts: dict[str, int] = field(default_factory=dict, init=False)
    _last_reset: float = field(default_factory=time.monotonic, init=False)

    def should_warn(self, key: str) -> bool:
        """Return ``True`` the first time ``key`` is seen in the current interval."""
        now = time.monotonic()
        if self.reset_interval is not None and now - self._last_reset > self.reset_interval:
            self._counts.clear()
            self._last_reset = now
        count = self._counts.get(key, 0)
        self._counts[key] = count + 1
        return count == 0

    def warn(self, logger: logging.Logger, key: str, message: str, *args: object) -> bool:
        """Log ``message`` at WARNING level once per key; return whether it was emitted."""
        if not self.should_warn(key):
            return False
        logger.warning(message, *args)
        return True

    def count(self, key: str) -> int:
        return self._counts.get(key, 0)

    def reset(self) -> None:
        self._counts.clear()
        self._last_reset = time.monotonic()


__all__ = ["WarningTracker"]
