"""Context manager recording one optimization run as JSONL telemetry."""

from __future__ import annotations

import time
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping
from uuid import uuid4

from .jsonl import append_jsonl


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass(slots=True)
class RunTelemetryLogger(AbstractContextManager["RunTelemetryLogger"]):
    """Write a terminal ``run`` record (and optional ``step`` records) for an optimization call.

    Parameters
    ----------
    log_path:
        JSONL file receiving run records.
    solver:
        Solver label, ``"ensemble"`` for :func:`rosterlab.optimize`.
    roster:
        Human-readable roster / activity name.
    roster_path:
        Source file of the roster, when loaded from disk.
    seed:
        Master RNG seed.
    config:
        Settings snapshot (enabled algorithms, budgets).
    context:
        Problem features (group count, candidate count, composition).
    step_interval:
        ``None`` or ``<= 0`` disables step records; any positive value enables them and step records
        go to ``steps/<run_id>.jsonl`` next to ``log_path``.
    """

    log_path: Path
    solver: str
    roster: str | None = None
    roster_path: str | None = None
    seed: int | None = None
    config: Mapping[str, Any] | None = None
    context: Mapping[str, Any] | None = None
    step_interval: int | None = None
    schema_version: str = "1.0"
    run_id: str = field(default_factory=lambda: uuid4().hex, init=False)
    _started: float = field(default=0.0, init=False)
    _started_at: str | None = field(default=None, init=False)
    _closed: bool = field(default=False, init=False)
    _steps_path: Path | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.log_path = Path(self.log_path)
        if self.step_interval and self.step_interval > 0:
            self._steps_path = self.log_path.parent / "steps" / f"{self.run_id}.jsonl"

    def __enter__(self) -> "RunTelemetryLogger":
        self._started = time.perf_counter()
        self._started_at = _timestamp()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type:
            self._close(status="error", metrics=None, extra=None, error=repr(exc))
        else:
            self._close(status="ok", metrics=None, extra=None, error=None)
        return False

    @property
    def steps_path(self) -> Path | None:
        return self._steps_path

    def elapsed(self) -> float:
        return time.perf_counter() - self._started if self._started else 0.0

    def log_step(self, *, step: int, algorithm: str, score: float, best_score: float) -> None:
        """Persist one per-member progress record when step logging is enabled."""
        if not self._steps_path:
            return
        append_jsonl(
            self._steps_path,
            {
                "record_type": "step",
                "schema_version": self.schema_version,
                "run_id": self.run_id,
                "timestamp": _timestamp(),
                "step": step,
                "algorithm": algorithm,
                "score": score,
                "best_score": best_score,
            },
        )

    def finalize(
        self,
        *,
        status: str = "ok",
        metrics: Mapping[str, Any] | None = None,
        extra: Mapping[str, Any] | None = None,
        error: str | None = None,
    ) -> None:
        """Write the terminal run record; later calls and ``__exit__`` become no-ops."""
        self._close(status=status, metrics=metrics, extra=extra, error=error)

    def _close(
        self,
        *,
        status: str,
        metrics: Mapping[str, Any] | None,
        extra: Mapping[str, Any] | None,
        error: str | None,
    ) -> None:
        if self._closed:
            return
        append_jsonl(
            self.log_path,
            {
                "record_type": "run",
                "schema_version": self.schema_version,
                "run_id": self.run_id,
                "solver": self.solver,
                "roster": self.roster,
                "roster_path": self.roster_path,
                "seed": self.seed,
                "status": status,
                "metrics": dict(metrics or {}),
                "config": dict(self.config or {}),
                "context": dict(self.context or {}),
                "extra": dict(extra or {}),
                "error": error,
                "started_at": self._started_at,
                "finished_at": _timestamp(),
                "duration_seconds": round(self.elapsed(), 3),
            },
        )
        self._closed = True


__all__ = ["RunTelemetryLogger"]
