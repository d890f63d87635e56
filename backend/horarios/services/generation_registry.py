from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Iterator

from horarios.core.exceptions import GenerationInProgressError


@dataclass
class ProgressState:
    running: bool = False
    progress: int = 0
    phase: str = "idle"
    updated_at: datetime | None = None


class GenerationRegistry:
    """Process-wide mutual exclusion for generation runs, keyed by period id."""

    def __init__(self) -> None:
        self._running: set[int] = set()
        self._progress: dict[int, ProgressState] = {}
        self._lock = Lock()

    def acquire(self, period_id: int) -> bool:
        with self._lock:
            if period_id in self._running:
                return False
            self._running.add(period_id)
            self._progress[period_id] = ProgressState(
                running=True,
                progress=0,
                phase="starting",
                updated_at=datetime.now(timezone.utc),
            )
            return True

    def release(self, period_id: int, *, phase: str = "finished") -> None:
        with self._lock:
            self._running.discard(period_id)
            state = self._progress.setdefault(period_id, ProgressState())
            state.running = False
            if phase == "finished":
                state.progress = 100
            state.phase = phase
            state.updated_at = datetime.now(timezone.utc)

    def is_running(self, period_id: int) -> bool:
        with self._lock:
            return period_id in self._running

    def report(self, period_id: int, progress: int, phase: str) -> None:
        with self._lock:
            state = self._progress.setdefault(period_id, ProgressState())
            state.progress = max(0, min(100, int(progress)))
            state.phase = phase
            state.updated_at = datetime.now(timezone.utc)

    def snapshot(self, period_id: int) -> ProgressState:
        with self._lock:
            state = self._progress.get(period_id)
            if state is None:
                return ProgressState()
            return ProgressState(
                running=state.running,
                progress=state.progress,
                phase=state.phase,
                updated_at=state.updated_at,
            )

    @contextmanager
    def hold(self, period_id: int) -> Iterator[None]:
        if not self.acquire(period_id):
            raise GenerationInProgressError(period_id)
        phase = "failed"
        try:
            yield
            phase = "finished"
        finally:
            self.release(period_id, phase=phase)

    def clear(self) -> None:
        with self._lock:
            self._running.clear()
            self._progress.clear()


generation_registry = GenerationRegistry()
