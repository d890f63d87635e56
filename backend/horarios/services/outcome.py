from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

S = TypeVar("S")
F = TypeVar("F")


@dataclass
class Outcome(Generic[S, F]):
    """Accumulates successes and failures of a batch without stopping on the first error."""

    successes: list[S] = field(default_factory=list)
    failures: list[F] = field(default_factory=list)

    def ok(self, item: S) -> None:
        self.successes.append(item)

    def fail(self, item: F) -> None:
        self.failures.append(item)

    @property
    def total(self) -> int:
        return len(self.successes) + len(self.failures)

    @property
    def status(self) -> str:
        if not self.failures:
            return "SUCCESS"
        if self.successes:
            return "PARTIAL_FAILURE"
        return "FAILURE"
