"""Models for test execution results."""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

TargetStatus = Literal["passed", "failed"]
RunStatus = Literal["passed", "failed", "cancelled"]


@dataclass(frozen=True, kw_only=True)
class TargetResult:
    """Outcome of running a single workspace target.

    Skipped tests are counted but never change the status.
    """

    target_id: str
    status: TargetStatus
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    duration: float = 0.0
    message: str | None = None


@dataclass(frozen=True, kw_only=True)
class TestRunResult:
    """Aggregate result of one run over the whole workspace."""

    __test__ = False

    status: RunStatus
    results: Sequence[TargetResult]
    duration: float = 0.0

    @property
    def passed(self) -> int:
        """Total passed tests across targets."""
        return sum(result.passed for result in self.results)

    @property
    def failed(self) -> int:
        """Total failed tests across targets."""
        return sum(result.failed for result in self.results)

    @property
    def skipped(self) -> int:
        """Total skipped tests across targets."""
        return sum(result.skipped for result in self.results)


def aggregate_status(results: Sequence[TargetResult]) -> TargetStatus:
    """Return "failed" if any target failed, otherwise "passed".

    An empty sequence passes.
    """
    if any(result.status == "failed" for result in results):
        return "failed"
    return "passed"
