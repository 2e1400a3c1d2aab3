"""Tests for aggregate test runner."""

import asyncio
import shutil
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from unittest.mock import Mock

import pytest

from workspace_test_action.errors import DiscoveryError, ExecutionError
from workspace_test_action.harnesses.base import TestHarness
from workspace_test_action.models.result import TargetResult
from workspace_test_action.models.target import WorkspaceTestTarget
from workspace_test_action.runner import AggregateTestRunner
from workspace_test_action.testing.factories import (
    TargetResultFactory,
    WorkspaceTestTargetFactory,
)


@dataclass(frozen=True, kw_only=True)
class ScriptedHarness(TestHarness):
    """Harness whose targets pass or fail according to a script."""

    outcomes: Mapping[str, TargetResult | BaseException]
    delay: float = 0.0
    attempts: list[str] = field(default_factory=list)
    in_flight: list[int] = field(default_factory=lambda: [0, 0])

    async def discover_targets(
        self,
        workspace_root: Path,
    ) -> Sequence[WorkspaceTestTarget]:
        """Return one target per scripted outcome."""
        return [
            WorkspaceTestTarget(identifier=name, location=workspace_root / name)
            for name in self.outcomes
        ]

    async def run_target(
        self,
        workspace_root: Path,
        target: WorkspaceTestTarget,
    ) -> TargetResult:
        """Return or raise the scripted outcome, tracking concurrency."""
        self.attempts.append(target.identifier)
        self.in_flight[0] += 1
        self.in_flight[1] = max(self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight[0] -= 1
        outcome = self.outcomes[target.identifier]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def passed(target_id: str, count: int = 1) -> TargetResult:
    """Build a passing target result."""
    return TargetResult(target_id=target_id, status="passed", passed=count)


def failed(target_id: str) -> TargetResult:
    """Build a failing target result."""
    return TargetResult(target_id=target_id, status="failed", passed=1, failed=1)


async def test_empty_workspace_passes(tmp_path: Path) -> None:
    """Returns passed with no results when nothing is discovered."""
    runner = AggregateTestRunner(harness=ScriptedHarness(outcomes={}))

    result = await runner.run_all(tmp_path)

    assert result.status == "passed"
    assert result.results == []


async def test_all_targets_pass(tmp_path: Path) -> None:
    """Returns passed when every target passes."""
    harness = ScriptedHarness(outcomes={"a": passed("a", 3), "b": passed("b", 2)})
    runner = AggregateTestRunner(harness=harness, max_workers=2)

    result = await runner.run_all(tmp_path)

    assert result.status == "passed"
    assert [r.target_id for r in result.results] == ["a", "b"]
    assert result.passed == 5
    assert result.failed == 0


async def test_does_not_fail_fast(tmp_path: Path) -> None:
    """Runs every target even after one fails and reports all outcomes."""
    harness = ScriptedHarness(
        outcomes={"a": passed("a"), "b": failed("b"), "c": passed("c")}
    )
    runner = AggregateTestRunner(harness=harness, max_workers=1)

    result = await runner.run_all(tmp_path)

    assert result.status == "failed"
    assert {r.target_id: r.status for r in result.results} == {
        "a": "passed",
        "b": "failed",
        "c": "passed",
    }
    assert sorted(harness.attempts) == ["a", "b", "c"]


async def test_every_target_attempted_once(tmp_path: Path) -> None:
    """Attempts each target exactly once regardless of failures."""
    outcomes: dict[str, TargetResult | BaseException] = {
        f"t{i}": failed(f"t{i}") if i % 3 == 0 else passed(f"t{i}") for i in range(10)
    }
    harness = ScriptedHarness(outcomes=outcomes)
    runner = AggregateTestRunner(harness=harness, max_workers=4)

    result = await runner.run_all(tmp_path)

    assert sorted(harness.attempts) == sorted(outcomes)
    assert len(result.results) == 10
    assert result.status == "failed"


async def test_skips_do_not_affect_status(tmp_path: Path) -> None:
    """Skip counts are reported without failing the run."""
    skipped = TargetResult(target_id="a", status="passed", passed=1, skipped=4)
    runner = AggregateTestRunner(harness=ScriptedHarness(outcomes={"a": skipped}))

    result = await runner.run_all(tmp_path)

    assert result.status == "passed"
    assert result.skipped == 4


async def test_limits_concurrency_to_max_workers(tmp_path: Path) -> None:
    """Never runs more targets at once than max_workers."""
    harness = ScriptedHarness(
        outcomes={f"t{i}": passed(f"t{i}") for i in range(6)},
        delay=0.01,
    )
    runner = AggregateTestRunner(harness=harness, max_workers=2)

    await runner.run_all(tmp_path)

    assert harness.in_flight[1] == 2


async def test_runs_targets_concurrently(tmp_path: Path) -> None:
    """Runs independent targets in parallel when workers allow it."""
    harness = ScriptedHarness(
        outcomes={f"t{i}": passed(f"t{i}") for i in range(4)},
        delay=0.01,
    )
    runner = AggregateTestRunner(harness=harness, max_workers=8)

    await runner.run_all(tmp_path)

    assert harness.in_flight[1] == 4


async def test_raises_discovery_error_for_missing_root(tmp_path: Path) -> None:
    """Raises DiscoveryError when the workspace root does not exist."""
    harness = Mock(spec=TestHarness)
    runner = AggregateTestRunner(harness=harness)

    with pytest.raises(DiscoveryError, match="not a directory"):
        await runner.run_all(tmp_path / "missing")

    harness.discover_targets.assert_not_called()


async def test_raises_discovery_error_when_root_deleted_mid_discovery(
    tmp_path: Path,
) -> None:
    """Reports an error instead of an empty workspace when the root vanishes."""
    workspace = tmp_path / "workspace"
    workspace.mkdir()

    async def discover(workspace_root: Path) -> Sequence[WorkspaceTestTarget]:
        shutil.rmtree(workspace_root)
        return []

    harness = Mock(spec=TestHarness)
    harness.discover_targets.side_effect = discover
    runner = AggregateTestRunner(harness=harness)

    with pytest.raises(DiscoveryError, match="disappeared"):
        await runner.run_all(workspace)

    harness.run_target.assert_not_called()


async def test_propagates_harness_discovery_error(tmp_path: Path) -> None:
    """Surfaces DiscoveryError from the harness unchanged."""
    error = DiscoveryError("cargo metadata failed")
    harness = Mock(spec=TestHarness)
    harness.discover_targets.side_effect = error
    runner = AggregateTestRunner(harness=harness)

    with pytest.raises(DiscoveryError) as exc_info:
        await runner.run_all(tmp_path)

    assert exc_info.value is error


async def test_wraps_unexpected_discovery_exception(tmp_path: Path) -> None:
    """Wraps unexpected harness exceptions during discovery."""
    harness = Mock(spec=TestHarness)
    harness.discover_targets.side_effect = PermissionError("denied")
    runner = AggregateTestRunner(harness=harness)

    with pytest.raises(DiscoveryError, match="denied"):
        await runner.run_all(tmp_path)


async def test_ignores_duplicate_targets(tmp_path: Path) -> None:
    """Runs a target discovered twice only once."""
    target = WorkspaceTestTargetFactory.build(identifier="core")
    harness = Mock(spec=TestHarness)
    harness.discover_targets.return_value = [target, target]
    harness.run_target.return_value = TargetResultFactory.build(
        target_id="core", status="passed"
    )
    runner = AggregateTestRunner(harness=harness)

    result = await runner.run_all(tmp_path)

    assert len(result.results) == 1
    harness.run_target.assert_called_once_with(tmp_path, target)


async def test_execution_error_aborts_run(tmp_path: Path) -> None:
    """Propagates ExecutionError and cancels remaining targets."""
    slow_cancelled = asyncio.Event()

    async def run_target(
        workspace_root: Path, target: WorkspaceTestTarget
    ) -> TargetResult:
        if target.identifier == "broken":
            raise ExecutionError("harness crashed")
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            slow_cancelled.set()
            raise
        return passed(target.identifier)  # pragma: no cover

    harness = Mock(spec=TestHarness)
    harness.discover_targets.return_value = [
        WorkspaceTestTarget(identifier="slow", location=tmp_path),
        WorkspaceTestTarget(identifier="broken", location=tmp_path),
    ]
    harness.run_target.side_effect = run_target
    runner = AggregateTestRunner(harness=harness, max_workers=2)

    with pytest.raises(ExecutionError, match="harness crashed"):
        await asyncio.wait_for(runner.run_all(tmp_path), timeout=5)

    assert slow_cancelled.is_set()


async def test_wraps_unexpected_execution_exception(tmp_path: Path) -> None:
    """Wraps unexpected harness exceptions as ExecutionError."""
    harness = ScriptedHarness(outcomes={"a": RuntimeError("boom")})
    runner = AggregateTestRunner(harness=harness)

    with pytest.raises(ExecutionError, match="Harness crashed on target a: boom"):
        await runner.run_all(tmp_path)


async def test_cancellation_reports_cancelled(tmp_path: Path) -> None:
    """Reports cancelled with finished targets when the run is cancelled."""
    started = asyncio.Event()

    async def run_target(
        workspace_root: Path, target: WorkspaceTestTarget
    ) -> TargetResult:
        if target.identifier == "fast":
            return passed("fast")
        started.set()
        await asyncio.sleep(10)
        return passed(target.identifier)  # pragma: no cover

    harness = Mock(spec=TestHarness)
    harness.discover_targets.return_value = [
        WorkspaceTestTarget(identifier="fast", location=tmp_path),
        WorkspaceTestTarget(identifier="hanging", location=tmp_path),
    ]
    harness.run_target.side_effect = run_target
    runner = AggregateTestRunner(harness=harness, max_workers=2)

    task = asyncio.create_task(runner.run_all(tmp_path))
    await asyncio.wait_for(started.wait(), timeout=5)
    task.cancel()
    result = await task

    assert result.status == "cancelled"
    assert [r.target_id for r in result.results] == ["fast"]


async def test_cancellation_waits_for_target_cleanup(tmp_path: Path) -> None:
    """Lets cancelled targets finish stopping their processes before returning."""
    started = asyncio.Event()
    cleaned_up = asyncio.Event()

    async def run_target(
        workspace_root: Path, target: WorkspaceTestTarget
    ) -> TargetResult:
        started.set()
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            await asyncio.sleep(0.05)
            cleaned_up.set()
            raise
        return passed(target.identifier)  # pragma: no cover

    harness = Mock(spec=TestHarness)
    harness.discover_targets.return_value = [
        WorkspaceTestTarget(identifier="hanging", location=tmp_path)
    ]
    harness.run_target.side_effect = run_target
    runner = AggregateTestRunner(harness=harness)

    task = asyncio.create_task(runner.run_all(tmp_path))
    await asyncio.wait_for(started.wait(), timeout=5)
    task.cancel()
    result = await task

    assert result.status == "cancelled"
    assert cleaned_up.is_set()
