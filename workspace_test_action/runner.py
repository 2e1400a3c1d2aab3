"""Aggregate test runner that executes every workspace target without failing fast."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from workspace_test_action.errors import DiscoveryError, ExecutionError, RunnerError
from workspace_test_action.harnesses.base import TestHarness
from workspace_test_action.models.result import (
    TargetResult,
    TestRunResult,
    aggregate_status,
)
from workspace_test_action.models.target import WorkspaceTestTarget

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class AggregateTestRunner:
    """Runs all targets of a workspace through a single harness."""

    harness: TestHarness
    max_workers: int = 1

    async def run_all(self, workspace_root: Path) -> TestRunResult:
        """Discover and run every target, continuing past failing targets.

        Targets run concurrently, at most max_workers at a time. If the
        awaiting task is cancelled, in-flight targets are cancelled and the
        run is reported as "cancelled" with the targets that finished.

        Args:
            workspace_root: Root directory of the workspace

        Returns:
            Aggregate result; "failed" iff at least one target failed

        Raises:
            DiscoveryError: If the workspace cannot be enumerated
            ExecutionError: If the harness fails on any target

        """
        loop = asyncio.get_running_loop()
        start = loop.time()

        targets = await self._discover(workspace_root)
        if not targets:
            log.info("No test targets discovered in %s", workspace_root)
            return TestRunResult(status="passed", results=[], duration=0.0)

        log.info(
            "Running %d target(s) with up to %d worker(s)...",
            len(targets),
            self.max_workers,
        )
        semaphore = asyncio.Semaphore(self.max_workers)
        tasks = [
            asyncio.create_task(
                self._run_target(workspace_root, target, semaphore),
                name=f"target:{target.identifier}",
            )
            for target in targets
        ]

        try:
            results: Sequence[TargetResult] = await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            await _cancel_all(tasks)
            if (current := asyncio.current_task()) is not None:
                current.uncancel()
            finished = [
                task.result()
                for task in tasks
                if not task.cancelled() and task.exception() is None
            ]
            log.warning(
                "Run cancelled after %d of %d target(s) finished",
                len(finished),
                len(targets),
            )
            return TestRunResult(
                status="cancelled", results=finished, duration=loop.time() - start
            )
        except BaseException:
            await _cancel_all(tasks)
            raise

        log.info("Test execution completed")
        return TestRunResult(
            status=aggregate_status(results),
            results=results,
            duration=loop.time() - start,
        )

    async def _discover(self, workspace_root: Path) -> Sequence[WorkspaceTestTarget]:
        """Discover targets, deduplicated by identifier in discovery order."""
        if not workspace_root.is_dir():
            raise DiscoveryError(f"Workspace root {workspace_root} is not a directory")

        log.info("Discovering test targets in %s", workspace_root)
        try:
            discovered = await self.harness.discover_targets(workspace_root)
        except RunnerError:
            raise
        except Exception as e:
            raise DiscoveryError(f"Cannot enumerate {workspace_root}: {e}") from e

        # An enumeration of a root that vanished meanwhile is not trustworthy
        if not workspace_root.is_dir():
            raise DiscoveryError(
                f"Workspace root {workspace_root} disappeared during discovery"
            )

        targets: dict[str, WorkspaceTestTarget] = {}
        for target in discovered:
            if target.identifier in targets:
                log.warning("Ignoring duplicate target %s", target.identifier)
                continue
            targets[target.identifier] = target

        log.info("Discovered %d target(s)", len(targets))
        return list(targets.values())

    async def _run_target(
        self,
        workspace_root: Path,
        target: WorkspaceTestTarget,
        semaphore: asyncio.Semaphore,
    ) -> TargetResult:
        """Run one target once a worker slot is free."""
        async with semaphore:
            log.info("Running target %s", target.identifier)
            try:
                result = await self.harness.run_target(workspace_root, target)
            except RunnerError:
                raise
            except Exception as e:
                raise ExecutionError(
                    f"Harness crashed on target {target.identifier}: {e}"
                ) from e

        log.info(
            "Target completed: target=%s status=%s passed=%d failed=%d "
            "skipped=%d duration=%.1fs",
            result.target_id,
            result.status,
            result.passed,
            result.failed,
            result.skipped,
            result.duration,
        )
        return result


async def _cancel_all(tasks: Sequence[asyncio.Task[TargetResult]]) -> None:
    """Cancel unfinished tasks and wait until all of them are done."""
    for task in tasks:
        # A second cancel would interrupt a target still stopping its processes
        if not task.cancelling():
            task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
