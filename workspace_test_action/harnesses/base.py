"""Abstract base class for workspace test harnesses."""

import re
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from workspace_test_action.models.result import TargetResult
from workspace_test_action.models.target import WorkspaceTestTarget


@dataclass(frozen=True, kw_only=True)
class TestHarness(ABC):
    """Abstract base for the build/test tooling that runs a workspace.

    The harness owns what "reachable" means for its toolchain: it enumerates
    targets and runs one target at a time. It reports failing tests as data
    and raises only when the tooling itself is broken.
    """

    __test__ = False

    @abstractmethod
    async def discover_targets(
        self,
        workspace_root: Path,
    ) -> Sequence[WorkspaceTestTarget]:
        """Enumerate every test target in the workspace.

        Args:
            workspace_root: Root directory of the workspace

        Returns:
            Discovered targets, possibly empty

        Raises:
            DiscoveryError: If the workspace cannot be enumerated

        """

    @abstractmethod
    async def run_target(
        self,
        workspace_root: Path,
        target: WorkspaceTestTarget,
    ) -> TargetResult:
        """Run all tests of a single target.

        Args:
            workspace_root: Root directory of the workspace
            target: Target returned by discover_targets

        Returns:
            Outcome of the target, "failed" when any test failed

        Raises:
            ExecutionError: If the harness could not run the target at all

        """


def parse_counts(
    summary: str,
    aliases: Mapping[str, str],
) -> Mapping[str, int]:
    """Sum "<count> <label>" pairs in a summary line into passed/failed/skipped.

    Args:
        summary: Summary text printed by the test tool
        aliases: Maps each label the tool prints to "passed", "failed" or
            "skipped"; unknown labels are ignored

    """
    counts = {"passed": 0, "failed": 0, "skipped": 0}
    for number, label in re.findall(r"(\d+) ([a-z]+(?: out)?)", summary):
        if (key := aliases.get(label)) is not None:
            counts[key] += int(number)
    return counts


def output_tail(output: str, lines: int = 20) -> str | None:
    """Return the last lines of tool output for failure messages."""
    stripped = output.strip()
    if not stripped:
        return None
    return "\n".join(stripped.splitlines()[-lines:])


def last_matching_line(output: str, pattern: re.Pattern[str]) -> str | None:
    """Return the last line of output matching pattern."""
    matches = [line for line in output.splitlines() if pattern.search(line)]
    return matches[-1] if matches else None
