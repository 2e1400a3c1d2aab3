"""pytest harness implementation."""

import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from workspace_test_action.errors import DiscoveryError, ExecutionError
from workspace_test_action.harnesses.base import (
    TestHarness,
    last_matching_line,
    output_tail,
    parse_counts,
)
from workspace_test_action.harnesses.process import run_process
from workspace_test_action.harnesses.python_pytest.config import PytestConfig
from workspace_test_action.models.result import TargetResult
from workspace_test_action.models.target import WorkspaceTestTarget

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_TESTS_FAILED = 1
EXIT_INTERRUPTED = 2
EXIT_NO_TESTS_COLLECTED = 5

SUMMARY_LINE = re.compile(
    r"\b(passed|failed|skipped|errors?|no tests ran)\b.* in [\d.]+s"
)

# An import or syntax error in a test module interrupts the session
COLLECTION_ERROR = re.compile(r"\b\d+ errors? during collection\b")

COUNT_ALIASES: Mapping[str, str] = {
    "passed": "passed",
    "xpassed": "passed",
    "failed": "failed",
    "error": "failed",
    "errors": "failed",
    "skipped": "skipped",
    "xfailed": "skipped",
}


@dataclass(frozen=True, kw_only=True)
class PytestHarness(TestHarness):
    """Runs the tests directory of each Python package with pytest."""

    config: PytestConfig

    @classmethod
    def from_config(cls, config: PytestConfig) -> "PytestHarness":
        """Create harness from its configuration."""
        return cls(config=config)

    async def discover_targets(
        self,
        workspace_root: Path,
    ) -> Sequence[WorkspaceTestTarget]:
        """Find package directories that contain a tests directory."""
        excluded = set(self.config.exclude)
        try:
            package_dirs = {
                marker.parent
                for marker in workspace_root.glob(self.config.marker_glob)
                if not excluded.intersection(marker.relative_to(workspace_root).parts)
                and (marker.parent / self.config.tests_dir).is_dir()
            }
        except OSError as e:
            raise DiscoveryError(f"Cannot enumerate {workspace_root}: {e}") from e

        log.debug(
            "Found %d package(s) with tests under %s", len(package_dirs), workspace_root
        )
        return sorted(
            (
                WorkspaceTestTarget(
                    identifier=package_dir.relative_to(workspace_root).as_posix(),
                    location=package_dir,
                )
                for package_dir in package_dirs
            ),
            key=lambda target: target.identifier,
        )

    async def run_target(
        self,
        workspace_root: Path,
        target: WorkspaceTestTarget,
    ) -> TargetResult:
        """Run pytest on the tests directory of a single package."""
        args = [
            self.config.python,
            "-m",
            "pytest",
            self.config.tests_dir,
            "--color=no",
            *self.config.extra_args,
        ]

        try:
            output = await run_process(args, cwd=target.location, env=self.config.env)
        except OSError as e:
            raise ExecutionError(f"Cannot run pytest: {e}") from e

        collection_failed = output.returncode == EXIT_INTERRUPTED and bool(
            COLLECTION_ERROR.search(output.stdout)
        )
        if not collection_failed and output.returncode not in {
            EXIT_OK,
            EXIT_TESTS_FAILED,
            EXIT_NO_TESTS_COLLECTED,
        }:
            raise ExecutionError(
                f"pytest exited with code {output.returncode} for "
                f"{target.identifier}: "
                f"{output_tail(output.stdout + output.stderr, lines=5)}"
            )

        summary = last_matching_line(output.stdout, SUMMARY_LINE) or ""
        counts = parse_counts(summary, COUNT_ALIASES)
        failed = collection_failed or output.returncode == EXIT_TESTS_FAILED

        return TargetResult(
            target_id=target.identifier,
            status="failed" if failed else "passed",
            passed=counts["passed"],
            failed=counts["failed"],
            skipped=counts["skipped"],
            duration=output.duration,
            message=output_tail(output.stdout) if failed else None,
        )
