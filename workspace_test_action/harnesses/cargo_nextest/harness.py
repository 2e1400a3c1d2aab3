"""cargo-nextest harness implementation."""

import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from workspace_test_action.errors import DiscoveryError, ExecutionError
from workspace_test_action.harnesses.base import (
    TestHarness,
    last_matching_line,
    output_tail,
    parse_counts,
)
from workspace_test_action.harnesses.cargo_nextest.config import CargoNextestConfig
from workspace_test_action.harnesses.cargo_nextest.models import CargoMetadata
from workspace_test_action.harnesses.process import run_process
from workspace_test_action.models.result import TargetResult
from workspace_test_action.models.target import WorkspaceTestTarget

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_TEST_RUN_FAILED = 100
EXIT_BUILD_FAILED = 101

SUMMARY_LINE = re.compile(r"^\s*Summary \[")

COUNT_ALIASES: Mapping[str, str] = {
    "passed": "passed",
    "failed": "failed",
    "timed out": "failed",
    "skipped": "skipped",
}


@dataclass(frozen=True, kw_only=True)
class CargoNextestHarness(TestHarness):
    """Runs each workspace member package with `cargo nextest run`.

    Every target is a separate `cargo nextest run --package <name>` so that
    counts and failures are attributed per package. Cargo unifies features
    over the selected packages only, which can differ from a
    `cargo nextest run --workspace` build: a dependency shared by members that
    enable different features is compiled once per feature set. Declare the
    shared features in `[workspace.dependencies]` when those rebuilds matter.
    """

    config: CargoNextestConfig

    @classmethod
    def from_config(cls, config: CargoNextestConfig) -> "CargoNextestHarness":
        """Create harness from its configuration."""
        return cls(config=config)

    @property
    def _env(self) -> Mapping[str, str]:
        # The summary line is parsed, so it must not contain color codes
        return {"CARGO_TERM_COLOR": "never", **self.config.env}

    async def discover_targets(
        self,
        workspace_root: Path,
    ) -> Sequence[WorkspaceTestTarget]:
        """List workspace member packages via `cargo metadata`."""
        try:
            output = await run_process(
                [self.config.cargo, "metadata", "--format-version", "1", "--no-deps"],
                cwd=workspace_root,
                env=self._env,
            )
        except OSError as e:
            raise DiscoveryError(f"Cannot run cargo metadata: {e}") from e

        if output.returncode != 0:
            raise DiscoveryError(
                f"cargo metadata failed with code {output.returncode}: "
                f"{output.stderr.strip()}"
            )

        try:
            metadata = CargoMetadata.model_validate_json(output.stdout)
        except ValidationError as e:
            raise DiscoveryError(f"Unexpected cargo metadata output: {e}") from e

        members = set(metadata.workspace_members)
        log.debug(
            "cargo metadata listed %d package(s), %d workspace member(s)",
            len(metadata.packages),
            len(members),
        )
        return sorted(
            (
                WorkspaceTestTarget(
                    identifier=package.name,
                    location=package.manifest_path.parent,
                )
                for package in metadata.packages
                if package.id in members
            ),
            key=lambda target: target.identifier,
        )

    async def run_target(
        self,
        workspace_root: Path,
        target: WorkspaceTestTarget,
    ) -> TargetResult:
        """Run `cargo nextest run` for a single package."""
        args = [
            self.config.cargo,
            "nextest",
            "run",
            "--no-fail-fast",
            "--no-tests=pass",
            "--package",
            target.identifier,
        ]
        if self.config.profile:
            args += ["--profile", self.config.profile]
        args += self.config.extra_args

        try:
            output = await run_process(args, cwd=workspace_root, env=self._env)
        except OSError as e:
            raise ExecutionError(f"Cannot run cargo nextest: {e}") from e

        if output.returncode not in {EXIT_OK, EXIT_TEST_RUN_FAILED, EXIT_BUILD_FAILED}:
            raise ExecutionError(
                f"cargo nextest exited with code {output.returncode} for "
                f"{target.identifier}: {output_tail(output.stderr, lines=5)}"
            )

        summary = last_matching_line(output.stderr, SUMMARY_LINE) or ""
        counts = parse_counts(summary, COUNT_ALIASES)

        message = None
        if output.returncode == EXIT_BUILD_FAILED:
            message = f"Build failed\n{output_tail(output.stderr)}"
        elif output.returncode == EXIT_TEST_RUN_FAILED:
            message = output_tail(output.stderr)

        return TargetResult(
            target_id=target.identifier,
            status="passed" if output.returncode == EXIT_OK else "failed",
            passed=counts["passed"],
            failed=counts["failed"],
            skipped=counts["skipped"],
            duration=output.duration,
            message=message,
        )
