"""CLI entry point for the workspace test action."""

import argparse
import asyncio
import json
import logging
import signal
import sys
from enum import IntEnum
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from workspace_test_action.cache_guard import GuardOutcome, enforce
from workspace_test_action.errors import DiscoveryError, ExecutionError, GuardError
from workspace_test_action.harnesses.loading import (
    HarnessNotFoundError,
    available_harnesses,
    load_harness_manifest,
)
from workspace_test_action.models.result import TestRunResult
from workspace_test_action.models.settings import SIZE_UNITS, RunSettings
from workspace_test_action.runner import AggregateTestRunner

STATUS_SYMBOLS = {
    "passed": "✅",
    "failed": "❌",
}


class ExitCode(IntEnum):
    """Process exit codes, distinct per kind of outcome."""

    PASSED = 0
    FAILED = 1
    DISCOVERY_ERROR = 2
    EXECUTION_ERROR = 3
    GUARD_ERROR = 4
    CANCELLED = 5
    CONFIG_ERROR = 6


RUN_STATUS_EXIT_CODES = {
    "passed": ExitCode.PASSED,
    "failed": ExitCode.FAILED,
    "cancelled": ExitCode.CANCELLED,
}


def log_results_summary(log: logging.Logger, run_result: TestRunResult) -> None:
    """Log a formatted summary of target results."""
    log.info("=" * 80)
    log.info("Test Results Summary:")
    log.info("=" * 80)

    for result in run_result.results:
        symbol = STATUS_SYMBOLS.get(result.status, "?")
        log.info(
            "%s %s: %s (%d passed, %d failed, %d skipped, %.2fs)",
            symbol,
            result.target_id,
            result.status,
            result.passed,
            result.failed,
            result.skipped,
            result.duration,
        )
        if result.message:
            log.info("  Message: %s", result.message)

    log.info(
        "Overall: %s (%d target(s), %.2fs)",
        run_result.status,
        len(run_result.results),
        run_result.duration,
    )


def format_cache_outcome(cache_outcome: GuardOutcome | None) -> dict[str, Any] | None:
    """Format the cache guard outcome for JSON output."""
    if cache_outcome is None:
        return None
    return {
        "path": str(cache_outcome.path),
        "status": cache_outcome.status,
        "size_bytes": cache_outcome.size_bytes,
        "threshold_bytes": cache_outcome.threshold_bytes,
    }


def format_output(
    run_result: TestRunResult, cache_outcome: GuardOutcome | None = None
) -> dict[str, Any]:
    """Format a completed run for JSON output."""
    return {
        "status": run_result.status,
        "total": len(run_result.results),
        "passed": run_result.passed,
        "failed": run_result.failed,
        "skipped": run_result.skipped,
        "failed_targets": sum(1 for r in run_result.results if r.status == "failed"),
        "duration": run_result.duration,
        "cache": format_cache_outcome(cache_outcome),
        "results": [
            {
                "target": result.target_id,
                "status": result.status,
                "passed": result.passed,
                "failed": result.failed,
                "skipped": result.skipped,
                "duration": result.duration,
                "message": result.message,
            }
            for result in run_result.results
        ],
    }


def format_error(
    kind: str, error: Exception, cache_outcome: GuardOutcome | None = None
) -> dict[str, Any]:
    """Format an invocation that could not run the tests for JSON output."""
    return {
        "status": "error",
        "error": kind,
        "message": str(error),
        "cache": format_cache_outcome(cache_outcome),
    }


async def run_until_done(
    runner: AggregateTestRunner,
    workspace_root: Path,
    timeout: float | None = None,
) -> TestRunResult:
    """Run all targets, cancelling on SIGINT, SIGTERM or timeout."""
    log = logging.getLogger("workspace_test_action")
    loop = asyncio.get_running_loop()
    task = asyncio.create_task(runner.run_all(workspace_root))

    def _cancel(sig: signal.Signals) -> None:
        log.warning("Received %s, cancelling run", sig.name)
        task.cancel()

    signals = (signal.SIGINT, signal.SIGTERM)
    for sig in signals:
        loop.add_signal_handler(sig, _cancel, sig)

    try:
        done, _ = await asyncio.wait({task}, timeout=timeout)
        if not done:
            log.warning("Run exceeded timeout of %.0fs, cancelling", timeout)
            task.cancel()
        try:
            return await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
            # Cancelled before any target was scheduled
            return TestRunResult(status="cancelled", results=[])
    finally:
        for sig in signals:
            loop.remove_signal_handler(sig)


async def run(settings: RunSettings, harness_config_json: str = "{}") -> int:
    """Bound the cache, run the workspace tests and return the exit code."""
    log = logging.getLogger("workspace_test_action")

    try:
        log.info("Loading harness: %s", settings.harness)
        manifest = load_harness_manifest(settings.harness)
        config = manifest.config_cls.model_validate_json(harness_config_json)
    except (HarnessNotFoundError, ValidationError) as e:
        log.error("Invalid configuration: %s", e)
        print(json.dumps(format_error("config", e), indent=2))
        return ExitCode.CONFIG_ERROR

    cache_outcome = None
    if settings.cache_path is not None and settings.cache_threshold_bytes is not None:
        log.info("Enforcing cache size limit on %s", settings.cache_path)
        try:
            cache_outcome = enforce(settings.cache_path, settings.cache_threshold_bytes)
        except GuardError as e:
            log.error("Cache guard failed: %s", e)
            print(json.dumps(format_error("guard", e), indent=2))
            return ExitCode.GUARD_ERROR
        log.info("Cache guard: %s", cache_outcome.status)

    runner = AggregateTestRunner(
        harness=manifest.harness_factory(config),
        max_workers=settings.max_workers,
    )
    try:
        run_result = await run_until_done(
            runner, settings.workspace_root, settings.timeout
        )
    except DiscoveryError as e:
        log.error("Test discovery failed: %s", e)
        print(json.dumps(format_error("discovery", e, cache_outcome), indent=2))
        return ExitCode.DISCOVERY_ERROR
    except ExecutionError as e:
        log.error("Test execution failed: %s", e)
        print(json.dumps(format_error("execution", e, cache_outcome), indent=2))
        return ExitCode.EXECUTION_ERROR

    log_results_summary(log, run_result)
    print(json.dumps(format_output(run_result, cache_outcome), indent=2))

    return RUN_STATUS_EXIT_CODES[run_result.status]


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Bound the build cache and run every workspace test target"
    )
    parser.add_argument(
        "--workspace-root",
        type=Path,
        required=True,
        help="Root directory of the test workspace",
    )
    parser.add_argument(
        "--harness",
        default="cargo-nextest",
        help=f"Harness key (available: {', '.join(available_harnesses())})",
    )
    parser.add_argument(
        "--harness-config",
        default="{}",
        help="JSON configuration for the harness",
    )
    parser.add_argument(
        "--cache-path",
        type=Path,
        default=None,
        help="Cache directory to remove when it exceeds --max-cache-size",
    )
    parser.add_argument(
        "--max-cache-size",
        type=int,
        default=None,
        help="Cache size threshold, in --size-unit",
    )
    parser.add_argument(
        "--size-unit",
        choices=list(SIZE_UNITS),
        default="MiB",
        help="Unit of --max-cache-size (default: MiB)",
    )
    parser.add_argument(
        "--max-workers",
        type=int,
        default=None,
        help="Maximum number of targets running at once (default: CPU count)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Cancel the run after this many seconds",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    options = {
        "workspace_root": args.workspace_root,
        "harness": args.harness,
        "cache_path": args.cache_path,
        "max_cache_size": args.max_cache_size,
        "size_unit": args.size_unit,
        "timeout": args.timeout,
    }
    if args.max_workers is not None:
        options["max_workers"] = args.max_workers

    try:
        settings = RunSettings(**options)
    except ValidationError as e:
        logging.getLogger("workspace_test_action").error("Invalid arguments: %s", e)
        sys.exit(ExitCode.CONFIG_ERROR)

    exit_code = asyncio.run(run(settings, args.harness_config))
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
