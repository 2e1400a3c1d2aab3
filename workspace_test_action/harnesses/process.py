"""Subprocess execution shared by harnesses."""

import asyncio
import logging
import os
import signal
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

log = logging.getLogger(__name__)

# Seconds between SIGTERM and SIGKILL when a run is cancelled
TERMINATE_GRACE_PERIOD = 5.0


@dataclass(frozen=True, kw_only=True)
class ProcessOutput:
    """Captured output of a finished subprocess."""

    returncode: int
    stdout: str
    stderr: str
    duration: float


async def run_process(
    args: Sequence[str],
    cwd: Path,
    env: Mapping[str, str] | None = None,
) -> ProcessOutput:
    """Run a command to completion and capture its output.

    The child runs in its own session. If the awaiting task is cancelled, the
    whole process group is sent SIGTERM, then SIGKILL after
    TERMINATE_GRACE_PERIOD seconds, and the child is reaped before the
    cancellation propagates. Test binaries and workers started by the tool
    are terminated with it.

    Args:
        args: Program and arguments
        cwd: Working directory
        env: Variables added on top of the current environment

    Raises:
        OSError: If the program cannot be started

    """
    loop = asyncio.get_running_loop()
    start = loop.time()
    log.debug("Running %s in %s", " ".join(args), cwd)

    process = await asyncio.create_subprocess_exec(
        *args,
        cwd=cwd,
        env={**os.environ, **env} if env else None,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        start_new_session=True,
    )
    try:
        stdout, stderr = await process.communicate()
    except asyncio.CancelledError:
        log.info("Terminating %s (pid %d)", args[0], process.pid)
        await _terminate_group(process)
        raise

    return ProcessOutput(
        returncode=process.returncode,
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
        duration=loop.time() - start,
    )


def _signal_group(process: asyncio.subprocess.Process, sig: signal.Signals) -> None:
    try:
        os.killpg(process.pid, sig)
    except ProcessLookupError:
        # Every process in the group has exited
        pass


async def _terminate_group(process: asyncio.subprocess.Process) -> None:
    """Stop the child and everything it started, then reap the child."""
    _signal_group(process, signal.SIGTERM)
    try:
        await asyncio.wait_for(process.wait(), TERMINATE_GRACE_PERIOD)
    except TimeoutError:
        log.warning(
            "pid %d still running %.0fs after SIGTERM, killing",
            process.pid,
            TERMINATE_GRACE_PERIOD,
        )
    # Descendants may outlive the child and hold its output pipes open
    _signal_group(process, signal.SIGKILL)
    await process.wait()
