"""Infrastructure errors.

Failing tests are never reported through these exceptions; they are part of
the run result. These errors mean the environment itself is broken.
"""


class WorkspaceTestError(Exception):
    """Base class for errors that abort an invocation."""


class GuardError(WorkspaceTestError):
    """Raised when the cache size cannot be measured or the cache removed."""


class RunnerError(WorkspaceTestError):
    """Base class for aggregate test runner errors."""


class DiscoveryError(RunnerError):
    """Raised when the workspace cannot be enumerated at all."""


class ExecutionError(RunnerError):
    """Raised when the test harness itself fails, as opposed to a test."""
