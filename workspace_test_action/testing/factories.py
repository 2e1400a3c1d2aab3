"""Test factories for generating test data."""

from pathlib import Path

from polyfactory import Use
from polyfactory.factories import DataclassFactory

from workspace_test_action.models.result import TargetResult
from workspace_test_action.models.target import WorkspaceTestTarget


class TargetResultFactory(DataclassFactory[TargetResult]):
    """Factory for TargetResult."""

    __model__ = TargetResult

    message = None


class WorkspaceTestTargetFactory(DataclassFactory[WorkspaceTestTarget]):
    """Factory for WorkspaceTestTarget."""

    __model__ = WorkspaceTestTarget

    location = Use(lambda: Path("/workspace/crates/example"))
