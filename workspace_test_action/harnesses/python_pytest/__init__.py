"""pytest harness module."""

from workspace_test_action.harnesses.python_pytest.config import PytestConfig
from workspace_test_action.harnesses.python_pytest.harness import PytestHarness
from workspace_test_action.harnesses.python_pytest.manifest import pytest_manifest

__all__ = ["PytestConfig", "PytestHarness", "pytest_manifest"]
