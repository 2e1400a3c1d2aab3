"""pytest harness manifest."""

from workspace_test_action.harnesses.manifest import HarnessManifest
from workspace_test_action.harnesses.python_pytest.config import PytestConfig
from workspace_test_action.harnesses.python_pytest.harness import PytestHarness

pytest_manifest = HarnessManifest(
    config_cls=PytestConfig,
    harness_factory=PytestHarness.from_config,
)
