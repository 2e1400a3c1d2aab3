"""cargo-nextest harness manifest."""

from workspace_test_action.harnesses.cargo_nextest.config import CargoNextestConfig
from workspace_test_action.harnesses.cargo_nextest.harness import CargoNextestHarness
from workspace_test_action.harnesses.manifest import HarnessManifest

cargo_nextest_manifest = HarnessManifest(
    config_cls=CargoNextestConfig,
    harness_factory=CargoNextestHarness.from_config,
)
