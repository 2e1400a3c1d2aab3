"""cargo-nextest harness module."""

from workspace_test_action.harnesses.cargo_nextest.config import CargoNextestConfig
from workspace_test_action.harnesses.cargo_nextest.harness import CargoNextestHarness
from workspace_test_action.harnesses.cargo_nextest.manifest import (
    cargo_nextest_manifest,
)

__all__ = ["CargoNextestConfig", "CargoNextestHarness", "cargo_nextest_manifest"]
