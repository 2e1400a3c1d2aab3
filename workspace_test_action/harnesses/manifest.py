"""Harness manifest definition for the plugin system."""

from collections.abc import Callable
from dataclasses import dataclass

from pydantic import BaseModel

from workspace_test_action.harnesses.base import TestHarness


@dataclass(frozen=True, kw_only=True)
class HarnessManifest[ConfigT: BaseModel]:
    """Manifest describing a harness plugin.

    The manifest references the configuration class and the harness factory
    so harnesses are only imported once selected by key.
    """

    config_cls: type[ConfigT]
    harness_factory: Callable[[ConfigT], TestHarness]
