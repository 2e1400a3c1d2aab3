"""Loading of harnesses from entry points."""

from collections.abc import Sequence
from importlib.metadata import entry_points
from typing import Any

from workspace_test_action.harnesses.manifest import HarnessManifest

ENTRY_POINT_GROUP = "workspace_test_action.harnesses"


class HarnessNotFoundError(Exception):
    """Raised when a harness is not found."""


def available_harnesses() -> Sequence[str]:
    """Return the keys of all installed harnesses, sorted."""
    return sorted(entry.name for entry in entry_points(group=ENTRY_POINT_GROUP))


def load_harness_manifest(key: str) -> HarnessManifest[Any]:
    """Load a harness manifest by key.

    Args:
        key: The harness key as registered in pyproject.toml
             (e.g., "cargo-nextest", "pytest")

    Returns:
        The harness manifest instance

    Raises:
        HarnessNotFoundError: If no harness manifest is registered under key

    """
    for entry in entry_points(group=ENTRY_POINT_GROUP, name=key):
        manifest = entry.load()
        if not isinstance(manifest, HarnessManifest):
            raise HarnessNotFoundError(
                f"Entry point '{key}' does not reference a harness manifest"
            )
        return manifest

    raise HarnessNotFoundError(
        f"Harness '{key}' not found. Available harnesses: {available_harnesses()}"
    )
