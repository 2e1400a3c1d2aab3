"""Models for `cargo metadata` output."""

from collections.abc import Sequence
from pathlib import Path

from workspace_test_action.models.base import Model


class CargoPackage(Model):
    """A package listed by cargo metadata."""

    id: str
    name: str
    manifest_path: Path


class CargoMetadata(Model):
    """Subset of `cargo metadata --format-version 1` used for discovery."""

    packages: Sequence[CargoPackage]
    workspace_members: Sequence[str]
    workspace_root: Path
