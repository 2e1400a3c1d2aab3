"""Models for test targets discovered in a workspace."""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, kw_only=True)
class WorkspaceTestTarget:
    """One independently testable package within a workspace."""

    __test__ = False

    identifier: str
    location: Path
