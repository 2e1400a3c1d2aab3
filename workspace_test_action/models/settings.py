"""Run-level settings shared by the cache guard and the test runner."""

import os
from pathlib import Path
from typing import Literal, Self

from pydantic import Field, PositiveFloat, PositiveInt, model_validator

from workspace_test_action.models.base import Model

SizeUnit = Literal["B", "KiB", "MiB", "GiB"]

SIZE_UNITS: dict[SizeUnit, int] = {
    "B": 1,
    "KiB": 1024,
    "MiB": 1024**2,
    "GiB": 1024**3,
}


def default_max_workers() -> int:
    """Use one worker per available CPU."""
    return os.cpu_count() or 1


class RunSettings(Model):
    """Settings for a single invocation."""

    workspace_root: Path = Field(..., description="Root of the test workspace")
    harness: str = Field(default="cargo-nextest", description="Harness key")
    cache_path: Path | None = Field(
        default=None, description="Cache directory bounded before the run"
    )
    max_cache_size: PositiveInt | None = Field(
        default=None, description="Cache threshold, expressed in size_unit"
    )
    size_unit: SizeUnit = Field(default="MiB", description="Unit of max_cache_size")
    max_workers: PositiveInt = Field(
        default_factory=default_max_workers,
        description="Maximum number of targets running at once",
    )
    timeout: PositiveFloat | None = Field(
        default=None, description="Overall run timeout in seconds"
    )

    @model_validator(mode="after")
    def _check_cache_threshold(self) -> Self:
        if self.cache_path is not None and self.max_cache_size is None:
            raise ValueError("max_cache_size is required when cache_path is set")
        return self

    @property
    def cache_threshold_bytes(self) -> int | None:
        """Cache threshold converted to bytes, None when no cache is guarded."""
        if self.max_cache_size is None:
            return None
        return self.max_cache_size * SIZE_UNITS[self.size_unit]
