"""Configuration for the cargo-nextest harness."""

from collections.abc import Mapping, Sequence

from pydantic import BaseModel, ConfigDict


class CargoNextestConfig(BaseModel):
    """Configuration for the cargo-nextest harness."""

    # A misspelt key is a configuration error, not a silent default
    model_config = ConfigDict(extra="forbid")

    cargo: str = "cargo"
    profile: str | None = None
    extra_args: Sequence[str] = ()
    env: Mapping[str, str] = {}
