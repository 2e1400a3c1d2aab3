"""Configuration for the pytest harness."""

from collections.abc import Mapping, Sequence

from pydantic import BaseModel, ConfigDict


class PytestConfig(BaseModel):
    """Configuration for the pytest harness."""

    # A misspelt key is a configuration error, not a silent default
    model_config = ConfigDict(extra="forbid")

    python: str = "python"
    # A package is a directory holding a marker file and a tests directory
    marker_glob: str = "**/pyproject.toml"
    tests_dir: str = "tests"
    exclude: Sequence[str] = (".git", ".venv", "node_modules", ".tox")
    extra_args: Sequence[str] = ()
    env: Mapping[str, str] = {}
