"""Fixtures for integration tests."""

import json
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

PASSING_TESTS = """\
import pytest


def test_one():
    assert 1 + 1 == 2


def test_two():
    assert "a".upper() == "A"


@pytest.mark.skip(reason="not relevant")
def test_skipped():
    pass
"""


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create an empty workspace directory."""
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def create_package(workspace: Path) -> Callable[..., Path]:
    """Return a function to create packages in the workspace."""

    def _create(name: str, tests: str | None = PASSING_TESTS) -> Path:
        package = workspace / "packages" / name
        package.mkdir(parents=True)
        (package / "pyproject.toml").write_text(f'[project]\nname = "{name}"\n')
        if tests is not None:
            (package / "tests").mkdir()
            (package / "tests" / f"test_{name}.py").write_text(tests)
        return package

    return _create


@pytest.fixture
def harness_config_json() -> str:
    """Harness configuration running pytest with the current interpreter."""
    return json.dumps(
        {"python": sys.executable, "extra_args": ["-p", "no:cacheprovider"]}
    )
