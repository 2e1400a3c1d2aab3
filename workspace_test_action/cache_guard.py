"""Bound the size of a persistent build-artifact cache directory."""

import logging
import shutil
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from workspace_test_action.errors import GuardError

log = logging.getLogger(__name__)

GuardStatus = Literal["skipped", "within_limit", "cleared"]


@dataclass(frozen=True, kw_only=True)
class GuardOutcome:
    """Result of enforcing the size threshold on a cache directory."""

    path: Path
    status: GuardStatus
    size_bytes: int | None
    threshold_bytes: int


def enforce(path: Path, threshold_bytes: int) -> GuardOutcome:
    """Delete the cache directory if it grew past the threshold.

    The whole directory is removed rather than pruned: the cache is rebuilt
    from empty by the toolchain on the next use.

    Args:
        path: Cache directory, which does not have to exist
        threshold_bytes: Maximum total size of regular files under path

    Returns:
        Outcome describing what the guard did

    Raises:
        ValueError: If threshold_bytes is not positive
        GuardError: If the size cannot be computed or the directory removed

    """
    if threshold_bytes <= 0:
        raise ValueError(f"Threshold must be positive, got {threshold_bytes}")

    try:
        mode = path.lstat().st_mode
    except FileNotFoundError:
        log.info("Cache directory %s does not exist, skipping", path)
        return GuardOutcome(
            path=path, status="skipped", size_bytes=None, threshold_bytes=threshold_bytes
        )
    except OSError as e:
        raise GuardError(f"Cannot inspect cache directory {path}: {e}") from e

    if not stat.S_ISDIR(mode):
        raise GuardError(f"Cache path {path} is not a directory")

    size = directory_size(path)
    log.info(
        "Cache directory %s is %d bytes (threshold %d bytes)",
        path,
        size,
        threshold_bytes,
    )

    if size <= threshold_bytes:
        return GuardOutcome(
            path=path,
            status="within_limit",
            size_bytes=size,
            threshold_bytes=threshold_bytes,
        )

    log.warning("Cache directory %s exceeds threshold, removing it", path)
    try:
        shutil.rmtree(path)
    except OSError as e:
        raise GuardError(f"Cannot remove cache directory {path}: {e}") from e

    return GuardOutcome(
        path=path, status="cleared", size_bytes=size, threshold_bytes=threshold_bytes
    )


def directory_size(path: Path) -> int:
    """Sum the sizes of all regular files under path without following symlinks.

    Raises:
        GuardError: If any part of the tree cannot be read, including entries
            vanishing while the tree is walked

    """
    total = 0
    try:
        for dirpath, _dirnames, filenames in path.walk(on_error=_raise):
            for filename in filenames:
                file_stat = (dirpath / filename).lstat()
                if stat.S_ISREG(file_stat.st_mode):
                    total += file_stat.st_size
    except OSError as e:
        raise GuardError(f"Cannot compute size of {path}: {e}") from e
    return total


def _raise(error: OSError) -> None:
    raise error
