"""
`.env` loading and state-file path resolution.

The CLI and the API can be started from any directory, so a relative
`storage.path` is anchored to `GEOFILTER_HOME` when set, otherwise to the directory
holding the nearest `.env`, otherwise to the working directory.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import find_dotenv, load_dotenv


@lru_cache
def load_env_file() -> Path | None:
    """Load the nearest `.env` at or above the working directory, once.

    Variables already set in the process environment win over the file.
    """
    found = find_dotenv(usecwd=True)
    if not found:
        return None
    load_dotenv(found, override=False)
    return Path(found)


def state_dir() -> Path:
    home = os.getenv("GEOFILTER_HOME")
    if home:
        return Path(home).expanduser().resolve()
    env_file = load_env_file()
    return env_file.parent if env_file else Path.cwd().resolve()


def resolve_storage_path(path: str | Path) -> Path:
    p = Path(path).expanduser()
    return p if p.is_absolute() else state_dir() / p
