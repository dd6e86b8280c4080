"""Storage root resolution."""

import os
from pathlib import Path

from .constants import DATA_DIR_ENV_VAR, DEFAULT_DATA_DIR_NAME


def get_data_dir(override: str | Path | None = None) -> Path:
    """Resolve the storage root.

    Precedence: explicit override, then $DEBUG_DATA_DIR, then
    ~/.debug-thinking-mcp.
    """
    if override:
        return Path(override).expanduser()
    env = os.environ.get(DATA_DIR_ENV_VAR)
    if env:
        return Path(env).expanduser()
    return Path.home() / DEFAULT_DATA_DIR_NAME
