"""
Sales engine configuration (``sales_config``).

The single public entry point is ``get_engine_settings()``.  No engine reads
configuration files or environment variables; services resolve settings
once and pass the values into the pure engine functions.

Resolution order:
    1. An explicit ``path`` argument.
    2. The ``SALES_ENGINE_CONFIG`` environment variable.
    3. The packaged ``defaults.yaml``.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from sales_config.loader import load_engine_settings
from sales_config.schema import EngineSettings

__all__ = ["EngineSettings", "get_engine_settings", "DEFAULTS_PATH", "CONFIG_ENV_VAR"]

CONFIG_ENV_VAR = "SALES_ENGINE_CONFIG"
DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def get_engine_settings(path: Path | str | None = None) -> EngineSettings:
    """Return the active engine settings.

    Raises:
        FileNotFoundError: if the resolved settings file does not exist.
        InvalidEngineSettingsError: if the file holds invalid values.
    """
    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        path = Path(env_path) if env_path else DEFAULTS_PATH
    return _load_cached(Path(path).resolve())


@lru_cache(maxsize=8)
def _load_cached(path: Path) -> EngineSettings:
    return load_engine_settings(path)


get_engine_settings.cache_clear = _load_cached.cache_clear  # type: ignore[attr-defined]
