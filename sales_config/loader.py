"""
Configuration Loader (``sales_config.loader``).

Responsibility
--------------
Loads YAML settings files and parses them into the frozen
``sales_config.schema.EngineSettings`` dataclass.  The public entry point
for runtime settings is ``sales_config.get_engine_settings()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Non-numeric or out-of-range values -> ``InvalidEngineSettingsError``.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from sales_config.schema import EngineSettings
from sales_kernel.exceptions import InvalidEngineSettingsError

_INT_FIELDS = ("money_places", "quantity_places", "rate_places")
_DECIMAL_FIELDS = ("default_vat_rate", "discount_rate_min", "discount_rate_max")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(name: str, value: Any) -> Decimal:
    """Parse a Decimal setting; floats go through ``str()``."""
    if isinstance(value, bool):
        raise InvalidEngineSettingsError(name, value, "must be a number")
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise InvalidEngineSettingsError(name, value, "must be a number") from e


def parse_engine_settings(data: dict[str, Any]) -> EngineSettings:
    """
    Parse ``EngineSettings`` from the ``engine`` section of a settings dict.

    Keys missing from the section keep their dataclass defaults.  Unknown
    keys are rejected so typos do not silently fall back to defaults.
    """
    section = data.get("engine", data) or {}
    if not isinstance(section, dict):
        raise InvalidEngineSettingsError("engine", section, "must be a mapping")

    known = set(_INT_FIELDS) | set(_DECIMAL_FIELDS) | {"rounding"}
    unknown = sorted(set(section) - known)
    if unknown:
        raise InvalidEngineSettingsError(unknown[0], section[unknown[0]], "unknown setting")

    kwargs: dict[str, Any] = {}
    for name in _INT_FIELDS:
        if name in section:
            kwargs[name] = section[name]
    for name in _DECIMAL_FIELDS:
        if name in section:
            kwargs[name] = parse_decimal(name, section[name])
    if "rounding" in section:
        kwargs["rounding"] = str(section["rounding"]).strip().upper()
    return EngineSettings(**kwargs)


def load_engine_settings(path: Path) -> EngineSettings:
    """Load and parse an engine settings YAML file."""
    return parse_engine_settings(load_yaml_file(path))
