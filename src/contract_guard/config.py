"""Configuration file support for contract-guard.

Settings come from a TOML file with an ``[extract]`` and a ``[compare]``
table. Explicit overrides (typically command-line flags) take precedence
over the file, and the file over the option dataclass defaults.
"""

import sys
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union
import logging

from .diffing.api_differ import DiffOptions
from .introspection.api_extractor import ExtractionOptions
from .utils.error_handling import ConfigurationError

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "contract-guard.toml"

# Settings read by the CLI rather than by an option dataclass.
COMPARE_CLI_SETTINGS = {"format": str, "fail_on_breaking": bool}


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """Load configuration from a TOML file.

    Args:
        config_path: Path to the configuration file.

    Returns:
        The parsed configuration, or an empty dict when the file is absent.

    Raises:
        ConfigurationError: If the file exists but cannot be read or parsed.
    """
    config_file = Path(config_path)

    if not config_file.exists():
        logger.warning(f"Config file not found: {config_path}, using defaults")
        return {}

    try:
        with open(config_file, 'rb') as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {config_path}: {e}", {"path": str(config_path)}) from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read {config_path}: {e}", {"path": str(config_path)}) from e


def _section(config: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = config.get(name, {})
    if not isinstance(section, Mapping):
        raise ConfigurationError(f"[{name}] must be a table", {"section": name})
    return section


def _build_options(cls, section_name: str, config: Mapping[str, Any],
                   overrides: Optional[Mapping[str, Any]], extra_keys: Optional[Mapping[str, type]] = None):
    section = _section(config, section_name)
    known = {f.name: f for f in fields(cls)}
    values = {}

    for key, value in section.items():
        if key not in known:
            if not extra_keys or key not in extra_keys:
                logger.warning(f"Ignoring unknown setting [{section_name}].{key}")
            continue
        values[key] = value

    for key, value in (overrides or {}).items():
        if value is not None and key in known:
            values[key] = value

    for key, value in values.items():
        expected = type(known[key].default)
        # bool is a subclass of int; reject it where an int is expected.
        if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
            raise ConfigurationError(
                f"[{section_name}].{key} must be {expected.__name__}, got {type(value).__name__}",
                {"section": section_name, "key": key},
            )

    try:
        return cls(**values)
    except ValueError as e:
        raise ConfigurationError(f"[{section_name}]: {e}", {"section": section_name}) from e


def extraction_options_from_config(config: Mapping[str, Any],
                                   overrides: Optional[Mapping[str, Any]] = None) -> ExtractionOptions:
    """Build ExtractionOptions from the ``[extract]`` table plus overrides."""
    return _build_options(ExtractionOptions, "extract", config, overrides)


def diff_options_from_config(config: Mapping[str, Any],
                             overrides: Optional[Mapping[str, Any]] = None) -> DiffOptions:
    """Build DiffOptions from the ``[compare]`` table plus overrides."""
    return _build_options(DiffOptions, "compare", config, overrides, COMPARE_CLI_SETTINGS)


def compare_setting(config: Mapping[str, Any], key: str, override: Any = None, default: Any = None) -> Any:
    """Read a CLI-only ``[compare]`` setting such as ``format``."""
    if override is not None:
        return override
    value = _section(config, "compare").get(key, default)
    expected = COMPARE_CLI_SETTINGS[key]
    if value is not None and not isinstance(value, expected):
        raise ConfigurationError(
            f"[compare].{key} must be {expected.__name__}, got {type(value).__name__}",
            {"section": "compare", "key": key},
        )
    return value
