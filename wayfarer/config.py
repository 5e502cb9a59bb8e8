"""
Client configuration.

Settings come from three layers, later ones winning:
1. Dataclass defaults
2. An optional YAML file (read with yaml.safe_load, never written back)
3. WAYFARER_* environment variables

Example wayfarer.yaml:

    server_url: ws://localhost:3000
    include_diagnostics: true
    combat:
      style: split
      show_impact_effects: false
    chat_verbs:
      mutter: mutters
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from .engine.systems.combat import COMBAT_STYLES, STYLE_COMPACT, CombatDisplayConfig
from .engine.systems.router import DEFAULT_CHAT_VERBS
from .errors import ConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = "WAYFARER_"

_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off"}


@dataclass
class ClientConfig:
    server_url: str = "ws://localhost:3000"
    protocol_version: str = "1.0.0"
    client_version: str = "0.1.0"
    max_update_rate: int = 1
    default_command_type: str = "command"
    include_diagnostics: bool = False
    show_dev_notices: bool = False
    show_timestamps: bool = False
    log_level: str = "WARNING"
    combat: CombatDisplayConfig = field(default_factory=CombatDisplayConfig)
    chat_verbs: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_CHAT_VERBS))


def _coerce(value: Any, default: Any) -> Any:
    """Convert a YAML/env value to the type of ``default``; None if impossible."""
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE_WORDS:
            return True
        if text in _FALSE_WORDS:
            return False
        return None
    if isinstance(default, int):
        if isinstance(value, bool):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None
    if isinstance(default, str):
        if isinstance(value, (dict, list)) or value is None:
            return None
        return str(value)
    return None


def _apply(target: Any, values: Mapping[str, Any], source: str) -> None:
    known = {f.name for f in fields(target)}
    for key, value in values.items():
        # Nested sections are applied by load_config
        if key in ("combat", "chat_verbs"):
            continue
        if key not in known:
            logger.warning("Ignoring unknown config key %r in %s", key, source)
            continue
        coerced = _coerce(value, getattr(target, key))
        if coerced is None:
            logger.warning("Ignoring invalid value %r for %s in %s", value, key, source)
            continue
        setattr(target, key, coerced)


def _validate(config: ClientConfig) -> ClientConfig:
    style = config.combat.style.strip().lower()
    if style not in COMBAT_STYLES:
        logger.warning("Unknown combat style %r, using %s", config.combat.style, STYLE_COMPACT)
        style = STYLE_COMPACT
    config.combat.style = style

    if config.max_update_rate < 1:
        logger.warning("max_update_rate must be at least 1, got %s", config.max_update_rate)
        config.max_update_rate = 1
    return config


def read_config_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a YAML config file.

    Raises:
        ConfigError: The file is unreadable, not YAML, or not a mapping
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def load_config(
    path: Optional[Union[str, Path]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> ClientConfig:
    """
    Build a ClientConfig from defaults, an optional YAML file and the environment.

    Args:
        path: YAML file to read; a missing file is skipped
        env: Environment mapping (defaults to os.environ)

    Returns:
        The validated configuration
    """
    config = ClientConfig()
    env = os.environ if env is None else env

    if path is not None:
        if Path(path).exists():
            data = read_config_file(path)
            _apply(config, data, str(path))

            combat = data.get("combat")
            if isinstance(combat, dict):
                _apply(config.combat, combat, f"{path} [combat]")
            elif combat is not None:
                logger.warning("Ignoring non-mapping 'combat' section in %s", path)

            verbs = data.get("chat_verbs")
            if isinstance(verbs, dict):
                config.chat_verbs.update({str(k).lower(): str(v) for k, v in verbs.items()})
            elif verbs is not None:
                logger.warning("Ignoring non-mapping 'chat_verbs' section in %s", path)
        else:
            logger.info("Config file %s not found, using defaults", path)

    overrides = {
        key[len(ENV_PREFIX):].lower(): value
        for key, value in env.items()
        if key.startswith(ENV_PREFIX) and key != ENV_PREFIX + "CONFIG"
    }
    combat_overrides = {
        key[len("combat_"):]: overrides.pop(key)
        for key in list(overrides)
        if key.startswith("combat_")
    }
    if overrides:
        _apply(config, overrides, "environment")
    if combat_overrides:
        _apply(config.combat, combat_overrides, "environment")

    return _validate(config)
