"""
Configuration management for the Spectrogram Generator.

YAML files are layered over :func:`get_default_config`. String values may
reference the environment as ``${NAME}`` or ``${NAME:-fallback}``; an
unset variable without a fallback is left as written.
"""

import copy
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from spectrogen.utils.errors import ConfigurationError

DEFAULT_CONFIG_PATHS = (Path("config/config.yaml"), Path("config.yaml"))

_ENV_REFERENCE = re.compile(
    r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::-(?P<fallback>[^}]*))?\}"
)
_MISSING = object()


def expand_env(value: Any) -> Any:
    """Substitute environment references in every string of a nested structure."""
    if isinstance(value, dict):
        return {key: expand_env(item) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_env(item) for item in value]
    if not isinstance(value, str):
        return value

    def substitute(match: "re.Match[str]") -> str:
        resolved = os.environ.get(match.group("name"))
        if resolved is not None:
            return resolved
        fallback = match.group("fallback")
        return fallback if fallback is not None else match.group(0)

    return _ENV_REFERENCE.sub(substitute, value)


class ConfigManager:
    """
    Nested configuration addressed with dotted keys ("display.colormap").

    The manager owns a deep copy of the mapping it is given, so callers can
    layer overrides without touching their own dictionaries.
    """

    def __init__(self, config_dict: Optional[Dict[str, Any]] = None):
        self._config: Dict[str, Any] = copy.deepcopy(config_dict) if config_dict else {}

    @classmethod
    def from_file(cls, file_path: Path) -> "ConfigManager":
        """
        Read a YAML mapping and expand environment references.

        Raises:
            ConfigurationError: Missing file, invalid YAML or non-mapping root
        """
        file_path = Path(file_path)
        source = str(file_path)
        if not file_path.is_file():
            raise ConfigurationError(f"Configuration file not found: {file_path}", config_key=source)

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {file_path}: {e}", config_key=source) from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigurationError(
                f"{file_path} must contain a mapping, got {type(loaded).__name__}",
                config_key=source,
            )
        return cls(expand_env(loaded))

    def _lookup(self, key: str) -> Any:
        node: Any = self._config
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return _MISSING
            node = node[part]
        return node

    def get(self, key: str, default: Any = None, required: bool = False) -> Any:
        """
        Value at dotted ``key``, or ``default`` when absent.

        Raises:
            ConfigurationError: ``required`` is set and the key is absent
        """
        value = self._lookup(key)
        if value is _MISSING:
            if required:
                raise ConfigurationError(f"Missing configuration key: {key}", config_key=key)
            return default
        return value

    def get_section(self, key: str) -> Dict[str, Any]:
        """Mapping at ``key``; empty when absent or not a mapping."""
        value = self.get(key)
        return value if isinstance(value, dict) else {}

    def set(self, key: str, value: Any) -> None:
        *parents, leaf = key.split(".")
        node = self._config
        for part in parents:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[leaf] = value

    def merge(self, overrides: Dict[str, Any]) -> None:
        """Deep-merge ``overrides`` into the configuration."""
        self._config = _deep_merge(self._config, overrides)

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._config)

    def validate(self, schema: Dict[str, Dict[str, Any]]) -> None:
        """
        Check values against per-key rules.

        Rules: ``type`` (a type or tuple; bools only match an explicit
        ``bool``), ``required``, ``choices``, ``min`` and ``max``. Absent
        optional keys are skipped.

        Raises:
            ConfigurationError: Listing every failing key; ``config_key``
                names the first one
        """
        problems: List[str] = []
        first_key: Optional[str] = None

        for key, rules in schema.items():
            problem = _check_value(key, self.get(key), rules)
            if problem:
                problems.append(problem)
                first_key = first_key or key

        if problems:
            raise ConfigurationError("; ".join(problems), config_key=first_key)


def _check_value(key: str, value: Any, rules: Dict[str, Any]) -> Optional[str]:
    if value is None:
        return f"{key} is required" if rules.get("required") else None

    expected = rules.get("type")
    if expected is not None:
        allowed = expected if isinstance(expected, tuple) else (expected,)
        if (isinstance(value, bool) and bool not in allowed) or not isinstance(value, allowed):
            names = "/".join(t.__name__ for t in allowed)
            return f"{key}: expected {names}, got {type(value).__name__}"

    choices = rules.get("choices")
    if choices is not None and value not in choices:
        return f"{key}: {value!r} is not one of {', '.join(map(str, choices))}"
    if "min" in rules and value < rules["min"]:
        return f"{key}: {value} is below the minimum {rules['min']}"
    if "max" in rules and value > rules["max"]:
        return f"{key}: {value} is above the maximum {rules['max']}"
    return None


def _deep_merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    result = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Defaults with the YAML file at ``config_path`` layered on top.

    Without a path the first of ``config/config.yaml`` and ``config.yaml``
    that exists is used; with none present the defaults are returned.

    Raises:
        ConfigurationError: An explicit config_path does not exist or is invalid
    """
    if config_path is None:
        config_path = next(
            (str(path) for path in DEFAULT_CONFIG_PATHS if path.is_file()), None
        )

    manager = ConfigManager(get_default_config())
    if config_path:
        manager.merge(ConfigManager.from_file(Path(config_path)).to_dict())
    return manager.to_dict()


def get_default_config() -> Dict[str, Any]:
    """Return default configuration values."""
    return {
        "audio": {
            "max_file_size": 524288000,  # 500MB
        },
        "analysis": {
            "fft_size": 2048,
            "window_function": "hann",
            "batch_frames": 256,
        },
        "noise": {
            "noise_reduction": True,
            "noise_threshold": -60.0,
            "signal_enhancement": True,
            "contrast_boost": 2.0,
            "floor_db": -120.0,
            "ceiling_db": 0.0,
        },
        "display": {
            "min_db": -120.0,
            "max_db": 0.0,
            "colormap": "grayscale",
            "show_grid": True,
            "show_axes": True,
            "academic_style": True,
            "time_unit": "s",
            "freq_unit": "kHz",
            "panel_label": "A",
            "panel_label_color": "#000000",
            "panel_label_size": 16,
            "panel_label_position": "top-left",
            "panel_label_x": 10,
            "panel_label_y": 10,
            "width": 1000,
            "height": 600,
        },
        "annotations": {
            "text": "Annotation",
            "color": "#ef4444",
            "font_size": 14,
        },
        "logging": {
            "level": "INFO",
            "format": "text",
            "file": None,
            "max_bytes": 10485760,
            "backup_count": 5,
        },
    }
