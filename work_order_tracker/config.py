"""
Configuration for Work Order Tracker

Settings come from a YAML or JSON file, a plain dictionary, or environment
variables prefixed ``WORK_ORDER_TRACKER_``.
"""

import json
import os
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .core.exceptions import ConfigurationError
from .services.sequence_allocator import SEQUENCE_STRATEGIES

ENV_PREFIX = "WORK_ORDER_TRACKER_"


@dataclass
class TrackerConfig:
    """Tracker settings."""

    # Retry policy for store calls
    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0
    jitter: bool = False

    # Storage
    database_url: Optional[str] = None
    work_orders_collection: str = "work_orders"
    parts_collection: str = "parts"
    history_collection: str = "work_order_history"
    sequence_strategy: str = "count"

    # Lifecycle
    enforce_terminal_stop: bool = True

    # Logging
    log_level: str = "INFO"
    structured_logging: bool = True

    def __post_init__(self):
        self.validate()

    def validate(self):
        if self.max_attempts < 1:
            raise ConfigurationError("max_attempts", "must be at least 1")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ConfigurationError("initial_delay", "delays cannot be negative")
        if self.exponential_base < 1:
            raise ConfigurationError("exponential_base", "must be at least 1")
        if self.sequence_strategy not in SEQUENCE_STRATEGIES:
            raise ConfigurationError(
                "sequence_strategy", f"must be one of {', '.join(SEQUENCE_STRATEGIES)}"
            )
        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigurationError("log_level", f"unknown level {self.log_level!r}")

    def retry_config(self) -> Dict[str, Any]:
        """Settings consumed by FaultToleranceService."""
        return {
            "max_attempts": self.max_attempts,
            "initial_delay": self.initial_delay,
            "max_delay": self.max_delay,
            "exponential_base": self.exponential_base,
            "jitter": self.jitter
        }

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TrackerConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(sorted(unknown)[0], "unknown setting")
        try:
            return cls(**data)
        except TypeError as e:
            raise ConfigurationError("config", str(e))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None,
                 base: Optional["TrackerConfig"] = None) -> "TrackerConfig":
        """Overlay ``WORK_ORDER_TRACKER_*`` variables on ``base``."""
        environ = os.environ if environ is None else environ
        values = (base or cls()).to_dict()
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            values[f.name] = _coerce(f.name, raw, values[f.name])
        return cls.from_dict(values)


def _coerce(name: str, raw: str, current: Any) -> Any:
    if isinstance(current, bool):
        lowered = raw.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ConfigurationError(name, f"expected a boolean, got {raw!r}")
    try:
        if isinstance(current, int):
            return int(raw)
        if isinstance(current, float):
            return float(raw)
    except ValueError:
        raise ConfigurationError(name, f"expected a number, got {raw!r}")
    return raw


def load_config(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> TrackerConfig:
    """
    Load configuration from a file and the environment.

    Args:
        path: YAML (.yaml/.yml) or JSON file; optional
        environ: Environment mapping; defaults to os.environ

    Returns:
        Validated TrackerConfig
    """
    base = TrackerConfig()
    if path:
        config_path = Path(path)
        try:
            text = config_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(str(config_path), f"cannot read file: {e}")

        try:
            if config_path.suffix.lower() == ".json":
                data = json.loads(text)
            else:
                data = yaml.safe_load(text)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(str(config_path), f"cannot parse file: {e}")

        if not isinstance(data or {}, dict):
            raise ConfigurationError(str(config_path), "top level must be a mapping")
        base = TrackerConfig.from_dict(data or {})

    return TrackerConfig.from_env(environ, base=base)
