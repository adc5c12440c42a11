"""
Configuration management for compl.

Loads settings from environment variables (optionally via a .env file) or
from nested user options, and validates them.
"""

import copy
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from dotenv import find_dotenv, load_dotenv


class ConfigError(ValueError):
    """Raised when user options have the wrong type or value"""

    pass


DEFAULT_OPTIONS: Dict[str, Any] = {
    "fuzzy": False,
    "completion": {
        "timeout": 100,
    },
    "info": {
        "timeout": 200,
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge `override` into a copy of `base`; override wins, nested dicts merge."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _expect(name: str, value: Any, expected: type) -> None:
    # bool is an int subclass; a flag is never a valid timeout
    if expected is int and isinstance(value, bool):
        raise ConfigError(f"{name}: expected number, got bool")
    if expected is int and isinstance(value, (int, float)):
        return
    if not isinstance(value, expected):
        raise ConfigError(f"{name}: expected {expected.__name__}, got {type(value).__name__}")


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).lower() in ("1", "true", "yes")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name}: expected integer, got {raw!r}")


@dataclass
class CompletionConfig:
    """compl configuration."""

    fuzzy: bool = False
    completion_timeout: int = 100
    info_timeout: int = 200
    recency_limit: Optional[int] = None
    snippet_paths: List[str] = field(default_factory=list)
    log_file: Optional[str] = None

    def __post_init__(self):
        if self.completion_timeout < 0:
            raise ConfigError("completion.timeout must be >= 0")
        if self.info_timeout < 0:
            raise ConfigError("info.timeout must be >= 0")
        if self.recency_limit is not None and self.recency_limit <= 0:
            raise ConfigError("recency limit must be positive")

    @classmethod
    def from_options(cls, opts: Optional[Dict[str, Any]] = None) -> "CompletionConfig":
        """
        Build config from nested user options merged over the defaults.

        Args:
            opts: e.g. {"fuzzy": True, "completion": {"timeout": 50}}

        Raises:
            ConfigError: If an option has the wrong type
        """
        opts = opts or {}
        if not isinstance(opts, dict):
            raise ConfigError(f"options: expected dict, got {type(opts).__name__}")
        merged = _deep_merge(DEFAULT_OPTIONS, opts)

        _expect("fuzzy", merged["fuzzy"], bool)
        _expect("completion", merged["completion"], dict)
        _expect("completion.timeout", merged["completion"].get("timeout"), int)
        _expect("info", merged["info"], dict)
        _expect("info.timeout", merged["info"].get("timeout"), int)

        recency_limit = merged.get("recency_limit")
        if recency_limit is not None:
            _expect("recency_limit", recency_limit, int)

        snippet_paths = merged.get("snippet_paths", [])
        _expect("snippet_paths", snippet_paths, list)

        return cls(
            fuzzy=merged["fuzzy"],
            completion_timeout=int(merged["completion"]["timeout"]),
            info_timeout=int(merged["info"]["timeout"]),
            recency_limit=int(recency_limit) if recency_limit is not None else None,
            snippet_paths=[str(p) for p in snippet_paths],
            log_file=merged.get("log_file"),
        )

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "CompletionConfig":
        """Initialize config from COMPL_* environment variables."""
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))

        recency_raw = os.getenv("COMPL_RECENCY_LIMIT")
        snippet_raw = os.getenv("COMPL_SNIPPET_PATHS", "")

        return cls(
            fuzzy=_env_bool("COMPL_FUZZY", False),
            completion_timeout=_env_int("COMPL_COMPLETION_TIMEOUT", 100),
            info_timeout=_env_int("COMPL_INFO_TIMEOUT", 200),
            recency_limit=_env_int("COMPL_RECENCY_LIMIT", 0) if recency_raw else None,
            snippet_paths=[p for p in snippet_raw.split(os.pathsep) if p],
            log_file=os.getenv("COMPL_LOG_FILE") or None,
        )
