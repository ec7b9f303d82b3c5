"""Configuration for dependency resolution runs."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import yaml
from jsonschema import Draft7Validator

from common.errors import ConfigError
from constants import Constants

logger = logging.getLogger(__name__)

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "origin": {"type": "string", "pattern": "^https?://"},
        "cacheDir": {"type": "string"},
        "concurrency": {"type": "integer", "minimum": 1},
        "timeout": {"type": "number", "minimum": 0},
        "lockfile": {"type": "string"},
        "memo": {
            "type": "object",
            "properties": {
                "maxEntries": {"type": "integer", "minimum": 0},
                "maxBytes": {"type": "integer", "minimum": 0},
            },
            "additionalProperties": False,
        },
        "webDependencies": {
            "type": "object",
            "additionalProperties": {"type": "string", "minLength": 1},
        },
    },
}


@dataclass
class WebpinConfig:
    """Settings for the resolver, the CDN client and the cache."""

    origin: str = Constants.CDN_ORIGIN
    cache_dir: str = Constants.CACHE_DIR
    concurrency: int = Constants.RESOLVE_CONCURRENCY
    timeout: float = Constants.REQUEST_TIMEOUT
    lockfile: str = Constants.LOCKFILE_NAME
    memo_max_entries: int = Constants.MEMO_MAX_ENTRIES
    memo_max_bytes: int = Constants.MEMO_MAX_BYTES
    web_dependencies: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "WebpinConfig":
        """Defaults, with environment overrides applied."""
        config = cls()
        if os.environ.get(Constants.ENV_ORIGIN):
            config.origin = os.environ[Constants.ENV_ORIGIN].rstrip("/")
        if os.environ.get(Constants.ENV_CACHE_DIR):
            config.cache_dir = os.environ[Constants.ENV_CACHE_DIR]
        return config

    @classmethod
    def from_dict(cls, data: Any, base: Optional["WebpinConfig"] = None) -> "WebpinConfig":
        """Apply a parsed config document on top of ``base``.

        Raises:
            ConfigError: The document does not match the config schema.
        """
        if data is None:
            data = {}
        errors = sorted(Draft7Validator(CONFIG_SCHEMA).iter_errors(data), key=lambda e: list(e.path))
        if errors:
            first = errors[0]
            path = "/".join(str(p) for p in first.path)
            raise ConfigError(f"Invalid config at '{path}': {first.message}")

        config = base or cls.from_env()
        if "origin" in data:
            config.origin = data["origin"].rstrip("/")
        if "cacheDir" in data:
            config.cache_dir = data["cacheDir"]
        if "concurrency" in data:
            config.concurrency = data["concurrency"]
        if "timeout" in data:
            config.timeout = data["timeout"]
        if "lockfile" in data:
            config.lockfile = data["lockfile"]
        memo = data.get("memo") or {}
        if "maxEntries" in memo:
            config.memo_max_entries = memo["maxEntries"]
        if "maxBytes" in memo:
            config.memo_max_bytes = memo["maxBytes"]
        if "webDependencies" in data:
            config.web_dependencies = dict(data["webDependencies"])
        return config

    @classmethod
    def from_file(cls, config_path: str, base: Optional["WebpinConfig"] = None) -> "WebpinConfig":
        """Load a YAML (or JSON) config file.

        Raises:
            ConfigError: The file is unreadable, not YAML, or fails validation.
        """
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as exc:
            raise ConfigError(f"Cannot read config {config_path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ConfigError(f"Config {config_path} is not valid YAML: {exc}") from exc
        logger.info("Loaded config from: %s", config_path)
        return cls.from_dict(data, base)

    @classmethod
    def from_args(cls, args: Any) -> "WebpinConfig":
        """Create config from CLI arguments.

        The config file (``--config``, or ``webpin.config.yaml`` when present)
        is applied first; explicit CLI options win over it.

        Args:
            args: Parsed CLI arguments namespace.

        Returns:
            WebpinConfig instance.

        Raises:
            ConfigError: The config file is invalid, or an override is out of range.
        """
        config = cls.from_env()
        config_path = getattr(args, "CONFIG", None)
        if not config_path and os.path.isfile(Constants.CONFIG_NAME):
            config_path = Constants.CONFIG_NAME
        if config_path:
            config = cls.from_file(config_path, config)

        if getattr(args, "ORIGIN", None):
            config.origin = args.ORIGIN.rstrip("/")
        if getattr(args, "CACHE_DIR", None):
            config.cache_dir = args.CACHE_DIR
        if getattr(args, "CONCURRENCY", None) is not None:
            config.concurrency = int(args.CONCURRENCY)
        if getattr(args, "TIMEOUT", None) is not None:
            config.timeout = float(args.TIMEOUT)
        if getattr(args, "LOCKFILE", None):
            config.lockfile = args.LOCKFILE
        if config.concurrency < 1:
            raise ConfigError(f"concurrency must be at least 1, got {config.concurrency}")
        if config.timeout < 0:
            raise ConfigError(f"timeout must not be negative, got {config.timeout}")
        return config
