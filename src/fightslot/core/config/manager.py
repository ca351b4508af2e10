"""
Dynamic configuration for FightSlot.

Purpose
-------
Hierarchical, dot-notation access to tunable settings: the chain descriptor
handed to the wallet, read/write timeouts, synchronizer behavior, event bus
listener timeouts and NFT art base URLs.

Precedence (lowest to highest)
------------------------------
1. Built-in defaults (``_BUILTIN_DEFAULTS``)
2. Static ``Config`` values for timeouts and the required chain id
3. YAML files under ``config/`` (deep-merged, alphabetical order)
4. In-memory overrides (``set_override``), used by tests and tuning

Dependencies
------------
- PyYAML for the ``config/`` directory
- fightslot.core.config.config.Config
"""

from __future__ import annotations

import copy
import time
from pathlib import Path
from typing import Any, Dict, List, Mapping, MutableMapping, Optional

import yaml

from fightslot.core.config.config import Config
from fightslot.core.config.errors import ConfigValidationError
from fightslot.core.logging.logger import get_logger

logger = get_logger(__name__)

__all__ = ["ConfigManager"]


_BUILTIN_DEFAULTS: Dict[str, Any] = {
    "chain": {
        "chain_id": 56,
        "chain_name": "Binance Smart Chain Mainnet",
        "rpc_urls": ["https://bsc-dataseed.binance.org/"],
        "native_currency": {"name": "BNB", "symbol": "BNB", "decimals": 18},
        "block_explorer_urls": ["https://bscscan.com"],
        # EIP-1193 "unrecognized chain id" error code
        "unknown_chain_error_code": 4902,
    },
    "rpc": {
        "read_timeout_seconds": 15.0,
        "write_timeout_seconds": 180.0,
        "wallet_timeout_seconds": 60.0,
    },
    "sync": {
        "cache_hp_require_base": True,
        "unset_token_id": 0,
    },
    "rewards": {
        "decimals": 18,
        "display_places": 2,
        "symbol": "BUSD",
    },
    "assets": {
        "character_image_base": "https://app.apocgame.io/NFT/character",
        "mobster_image_base": "https://app.apocgame.io/NFT/mobster",
        # Shown instead of NFT art in placeholder display mode
        "character_placeholder": "https://app.apocgame.io/NFT/character/null/null/null/null.png",
        "mobster_placeholder": "https://fly4holiday.com/wp-content/uploads/2022/02/Main-Frame.png",
    },
    "core": {
        "event": {
            "listener_timeout": {
                "critical_seconds": 5.0,
                "high_seconds": 5.0,
            },
        },
    },
}

_MISSING = object()


class ConfigManager:
    """
    Dynamic configuration with YAML defaults and in-memory overrides.

    Features
    --------
    - Hierarchical config access with dot notation (e.g. ``"chain.chain_id"``).
    - Lazy initialization on first read.
    - Type-checked overrides for hot tuning and tests.
    - Lightweight read metrics.
    """

    _defaults: Dict[str, Any] = {}
    _overrides: Dict[str, Any] = {}
    _initialized: bool = False
    _config_dir: Optional[Path] = None

    _metrics: Dict[str, float] = {
        "gets": 0,
        "misses": 0,
        "override_hits": 0,
        "yaml_files_loaded": 0,
        "total_get_time_ms": 0.0,
    }

    # =========================================================================
    # LOADING
    # =========================================================================

    @staticmethod
    def _deep_merge_dict(
        target: MutableMapping[str, Any],
        source: Mapping[str, Any],
    ) -> None:
        """Recursively merge `source` into `target` (in-place)."""
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                ConfigManager._deep_merge_dict(target[key], value)
            else:
                target[key] = copy.deepcopy(value)

    @classmethod
    def _load_yaml_configs(cls, config_dir: Path) -> int:
        """
        Load every YAML file from `config_dir` into `_defaults`.

        A missing directory is not an error; built-in defaults apply.
        """
        if not config_dir.exists():
            logger.debug(
                "Config directory not found; using built-in defaults only",
                extra={"config_dir": str(config_dir)},
            )
            return 0

        yaml_files = sorted(config_dir.rglob("*.yaml")) + sorted(config_dir.rglob("*.yml"))
        loaded_count = 0

        for yaml_file in yaml_files:
            try:
                with yaml_file.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle)
            except (OSError, yaml.YAMLError) as exc:
                logger.warning(
                    "Failed to load YAML config",
                    extra={
                        "file": str(yaml_file),
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                )
                continue

            if isinstance(data, dict):
                cls._deep_merge_dict(cls._defaults, data)
                loaded_count += 1
                logger.debug("Loaded YAML config", extra={"file": str(yaml_file)})
            elif data is not None:
                logger.warning(
                    "Ignoring non-dict YAML root object",
                    extra={"file": str(yaml_file), "root_type": type(data).__name__},
                )

        return loaded_count

    @classmethod
    def _apply_static_config(cls) -> None:
        """Project static Config values onto the dynamic tree."""
        rpc = cls._defaults.setdefault("rpc", {})
        rpc["read_timeout_seconds"] = Config.READ_TIMEOUT_SECONDS
        rpc["write_timeout_seconds"] = Config.WRITE_TIMEOUT_SECONDS
        rpc["wallet_timeout_seconds"] = Config.WALLET_TIMEOUT_SECONDS
        cls._defaults.setdefault("chain", {})["chain_id"] = Config.REQUIRED_CHAIN_ID

    @classmethod
    def initialize(cls, config_dir: Optional[Path] = None) -> None:
        """
        Build the configuration tree (idempotent unless `reset()` is called).

        Parameters
        ----------
        config_dir:
            Directory holding YAML overrides. Defaults to ``Config.CONFIG_DIR``.
        """
        if cls._initialized:
            return

        start = time.perf_counter()
        cls._config_dir = config_dir or Config.CONFIG_DIR
        cls._defaults = copy.deepcopy(_BUILTIN_DEFAULTS)
        loaded = cls._load_yaml_configs(cls._config_dir)
        # Environment-backed values win over YAML
        cls._apply_static_config()
        cls._metrics["yaml_files_loaded"] = loaded
        cls._initialized = True

        logger.info(
            "ConfigManager initialized",
            extra={
                "config_dir": str(cls._config_dir),
                "yaml_file_count": loaded,
                "top_level_keys": sorted(cls._defaults.keys()),
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )

    @classmethod
    def reset(cls) -> None:
        """Drop overrides and loaded state; next read re-initializes."""
        cls._defaults = {}
        cls._overrides = {}
        cls._initialized = False
        cls._config_dir = None

    # =========================================================================
    # READ
    # =========================================================================

    @classmethod
    def _lookup(cls, tree: Mapping[str, Any], key: str) -> Any:
        value: Any = tree
        for part in key.split("."):
            if not isinstance(value, Mapping) or part not in value:
                return _MISSING
            value = value[part]
        return value

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """
        Retrieve a configuration value by dot-notation path.

        Examples
        --------
        >>> ConfigManager.get("chain.chain_id")
        56
        >>> ConfigManager.get("rpc.read_timeout_seconds", 15.0)
        15.0
        """
        start = time.perf_counter()
        cls._metrics["gets"] += 1

        if not cls._initialized:
            cls.initialize()

        try:
            if key in cls._overrides:
                cls._metrics["override_hits"] += 1
                return copy.deepcopy(cls._overrides[key])

            value = cls._lookup(cls._defaults, key)
            if value is _MISSING:
                cls._metrics["misses"] += 1
                return default
            return copy.deepcopy(value)
        finally:
            cls._metrics["total_get_time_ms"] += (time.perf_counter() - start) * 1000

    @classmethod
    def get_float(cls, key: str, default: float) -> float:
        value = cls.get(key, default)
        try:
            return float(value)
        except (TypeError, ValueError):
            logger.warning(
                "Non-numeric configuration value, using default",
                extra={"config_key": key, "value": repr(value), "default": default},
            )
            return float(default)

    @classmethod
    def get_all_keys(cls) -> List[str]:
        """Return all top-level configuration keys."""
        if not cls._initialized:
            cls.initialize()
        return sorted(set(cls._defaults.keys()) | {k.split(".")[0] for k in cls._overrides})

    # =========================================================================
    # WRITE (in-memory only)
    # =========================================================================

    @classmethod
    def set_override(cls, key: str, value: Any) -> None:
        """
        Override a single dot-notation key in memory.

        The new value must have the same type as the current value, when one
        exists (ints are accepted where floats are expected).

        Raises
        ------
        ConfigValidationError:
            On type mismatch.
        """
        if not cls._initialized:
            cls.initialize()

        current = cls._lookup(cls._defaults, key)
        if current is not _MISSING and current is not None and value is not None:
            expected = type(current)
            numeric_ok = expected is float and isinstance(value, int) and not isinstance(value, bool)
            if not isinstance(value, expected) and not numeric_ok:
                raise ConfigValidationError(
                    f"Override for '{key}' must be {expected.__name__}, "
                    f"got {type(value).__name__}"
                )

        cls._overrides[key] = value
        logger.info("Configuration override set", extra={"config_key": key})

    @classmethod
    def clear_overrides(cls) -> None:
        cls._overrides = {}

    # =========================================================================
    # METRICS
    # =========================================================================

    @classmethod
    def get_metrics(cls) -> Dict[str, Any]:
        gets = max(1, int(cls._metrics["gets"]))
        return {
            **cls._metrics,
            "avg_get_time_ms": round(cls._metrics["total_get_time_ms"] / gets, 4),
            "override_count": len(cls._overrides),
        }

    @classmethod
    def health_snapshot(cls) -> Dict[str, Any]:
        return {
            "initialized": cls._initialized,
            "config_dir": str(cls._config_dir) if cls._config_dir else None,
            "top_level_keys": len(cls._defaults),
            "override_count": len(cls._overrides),
        }
