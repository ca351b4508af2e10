"""
Static configuration management for FightSlot.

Purpose
-------
Provides centralized static configuration loaded from environment variables
with sensible defaults, type validation, and bounds checking. This module
handles non-dynamic configuration that is set at process startup: RPC
endpoints, contract addresses, the required chain id and network timeouts.

Responsibilities
----------------
- Load configuration from environment variables with .env support
- Provide type-safe access to all static configuration values
- Validate contract addresses and chain settings on startup
- Track which values came from the environment vs defaults

Non-Responsibilities
--------------------
- Dynamic/tunable configuration (handled by ConfigManager)
- Wallet keys or signing material (owned by the wallet collaborator)

Architecture Notes
------------------
- Singleton pattern via class methods (no instantiation)
- Auto-loads on module import via Config.validate()
- Directory paths relative to project root for portability

Environment Variables
---------------------
Required (production):
- GAME_CONTRACT, CHARACTER_CONTRACT, WEAPON_CONTRACT, REWARD_POOL_CONTRACT

Optional (with defaults):
- RPC_URL: read endpoint (default: BNB Smart Chain public dataseed)
- WALLET_RPC_URL: EIP-1193 wallet bridge endpoint (default: RPC_URL)
- REQUIRED_CHAIN_ID: chain the fight transaction must target (default: 56)
- READ_TIMEOUT_SECONDS / WRITE_TIMEOUT_SECONDS / WALLET_TIMEOUT_SECONDS
- ENVIRONMENT, DEBUG, LOG_LEVEL, LOG_JSON, LOG_COLORS
"""

import os
import re
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


# ============================================================================
# Enums and Constants
# ============================================================================


class Environment(Enum):
    """Deployment environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """
        Parse environment string safely with fallback.

        Example
        -------
        >>> Environment.from_string("production") == Environment.PRODUCTION
        True
        >>> Environment.from_string("invalid") == Environment.DEVELOPMENT
        True
        """
        try:
            return cls(value.lower())
        except ValueError:
            # Structured logger is not initialized yet during bootstrap
            import logging
            logging.warning(
                f"Unknown environment '{value}', defaulting to development"
            )
            return cls.DEVELOPMENT


# ============================================================================
# Configuration Metrics Tracker
# ============================================================================


class _ConfigLoadMetrics:
    """
    Internal metrics tracker for configuration loading.

    Tracks which configuration values came from environment variables
    versus defaults, and any validation errors encountered.
    """

    def __init__(self):
        self.env_vars_loaded: Dict[str, bool] = {}
        self.validation_errors: Dict[str, str] = {}
        self.defaults_used: Dict[str, Any] = {}
        self.last_reload: Optional[str] = None

    def record_env_load(self, key: str, from_env: bool, value: Any, default: Any):
        """Record whether a config value came from environment."""
        self.env_vars_loaded[key] = from_env
        if not from_env:
            self.defaults_used[key] = default

    def record_validation_error(self, key: str, error: str):
        """Record a validation error."""
        self.validation_errors[key] = error

    def get_summary(self) -> Dict[str, Any]:
        """Get configuration loading summary."""
        return {
            "total_configs": len(self.env_vars_loaded),
            "from_environment": sum(1 for v in self.env_vars_loaded.values() if v),
            "from_defaults": sum(1 for v in self.env_vars_loaded.values() if not v),
            "validation_errors": len(self.validation_errors),
            "defaults_used": list(self.defaults_used.keys()),
            "last_reload": self.last_reload,
        }


# ============================================================================
# Main Configuration Class
# ============================================================================


class Config:
    """
    Centralized static configuration for the FightSlot client.

    Usage
    -----
    >>> rpc = Config.RPC_URL
    >>> chain_id = Config.REQUIRED_CHAIN_ID
    >>> if Config.is_production():
    ...     logger.info("Running in production mode")
    """

    # =========================================================================
    # Internal State
    # =========================================================================

    _metrics: Optional[_ConfigLoadMetrics] = None
    _enable_metrics: bool = True
    _validated: bool = False

    # =========================================================================
    # Network Configuration
    # =========================================================================

    RPC_URL: str = "https://bsc-dataseed.binance.org/"
    WALLET_RPC_URL: str = ""
    REQUIRED_CHAIN_ID: int = 56

    # =========================================================================
    # Contract Addresses
    # =========================================================================

    GAME_CONTRACT: str = ""
    CHARACTER_CONTRACT: str = ""
    WEAPON_CONTRACT: str = ""
    REWARD_POOL_CONTRACT: str = ""

    # =========================================================================
    # Timeouts (seconds)
    # =========================================================================

    READ_TIMEOUT_SECONDS: float = 15.0
    WRITE_TIMEOUT_SECONDS: float = 180.0
    WALLET_TIMEOUT_SECONDS: float = 60.0

    # =========================================================================
    # Environment Configuration
    # =========================================================================

    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_JSON: Optional[bool] = None
    LOG_COLORS: bool = True

    # =========================================================================
    # Directory Configuration
    # =========================================================================

    PROJECT_ROOT = Path(__file__).resolve().parents[4]
    LOGS_DIR = PROJECT_ROOT / "logs"
    CONFIG_DIR = PROJECT_ROOT / "config"

    # =========================================================================
    # Client Metadata
    # =========================================================================

    CLIENT_NAME: str = "FightSlot"
    CLIENT_VERSION: str = "1.0.0"

    # =========================================================================
    # Helper Methods
    # =========================================================================

    @classmethod
    def _init_metrics(cls):
        """Initialize metrics tracking if enabled."""
        if cls._enable_metrics and cls._metrics is None:
            cls._metrics = _ConfigLoadMetrics()

    @classmethod
    def _record_error(cls, key: str, error: str) -> None:
        import logging
        logging.warning(error)
        if cls._metrics:
            cls._metrics.record_validation_error(key, error)

    @classmethod
    def _safe_int(
        cls,
        key: str,
        default: int,
        min_val: Optional[int] = None,
        max_val: Optional[int] = None,
    ) -> int:
        """
        Safely parse integer from environment with validation.

        Accepts decimal or ``0x``-prefixed hex, so chain ids can be given in
        either form.

        Example
        -------
        >>> Config._safe_int("REQUIRED_CHAIN_ID", 56, min_val=1)
        56
        """
        cls._init_metrics()

        raw_value = os.getenv(key)

        if raw_value is None:
            if cls._metrics:
                cls._metrics.record_env_load(key, False, default, default)
            return default

        try:
            value = int(raw_value, 0)
        except ValueError:
            cls._record_error(
                key, f"{key}='{raw_value}' is not a valid integer, using default {default}"
            )
            return default

        if min_val is not None and value < min_val:
            cls._record_error(
                key, f"{key}={value} is below minimum {min_val}, using default {default}"
            )
            return default

        if max_val is not None and value > max_val:
            cls._record_error(
                key, f"{key}={value} exceeds maximum {max_val}, using default {default}"
            )
            return default

        if cls._metrics:
            cls._metrics.record_env_load(key, True, value, default)
        return value

    @classmethod
    def _safe_float(
        cls,
        key: str,
        default: float,
        min_val: Optional[float] = None,
        max_val: Optional[float] = None,
    ) -> float:
        """Safely parse a bounded float from environment."""
        cls._init_metrics()

        raw_value = os.getenv(key)

        if raw_value is None:
            if cls._metrics:
                cls._metrics.record_env_load(key, False, default, default)
            return default

        try:
            value = float(raw_value)
        except ValueError:
            cls._record_error(
                key, f"{key}='{raw_value}' is not a valid number, using default {default}"
            )
            return default

        if (min_val is not None and value < min_val) or (
            max_val is not None and value > max_val
        ):
            cls._record_error(
                key,
                f"{key}={value} is outside [{min_val}, {max_val}], using default {default}",
            )
            return default

        if cls._metrics:
            cls._metrics.record_env_load(key, True, value, default)
        return value

    @classmethod
    def _safe_bool(cls, key: str, default: Optional[bool]) -> Optional[bool]:
        """
        Safely parse boolean from environment.

        Recognizes: true/false, yes/no, 1/0, on/off (case-insensitive).
        """
        cls._init_metrics()

        raw_value = os.getenv(key)

        if raw_value is None:
            if cls._metrics:
                cls._metrics.record_env_load(key, False, default, default)
            return default

        normalized = raw_value.lower().strip()

        if normalized in {"true", "yes", "1", "on"}:
            value = True
        elif normalized in {"false", "no", "0", "off"}:
            value = False
        else:
            cls._record_error(
                key, f"{key}='{raw_value}' is not a valid boolean, using default {default}"
            )
            return default

        if cls._metrics:
            cls._metrics.record_env_load(key, True, value, default)
        return value

    @classmethod
    def _safe_str(cls, key: str, default: str, required: bool = False) -> str:
        """Safely get string from environment."""
        cls._init_metrics()

        value = os.getenv(key, default)
        from_env = key in os.environ

        if cls._metrics:
            cls._metrics.record_env_load(key, from_env, value, default)

        if required and not value:
            cls._record_error(key, f"Required environment variable {key} is not set")

        return value

    # =========================================================================
    # Configuration Loading
    # =========================================================================

    @classmethod
    def load(cls) -> None:
        """
        Load all configuration from environment variables with validation.

        Called automatically on module import; call again to pick up
        environment changes (tests use this after monkeypatching os.environ).
        """
        cls._init_metrics()

        # Network
        cls.RPC_URL = cls._safe_str("RPC_URL", "https://bsc-dataseed.binance.org/")
        cls.WALLET_RPC_URL = cls._safe_str("WALLET_RPC_URL", cls.RPC_URL)
        cls.REQUIRED_CHAIN_ID = cls._safe_int("REQUIRED_CHAIN_ID", 56, min_val=1)

        # Contracts
        cls.GAME_CONTRACT = cls._safe_str("GAME_CONTRACT", "", required=True)
        cls.CHARACTER_CONTRACT = cls._safe_str("CHARACTER_CONTRACT", "", required=True)
        cls.WEAPON_CONTRACT = cls._safe_str("WEAPON_CONTRACT", "", required=True)
        cls.REWARD_POOL_CONTRACT = cls._safe_str(
            "REWARD_POOL_CONTRACT", "", required=True
        )

        # Timeouts
        cls.READ_TIMEOUT_SECONDS = cls._safe_float(
            "READ_TIMEOUT_SECONDS", 15.0, min_val=0.1, max_val=600.0
        )
        cls.WRITE_TIMEOUT_SECONDS = cls._safe_float(
            "WRITE_TIMEOUT_SECONDS", 180.0, min_val=1.0, max_val=3600.0
        )
        cls.WALLET_TIMEOUT_SECONDS = cls._safe_float(
            "WALLET_TIMEOUT_SECONDS", 60.0, min_val=1.0, max_val=600.0
        )

        # Environment
        cls.ENVIRONMENT = cls._safe_str("ENVIRONMENT", "development")
        cls.DEBUG = bool(cls._safe_bool("DEBUG", False))
        cls.LOG_LEVEL = cls._safe_str("LOG_LEVEL", "INFO")
        cls.LOG_JSON = cls._safe_bool("LOG_JSON", None)
        cls.LOG_COLORS = bool(cls._safe_bool("LOG_COLORS", True))

        if cls._metrics:
            from datetime import datetime, timezone
            cls._metrics.last_reload = datetime.now(timezone.utc).isoformat()

    @classmethod
    def contract_addresses(cls) -> Dict[str, str]:
        """Contract addresses keyed by registry contract name."""
        return {
            "GAME": cls.GAME_CONTRACT,
            "CHARACTER": cls.CHARACTER_CONTRACT,
            "WEAPON": cls.WEAPON_CONTRACT,
            "REWARD_POOL": cls.REWARD_POOL_CONTRACT,
        }

    @classmethod
    def validate(cls, strict: bool = False) -> None:
        """
        Validate critical configuration values.

        Outside production, problems are logged and tolerated so imports and
        tests never fail on a missing .env. In production, or when ``strict``
        is set, a ConfigurationError is raised.

        Raises
        ------
        ConfigurationError:
            If a contract address is missing/malformed in strict mode.
        """
        if cls._validated and not strict:
            return

        import logging
        logger = logging.getLogger(__name__)
        cls._init_metrics()

        from fightslot.core.exceptions import ConfigurationError

        try:
            cls.load()

            for name, address in cls.contract_addresses().items():
                if not address:
                    raise ConfigurationError(
                        f"{name}_CONTRACT", "contract address is not set"
                    )
                if not _ADDRESS_RE.match(address):
                    raise ConfigurationError(
                        f"{name}_CONTRACT",
                        f"'{address}' is not a 20-byte hex address",
                    )

            valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
            if cls.LOG_LEVEL.upper() not in valid_log_levels:
                logger.warning(f"Invalid LOG_LEVEL '{cls.LOG_LEVEL}', using INFO")
                cls.LOG_LEVEL = "INFO"

            if cls.is_production() and cls.DEBUG:
                logger.warning("DEBUG mode enabled in production!")

            cls._validated = True

            if cls._metrics:
                logger.info(f"Configuration loaded: {cls._metrics.get_summary()}")
                if cls._metrics.validation_errors:
                    logger.warning(
                        f"Configuration warnings: {cls._metrics.validation_errors}"
                    )

        except ConfigurationError as e:
            if strict or cls.is_production():
                logger.error(f"Configuration validation failed: {e}")
                raise
            logger.warning(f"Config validation warning (safe for tests): {e}")

    # =========================================================================
    # Environment Checks
    # =========================================================================

    @classmethod
    def is_production(cls) -> bool:
        """Check if running in production environment."""
        return cls.ENVIRONMENT.lower() == "production"

    @classmethod
    def is_development(cls) -> bool:
        """Check if running in development environment."""
        return cls.ENVIRONMENT.lower() == "development"

    @classmethod
    def is_testing(cls) -> bool:
        """Check if running in testing environment."""
        return cls.ENVIRONMENT.lower() == "testing"

    # =========================================================================
    # Metrics & Summary
    # =========================================================================

    @classmethod
    def get_metrics(cls) -> Optional[_ConfigLoadMetrics]:
        """Get configuration loading metrics."""
        return cls._metrics

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        """Get non-sensitive configuration summary for debugging."""
        return {
            "environment": cls.ENVIRONMENT,
            "debug": cls.DEBUG,
            "log_level": cls.LOG_LEVEL,
            "rpc_url": cls.RPC_URL,
            "required_chain_id": cls.REQUIRED_CHAIN_ID,
            "read_timeout_seconds": cls.READ_TIMEOUT_SECONDS,
            "write_timeout_seconds": cls.WRITE_TIMEOUT_SECONDS,
            "contracts_set": {
                name: bool(address)
                for name, address in cls.contract_addresses().items()
            },
            "client_version": cls.CLIENT_VERSION,
        }


# Auto-validate on import
Config.validate()
