"""
Configuration error hierarchy for FightSlot.

Exception Hierarchy
-------------------
ConfigError (base)
└── ConfigValidationError (type/bounds validation failures)
"""


class ConfigError(Exception):
    """
    Base exception for all configuration-related errors.

    Example
    -------
    >>> try:
    ...     ConfigManager.set_override("rpc.read_timeout_seconds", "soon")
    ... except ConfigError as e:
    ...     logger.error(f"Config operation failed: {e}")
    """
    pass


class ConfigValidationError(ConfigError):
    """
    Raised when a configuration value fails validation.

    This exception is raised when:
    - A value has the wrong type for its default
    - A timeout or count is not positive
    - A YAML root object is not a mapping
    """
    pass


__all__ = [
    "ConfigError",
    "ConfigValidationError",
]
