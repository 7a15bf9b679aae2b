"""
Configuration Module
====================

Centralized configuration management using Pydantic Settings.
Loads from environment variables with type validation and defaults.

Usage:
    from shared.config import settings

    print(settings.environment)
    print(settings.registry.contract_address)
"""

from shared.config.settings import (
    ContentStoreMode,
    Environment,
    LogLevel,
    RegistryMode,
    Settings,
    get_settings,
)


# Global settings instance (singleton)
settings = get_settings()

__all__ = [
    "Settings",
    "get_settings",
    "settings",
    "Environment",
    "LogLevel",
    "RegistryMode",
    "ContentStoreMode",
]
