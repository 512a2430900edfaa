"""
Configuration management for jot-sync.
"""

import os
from pathlib import Path
from typing import Optional

from .exceptions import ConfigurationError
from .models import SyncConfig
from .paths import get_path_manager


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    return get_path_manager().config_path


def load_config(config_path: Optional[str] = None) -> SyncConfig:
    """
    Load configuration from file or return defaults.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        SyncConfig object
    """
    if config_path is None:
        config_path = str(get_default_config_path())

    return SyncConfig.load_from_file(config_path)


def save_config(config: SyncConfig, config_path: Optional[str] = None):
    """
    Save configuration to file.

    Args:
        config: SyncConfig object to save
        config_path: Optional path to save to. Uses default if not provided.
    """
    if config_path is None:
        manager = get_path_manager()
        manager.ensure_directories()
        config_path = str(manager.config_path)

    config_dir = os.path.dirname(config_path)
    os.makedirs(config_dir, exist_ok=True)

    config.save_to_file(config_path)


def validate_config(config: SyncConfig) -> None:
    """Raise ConfigurationError when the config cannot drive a sync."""
    if not config.base_dir:
        raise ConfigurationError("base_dir is required in config")
    if not os.path.isdir(config.base_dir):
        raise ConfigurationError(f"base_dir does not exist: {config.base_dir}")
    if not config.diary_dir:
        raise ConfigurationError("diary_dir is required in config")
    if config.lock_timeout <= 0:
        raise ConfigurationError("lock_timeout must be positive")
    if config.retry_attempts < 1:
        raise ConfigurationError("retry_attempts must be at least 1")
