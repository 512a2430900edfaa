"""
Centralized path management for jot-sync.

Resolves the per-user working directory and the configuration file inside it.
"""

import os
import sys
from pathlib import Path
from typing import Optional
import logging


class PathManager:
    """Manages jot-sync file paths with environment overrides."""
    
    # Directory names
    WORKING_DIR_NAME = ".jot-sync"
    
    # File names
    CONFIG_FILE = "config.json"
    
    def __init__(self, logger: Optional[logging.Logger] = None):
        """Initialize path manager."""
        self.logger = logger or logging.getLogger(__name__)
        self._working_dir: Optional[Path] = None

    def _default_user_dir(self) -> Path:
        """Platform-appropriate per-user data directory."""
        if sys.platform.startswith("win"):
            appdata = os.environ.get("APPDATA")
            if appdata:
                return Path(appdata) / "jot-sync"
        return Path.home() / self.WORKING_DIR_NAME

    @property
    def working_dir(self) -> Path:
        """
        Get the working directory for jot-sync data.

        Priority order:
        1. JOT_SYNC_HOME environment variable (explicit override)
        2. ~/.jot-sync (%APPDATA%/jot-sync on Windows)
        """
        if self._working_dir is not None:
            return self._working_dir

        env_override = os.environ.get("JOT_SYNC_HOME")
        if env_override:
            env_path = Path(env_override).expanduser().resolve()
            self.logger.debug(f"Using JOT_SYNC_HOME override: {env_path}")
            self._working_dir = env_path
        else:
            self._working_dir = self._default_user_dir()
        return self._working_dir

    @property
    def config_path(self) -> Path:
        """Configuration file path; JOT_SYNC_CONFIG points at a file directly."""
        env_config = os.environ.get("JOT_SYNC_CONFIG")
        if env_config:
            return Path(env_config).expanduser().resolve()
        return self.working_dir / self.CONFIG_FILE

    def ensure_directories(self) -> None:
        self.working_dir.mkdir(parents=True, exist_ok=True)


# Global instance for convenience
_path_manager = None


def get_path_manager() -> PathManager:
    """Get the global path manager instance."""
    global _path_manager
    if _path_manager is None:
        _path_manager = PathManager()
    return _path_manager


def reset_path_manager() -> None:
    """Drop the cached instance so environment changes are picked up."""
    global _path_manager
    _path_manager = None
