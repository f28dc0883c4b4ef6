"""Application Settings and Configuration.

This module provides application-wide settings that combine configuration
from the configuration manager with application-specific defaults.

Security Impact:
    - Settings are loaded from environment variables only
    - Sensitive values are never logged
    - Defaults are provided for development convenience
"""

import os
from typing import Optional

from src.infrastructure.config_manager import DatabaseConfig, get_database_config

# Application metadata
APP_NAME = "PAEC Tabular Sync"
APP_VERSION = "1.0.0"

# Audit module recorded on record-level entries (matches the baseline form collection)
DEFAULT_AUDIT_MODULE = "baselineform"

DEFAULT_EXPORT_DIR = "exports"


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class Settings:
    """Application settings loaded from configuration manager and environment.

    Environment Variables:
        - PAEC_APP_NAME: Application name
        - PAEC_LOG_LEVEL: Logging level (default INFO)
        - PAEC_LOG_JSON: Emit JSON log lines (default false)
        - PAEC_EXPORT_DIR: Directory for written workbooks (default ./exports)
        - PAEC_AUDIT_MODULE: Module name recorded on audit entries
        - PAEC_DB_TYPE / PAEC_DB_PATH: see ConfigManager
    """

    def __init__(self):
        """Initialize settings from configuration manager and environment."""
        self._db_config: Optional[DatabaseConfig] = None

        self.app_name = os.getenv("PAEC_APP_NAME", APP_NAME)

        # Logging
        self.log_level = os.getenv("PAEC_LOG_LEVEL", "INFO").upper()
        self.log_json = _env_flag("PAEC_LOG_JSON")

        # Export and audit
        self.export_dir = os.getenv("PAEC_EXPORT_DIR", DEFAULT_EXPORT_DIR)
        self.audit_module = os.getenv("PAEC_AUDIT_MODULE", DEFAULT_AUDIT_MODULE)

    @property
    def db_config(self) -> DatabaseConfig:
        """Get database configuration (loaded lazily on first access)."""
        if self._db_config is None:
            self._db_config = get_database_config()
        return self._db_config

    def get_db_path(self) -> str:
        """Get database path for DuckDB.

        Returns:
            Database path or ':memory:' for in-memory database
        """
        if self.db_config.db_type == "duckdb":
            return self.db_config.db_path or ":memory:"
        raise ValueError(f"Database type '{self.db_config.db_type}' does not use db_path")


# Global settings instance
settings = Settings()
