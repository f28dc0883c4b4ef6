"""Configuration Manager for Storage Settings.

Loads the document store configuration from ``PAEC_*`` environment variables
or from a JSON file and validates it with Pydantic before any connection is
attempted.

Security Impact:
    - Database paths are checked before a connection is opened
    - Configuration values are never logged
    - A half-configured store fails fast instead of silently using defaults

Architecture:
    - Infrastructure layer; the domain only sees the resulting StoragePort
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

SUPPORTED_DB_TYPES = ("memory", "duckdb")
IN_PROCESS_DB = ":memory:"
ENV_PREFIX = "PAEC_"


class DatabaseConfig(BaseModel):
    """Document store configuration.

    Parameters:
        db_type: Store type ('memory' or 'duckdb')
        db_path: DuckDB database file; ':memory:' or None keeps it in-process
    """

    db_type: str = Field(default="memory", description="Store type (memory, duckdb)")
    db_path: Optional[str] = Field(None, description="DuckDB database file")

    @field_validator("db_type")
    @classmethod
    def normalize_db_type(cls, v: str) -> str:
        db_type = v.strip().lower()
        if db_type not in SUPPORTED_DB_TYPES:
            raise ValueError(f"Unsupported database type: {v}. Supported: {list(SUPPORTED_DB_TYPES)}")
        return db_type

    @field_validator("db_path")
    @classmethod
    def check_parent_directory(cls, v: Optional[str]) -> Optional[str]:
        if v in (None, IN_PROCESS_DB):
            return v
        # DuckDB creates the file on first connect, but not its directory
        parent = Path(v).parent
        if not parent.exists():
            raise ValueError(f"Database directory does not exist: {parent}")
        return str(Path(v))

    @model_validator(mode='after')
    def warn_unused_path(self) -> 'DatabaseConfig':
        if self.db_type == "memory" and self.db_path:
            logger.warning("db_path is ignored for the in-memory store")
        return self

    @property
    def is_persistent(self) -> bool:
        return self.db_type == "duckdb" and self.db_path not in (None, IN_PROCESS_DB)

    def get_connection_string(self) -> str:
        """DuckDB connection target (':memory:' unless a file is configured)."""
        return self.db_path if self.is_persistent else IN_PROCESS_DB


class ConfigManager:
    """Holds raw configuration sections and builds validated configs from them.

    Example Usage:
        ```python
        manager = ConfigManager.from_environment()
        store_config = manager.get_database_config()

        manager = ConfigManager.from_file("paec.json")
        manager.get("database.db_type", "memory")
        ```
    """

    def __init__(self, config_data: Dict[str, Any]):
        self._config_data = config_data
        self._database_config: Optional[DatabaseConfig] = None

    @classmethod
    def from_environment(cls) -> 'ConfigManager':
        """Read ``PAEC_DB_TYPE`` (default memory) and ``PAEC_DB_PATH``."""
        section = {
            "db_type": os.getenv(f"{ENV_PREFIX}DB_TYPE", "memory"),
            "db_path": os.getenv(f"{ENV_PREFIX}DB_PATH") or None,
        }
        return cls({"database": section})

    @classmethod
    def from_file(cls, config_path: str) -> 'ConfigManager':
        """Read a JSON file with a top-level ``database`` section.

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file is not valid JSON
        """
        path = Path(config_path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            config_data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file: {str(e)}")

        logger.debug(f"Loaded configuration sections: {sorted(config_data)}")
        return cls(config_data)

    def get_database_config(self) -> DatabaseConfig:
        """Validated store configuration (built once, then cached).

        Raises:
            pydantic.ValidationError: If the database section is invalid
        """
        if self._database_config is None:
            self._database_config = DatabaseConfig(**dict(self._config_data.get("database") or {}))
        return self._database_config

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a dotted key such as ``database.db_type``."""
        node: Any = self._config_data
        for part in key.split("."):
            if not isinstance(node, dict):
                return default
            node = node.get(part)
        return default if node is None else node


def get_database_config() -> DatabaseConfig:
    """Store configuration from the environment (in-memory when unset)."""
    return ConfigManager.from_environment().get_database_config()
