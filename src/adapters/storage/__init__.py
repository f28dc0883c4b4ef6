"""Storage adapters for PAEC Tabular Sync.

This module contains storage adapters that implement the StoragePort interface
for persisting patient records and maintaining the audit trail.
"""

from src.adapters.storage.duckdb_adapter import DuckDBAdapter
from src.adapters.storage.memory_adapter import InMemoryAdapter

__all__ = ["DuckDBAdapter", "InMemoryAdapter"]
