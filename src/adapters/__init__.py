"""Adapters layer for PAEC Tabular Sync.

This module contains input/output adapters that interface with external systems.
Adapters implement Port interfaces defined in the domain layer: sheet readers
(Excel, CSV), the workbook writer, and document stores (memory, DuckDB).
"""
