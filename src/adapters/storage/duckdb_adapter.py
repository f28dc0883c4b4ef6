"""DuckDB Storage Adapter.

This adapter implements the StoragePort contract for persisting patient
records to DuckDB, an in-process database, so that registry data survives
between CLI runs.

Each record is one row: the nested document is stored as JSON text next to
the columns the engine filters on (natural key, soft-delete status, owner,
center, timestamps).

Security Impact:
    - Records are never physically deleted; soft_delete only sets the marker
    - The audit_log table is append-only
    - Connection paths are validated via DatabaseConfig

Architecture:
    - Implements StoragePort (Hexagonal Architecture)
    - Isolated from domain core - only depends on ports and models
    - Natural-key uniqueness among active records is checked on save, since
      DuckDB has no partial unique indexes
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import duckdb

from src.domain.cdc_models import AuditAction, AuditEntry, FieldChange
from src.domain.ports import (
    PersistenceConflictError,
    RecordNotFoundError,
    Result,
    StorageError,
    StoragePort,
)
from src.domain.record import (
    Actor,
    ExportQuery,
    PatientRecord,
    ScopeFilter,
    SoftDelete,
    UpdateStamp,
)
from src.infrastructure.config_manager import DatabaseConfig

logger = logging.getLogger(__name__)

_RECORD_COLUMNS = (
    "record_id, paec_no, is_deleted, deleted_by, deleted_time, created_by, center, "
    "created_at, updated_at, updated_by, document"
)


class DuckDBAdapter(StoragePort):
    """DuckDB implementation of StoragePort.

    Parameters:
        db_config: DatabaseConfig from configuration manager (preferred)
        db_path: Path to DuckDB database file (or ':memory:' for in-memory)

    Example Usage:
        ```python
        from src.infrastructure.config_manager import get_database_config

        adapter = DuckDBAdapter(db_config=get_database_config())
        result = adapter.initialize_schema()
        if result.is_success():
            adapter.save(record)
        ```
    """

    def __init__(self, db_config: Optional[DatabaseConfig] = None, db_path: Optional[str] = None):
        """Initialize DuckDB adapter.

        Note:
            If both db_config and db_path are provided, db_config takes precedence.
            If neither is provided, defaults to in-memory database.
        """
        if db_config:
            if db_config.db_type != "duckdb":
                raise StorageError(
                    f"DatabaseConfig type '{db_config.db_type}' does not match DuckDB adapter",
                    operation="__init__"
                )
            self.db_path = db_config.get_connection_string()
        else:
            self.db_path = db_path or ":memory:"

        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._initialized = False

        if self.db_path != ":memory:":
            db_path_obj = Path(self.db_path)
            if not db_path_obj.parent.exists():
                raise StorageError(
                    f"Database directory does not exist: {db_path_obj.parent}",
                    operation="__init__"
                )

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        """Get or create DuckDB connection (created lazily, then reused)."""
        if self._connection is None:
            try:
                self._connection = duckdb.connect(self.db_path)
                logger.info(f"Connected to DuckDB database: {self.db_path}")
            except Exception as e:
                raise StorageError(
                    f"Failed to connect to DuckDB: {str(e)}",
                    operation="connect",
                    details={"db_path": self.db_path}
                )
        return self._connection

    def _conn(self) -> duckdb.DuckDBPyConnection:
        if not self._initialized:
            result = self.initialize_schema()
            if result.is_failure():
                raise StorageError(result.error, operation="initialize_schema")
        return self._get_connection()

    def initialize_schema(self) -> Result[None]:
        """Initialize database schema (tables and indexes).

        Creates tables for:
        - records: Patient records (document stored as JSON text)
        - audit_log: Immutable audit trail

        Returns:
            Result[None]: Success or failure result
        """
        try:
            conn = self._get_connection()

            conn.execute("""
                CREATE TABLE IF NOT EXISTS records (
                    record_id VARCHAR PRIMARY KEY,
                    paec_no VARCHAR,
                    is_deleted BOOLEAN NOT NULL DEFAULT FALSE,
                    deleted_by VARCHAR,
                    deleted_time TIMESTAMP,
                    created_by VARCHAR,
                    center VARCHAR,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP NOT NULL,
                    updated_by VARCHAR,
                    document VARCHAR NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS audit_log (
                    audit_id VARCHAR PRIMARY KEY,
                    actor VARCHAR NOT NULL,
                    action VARCHAR NOT NULL,
                    module VARCHAR NOT NULL,
                    field_diff VARCHAR,
                    details VARCHAR,
                    created_at TIMESTAMP NOT NULL
                )
            """)

            # No secondary indexes on records: INSERT OR REPLACE rewrites every non-key column
            conn.execute("CREATE INDEX IF NOT EXISTS idx_audit_action ON audit_log(action)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_audit_created_at ON audit_log(created_at)")

            self._initialized = True
            logger.info("Database schema initialized successfully")
            return Result.success_result(None)

        except Exception as e:
            error_msg = f"Failed to initialize schema: {str(e)}"
            logger.error(error_msg, exc_info=True)
            return Result.failure_result(
                StorageError(error_msg, operation="initialize_schema"),
                error_type="StorageError"
            )

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _to_row(record: PatientRecord) -> list[Any]:
        return [
            record.record_id,
            record.natural_key,
            record.is_deleted.status,
            record.is_deleted.deleted_by,
            record.is_deleted.deleted_time,
            record.created_by,
            record.center,
            record.created_at,
            record.updated_at,
            json.dumps([{"user": s.user, "updated_at": s.updated_at.isoformat()} for s in record.updated_by]),
            json.dumps(record.document, default=str),
        ]

    @staticmethod
    def _from_row(row: tuple) -> PatientRecord:
        (record_id, _paec_no, is_deleted, deleted_by, deleted_time, created_by, center,
         created_at, updated_at, updated_by, document) = row
        stamps = [
            UpdateStamp(user=s["user"], updated_at=datetime.fromisoformat(s["updated_at"]))
            for s in json.loads(updated_by or "[]")
        ]
        return PatientRecord(
            record_id=record_id,
            document=json.loads(document),
            created_by=created_by,
            center=center,
            created_at=created_at,
            updated_at=updated_at,
            updated_by=stamps,
            is_deleted=SoftDelete(status=bool(is_deleted), deleted_by=deleted_by, deleted_time=deleted_time),
        )

    @staticmethod
    def _scope_clause(scope: ScopeFilter) -> tuple[str, list]:
        clauses, params = ["is_deleted = FALSE"], []
        if scope.created_by is not None:
            clauses.append("created_by = ?")
            params.append(scope.created_by)
        if scope.center is not None:
            clauses.append("center = ?")
            params.append(scope.center)
        return " AND ".join(clauses), params

    # ------------------------------------------------------------------
    # StoragePort
    # ------------------------------------------------------------------

    def find_by_natural_key(self, key: str, scope: ScopeFilter) -> Optional[PatientRecord]:
        where, params = self._scope_clause(scope)
        try:
            row = self._conn().execute(
                f"SELECT {_RECORD_COLUMNS} FROM records WHERE {where} AND paec_no = ? LIMIT 1",
                params + [key],
            ).fetchone()
        except duckdb.Error as e:
            raise StorageError(f"Failed to look up record: {str(e)}", operation="find_by_natural_key")
        return self._from_row(row) if row else None

    def find_many(self, query: ExportQuery, scope: ScopeFilter) -> list[PatientRecord]:
        where, params = self._scope_clause(scope)
        try:
            rows = self._conn().execute(
                f"SELECT {_RECORD_COLUMNS} FROM records WHERE {where}", params
            ).fetchall()
        except duckdb.Error as e:
            raise StorageError(f"Failed to query records: {str(e)}", operation="find_many")

        # Text and date filters run on the decoded document
        records = [self._from_row(row) for row in rows]
        return [record for record in records if query.matches(record)]

    def save(self, record: PatientRecord) -> PatientRecord:
        """Insert or replace one record in a single transaction.

        Raises:
            PersistenceConflictError: If another active record holds the natural key
            StorageError: If the write fails (the stored row is left unchanged)
        """
        conn = self._conn()
        row = self._to_row(record)

        conn.begin()
        try:
            if record.active and record.natural_key is not None:
                clash = conn.execute(
                    "SELECT record_id FROM records WHERE is_deleted = FALSE AND paec_no = ? AND record_id <> ?",
                    [record.natural_key, record.record_id],
                ).fetchone()
                if clash:
                    raise PersistenceConflictError(
                        f"PAEC No '{record.natural_key}' already exists",
                        natural_key=record.natural_key,
                    )

            conn.execute(
                f"INSERT OR REPLACE INTO records ({_RECORD_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                row,
            )
            conn.commit()
        except PersistenceConflictError:
            conn.rollback()
            raise
        except duckdb.Error as e:
            conn.rollback()
            logger.error(f"Failed to save record {record.record_id}: {str(e)}", exc_info=True)
            raise StorageError(f"Failed to save record: {str(e)}", operation="save",
                               details={"record_id": record.record_id})

        logger.debug(f"Saved record {record.record_id}")
        return record.clone()

    def soft_delete(self, record_id: str, actor: Actor) -> PatientRecord:
        conn = self._conn()
        row = conn.execute(
            f"SELECT {_RECORD_COLUMNS} FROM records WHERE record_id = ? AND is_deleted = FALSE",
            [record_id],
        ).fetchone()
        if row is None:
            raise RecordNotFoundError(f"No active record with id {record_id}", operation="soft_delete")

        deleted_time = datetime.now()
        conn.execute(
            "UPDATE records SET is_deleted = TRUE, deleted_by = ?, deleted_time = ? WHERE record_id = ?",
            [actor.user_id, deleted_time, record_id],
        )
        record = self._from_row(row)
        record.is_deleted = SoftDelete(status=True, deleted_by=actor.user_id, deleted_time=deleted_time)
        logger.debug(f"Soft-deleted record {record_id}")
        return record

    def append_audit(self, entry: AuditEntry) -> Result[str]:
        """Persist an audit entry.

        Returns:
            Result[str]: Audit entry identifier or error
        """
        try:
            payload = entry.to_audit_dict()
            self._conn().execute(
                """
                INSERT INTO audit_log (audit_id, actor, action, module, field_diff, details, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    payload["audit_id"],
                    payload["actor"],
                    payload["action"],
                    payload["module"],
                    json.dumps(payload["field_diff"]),
                    json.dumps(payload["details"]),
                    payload["created_at"],
                ],
            )
            logger.debug(f"Logged audit event: {entry.action.value} (ID: {entry.audit_id})")
            return Result.success_result(entry.audit_id)

        except Exception as e:
            error_msg = f"Failed to log audit event: {str(e)}"
            logger.error(error_msg, exc_info=True)
            return Result.failure_result(
                StorageError(error_msg, operation="append_audit"),
                error_type="StorageError"
            )

    def list_audit(self) -> list[AuditEntry]:
        rows = self._conn().execute(
            "SELECT audit_id, actor, action, module, field_diff, details, created_at "
            "FROM audit_log ORDER BY created_at"
        ).fetchall()
        entries = []
        for audit_id, actor, action, module, field_diff, details, created_at in rows:
            diff = {
                path: FieldChange(old_value=change.get("from"), new_value=change.get("to"))
                for path, change in json.loads(field_diff or "{}").items()
            }
            entries.append(AuditEntry(
                audit_id=audit_id,
                actor=actor,
                action=AuditAction(action),
                module=module,
                field_diff=diff,
                details=json.loads(details or "{}"),
                created_at=created_at,
            ))
        return entries

    def close(self) -> None:
        """Close storage connection and release resources."""
        if self._connection is not None:
            try:
                self._connection.close()
                self._connection = None
                self._initialized = False
                logger.info("Closed DuckDB connection")
            except Exception as e:
                logger.warning(f"Error closing connection: {str(e)}")
