"""Domain Ports - Abstract Contracts for Tabular Import/Export.

This module defines the Port interfaces (abstract contracts) that Adapters must
implement, the Result type used by storage operations, and the exception
hierarchy of the reconciliation engine.
Following Hexagonal Architecture, the Domain Core defines what it needs, not how it's provided.

Security Impact:
    - Storage ports only ever expose non-deleted records to reconciliation
    - Audit sink contract is append-only
    - Errors carry row numbers, never cell values of sensitive fields

Architecture:
    - Pure abstract interfaces with zero infrastructure dependencies
    - Sheet readers (Excel, CSV) and stores (memory, DuckDB) implement these ports
    - Domain Core is isolated from file formats and storage engines
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar, Union

from src.domain.cdc_models import AuditAction, AuditEntry, FieldChange
from src.domain.record import Actor, ExportQuery, PatientRecord, ScopeFilter
from src.domain.tabular import Sheet

T = TypeVar('T')


# ============================================================================
# Result Type for Success/Failure Communication
# ============================================================================

@dataclass(frozen=True)
class Result(Generic[T]):
    """Result type for communicating success or failure without exceptions.

    Used by storage operations whose failure must be reported but must not
    interrupt the caller (schema setup, audit appends).

    Attributes:
        success: True if the operation succeeded, False otherwise
        value: The successful result value (only present if success=True)
        error: Error information (only present if success=False)
        error_type: Type of error (StorageError, etc.)
        error_details: Additional error context
    """

    success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    error_details: Optional[dict] = None

    @classmethod
    def success_result(cls, value: T) -> 'Result[T]':
        """Create a successful result."""
        return cls(success=True, value=value)

    @classmethod
    def failure_result(
        cls,
        error: Union[str, Exception],
        error_type: Optional[str] = None,
        error_details: Optional[dict] = None
    ) -> 'Result[T]':
        """Create a failure result.

        Parameters:
            error: Error message or exception
            error_type: Type of error (e.g., "StorageError")
            error_details: Additional context

        Returns:
            Result: Failure result with error information
        """
        error_message = str(error) if isinstance(error, Exception) else error
        error_type_name = error_type or (type(error).__name__ if isinstance(error, Exception) else "UnknownError")

        return cls(
            success=False,
            value=None,
            error=error_message,
            error_type=error_type_name,
            error_details=error_details or {}
        )

    def is_success(self) -> bool:
        """Check if result is successful."""
        return self.success

    def is_failure(self) -> bool:
        """Check if result is a failure."""
        return not self.success


# ============================================================================
# Custom Exception Hierarchy
# ============================================================================

class ReconciliationError(Exception):
    """Base exception for all import/export errors."""
    pass


class RowValidationError(ReconciliationError):
    """Raised when a single row cannot be turned into a patch.

    The row is skipped and recorded; the run continues.

    Attributes:
        row: 1-based sheet row number (None until the orchestrator assigns it)
        column: Header of the offending column, if any
    """

    def __init__(self, message: str, row: Optional[int] = None, column: Optional[str] = None):
        super().__init__(message)
        self.row = row
        self.column = column


class CoercionError(RowValidationError):
    """Raised when a cell cannot be converted to the type of its path."""
    pass


class StorageError(ReconciliationError):
    """Raised when a storage operation fails.

    Attributes:
        operation: The storage operation that failed (find, save, ...)
        details: Additional error details
    """

    def __init__(self, message: str, operation: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message)
        self.operation = operation
        self.details = details or {}


class PersistenceConflictError(StorageError):
    """Raised at save time when the natural key is already held by another active record."""

    def __init__(self, message: str, natural_key: Optional[str] = None):
        super().__init__(message, operation="save", details={"natural_key": natural_key})
        self.natural_key = natural_key


class RecordNotFoundError(StorageError):
    """Raised when a record addressed by id or natural key does not exist."""
    pass


class EmptyResultError(ReconciliationError):
    """Raised when an export query under the caller's scope matches no record.

    Attributes:
        criteria: The filter criteria that produced nothing
    """

    def __init__(self, message: str, criteria: Optional[dict] = None):
        super().__init__(message)
        self.criteria = criteria or {}


class MissingKeyColumnError(ReconciliationError):
    """Raised when the header row has no natural-key column at all."""
    pass


class UnrecoverableIOError(ReconciliationError):
    """Raised when a sheet cannot be read or written; aborts the whole run.

    Attributes:
        source: The source or destination identifier
    """

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class SourceNotFoundError(UnrecoverableIOError):
    """Raised when the source file cannot be found."""
    pass


class UnsupportedSourceError(UnrecoverableIOError):
    """Raised when no reader can handle the source format.

    Attributes:
        adapter: The adapter that rejected the source, if any
    """

    def __init__(self, message: str, source: Optional[str] = None, adapter: Optional[str] = None):
        super().__init__(message, source=source)
        self.adapter = adapter


class SheetReadError(UnrecoverableIOError):
    """Raised when a sheet exists but cannot be parsed."""
    pass


class SheetWriteError(UnrecoverableIOError):
    """Raised when the output workbook cannot be produced."""
    pass


# ============================================================================
# Ports
# ============================================================================

class SheetReaderPort(ABC):
    """Abstract contract for tabular source readers.

    Readers hand the domain a single ``Sheet``: the header row exactly as it
    appears in the file, and data rows of raw cells (str, int, float,
    datetime or None). Readers do not interpret headers.
    """

    @abstractmethod
    def read(self, source: Any) -> Sheet:
        """Read the first sheet of ``source`` (path or bytes).

        Raises:
            SourceNotFoundError: If the source path does not exist
            SheetReadError: If the content cannot be parsed
        """
        pass

    @abstractmethod
    def can_ingest(self, source: str) -> bool:
        """Check if this reader can handle the given source."""
        pass


class SheetWriterPort(ABC):
    """Abstract contract for spreadsheet writers."""

    @abstractmethod
    def write(self, sheets: list[Sheet]) -> bytes:
        """Serialize sheets to a binary workbook.

        Raises:
            SheetWriteError: If the workbook cannot be produced
        """
        pass


class StoragePort(ABC):
    """Abstract contract for the patient document store.

    Each call is treated as atomic. No row-level locking is implied; between
    concurrent writers the last write wins.

    Key Principles:
        - Natural-key lookups only see records whose soft-delete marker is unset
        - ``save`` enforces natural-key uniqueness among active records
        - Returned records are copies; mutating them does not touch the store
    """

    @abstractmethod
    def find_by_natural_key(self, key: str, scope: ScopeFilter) -> Optional[PatientRecord]:
        """Return the active record with this natural key, or None."""
        pass

    @abstractmethod
    def find_many(self, query: ExportQuery, scope: ScopeFilter) -> list[PatientRecord]:
        """Return active records visible under ``scope`` that match ``query``."""
        pass

    @abstractmethod
    def save(self, record: PatientRecord) -> PatientRecord:
        """Insert or replace the record by ``record_id``.

        Raises:
            PersistenceConflictError: If another active record holds the same natural key
            StorageError: On any other storage failure
        """
        pass

    @abstractmethod
    def soft_delete(self, record_id: str, actor: Actor) -> PatientRecord:
        """Set the soft-delete marker of a record.

        Raises:
            RecordNotFoundError: If no active record has this id
        """
        pass

    @abstractmethod
    def append_audit(self, entry: AuditEntry) -> Result[str]:
        """Persist an audit entry; failures are reported, not raised."""
        pass

    def list_audit(self) -> list[AuditEntry]:
        """Return persisted audit entries (optional, adapter-specific)."""
        return []

    def close(self) -> None:
        """Release resources held by the store (optional)."""
        return None


class AuditSinkPort(ABC):
    """Abstract contract for the audit log.

    Appends are fire-and-forget from the engine's point of view: callers log
    and continue when an append fails.
    """

    @abstractmethod
    def append(
        self,
        actor: str,
        action: AuditAction,
        module: str,
        diff: Optional[dict[str, FieldChange]] = None,
        details: Optional[dict] = None,
    ) -> AuditEntry:
        """Record one audit entry and return it."""
        pass

    def set_run_context(self, run_id: Optional[str] = None, source: Optional[str] = None) -> None:
        """Attach run identifiers to subsequent entries (optional)."""
        return None
