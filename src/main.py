"""Main entry point for the PAEC tabular import/export engine.

This module wires the domain services to the configured adapters and drives
whole runs: a sheet through Resolver -> Coercer -> Builder -> Reconciliation
row by row (import), and stored records through Flattener -> Exporter
(export).

Security Impact:
    - Row failures are recorded with their sheet row number and never abort
      the run; run-level IO failures always abort before anything is claimed
    - Exports are restricted to the actor's access scope before flattening
    - Every run leaves one audit entry; sensitive paths are redacted in diffs

Architecture:
    - Follows Hexagonal Architecture principles
    - Readers are selected automatically based on source format
    - Storage adapter is configured via configuration manager
    - Rows are processed sequentially: a later row may update the record an
      earlier row of the same sheet created
"""

import logging
import uuid
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Iterable, Optional

from src.adapters.exporters import ExcelExporter, import_template_sheet
from src.adapters.ingesters import get_adapter
from src.adapters.storage import DuckDBAdapter, InMemoryAdapter
from src.domain.cdc_models import (
    AuditAction,
    FieldChange,
    ImportSummary,
    ReconcileAction,
    RowError,
    RowOutcome,
)
from src.domain.ports import (
    AuditSinkPort,
    EmptyResultError,
    MissingKeyColumnError,
    RowValidationError,
    SheetReaderPort,
    SheetWriteError,
    SheetWriterPort,
    StorageError,
    StoragePort,
)
from src.domain.record import Actor, DateField, ExportQuery, PatientRecord
from src.domain.services import (
    ChangeDetector,
    FieldPathResolver,
    ReconciliationEngine,
    RecordBuilder,
    RecordFlattener,
    ValueCoercer,
)
from src.domain.services.value_coercer import is_blank
from src.domain.tabular import ExportFile, ExportLayout, Sheet
from src.infrastructure.audit import ChangeAuditLogger
from src.infrastructure.config_manager import DatabaseConfig, get_database_config
from src.infrastructure.settings import settings

logger = logging.getLogger(__name__)

IMPORT_AUDIT_MODULE = "excel_import"
EXPORT_AUDIT_MODULE = "excel_export"
TEMPLATE_FILENAME = "baseline_import_template.xlsx"


def create_storage_adapter(db_config: Optional[DatabaseConfig] = None) -> StoragePort:
    """Create storage adapter based on configuration.

    Parameters:
        db_config: Database configuration (loaded from the environment if None)

    Returns:
        StoragePort: Configured storage adapter instance

    Raises:
        ValueError: If database type is unsupported
    """
    db_config = db_config or get_database_config()

    if db_config.db_type == "duckdb":
        logger.info(f"Initializing DuckDB adapter with path: {db_config.db_path or ':memory:'}")
        return DuckDBAdapter(db_config=db_config)
    elif db_config.db_type == "memory":
        logger.info("Initializing in-memory storage adapter")
        return InMemoryAdapter()
    else:
        raise ValueError(f"Unsupported database type: {db_config.db_type}")


def export_filename(layout: ExportLayout, now: datetime) -> str:
    """Build ``paec_export_<layout>_<YYYY-MM-DDTHH-MM-SS>.xlsx``."""
    timestamp = now.isoformat().replace(":", "-").replace(".", "-")[:19]
    return f"paec_export_{layout.value}_{timestamp}.xlsx"


class ImportExportOrchestrator:
    """Drives import and export runs against one store.

    Parameters:
        storage: Document store
        audit: Audit sink (a ChangeAuditLogger over ``storage`` if None)
        resolver: Field path resolver shared by every service
        reader_factory: Callable returning a sheet reader for a source path
        exporter: Sheet writer used for exports and the import template
        clock: Source of the current time (injectable for tests)
        module: Module name recorded on record-level audit entries

    Example Usage:
        ```python
        orchestrator = ImportExportOrchestrator(storage=InMemoryAdapter())
        summary = orchestrator.run_import(sheet, actor)
        export = orchestrator.run_export(ExportQuery(), [], actor)
        ```
    """

    def __init__(
        self,
        storage: StoragePort,
        audit: Optional[AuditSinkPort] = None,
        resolver: Optional[FieldPathResolver] = None,
        reader_factory: Callable[[str], SheetReaderPort] = get_adapter,
        exporter: Optional[SheetWriterPort] = None,
        clock: Callable[[], datetime] = datetime.now,
        module: Optional[str] = None,
    ):
        self.storage = storage
        self.audit = audit or ChangeAuditLogger(storage=storage)
        self.resolver = resolver or FieldPathResolver()
        self.coercer = ValueCoercer(self.resolver)
        self.builder = RecordBuilder(self.resolver, self.coercer)
        self.flattener = RecordFlattener(self.resolver, self.coercer)
        self.engine = ReconciliationEngine(
            storage, self.resolver, ChangeDetector(self.resolver), clock=clock
        )
        self.reader_factory = reader_factory
        self.exporter = exporter or ExcelExporter()
        self.clock = clock
        self.module = module or settings.audit_module

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    def run_import(self, sheet: Sheet, actor: Actor, source: Optional[str] = None) -> ImportSummary:
        """Import every data row of a sheet.

        Parameters:
            sheet: Header row plus data rows
            actor: Actor performing the import (becomes owner of new records)
            source: Source identifier recorded on the run audit entry

        Returns:
            ImportSummary: Counts, per-row errors and per-row outcomes

        Raises:
            MissingKeyColumnError: If no header resolves to the natural key
        """
        key_path = self.resolver.natural_key_path()
        if not any(self.resolver.resolve(header) == key_path for header in sheet.headers):
            raise MissingKeyColumnError(
                f"Sheet has no '{self.resolver.natural_key_spec().label}' column"
            )

        run_id = f"imp_{uuid.uuid4().hex[:12]}"
        self._set_audit_context(run_id=run_id, source=source)
        summary = ImportSummary()
        logger.info(f"Import run {run_id}: {len(sheet)} data row(s)", extra={"run_id": run_id})

        for row_number, cells in sheet.iter_rows():
            if all(is_blank(cell) for cell in cells):
                continue
            summary.total_rows += 1

            try:
                patch, warnings = self.builder.build(sheet.headers, cells)
                outcome = self.engine.reconcile(patch, actor)
            except (RowValidationError, StorageError) as e:
                summary.errors.append(RowError(row=row_number, message=str(e)))
                logger.warning(
                    f"Row {row_number} rejected: {type(e).__name__}: {str(e)}",
                    extra={"run_id": run_id, "row": row_number},
                )
                continue

            if outcome.action == ReconcileAction.CREATED:
                summary.created += 1
            else:
                summary.updated += 1
            summary.outcomes.append(RowOutcome(
                row=row_number,
                natural_key=patch.natural_key,
                action=outcome.action,
                diff=outcome.diff,
                warnings=warnings,
            ))
            logger.debug(
                f"Row {row_number}: {outcome.action.value} ({len(outcome.diff)} field(s))",
                extra={"run_id": run_id, "row": row_number, "natural_key": patch.natural_key},
            )

        self._audit_append(
            actor=actor.user_id,
            action=AuditAction.IMPORTED,
            module=IMPORT_AUDIT_MODULE,
            diff=self._run_diff(summary),
            details={
                "totalProcessed": summary.total_rows,
                "created": summary.created,
                "updated": summary.updated,
                "errors": len(summary.errors),
                "records": [
                    {
                        "row": outcome.row,
                        "paecNo": outcome.natural_key,
                        "action": outcome.action.value,
                        "fieldsChanged": len(outcome.diff),
                    }
                    for outcome in summary.outcomes
                ],
            },
        )

        logger.info(
            f"Import run {run_id} finished: {summary.created} created, "
            f"{summary.updated} updated, {len(summary.errors)} error(s)",
            extra={"run_id": run_id},
        )
        return summary

    def run_import_file(self, source: str, actor: Actor) -> ImportSummary:
        """Read a sheet from ``source`` and import it.

        Raises:
            UnrecoverableIOError: If the source cannot be read at all
            MissingKeyColumnError: If no header resolves to the natural key
        """
        reader = self.reader_factory(str(source))
        logger.info(f"Selected reader: {reader.__class__.__name__}")
        sheet = reader.read(source)
        return self.run_import(sheet, actor, source=str(source))

    @staticmethod
    def _run_diff(summary: ImportSummary) -> dict[str, FieldChange]:
        """Merge per-row diffs, keyed ``<natural key>:<path>``."""
        merged: dict[str, FieldChange] = {}
        for outcome in summary.outcomes:
            for path, change in outcome.diff.items():
                merged[f"{outcome.natural_key}:{path}"] = change
        return merged

    def _set_audit_context(self, **context) -> None:
        try:
            self.audit.set_run_context(**context)
        except Exception as e:
            logger.error(f"Failed to set audit run context: {str(e)}", exc_info=True)

    def _audit_append(self, **entry) -> None:
        """Append an audit entry; a failing sink is logged and the run goes on."""
        try:
            self.audit.append(**entry)
        except Exception as e:
            logger.error(
                f"Failed to append {entry['action'].value} audit entry: {str(e)}",
                exc_info=True,
            )

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def select_records(
        self,
        query: ExportQuery,
        actor: Actor,
        layout: ExportLayout = ExportLayout.ANALYSIS,
    ) -> list[PatientRecord]:
        """Records visible to ``actor`` matching ``query``, newest first.

        Analysis exports filter and order on the visit date, template exports
        on the creation time. Ties are ordered by natural key; records without
        a visit date come last.
        """
        date_field = DateField.CREATED_AT if layout == ExportLayout.TEMPLATE else DateField.VISIT_DATE
        query = query.model_copy(update={"date_field": date_field})

        records = self.storage.find_many(query, actor.scope)
        records.sort(key=lambda r: r.natural_key or "")
        if date_field == DateField.CREATED_AT:
            records.sort(key=lambda r: r.created_at, reverse=True)
        else:
            visits = {r.record_id: query.record_date(r) for r in records}
            records.sort(
                key=lambda r: (visits[r.record_id] is not None, visits[r.record_id] or date.min),
                reverse=True,
            )
        return records

    def run_export(
        self,
        query: ExportQuery,
        excluded_labels: Iterable[str],
        actor: Actor,
        layout: ExportLayout = ExportLayout.ANALYSIS,
    ) -> ExportFile:
        """Export the records visible to ``actor`` that match ``query``.

        The workbook is handed back in memory; the ``exported`` audit entry is
        written once it has been produced.

        Parameters:
            query: Filter criteria
            excluded_labels: Column labels to omit entirely
            actor: Actor requesting the export (drives the access scope)
            layout: Analysis or round-trip template layout

        Returns:
            ExportFile: Workbook bytes, filename and content type

        Raises:
            EmptyResultError: If nothing matches under the actor's scope
            SheetWriteError: If the workbook cannot be written
        """
        export, details = self._build_export(query, excluded_labels, actor, layout)
        self._audit_export(actor, details)
        return export

    def export_to_directory(
        self,
        query: ExportQuery,
        excluded_labels: Iterable[str],
        actor: Actor,
        layout: ExportLayout = ExportLayout.ANALYSIS,
        output_dir: Optional[str] = None,
    ) -> tuple[ExportFile, Path]:
        """Export into ``output_dir`` and audit only after the file is on disk.

        Raises:
            EmptyResultError: If nothing matches under the actor's scope
            SheetWriteError: If the workbook cannot be produced or written
        """
        export, details = self._build_export(query, excluded_labels, actor, layout)
        target = write_export(export, output_dir)
        details["path"] = str(target)
        self._audit_export(actor, details)
        return export, target

    def _build_export(
        self,
        query: ExportQuery,
        excluded_labels: Iterable[str],
        actor: Actor,
        layout: ExportLayout,
    ) -> tuple[ExportFile, dict]:
        excluded = list(excluded_labels)
        records = self.select_records(query, actor, layout)
        if not records:
            raise EmptyResultError(
                "No records found matching the criteria",
                criteria=query.criteria(),
            )

        sheet, truncated = self.flattener.flatten_many(records, layout, excluded)
        content = self.exporter.write([sheet])
        if truncated:
            logger.warning(f"Export dropped {truncated} array entr(ies) beyond the fixed columns")

        export = ExportFile(
            filename=export_filename(layout, self.clock()),
            content=content,
            row_count=len(records),
        )
        details = {
            "formType": layout.value,
            "totalBaseline": len(records),
            "filters": query.criteria(),
            "excluded": excluded,
            "truncated": truncated,
        }
        return export, details

    def _audit_export(self, actor: Actor, details: dict) -> None:
        self._set_audit_context(run_id=f"exp_{uuid.uuid4().hex[:12]}")
        self._audit_append(
            actor=actor.user_id,
            action=AuditAction.EXPORTED,
            module=EXPORT_AUDIT_MODULE,
            details=details,
        )
        logger.info(
            f"Exported {details['totalBaseline']} record(s) ({details['formType']})",
            extra={"layout": details["formType"]},
        )

    def import_template(self) -> ExportFile:
        """Blank import workbook with the template headers and two sample rows."""
        sheet = import_template_sheet()
        return ExportFile(
            filename=TEMPLATE_FILENAME,
            content=self.exporter.write([sheet]),
            row_count=len(sheet),
        )

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete_record(self, natural_key: str, actor: Actor) -> PatientRecord:
        """Soft-delete the active record holding ``natural_key`` and audit it.

        Raises:
            RecordNotFoundError: If no active record in the actor's scope holds the key
        """
        record = self.engine.soft_delete(natural_key, actor)
        self._set_audit_context()
        self._audit_append(
            actor=actor.user_id,
            action=AuditAction.DELETED,
            module=self.module,
            details={"paecNo": natural_key, "record_id": record.record_id},
        )
        logger.info(f"Soft-deleted record {record.record_id}", extra={"natural_key": natural_key})
        return record


def write_export(export: ExportFile, output_dir: Optional[str] = None) -> Path:
    """Write an export file into ``output_dir`` (settings.export_dir by default).

    Raises:
        SheetWriteError: If the directory cannot be created or the file written
    """
    directory = Path(output_dir or settings.export_dir)
    target = directory / export.filename
    try:
        directory.mkdir(parents=True, exist_ok=True)
        target.write_bytes(export.content)
    except OSError as e:
        raise SheetWriteError(f"Failed to write {target}: {str(e)}", source=str(target)) from e
    logger.info(f"Wrote {target}")
    return target


def main() -> None:
    """Run the command line interface."""
    from src.cli import app
    app()


if __name__ == "__main__":
    main()
