"""
Batch importer for committed import rows.

Skips invalid rows instead of aborting, re-validates every row server-side,
and numbers accepted rows from a block reserved atomically on the group.
"""

import threading
from contextlib import contextmanager
from typing import Iterator, Optional, Sequence
import structlog

from exceptions import AppError, CommitError
from models.import_report import ImportGroupKey, ImportGroupResponse, ImportReport, SkippedRow
from models.import_rows import MappedRow
from services.import_group_service import ImportGroupService, get_import_group_service
from services.row_validator import validate_row
from services.value_normalizer import profit_minor_units, to_minor_units

logger = structlog.get_logger(__name__)

FLAGGED_ERROR = "Flagged error"

_group_locks: dict[tuple[str, str, str], threading.Lock] = {}
_group_locks_guard = threading.Lock()


@contextmanager
def _group_lock(key: ImportGroupKey) -> Iterator[None]:
    """Serialize commits into the same group within this process."""
    with _group_locks_guard:
        lock = _group_locks.setdefault(key.as_tuple(), threading.Lock())
    with lock:
        yield


class BatchImporter:
    """
    Persists a batch of working rows into one import group.
    """

    def __init__(self, group_service: Optional[ImportGroupService] = None):
        self.groups = group_service or get_import_group_service()

    def import_rows(self, rows: Sequence[MappedRow], key: ImportGroupKey) -> ImportReport:
        """
        Import rows into the group identified by key.

        Rows flagged by the client keep the client's reason; rows that fail
        the server-side rules are skipped with the server's reasons. Accepted
        rows are persisted in input order with consecutive sequence numbers.
        Rows committed before a storage failure stay committed.

        Args:
            rows: Working rows, valid and invalid
            key: Target group

        Returns:
            ImportReport with counts, skip ledger and assigned sequence numbers

        Raises:
            CommitError: If storage fails
        """
        logger.info(
            "batch_import_started",
            owner_id=key.owner_id,
            period_key=key.period_key,
            row_type=key.row_type.value,
            rows=len(rows)
        )

        with _group_lock(key):
            group = self._resolve_group(key)

            accepted: list[tuple[int, MappedRow]] = []
            skipped: list[SkippedRow] = []

            for position, row in enumerate(rows, start=1):
                row_number = row.original_row_number or position

                if row.has_error:
                    reason = row.error_message or FLAGGED_ERROR
                    skipped.append(SkippedRow(row=row_number, reason=reason))
                    logger.debug("row_skipped", row=row_number, reason=reason, source="client")
                    continue

                verdict = validate_row(row)
                if verdict.has_error:
                    reason = "; ".join(verdict.reasons)
                    skipped.append(SkippedRow(row=row_number, reason=reason))
                    logger.debug("row_skipped", row=row_number, reason=reason, source="server")
                    continue

                accepted.append((row_number, row))

            sequence_numbers, imported_shippers = self._persist(group, key, accepted)

        report = ImportReport(
            group_id=group.id,
            imported_count=len(imported_shippers),
            skipped_count=len(skipped),
            skipped_details=skipped,
            imported_shippers=imported_shippers,
            sequence_numbers=sequence_numbers,
            total=len(rows),
        )

        logger.info(
            "batch_import_complete",
            group_id=group.id,
            imported=report.imported_count,
            skipped=report.skipped_count,
            total=report.total
        )

        return report

    def _resolve_group(self, key: ImportGroupKey) -> ImportGroupResponse:
        try:
            return self.groups.upsert_group(key)
        except AppError as e:
            raise CommitError(
                message=e.message,
                details={"stage": "resolve_group"}
            ) from e

    def _persist(
        self,
        group: ImportGroupResponse,
        key: ImportGroupKey,
        accepted: list[tuple[int, MappedRow]],
    ) -> tuple[list[int], list[str]]:
        if not accepted:
            return [], []

        try:
            first = self.groups.reserve_sequence_numbers(group.id, len(accepted))
        except AppError as e:
            raise CommitError(
                message=e.message,
                details={"stage": "reserve_sequence", "group_id": group.id}
            ) from e

        sequence_numbers: list[int] = []
        imported_shippers: list[str] = []

        for offset, (row_number, row) in enumerate(accepted):
            sequence_number = first + offset
            try:
                self.groups.insert_line_item(
                    build_line_item(row, group.id, sequence_number, key)
                )
            except (AppError, ArithmeticError, ValueError) as e:
                if isinstance(e, AppError):
                    message = e.message
                else:
                    message = f"Row {row_number} could not be stored: {e}"
                logger.error(
                    "batch_import_interrupted",
                    group_id=group.id,
                    row=row_number,
                    committed=len(imported_shippers),
                    error=message
                )
                raise CommitError(
                    message=message,
                    details={
                        "stage": "insert",
                        "group_id": group.id,
                        "row": row_number,
                        "committed": len(imported_shippers),
                    }
                ) from e

            sequence_numbers.append(sequence_number)
            imported_shippers.append(row.shipper_name.strip())

        return sequence_numbers, imported_shippers


def build_line_item(
    row: MappedRow,
    group_id: str,
    sequence_number: int,
    key: ImportGroupKey,
) -> dict:
    """Storage payload for one accepted row; money in minor units."""
    revenue_minor = to_minor_units(row.revenue_in_currency)
    return {
        "group_id": group_id,
        "sequence_number": sequence_number,
        "shipper_name": row.shipper_name.strip(),
        "period_label": row.period_label or key.period_key,
        "teu_qty": row.teu_qty or "",
        "revenue_minor_units": revenue_minor,
        "profitability_ratio": row.profitability_ratio,
        "profit_minor_units": profit_minor_units(revenue_minor, row.profitability_ratio),
        "row_type": key.row_type.value,
        "notes": row.notes or None,
    }


_importer: Optional[BatchImporter] = None


def get_batch_importer() -> BatchImporter:
    """Get or create BatchImporter instance."""
    global _importer
    if _importer is None:
        _importer = BatchImporter()
    return _importer
