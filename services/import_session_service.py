"""
In-memory store for import wizard sessions.

Holds the current snapshot of each session with TTL expiration, and runs
one action per session at a time. Single-server only.
"""

import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Iterator, Mapping, Optional, TypeVar
import structlog

from config import settings
from exceptions import (
    AppError,
    CommitError,
    ExtractionError,
    ImportSessionBusyError,
    ImportSessionNotFoundError,
)
from models.import_fields import FieldKey
from models.import_report import ImportGroupKey, ImportReport, RowType
from models.wizard import WizardSnapshot, WizardState
from parsers.tabular_parser import extract_table
from services import import_wizard
from services.batch_importer import BatchImporter, get_batch_importer

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass
class _SessionEntry:
    snapshot: WizardSnapshot
    expires_at: datetime
    lock: threading.Lock = field(default_factory=threading.Lock)


class ImportSessionService:
    """
    Session-scoped driver for the import wizard.

    Every action takes the session's lock without waiting; a second action
    arriving while one is in progress (an extraction or a commit) is
    rejected with ImportSessionBusyError.
    """

    def __init__(
        self,
        importer: Optional[BatchImporter] = None,
        ttl_minutes: Optional[int] = None,
    ):
        self._importer = importer
        self._ttl = timedelta(minutes=ttl_minutes or settings.import_session_ttl_minutes)
        self._sessions: dict[str, _SessionEntry] = {}
        self._guard = threading.Lock()

    @property
    def importer(self) -> BatchImporter:
        if self._importer is None:
            self._importer = get_batch_importer()
        return self._importer

    # ===================
    # SESSION LIFECYCLE
    # ===================

    def start(
        self,
        owner_id: str,
        period_key: str,
        row_type: RowType = RowType.ACTUAL,
    ) -> WizardSnapshot:
        """Open a session waiting for a file."""
        session_id = str(uuid.uuid4())
        snapshot = import_wizard.new_snapshot(session_id, owner_id, period_key, row_type)

        with self._guard:
            self._cleanup_expired()
            self._sessions[session_id] = _SessionEntry(
                snapshot=snapshot,
                expires_at=datetime.now() + self._ttl,
            )

        logger.info(
            "import_session_started",
            session_id=session_id,
            owner_id=owner_id,
            period_key=period_key,
            row_type=row_type.value
        )
        return snapshot

    def get(self, session_id: str, owner_id: str) -> WizardSnapshot:
        """Current snapshot of a session owned by owner_id."""
        return self._entry(session_id, owner_id).snapshot

    def discard(self, session_id: str, owner_id: str) -> None:
        """Drop a session."""
        self._entry(session_id, owner_id)
        with self._guard:
            self._sessions.pop(session_id, None)
        logger.info("import_session_discarded", session_id=session_id)

    # ===================
    # WIZARD ACTIONS
    # ===================

    def upload(
        self,
        session_id: str,
        owner_id: str,
        content: bytes,
        file_name: Optional[str],
    ) -> WizardSnapshot:
        """
        Extract the file and move to Mapping.

        Blocking; call from a worker thread. The session accepts no other
        action until extraction finishes or fails.
        """
        def transition(snapshot: WizardSnapshot) -> WizardSnapshot:
            import_wizard.require_state(snapshot, "upload a file", WizardState.UPLOAD)
            if len(content) > settings.import_max_file_bytes:
                raise ExtractionError(
                    message=f"File is larger than {settings.import_max_file_mb} MB",
                    details={"size_bytes": len(content)}
                )
            table = extract_table(content, file_name, max_rows=settings.import_max_rows)
            return import_wizard.load_table(snapshot, table, file_name)

        return self._run(session_id, owner_id, transition)

    def update_mapping(
        self,
        session_id: str,
        owner_id: str,
        overrides: Mapping[FieldKey, Optional[str]],
    ) -> WizardSnapshot:
        return self._run(
            session_id, owner_id,
            lambda s: import_wizard.assign_columns(s, overrides)
        )

    def apply_mapping(self, session_id: str, owner_id: str) -> WizardSnapshot:
        return self._run(session_id, owner_id, import_wizard.apply_mapping)

    def edit_cell(
        self,
        session_id: str,
        owner_id: str,
        row_number: int,
        field_key: FieldKey,
        value,
    ) -> WizardSnapshot:
        return self._run(
            session_id, owner_id,
            lambda s: import_wizard.edit_cell(s, row_number, field_key, value)
        )

    def remove_row(self, session_id: str, owner_id: str, row_number: int) -> WizardSnapshot:
        return self._run(
            session_id, owner_id,
            lambda s: import_wizard.remove_row(s, row_number)
        )

    def go_back(self, session_id: str, owner_id: str) -> WizardSnapshot:
        return self._run(session_id, owner_id, import_wizard.go_back)

    def reset(self, session_id: str, owner_id: str) -> WizardSnapshot:
        return self._run(session_id, owner_id, import_wizard.reset)

    def commit(self, session_id: str, owner_id: str) -> WizardSnapshot:
        """
        Validation -> Importing -> Done.

        The whole working set goes to the batch importer. On failure the
        session returns to Validation with its rows intact and the failure
        reason recorded, and CommitError is raised. Nothing is retried.
        """
        with self._acquire(session_id, owner_id) as entry:
            importing = import_wizard.begin_commit(entry.snapshot)
            entry.snapshot = importing

            key = ImportGroupKey(
                owner_id=importing.owner_id,
                period_key=importing.period_key,
                row_type=importing.row_type,
            )

            try:
                report = self.importer.import_rows(importing.rows, key)
            except Exception as e:
                reason = e.message if isinstance(e, AppError) else str(e)
                entry.snapshot = import_wizard.fail_commit(importing, reason)
                logger.error(
                    "import_commit_failed",
                    session_id=session_id,
                    error=reason,
                    error_type=type(e).__name__
                )
                if isinstance(e, CommitError):
                    raise
                raise CommitError(message=reason) from e

            entry.snapshot = import_wizard.complete_commit(importing, report)
            logger.info(
                "import_committed",
                session_id=session_id,
                imported=report.imported_count,
                skipped=report.skipped_count
            )
            return entry.snapshot

    def finish(
        self,
        session_id: str,
        owner_id: str,
        continuation: Callable[[ImportReport], T],
    ) -> T:
        """Hand the finished report to a continuation."""
        with self._acquire(session_id, owner_id) as entry:
            return import_wizard.hand_off(entry.snapshot, continuation)

    # ===================
    # INTERNALS
    # ===================

    def _entry(self, session_id: str, owner_id: str) -> _SessionEntry:
        with self._guard:
            entry = self._sessions.get(session_id)
            if entry is not None and datetime.now() > entry.expires_at:
                del self._sessions[session_id]
                entry = None
        if entry is None or entry.snapshot.owner_id != owner_id:
            raise ImportSessionNotFoundError(session_id)
        return entry

    @contextmanager
    def _acquire(self, session_id: str, owner_id: str) -> Iterator[_SessionEntry]:
        entry = self._entry(session_id, owner_id)
        if not entry.lock.acquire(blocking=False):
            logger.warning("import_session_busy", session_id=session_id)
            raise ImportSessionBusyError(session_id)
        try:
            entry.expires_at = datetime.now() + self._ttl
            yield entry
        finally:
            entry.lock.release()

    def _run(
        self,
        session_id: str,
        owner_id: str,
        transition: Callable[[WizardSnapshot], WizardSnapshot],
    ) -> WizardSnapshot:
        with self._acquire(session_id, owner_id) as entry:
            entry.snapshot = transition(entry.snapshot)
            return entry.snapshot

    def _cleanup_expired(self) -> None:
        """Remove all expired sessions. Caller holds the guard."""
        now = datetime.now()
        expired = [k for k, e in self._sessions.items() if now > e.expires_at]
        for k in expired:
            del self._sessions[k]
        if expired:
            logger.debug("import_sessions_expired", count=len(expired))


_service: Optional[ImportSessionService] = None


def get_import_session_service() -> ImportSessionService:
    """Get or create ImportSessionService instance."""
    global _service
    if _service is None:
        _service = ImportSessionService()
    return _service
