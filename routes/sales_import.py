"""
Sales import API routes.

Drives the spreadsheet import wizard one step per request, and accepts
one-shot commits of an already validated working set.
"""

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
import structlog

from config import settings
from exceptions import AppError
from models.import_fields import SEMANTIC_FIELDS, SemanticField
from models.import_report import ImportCommitRequest, ImportCommitResponse, ImportGroupKey
from models.wizard import (
    CellEditRequest,
    ColumnMappingUpdate,
    ImportDoneResponse,
    StartSessionRequest,
    WizardSnapshot,
)
from routes.dependencies import CurrentUser, require_sales_manager
from services.batch_importer import get_batch_importer
from services.import_session_service import get_import_session_service

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/sales/import", tags=["Sales Import"])


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# FIELDS
# ===================

@router.get("/fields", response_model=list[SemanticField])
async def list_fields():
    """Fields the importer recognizes, in display order."""
    return list(SEMANTIC_FIELDS)


# ===================
# ONE-SHOT COMMIT
# ===================

@router.post("", response_model=ImportCommitResponse)
async def commit_import(
    request: ImportCommitRequest,
    user: CurrentUser = Depends(require_sales_manager),
):
    """
    Commit a working set prepared by the client.

    Invalid rows are skipped and reported; valid rows are numbered and
    persisted in order.
    """
    try:
        key = ImportGroupKey(
            owner_id=user.id,
            period_key=request.period_key,
            row_type=request.row_type,
        )
        importer = get_batch_importer()
        report = await run_in_threadpool(importer.import_rows, request.rows, key)
        return ImportCommitResponse.from_report(report)

    except Exception as e:
        return handle_error(e)


# ===================
# WIZARD SESSIONS
# ===================

@router.post("/sessions", response_model=WizardSnapshot, status_code=201)
async def start_session(
    request: StartSessionRequest,
    user: CurrentUser = Depends(require_sales_manager),
):
    """Open an import session in the Upload state."""
    try:
        service = get_import_session_service()
        return service.start(user.id, request.period_key, request.row_type)
    except Exception as e:
        return handle_error(e)


@router.get("/sessions/{session_id}", response_model=WizardSnapshot)
async def get_session(
    session_id: str,
    user: CurrentUser = Depends(require_sales_manager),
):
    try:
        return get_import_session_service().get(session_id, user.id)
    except Exception as e:
        return handle_error(e)


@router.delete("/sessions/{session_id}", status_code=204)
async def discard_session(
    session_id: str,
    user: CurrentUser = Depends(require_sales_manager),
):
    try:
        get_import_session_service().discard(session_id, user.id)
        return None
    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/upload", response_model=WizardSnapshot)
async def upload_file(
    session_id: str,
    file: UploadFile = File(...),
    user: CurrentUser = Depends(require_sales_manager),
):
    """
    Upload the spreadsheet and move to Mapping.

    Extraction runs in a worker thread; the session rejects other actions
    until it finishes.
    """
    try:
        contents = await file.read()
        service = get_import_session_service()
        snapshot = await run_in_threadpool(
            service.upload, session_id, user.id, contents, file.filename
        )

        logger.info(
            "import_file_uploaded",
            session_id=session_id,
            file_name=file.filename,
            rows=snapshot.raw_row_count
        )
        return snapshot

    except Exception as e:
        return handle_error(e)


@router.put("/sessions/{session_id}/mapping", response_model=WizardSnapshot)
async def update_mapping(
    session_id: str,
    request: ColumnMappingUpdate,
    user: CurrentUser = Depends(require_sales_manager),
):
    """Override column bindings. A null header unmaps the field."""
    try:
        return get_import_session_service().update_mapping(session_id, user.id, request.mapping)
    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/apply-mapping", response_model=WizardSnapshot)
async def apply_mapping(
    session_id: str,
    user: CurrentUser = Depends(require_sales_manager),
):
    """
    Build and validate the working set.

    Raises:
        422: A required field is not mapped
    """
    try:
        return get_import_session_service().apply_mapping(session_id, user.id)
    except Exception as e:
        return handle_error(e)


@router.patch("/sessions/{session_id}/rows/{row_number}", response_model=WizardSnapshot)
async def edit_row(
    session_id: str,
    row_number: int,
    request: CellEditRequest,
    user: CurrentUser = Depends(require_sales_manager),
):
    try:
        return get_import_session_service().edit_cell(
            session_id, user.id, row_number, request.field, request.value
        )
    except Exception as e:
        return handle_error(e)


@router.delete("/sessions/{session_id}/rows/{row_number}", response_model=WizardSnapshot)
async def remove_row(
    session_id: str,
    row_number: int,
    user: CurrentUser = Depends(require_sales_manager),
):
    try:
        return get_import_session_service().remove_row(session_id, user.id, row_number)
    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/back", response_model=WizardSnapshot)
async def go_back(
    session_id: str,
    user: CurrentUser = Depends(require_sales_manager),
):
    try:
        return get_import_session_service().go_back(session_id, user.id)
    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/commit", response_model=WizardSnapshot)
async def commit_session(
    session_id: str,
    user: CurrentUser = Depends(require_sales_manager),
):
    """
    Persist the working set.

    On failure the session is back in Validation with its rows intact.

    Raises:
        409: Not in Validation, or no valid rows
        502: Storage failed
    """
    try:
        service = get_import_session_service()
        return await run_in_threadpool(service.commit, session_id, user.id)
    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/finish", response_model=ImportDoneResponse)
async def finish_session(
    session_id: str,
    user: CurrentUser = Depends(require_sales_manager),
):
    """Final report plus where the client goes next."""
    try:
        return get_import_session_service().finish(
            session_id,
            user.id,
            lambda report: ImportDoneResponse(
                report=report,
                redirect_to=settings.import_done_redirect,
            ),
        )
    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/reset", response_model=WizardSnapshot)
async def reset_session(
    session_id: str,
    user: CurrentUser = Depends(require_sales_manager),
):
    """Start a new import in the same session after Done."""
    try:
        return get_import_session_service().reset(session_id, user.id)
    except Exception as e:
        return handle_error(e)
