"""
Line item API routes.

Manual entry and upkeep of committed sales rows.
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from exceptions import AppError
from models.import_report import RowType
from models.line_item import (
    LineItemCreate,
    LineItemCreatedResponse,
    LineItemResponse,
    LineItemUpdate,
)
from routes.dependencies import CurrentUser, require_sales_manager
from services.line_item_service import get_line_item_service

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/sales/entries", tags=["Sales Entries"])


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


@router.get("", response_model=list[LineItemResponse])
async def list_entries(
    period_key: Optional[str] = Query(None, alias="periodKey", description="Filter by group period"),
    row_type: Optional[RowType] = Query(None, alias="rowType", description="Filter by row type"),
    user: CurrentUser = Depends(require_sales_manager),
):
    """Own entries ordered by sequence number."""
    try:
        return get_line_item_service().list_entries(user.id, period_key, row_type)
    except Exception as e:
        return handle_error(e)


@router.post("", response_model=LineItemCreatedResponse, status_code=201)
async def create_entry(
    data: LineItemCreate,
    user: CurrentUser = Depends(require_sales_manager),
):
    """
    Add one entry by hand.

    It takes the next sequence number of its group.
    """
    try:
        return get_line_item_service().create_entry(user.id, data)
    except Exception as e:
        return handle_error(e)


@router.patch("/{item_id}", response_model=LineItemResponse)
async def update_entry(
    item_id: str,
    data: LineItemUpdate,
    user: CurrentUser = Depends(require_sales_manager),
):
    """
    Edit an entry.

    Raises:
        404: Entry not found
    """
    try:
        return get_line_item_service().update_entry(user.id, item_id, data)
    except Exception as e:
        return handle_error(e)


@router.delete("/{item_id}", status_code=204)
async def delete_entry(
    item_id: str,
    user: CurrentUser = Depends(require_sales_manager),
):
    """Delete an entry. Its sequence number is not reused."""
    try:
        get_line_item_service().delete_entry(user.id, item_id)
        return None
    except Exception as e:
        return handle_error(e)
