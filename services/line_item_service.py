"""
Manual line item entry.

Adds, lists, edits and deletes single entries in a user's import groups.
Entries share the group's sequence counter with batch imports.
"""

from typing import Optional
import structlog

from config import settings
from models.import_report import ImportGroupKey, RowType
from models.import_rows import MappedRow
from models.line_item import (
    LineItemCreate,
    LineItemCreatedResponse,
    LineItemResponse,
    LineItemUpdate,
)
from services.import_group_service import ImportGroupService, get_import_group_service
from services.row_validator import ensure_valid
from services.value_normalizer import profit_minor_units, to_minor_units
from utils.currency_format import format_inr

logger = structlog.get_logger(__name__)


class LineItemService:
    """
    Single-entry operations on line items, scoped to the owner.
    """

    def __init__(self, group_service: Optional[ImportGroupService] = None):
        self.groups = group_service or get_import_group_service()

    def create_entry(self, owner_id: str, data: LineItemCreate) -> LineItemCreatedResponse:
        """
        Add one entry to the owner's group for data.period_key and data.row_type.

        Raises:
            RowValidationError: If the entry breaks an import rule
        """
        ensure_valid(MappedRow(
            shipper_name=data.shipper_name,
            teu_qty=data.teu_qty,
            revenue_in_currency=data.revenue_in_currency,
            profitability_ratio=data.profitability_ratio,
        ))

        key = ImportGroupKey(
            owner_id=owner_id,
            period_key=data.period_key,
            row_type=data.row_type,
        )
        group = self.groups.upsert_group(key)
        sequence_number = self.groups.reserve_sequence_numbers(group.id, 1)

        revenue_minor = to_minor_units(data.revenue_in_currency)
        stored = self.groups.insert_line_item({
            "group_id": group.id,
            "sequence_number": sequence_number,
            "shipper_name": data.shipper_name,
            "period_label": data.period_label,
            "teu_qty": data.teu_qty,
            "revenue_minor_units": revenue_minor,
            "profitability_ratio": data.profitability_ratio,
            "profit_minor_units": profit_minor_units(revenue_minor, data.profitability_ratio),
            "row_type": data.row_type.value,
            "notes": data.notes or None,
        })

        logger.info(
            "line_item_created",
            owner_id=owner_id,
            group_id=group.id,
            sequence_number=sequence_number
        )

        return LineItemCreatedResponse(id=str(stored.get("id", "")), sequence_number=sequence_number)

    def list_entries(
        self,
        owner_id: str,
        period_key: Optional[str] = None,
        row_type: Optional[RowType] = None,
    ) -> list[LineItemResponse]:
        """Owner's entries ordered by sequence number."""
        items = self.groups.list_line_items(owner_id, period_key, row_type)
        return [self._to_response(item) for item in items]

    def update_entry(
        self,
        owner_id: str,
        item_id: str,
        data: LineItemUpdate,
    ) -> LineItemResponse:
        """
        Edit an entry.

        Profit is recomputed whenever revenue or profitability changes.

        Raises:
            LineItemNotFoundError: If missing or owned by someone else
            RowValidationError: If the edited entry breaks an import rule
        """
        current = self.groups.get_owned_line_item(owner_id, item_id)

        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return self._to_response(current)

        update: dict = {}
        for name in ("shipper_name", "teu_qty", "notes"):
            if name in changes:
                update[name] = changes[name]

        revenue_minor = int(current["revenue_minor_units"])
        revenue = revenue_minor / settings.currency_minor_unit_scale
        ratio = float(current["profitability_ratio"])
        if changes.get("revenue_in_currency") is not None:
            revenue = changes["revenue_in_currency"]
        if changes.get("profitability_ratio") is not None:
            ratio = changes["profitability_ratio"]
            update["profitability_ratio"] = ratio

        ensure_valid(
            MappedRow(
                shipper_name=update.get("shipper_name", current["shipper_name"]),
                revenue_in_currency=revenue,
                profitability_ratio=ratio,
            ),
            current["sequence_number"],
        )

        if changes.get("revenue_in_currency") is not None:
            revenue_minor = to_minor_units(revenue)
            update["revenue_minor_units"] = revenue_minor
        if "revenue_minor_units" in update or "profitability_ratio" in update:
            update["profit_minor_units"] = profit_minor_units(revenue_minor, ratio)

        stored = self.groups.update_line_item(item_id, update)

        logger.info("line_item_updated", item_id=item_id, fields=sorted(update))
        return self._to_response(stored)

    def delete_entry(self, owner_id: str, item_id: str) -> None:
        """
        Delete an entry.

        Raises:
            LineItemNotFoundError: If missing or owned by someone else
        """
        self.groups.get_owned_line_item(owner_id, item_id)
        self.groups.delete_line_item(item_id)
        logger.info("line_item_deleted", owner_id=owner_id, item_id=item_id)

    def _to_response(self, item: dict) -> LineItemResponse:
        revenue = int(item.get("revenue_minor_units") or 0)
        profit = int(item.get("profit_minor_units") or 0)
        return LineItemResponse(
            id=str(item["id"]),
            group_id=str(item["group_id"]),
            sequence_number=item["sequence_number"],
            shipper_name=item["shipper_name"],
            period_label=item.get("period_label"),
            teu_qty=item.get("teu_qty") or "",
            revenue_minor_units=revenue,
            profitability_ratio=float(item.get("profitability_ratio") or 0),
            profit_minor_units=profit,
            row_type=item["row_type"],
            notes=item.get("notes"),
            revenue_display=format_inr(revenue),
            profit_display=format_inr(profit),
            created_at=item.get("created_at"),
        )


_service: Optional[LineItemService] = None


def get_line_item_service() -> LineItemService:
    """Get or create LineItemService instance."""
    global _service
    if _service is None:
        _service = LineItemService()
    return _service
