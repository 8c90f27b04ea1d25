"""
Import group storage.

Owns the import_groups and line_items tables. Sequence numbers come from the
reserve_line_item_sequence database function, which bumps a per-group
counter atomically and returns the first reserved number.
"""

from typing import Optional
import structlog

from config import get_supabase_client
from exceptions import DatabaseError, LineItemNotFoundError
from models.import_report import ImportGroupKey, ImportGroupResponse, RowType

logger = structlog.get_logger(__name__)

RESERVE_SEQUENCE_RPC = "reserve_line_item_sequence"


class ImportGroupService:
    """
    Storage operations for import groups and their line items.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.groups_table = "import_groups"
        self.items_table = "line_items"

    # ===================
    # GROUPS
    # ===================

    def upsert_group(self, key: ImportGroupKey) -> ImportGroupResponse:
        """
        Find or create the group for a key.

        Existing groups are left as they are; the key is unique in storage so
        a second group is never created.
        """
        logger.debug(
            "upserting_import_group",
            owner_id=key.owner_id,
            period_key=key.period_key,
            row_type=key.row_type.value
        )

        try:
            result = (
                self.db.table(self.groups_table)
                .upsert(
                    {
                        "owner_id": key.owner_id,
                        "period_key": key.period_key,
                        "row_type": key.row_type.value,
                    },
                    on_conflict="owner_id,period_key,row_type",
                )
                .execute()
            )
        except Exception as e:
            logger.error("upsert_import_group_failed", error=str(e))
            raise DatabaseError("upsert", str(e))

        if not result.data:
            raise DatabaseError("upsert", "no import group returned")

        return ImportGroupResponse(**result.data[0])

    def reserve_sequence_numbers(self, group_id: str, count: int) -> int:
        """
        Reserve `count` consecutive sequence numbers for a group.

        Returns:
            The first reserved number; the block is [first, first + count)
        """
        if count < 1:
            raise ValueError("count must be at least 1")

        try:
            result = self.db.rpc(
                RESERVE_SEQUENCE_RPC,
                {"p_group_id": group_id, "p_count": count},
            ).execute()
        except Exception as e:
            logger.error("reserve_sequence_failed", group_id=group_id, count=count, error=str(e))
            raise DatabaseError("reserve_sequence", str(e))

        first = result.data
        if isinstance(first, list):
            first = first[0] if first else None
        if isinstance(first, dict):
            first = next(iter(first.values()), None)
        if first is None:
            raise DatabaseError("reserve_sequence", "no sequence number returned")

        logger.debug("sequence_reserved", group_id=group_id, first=int(first), count=count)
        return int(first)

    # ===================
    # LINE ITEMS
    # ===================

    def insert_line_item(self, data: dict) -> dict:
        """Insert one line item and return the stored row."""
        try:
            result = self.db.table(self.items_table).insert(data).execute()
        except Exception as e:
            logger.error(
                "insert_line_item_failed",
                group_id=data.get("group_id"),
                sequence_number=data.get("sequence_number"),
                error=str(e)
            )
            raise DatabaseError("insert", str(e))

        return result.data[0] if result.data else data

    def list_line_items(
        self,
        owner_id: str,
        period_key: Optional[str] = None,
        row_type: Optional[RowType] = None,
    ) -> list[dict]:
        """Line items owned by a user, ordered by sequence number."""
        try:
            query = (
                self.db.table(self.items_table)
                .select("*, import_groups!inner(owner_id, period_key, row_type)")
                .eq("import_groups.owner_id", owner_id)
            )
            if period_key:
                query = query.eq("import_groups.period_key", period_key)
            if row_type:
                query = query.eq("row_type", row_type.value)

            result = query.order("sequence_number").execute()
            return result.data or []

        except Exception as e:
            logger.error("list_line_items_failed", owner_id=owner_id, error=str(e))
            raise DatabaseError("select", str(e))

    def get_owned_line_item(self, owner_id: str, item_id: str) -> dict:
        """
        Fetch a line item, checking it belongs to the owner.

        Raises:
            LineItemNotFoundError: If missing or owned by someone else
        """
        try:
            result = (
                self.db.table(self.items_table)
                .select("*, import_groups!inner(owner_id, period_key, row_type)")
                .eq("id", item_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("get_line_item_failed", item_id=item_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise LineItemNotFoundError(item_id)

        item = result.data[0]
        group = item.get("import_groups") or {}
        if group.get("owner_id") != owner_id:
            raise LineItemNotFoundError(item_id)
        return item

    def update_line_item(self, item_id: str, data: dict) -> dict:
        """Update stored columns of a line item."""
        try:
            result = (
                self.db.table(self.items_table)
                .update(data)
                .eq("id", item_id)
                .execute()
            )
        except Exception as e:
            logger.error("update_line_item_failed", item_id=item_id, error=str(e))
            raise DatabaseError("update", str(e))

        if not result.data:
            raise LineItemNotFoundError(item_id)
        return result.data[0]

    def delete_line_item(self, item_id: str) -> None:
        """Delete a line item. Its sequence number is not handed out again."""
        try:
            self.db.table(self.items_table).delete().eq("id", item_id).execute()
        except Exception as e:
            logger.error("delete_line_item_failed", item_id=item_id, error=str(e))
            raise DatabaseError("delete", str(e))


_service: Optional[ImportGroupService] = None


def get_import_group_service() -> ImportGroupService:
    """Get or create ImportGroupService instance."""
    global _service
    if _service is None:
        _service = ImportGroupService()
    return _service
