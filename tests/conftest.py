"""
Shared test fixtures.

Services run against an in-memory import group store; routes are exercised
through FastAPI's TestClient with the service singletons patched.
"""

import os
import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings are loaded at import time
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import pytest
from unittest.mock import patch
from datetime import datetime
from typing import Optional
from uuid import uuid4

from exceptions import DatabaseError, LineItemNotFoundError
from models.import_report import ImportGroupKey, ImportGroupResponse, RowType


# ===================
# IN-MEMORY STORE
# ===================

class InMemoryImportGroupService:
    """
    Stand-in for ImportGroupService backed by dicts.

    Mirrors the storage contract: groups are unique per key, sequence
    numbers come from a per-group counter that never goes backwards.

    Set fail_on_insert to the 1-based insert call that should fail.
    """

    def __init__(self, fail_on_insert: Optional[int] = None):
        self.groups: dict[tuple[str, str, str], dict] = {}
        self.items: dict[str, dict] = {}
        self.fail_on_insert = fail_on_insert
        self.insert_calls = 0

    def upsert_group(self, key: ImportGroupKey) -> ImportGroupResponse:
        group = self.groups.get(key.as_tuple())
        if group is None:
            group = {
                "id": str(uuid4()),
                "owner_id": key.owner_id,
                "period_key": key.period_key,
                "row_type": key.row_type.value,
                "next_sequence_number": 1,
                "created_at": datetime.utcnow().isoformat() + "Z",
            }
            self.groups[key.as_tuple()] = group
        return ImportGroupResponse(**group)

    def reserve_sequence_numbers(self, group_id: str, count: int) -> int:
        group = self._group_by_id(group_id)
        first = group["next_sequence_number"]
        group["next_sequence_number"] = first + count
        return first

    def insert_line_item(self, data: dict) -> dict:
        self.insert_calls += 1
        if self.fail_on_insert is not None and self.insert_calls == self.fail_on_insert:
            raise DatabaseError("insert", "connection reset")

        for item in self.items.values():
            if (item["group_id"], item["sequence_number"]) == (data["group_id"], data["sequence_number"]):
                raise DatabaseError("insert", "duplicate sequence number")

        stored = {
            **data,
            "id": str(uuid4()),
            "created_at": datetime.utcnow().isoformat() + "Z",
        }
        self.items[stored["id"]] = stored
        return stored

    def list_line_items(
        self,
        owner_id: str,
        period_key: Optional[str] = None,
        row_type: Optional[RowType] = None,
    ) -> list[dict]:
        owned = {
            g["id"]: g for g in self.groups.values()
            if g["owner_id"] == owner_id and (not period_key or g["period_key"] == period_key)
        }
        items = [
            i for i in self.items.values()
            if i["group_id"] in owned and (not row_type or i["row_type"] == row_type.value)
        ]
        return sorted(items, key=lambda i: (i["group_id"], i["sequence_number"]))

    def get_owned_line_item(self, owner_id: str, item_id: str) -> dict:
        item = self.items.get(item_id)
        if item is None or self._group_by_id(item["group_id"])["owner_id"] != owner_id:
            raise LineItemNotFoundError(item_id)
        return item

    def update_line_item(self, item_id: str, data: dict) -> dict:
        if item_id not in self.items:
            raise LineItemNotFoundError(item_id)
        self.items[item_id] = {**self.items[item_id], **data}
        return self.items[item_id]

    def delete_line_item(self, item_id: str) -> None:
        self.items.pop(item_id, None)

    def items_in_group(self, group_id: str) -> list[dict]:
        return sorted(
            (i for i in self.items.values() if i["group_id"] == group_id),
            key=lambda i: i["sequence_number"]
        )

    def _group_by_id(self, group_id: str) -> dict:
        for group in self.groups.values():
            if group["id"] == group_id:
                return group
        raise DatabaseError("select", f"import group {group_id} not found")


# ===================
# FIXTURES
# ===================

@pytest.fixture
def group_store() -> InMemoryImportGroupService:
    """Empty in-memory import group store."""
    return InMemoryImportGroupService()


@pytest.fixture
def batch_importer(group_store):
    """BatchImporter writing to the in-memory store."""
    from services.batch_importer import BatchImporter
    return BatchImporter(group_service=group_store)


@pytest.fixture
def session_service(batch_importer):
    """Fresh import session store using the in-memory importer."""
    from services.import_session_service import ImportSessionService
    return ImportSessionService(importer=batch_importer, ttl_minutes=30)


@pytest.fixture
def line_item_service(group_store):
    """LineItemService writing to the in-memory store."""
    from services.line_item_service import LineItemService
    return LineItemService(group_service=group_store)


@pytest.fixture
def owner_id() -> str:
    return "user-sales-1"


@pytest.fixture
def auth_headers(owner_id) -> dict:
    """Headers the upstream session provider forwards for a sales manager."""
    return {"X-User-Id": owner_id, "X-User-Role": "sales_manager"}


@pytest.fixture
def test_client(batch_importer, session_service, line_item_service):
    """
    FastAPI test client with services wired to the in-memory store.

    Usage:
        def test_endpoint(test_client, auth_headers):
            response = test_client.get("/api/sales/import/fields", headers=auth_headers)
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import app

    with patch("routes.sales_import.get_batch_importer", return_value=batch_importer), \
         patch("routes.sales_import.get_import_session_service", return_value=session_service), \
         patch("routes.line_items.get_line_item_service", return_value=line_item_service):
        yield TestClient(app)
