"""
Business logic services.

Each service handles one domain area.
"""

from services.import_group_service import ImportGroupService, get_import_group_service
from services.batch_importer import BatchImporter, get_batch_importer
from services.import_session_service import ImportSessionService, get_import_session_service
from services.line_item_service import LineItemService, get_line_item_service

__all__ = [
    "ImportGroupService",
    "get_import_group_service",
    "BatchImporter",
    "get_batch_importer",
    "ImportSessionService",
    "get_import_session_service",
    "LineItemService",
    "get_line_item_service",
]
