"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.sales_import import router as sales_import_router
from routes.line_items import router as line_items_router

__all__ = [
    "sales_import_router",
    "line_items_router",
]
