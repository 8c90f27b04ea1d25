"""
Database connection management.

One cached Supabase client is shared by the storage services. The health
check reports the size of the two import tables.
"""

from supabase import create_client, Client
from functools import lru_cache
import structlog

from config.settings import settings
from exceptions import DatabaseError

logger = structlog.get_logger(__name__)

IMPORT_TABLES = ("import_groups", "line_items")


@lru_cache()
def get_supabase_client() -> Client:
    """
    Get cached Supabase client instance.

    Raises:
        DatabaseError: If the client cannot be created
    """
    try:
        client = create_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise DatabaseError("connect", str(e)) from e

    # Log partial URL only
    logger.info("supabase_connected", url=settings.supabase_url[:30] + "...")
    return client


def check_connection() -> dict:
    """
    Count rows in each import table.

    Returns:
        dict: {"status": "healthy", "<table>_count": n, ...} or
        {"status": "unhealthy", "error": ...}
    """
    try:
        client = get_supabase_client()
        status = {"status": "healthy"}
        for table in IMPORT_TABLES:
            result = client.table(table).select("id", count="exact").limit(1).execute()
            status[f"{table}_count"] = result.count
        return status

    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e)
        }
