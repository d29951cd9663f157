"""
Supabase client management and status checks for the Dhamma seeder.
"""

from typing import Any, Dict

import structlog
from supabase import create_client, Client
from supabase.client import ClientOptions

from .config.constants import DESTINATION_TABLES
from .config.settings import SeederSettings

logger = structlog.get_logger(__name__)


def get_supabase_client(settings: SeederSettings) -> Client:
    """
    Get Supabase client instance.

    Args:
        settings: Seeder settings holding SUPABASE_URL and SUPABASE_KEY

    Returns:
        Configured Supabase client

    Raises:
        ConfigurationError: If required environment variables are not set
    """
    settings.require_supabase()

    # A batch job has no user session to keep alive
    options = ClientOptions(
        auto_refresh_token=False,
        persist_session=False
    )

    client = create_client(settings.supabase_url, settings.supabase_key, options)
    logger.debug("Created Supabase client", url=settings.supabase_url)
    return client


def get_database_status(client: Client) -> Dict[str, Any]:
    """
    Get row counts for every destination table.

    Returns:
        Dictionary with a per-table entry of {exists, count} or {exists, error}
    """
    table_status: Dict[str, Any] = {}

    for table in DESTINATION_TABLES:
        try:
            result = client.table(table).select('*', count='exact').limit(1).execute()
            table_status[table] = {'exists': True, 'count': result.count}
        except Exception as e:
            logger.warning("Status query failed", table=table, error=str(e))
            table_status[table] = {'exists': False, 'error': str(e)}

    return table_status
