"""
Supabase (PostgREST) upsert writer.
"""

from typing import Any, Dict, Sequence

import structlog

from .base import BatchWriter, ensure_list
from ..config.constants import CONFLICT_TARGETS

logger = structlog.get_logger(__name__)


class SupabaseWriter(BatchWriter):
    """Upserts row dicts through the Supabase client, keyed on each table's conflict target."""

    name = "supabase"

    def __init__(self, client: Any):
        self.client = client

    def write(self, collection: str, records: Sequence[Dict[str, Any]]) -> int:
        rows = ensure_list(records)
        if not rows:
            return 0
        on_conflict = CONFLICT_TARGETS.get(collection, "id")
        # supabase-py raises postgrest.APIError on a failed request
        self.client.table(collection).upsert(rows, on_conflict=on_conflict).execute()
        logger.debug("Upserted rows", table=collection, count=len(rows), on_conflict=on_conflict)
        return len(rows)
