"""
Status command class: source statistics, resume state and remote table counts.
"""

import os
from typing import Any, Dict, Optional

import structlog

from . import BaseCommand
from ..config.settings import load_settings
from ..exceptions import SeederError
from ..source import SqliteSource
from ..state import StateStore, remaining_quota, roll_over
from ..supabase_config import get_database_status, get_supabase_client

logger = structlog.get_logger(__name__)


class StatusCommand(BaseCommand):
    """Command class for reporting where a migration stands."""

    def execute(self, remote: bool = False, env_file: Optional[str] = None, **kwargs) -> Dict[str, Any]:
        """Collect status information.

        Args:
            remote: Also query Supabase for per-table row counts
            env_file: Optional .env path

        Returns:
            Dict with 'source', 'state' and optionally 'remote' sections
        """
        try:
            settings = load_settings(env_file=env_file, **kwargs)
            data: Dict[str, Any] = {
                "source": self._source_status(settings),
                "state": self._state_status(settings),
            }
            if remote:
                data["remote"] = get_database_status(get_supabase_client(settings))
            return {"success": True, "data": data}
        except SeederError as e:
            return {"success": False, "error": str(e)}
        except Exception as e:
            logger.error("Status check failed", error=str(e))
            return {"success": False, "error": f"Status check failed: {str(e)}"}

    def _source_status(self, settings) -> Dict[str, Any]:
        with SqliteSource(settings.require_source(), settings.source_table) as source:
            return {
                "path": settings.sqlite_db_path,
                "table": settings.source_table,
                "rows": source.count(),
                "content_types": source.count_by("content_type"),
                "speakers": len(source.distinct_values("speaker")),
                "categories": len(source.distinct_values("category")),
            }

    def _state_status(self, settings) -> Dict[str, Any]:
        if not os.path.exists(settings.state_file):
            return {"path": settings.state_file, "exists": False}
        state = StateStore(settings.state_file).load()
        return {
            "path": settings.state_file,
            "exists": True,
            "daily_write_limit": settings.daily_write_limit,
            "remaining_today": remaining_quota(roll_over(state), settings.daily_write_limit),
            **state.model_dump(by_alias=True),
        }
