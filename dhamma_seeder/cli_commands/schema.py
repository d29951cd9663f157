"""
Schema command class for the direct-Postgres maintenance scripts.
"""

from typing import Any, Dict, Optional

import psycopg
import structlog

from . import BaseCommand
from ..config.settings import load_settings
from ..database import postgres
from ..exceptions import SeederError

logger = structlog.get_logger(__name__)


class SchemaCommand(BaseCommand):
    """Command class for table, index, sequence and RLS setup via DATABASE_URL."""

    ACTIONS = ("create_tables", "create_indexes", "enable_rls", "resync_sequences")

    def execute(self, action: str, env_file: Optional[str] = None, **kwargs) -> Dict[str, Any]:
        """Execute a schema action.

        Args:
            action: One of create_tables, create_indexes, enable_rls, resync_sequences
            env_file: Optional .env path

        Returns:
            Dict with the action name and what was applied
        """
        if action not in self.ACTIONS:
            return {
                "success": False,
                "error": f"Unknown schema action: {action}. Supported actions: {', '.join(self.ACTIONS)}."
            }

        try:
            settings = load_settings(env_file=env_file, **kwargs)
            with postgres.get_connection(settings) as conn:
                result = getattr(postgres, action)(conn)
            return {"success": True, "data": {"action": action, "result": result}}
        except SeederError as e:
            return {"success": False, "error": str(e)}
        except psycopg.Error as e:
            logger.error("Schema action failed", action=action, error=str(e))
            return {"success": False, "error": f"Database error during {action}: {str(e)}"}
