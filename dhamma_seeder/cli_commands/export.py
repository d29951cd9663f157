"""
Export command class for the local normalized SQLite copy.
"""

from typing import Any, Dict, Optional

import structlog

from . import BaseCommand
from ..config.settings import load_settings
from ..database.sqlite_export import export_normalized
from ..exceptions import SeederError
from ..source import SqliteSource

logger = structlog.get_logger(__name__)


class ExportCommand(BaseCommand):
    """Command class for writing the normalized schema to a local SQLite file."""

    def execute(self, dest: str, map_dir: Optional[str] = None, env_file: Optional[str] = None,
                **kwargs) -> Dict[str, Any]:
        """Export the normalized dataset.

        Args:
            dest: Output SQLite path
            map_dir: Directory for the name→id JSON maps
            env_file: Optional .env path

        Returns:
            Dict with per-table row counts
        """
        if not dest or not dest.strip():
            return {"success": False, "error": "Destination path is required"}

        try:
            settings = load_settings(env_file=env_file, **kwargs)
            with SqliteSource(settings.require_source(), settings.source_table) as source:
                counts = export_normalized(source, dest, map_dir, settings.default_language)
            return {"success": True, "data": {"dest": dest, "counts": counts}}
        except (SeederError, ValueError, OSError) as e:
            logger.error("Export failed", dest=dest, error=str(e))
            return {"success": False, "error": f"Export failed: {str(e)}"}
