"""
Seed command class for running the Supabase and Firestore pipelines.
"""

from typing import Any, Dict, Optional

import structlog

from . import BaseCommand
from ..config.settings import load_settings
from ..database import postgres
from ..exceptions import QuotaExceededError, ReferenceSeedError, SeederError
from ..firestore_config import get_firestore_client
from ..pipeline import FirestoreSeeder, SupabaseSeeder
from ..source import SqliteSource
from ..state import StateStore
from ..supabase_config import get_supabase_client
from ..writers import FirestoreWriter, SupabaseWriter

logger = structlog.get_logger(__name__)


class SeedCommand(BaseCommand):
    """Command class for seeding a remote database from the SQLite export."""

    def execute(self, target: str, **kwargs) -> Dict[str, Any]:
        """Execute seeding for a target.

        Args:
            target: 'supabase' or 'firestore'
            **kwargs: Setting overrides (batch_size, retry_attempts, ...) plus
                - ensure_schema: create tables through DATABASE_URL first (supabase)
                - reset_state: discard the resume state file first (firestore)

        Returns:
            Dict with run statistics; failures also carry 'error' and,
            for quota exhaustion, 'quota_exhausted': True
        """
        try:
            if target == "supabase":
                return self.seed_supabase(**kwargs)
            elif target == "firestore":
                return self.seed_firestore(**kwargs)
            else:
                return {
                    "success": False,
                    "error": f"Unknown seed target: {target}. Supported targets: 'supabase', 'firestore'."
                }
        except QuotaExceededError as e:
            return {
                "success": False,
                "quota_exhausted": True,
                "error": str(e),
                "data": {
                    "stats": e.stats.model_dump() if e.stats is not None else None,
                    "state": e.state.model_dump(by_alias=True) if e.state is not None else None,
                },
            }
        except ReferenceSeedError as e:
            logger.error("Reference seeding failed", error=str(e))
            return {"success": False, "error": str(e)}
        except SeederError as e:
            logger.error("Seed command failed", target=target, error=str(e))
            return {"success": False, "error": str(e)}
        except Exception as e:
            logger.error("Unexpected error during seeding", target=target, error=str(e), exc_info=True)
            return {"success": False, "error": f"Unexpected error: {str(e)}"}

    def seed_supabase(self, ensure_schema: bool = False, env_file: Optional[str] = None,
                      **overrides: Any) -> Dict[str, Any]:
        settings = load_settings(env_file=env_file, **overrides)
        settings.require_source()
        settings.require_supabase()

        if ensure_schema:
            logger.info("Ensuring tables exist...")
            with postgres.get_connection(settings) as conn:
                postgres.create_tables(conn)

        client = get_supabase_client(settings)
        with SqliteSource(settings.sqlite_db_path, settings.source_table) as source:
            stats = SupabaseSeeder(settings, source, SupabaseWriter(client)).run()

        if ensure_schema:
            with postgres.get_connection(settings) as conn:
                postgres.resync_sequences(conn)

        return {"success": True, "data": {"target": "supabase", "stats": stats.model_dump()}}

    def seed_firestore(self, reset_state: bool = False, env_file: Optional[str] = None,
                       **overrides: Any) -> Dict[str, Any]:
        settings = load_settings(env_file=env_file, **overrides)
        settings.require_source()

        state_store = StateStore(settings.state_file)
        if reset_state:
            state_store.reset()

        db = get_firestore_client(settings)
        with SqliteSource(settings.sqlite_db_path, settings.source_table) as source:
            seeder = FirestoreSeeder(settings, source, FirestoreWriter(db), state_store)
            stats = seeder.run()

        state = state_store.load()
        return {
            "success": True,
            "data": {
                "target": "firestore",
                "stats": stats.model_dump(),
                "state": state.model_dump(by_alias=True),
            },
        }
