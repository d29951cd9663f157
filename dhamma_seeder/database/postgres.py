"""
Direct Postgres maintenance for the Supabase database: tables, indexes and
row-level security. Uses DATABASE_URL rather than the REST API because DDL
is not available through PostgREST.
"""

from typing import Iterable, List, Tuple

import psycopg
import structlog

from ..config.constants import RLS_TABLES
from ..config.settings import SeederSettings

logger = structlog.get_logger(__name__)

# (statement, description) pairs, executed in order
TABLE_STATEMENTS: List[Tuple[str, str]] = [
    ("""
        CREATE TABLE IF NOT EXISTS speakers (
            id SERIAL PRIMARY KEY,
            name TEXT NOT NULL UNIQUE,
            bio TEXT,
            photo_url TEXT,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
        );
    """, "Create speakers table"),
    ("""
        CREATE TABLE IF NOT EXISTS categories (
            id SERIAL PRIMARY KEY,
            name TEXT NOT NULL UNIQUE
        );
    """, "Create categories table"),
    ("""
        CREATE TABLE IF NOT EXISTS tags (
            id SERIAL PRIMARY KEY,
            name TEXT NOT NULL UNIQUE
        );
    """, "Create tags table"),
    ("""
        CREATE TABLE IF NOT EXISTS dhamma_content (
            id SERIAL PRIMARY KEY,
            title TEXT NOT NULL,
            speaker_id INT REFERENCES speakers(id),
            content_type TEXT CHECK (content_type IN ('audio', 'video', 'ebook', 'other')),
            file_url TEXT UNIQUE,
            file_size_estimate INT,
            duration_estimate INT,
            language TEXT DEFAULT 'Myanmar',
            category_id INT REFERENCES categories(id),
            description TEXT,
            date_recorded DATE,
            source_page TEXT,
            scraped_date TIMESTAMP WITH TIME ZONE,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
        );
    """, "Create dhamma_content table"),
    ("""
        CREATE TABLE IF NOT EXISTS dhamma_content_tags (
            content_id INT REFERENCES dhamma_content(id),
            tag_id INT REFERENCES tags(id),
            PRIMARY KEY (content_id, tag_id)
        );
    """, "Create dhamma_content_tags table"),
    ("""
        CREATE TABLE IF NOT EXISTS featured_entities (
            id SERIAL PRIMARY KEY,
            entity_type TEXT NOT NULL,
            entity_id INT NOT NULL,
            featured_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
            expires_at TIMESTAMP WITH TIME ZONE,
            context TEXT
        );
    """, "Create featured_entities table"),
    ("""
        CREATE INDEX IF NOT EXISTS idx_featured_entities_entity_type_id
            ON featured_entities (entity_type, entity_id);
    """, "Create index on featured_entities (entity_type, entity_id)"),
]

# Explicit ids are upserted into SERIAL columns, so the sequences must be
# moved past them or later app inserts collide
SEQUENCE_RESYNC_TABLES = ("speakers", "categories", "tags", "dhamma_content")

INDEX_STATEMENTS: List[Tuple[str, str]] = [
    ("CREATE INDEX IF NOT EXISTS idx_dhamma_content_content_type_created_at_desc "
     "ON dhamma_content (content_type, created_at DESC);",
     "Composite index on dhamma_content (content_type, created_at DESC)"),
    ("CREATE INDEX IF NOT EXISTS idx_dhamma_content_category_id ON dhamma_content (category_id);",
     "Index on dhamma_content (category_id)"),
    ("CREATE INDEX IF NOT EXISTS idx_dhamma_content_speaker_id ON dhamma_content (speaker_id);",
     "Index on dhamma_content (speaker_id)"),
    ("CREATE INDEX IF NOT EXISTS idx_dhamma_content_tags_tag_id ON dhamma_content_tags (tag_id);",
     "Index on dhamma_content_tags (tag_id)"),
]

PUBLIC_READ_POLICY = "Public read access"


def get_connection(settings: SeederSettings) -> "psycopg.Connection":
    """Open a psycopg connection to DATABASE_URL."""
    database_url = settings.require_database_url()
    logger.info("Connecting to Postgres")
    return psycopg.connect(database_url, sslmode=settings.database_sslmode)


def _run_statements(conn: "psycopg.Connection", statements: Iterable[Tuple[str, str]]) -> int:
    executed = 0
    with conn.cursor() as cur:
        for query, description in statements:
            try:
                cur.execute(query)
            except psycopg.Error as e:
                logger.error(f"Error executing {description}", error=str(e))
                raise
            logger.info(f"Successfully executed: {description}")
            executed += 1
    return executed


def create_tables(conn: "psycopg.Connection") -> int:
    """
    Create every destination table if missing, in a single transaction.

    Returns:
        Number of statements executed

    Raises:
        psycopg.Error: On the first failing statement (the transaction is rolled back)
    """
    logger.info("Starting table creation...")
    with conn.transaction():
        executed = _run_statements(conn, TABLE_STATEMENTS)
    logger.info("All tables configured successfully.")
    return executed


def resync_sequences(conn: "psycopg.Connection", tables: Iterable[str] = SEQUENCE_RESYNC_TABLES) -> int:
    """Move each SERIAL sequence past the table's current max(id)."""
    statements = [
        (f"SELECT setval(pg_get_serial_sequence('{table}', 'id'), "
         f"COALESCE((SELECT MAX(id) FROM {table}), 0) + 1, false);",
         f"Resync id sequence for {table}")
        for table in tables
    ]
    with conn.transaction():
        return _run_statements(conn, statements)


def create_indexes(conn: "psycopg.Connection") -> int:
    """Create query indexes in one transaction; nothing is left half-applied on failure."""
    with conn.transaction():
        executed = _run_statements(conn, INDEX_STATEMENTS)
    logger.info("Indexes created successfully.")
    return executed


def rls_statements(table: str) -> List[Tuple[str, str]]:
    return [
        (f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY;", f"Enable RLS for {table}"),
        (f'DROP POLICY IF EXISTS "{PUBLIC_READ_POLICY}" ON {table};', f"Drop old read policy for {table}"),
        (f'CREATE POLICY "{PUBLIC_READ_POLICY}" ON {table}\n'
         f'  FOR SELECT\n'
         f'  TO anon, authenticated\n'
         f'  USING (true);', f"Create public read policy for {table}"),
    ]


def enable_rls(conn: "psycopg.Connection", tables: Iterable[str] = RLS_TABLES) -> List[str]:
    """Enable row-level security with a public read policy on each table. Safe to re-run."""
    done = []
    for table in tables:
        with conn.transaction():
            _run_statements(conn, rls_statements(table))
        done.append(table)
    logger.info("RLS configured", tables=done)
    return done
