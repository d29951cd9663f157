"""
Local normalized export: writes the destination schema into a fresh SQLite
file plus JSON name→id maps, for inspecting the ETL output offline.
"""

import json
import os
import sqlite3
from typing import Dict, Optional

import structlog

from ..config.constants import (
    CATEGORIES_TABLE,
    DEFAULT_LANGUAGE,
    MAP_FILES,
    SPEAKERS_TABLE,
    TAGS_TABLE,
)
from ..mappers import prepare_content_for_supabase, prepare_content_tags, prepare_reference_rows
from ..models import ReferenceData
from ..normalize import build_reference_data, normalize_row
from ..source import SqliteSource

logger = structlog.get_logger(__name__)

NORMALIZED_SCHEMA = """
CREATE TABLE speakers (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    bio TEXT,
    photo_url TEXT,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE categories (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL UNIQUE
);
CREATE TABLE tags (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL UNIQUE
);
CREATE TABLE dhamma_content (
    id INTEGER PRIMARY KEY,
    title TEXT NOT NULL,
    speaker_id INTEGER,
    content_type TEXT CHECK (content_type IN ('audio', 'video', 'ebook', 'other')),
    file_url TEXT,
    file_size_estimate INTEGER,
    duration_estimate INTEGER,
    language TEXT DEFAULT 'Myanmar',
    category_id INTEGER,
    description TEXT,
    date_recorded DATE,
    source_page TEXT,
    scraped_date DATETIME,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (speaker_id) REFERENCES speakers(id),
    FOREIGN KEY (category_id) REFERENCES categories(id)
);
CREATE TABLE dhamma_content_tags (
    content_id INTEGER,
    tag_id INTEGER,
    PRIMARY KEY (content_id, tag_id),
    FOREIGN KEY (content_id) REFERENCES dhamma_content(id),
    FOREIGN KEY (tag_id) REFERENCES tags(id)
);
"""

CONTENT_COLUMNS = (
    "id", "title", "speaker_id", "content_type", "file_url", "file_size_estimate",
    "duration_estimate", "language", "category_id", "description", "date_recorded",
    "source_page", "scraped_date", "created_at",
)


def write_map_files(refs: ReferenceData, map_dir: str) -> Dict[str, str]:
    """Write {name: id} JSON maps for speakers, categories and tags."""
    os.makedirs(map_dir, exist_ok=True)
    maps = {
        SPEAKERS_TABLE: refs.speakers,
        CATEGORIES_TABLE: refs.categories,
        TAGS_TABLE: refs.tags,
    }
    written = {}
    for table, name_map in maps.items():
        path = os.path.join(map_dir, MAP_FILES[table])
        with open(path, "w", encoding="utf-8") as f:
            json.dump(name_map, f, indent=2, ensure_ascii=False)
        written[table] = path
    return written


def export_normalized(
    source: SqliteSource,
    dest_path: str,
    map_dir: Optional[str] = None,
    default_language: str = DEFAULT_LANGUAGE,
) -> Dict[str, int]:
    """
    Recreate dest_path as a normalized SQLite database built from source.

    Args:
        source: Open SqliteSource
        dest_path: Output database path (replaced if it exists)
        map_dir: Where to write the JSON map files (defaults to dest_path's directory)
        default_language: Fallback for unknown languages

    Returns:
        Row counts per table plus the skipped row count
    """
    if os.path.abspath(dest_path) == os.path.abspath(source.db_path):
        raise ValueError("Destination must differ from the source database")
    if os.path.exists(dest_path):
        os.remove(dest_path)
    os.makedirs(os.path.dirname(os.path.abspath(dest_path)), exist_ok=True)

    refs = build_reference_data(source.iter_rows())
    reference_rows = prepare_reference_rows(refs)

    counts = {table: len(rows) for table, rows in reference_rows.items()}
    counts.update({"dhamma_content": 0, "dhamma_content_tags": 0, "skipped": 0})

    dest = sqlite3.connect(dest_path)
    try:
        dest.executescript(NORMALIZED_SCHEMA)
        with dest:
            for profile in refs.speaker_profiles.values():
                dest.execute("INSERT INTO speakers (id, name, bio, photo_url) VALUES (?, ?, ?, ?)",
                             (profile.id, profile.name, profile.bio, profile.photo_url))
            dest.executemany("INSERT INTO categories (id, name) VALUES (:id, :name)",
                             reference_rows[CATEGORIES_TABLE])
            dest.executemany("INSERT INTO tags (id, name) VALUES (:id, :name)",
                             reference_rows[TAGS_TABLE])

            placeholders = ", ".join(f":{c}" for c in CONTENT_COLUMNS)
            insert_content = f"INSERT INTO dhamma_content ({', '.join(CONTENT_COLUMNS)}) VALUES ({placeholders})"
            for row in source.iter_rows():
                record = normalize_row(row, refs, default_language)
                if record is None:
                    counts["skipped"] += 1
                    continue
                dest.execute(insert_content, prepare_content_for_supabase(record))
                links = prepare_content_tags(record)
                dest.executemany("INSERT INTO dhamma_content_tags (content_id, tag_id) VALUES (:content_id, :tag_id)",
                                 links)
                counts["dhamma_content"] += 1
                counts["dhamma_content_tags"] += len(links)
    finally:
        dest.close()

    map_files = write_map_files(refs, map_dir or os.path.dirname(os.path.abspath(dest_path)))
    logger.info("Normalized export written", path=dest_path, maps=list(map_files.values()), **counts)
    return counts
