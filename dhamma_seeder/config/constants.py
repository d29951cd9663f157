"""
Constants for the Dhamma seeder.

Contains all constant values used throughout the application.
"""

# Source table in the flat SQLite export
DEFAULT_SOURCE_TABLE = "dhamma_content"

# Columns expected in the source table; any missing optional column reads as NULL
SOURCE_COLUMNS = [
    "id",
    "title",
    "speaker",
    "content_type",
    "file_url",
    "file_size_estimate",
    "duration_estimate",
    "language",
    "category",
    "tags",
    "description",
    "date_recorded",
    "source_page",
    "scraped_date",
    "created_at",
]

VALID_CONTENT_TYPES = ("audio", "video", "ebook", "other")
VALID_LANGUAGES = ("English", "Myanmar", "Pali")
DEFAULT_LANGUAGE = "Myanmar"

# Destination tables / collections
SPEAKERS_TABLE = "speakers"
CATEGORIES_TABLE = "categories"
TAGS_TABLE = "tags"
CONTENT_TABLE = "dhamma_content"
CONTENT_TAGS_TABLE = "dhamma_content_tags"

REFERENCE_TABLES = (SPEAKERS_TABLE, CATEGORIES_TABLE, TAGS_TABLE)
DESTINATION_TABLES = REFERENCE_TABLES + (CONTENT_TABLE, CONTENT_TAGS_TABLE)

# Conflict targets used for Supabase upserts
CONFLICT_TARGETS = {
    SPEAKERS_TABLE: "id",
    CATEGORIES_TABLE: "id",
    TAGS_TABLE: "id",
    CONTENT_TABLE: "id",
    CONTENT_TAGS_TABLE: "content_id,tag_id",
}

# Tables that get RLS plus a public read policy
RLS_TABLES = (SPEAKERS_TABLE, CATEGORIES_TABLE, TAGS_TABLE, CONTENT_TABLE)

MAX_NAME_LENGTH = 255

# Firestore rejects write batches larger than this
FIRESTORE_MAX_BATCH_SIZE = 500

# Free tier allows 20k document writes per day
DEFAULT_DAILY_WRITE_LIMIT = 20000

DEFAULT_STATE_FILE = "seed-state.json"

# Titles that mark a speaker as a monastic teacher when generating bios
MONASTIC_TITLES = ("Venerable", "Ajahn", "Bhante", "Sayadaw", "His Holiness", "Lama")

# Map file names written by the local normalized export
MAP_FILES = {
    SPEAKERS_TABLE: "speaker_map.json",
    CATEGORIES_TABLE: "category_map.json",
    TAGS_TABLE: "tag_map.json",
}
