"""
Normalization of flat source rows into reference tables and content records.

Speaker, category and tag strings are de-duplicated by cleaned name and
given integer ids in order of first appearance. Because rows are walked in
id order, the same source always yields the same ids, so upserts keyed on
id stay idempotent across runs.
"""

import datetime
from typing import Iterable, Optional

import structlog

from .config.constants import DEFAULT_LANGUAGE, MONASTIC_TITLES, VALID_CONTENT_TYPES, VALID_LANGUAGES
from .models import ContentRecord, ReferenceData, SourceRow, SpeakerProfile
from .utils import clean_name, parse_date_string, parse_datetime_string, slugify, split_tags

logger = structlog.get_logger(__name__)


def generate_speaker_bio(speaker_name: str) -> str:
    """Placeholder bio until real biographical data is curated."""
    if any(title in speaker_name for title in MONASTIC_TITLES):
        return (f"{speaker_name} is a respected Buddhist teacher and spiritual guide, sharing wisdom "
                f"through dhamma teachings, meditation guidance, and spiritual discourses.")
    return (f"{speaker_name} is a dhamma teacher and spiritual practitioner, offering insights into "
            f"Buddhist philosophy, meditation, and mindful living.")


def normalize_content_type(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip().lower()
    return value if value in VALID_CONTENT_TYPES else None


def normalize_language(value: Optional[str], default_language: str = DEFAULT_LANGUAGE) -> str:
    if value:
        value = value.strip()
        for language in VALID_LANGUAGES:
            if value.lower() == language.lower():
                return language
    return default_language


def build_reference_data(rows: Iterable[SourceRow]) -> ReferenceData:
    """
    Collect de-duplicated speakers, categories and tags from the source rows.

    Args:
        rows: Source rows, expected in id order

    Returns:
        ReferenceData with name to id maps and speaker profiles
    """
    refs = ReferenceData()

    for row in rows:
        speaker = clean_name(row.speaker)
        if speaker is not None:
            speaker_id = refs.speakers.get(speaker)
            if speaker_id is None:
                speaker_id = len(refs.speakers) + 1
                refs.speakers[speaker] = speaker_id
                refs.speaker_profiles[speaker_id] = SpeakerProfile(
                    id=speaker_id,
                    name=speaker,
                    slug=slugify(speaker) or str(speaker_id),
                    bio=generate_speaker_bio(speaker),
                )
            # Only rows normalize_row keeps are counted
            content_type = normalize_content_type(row.content_type)
            if content_type is not None and (row.title or "").strip():
                counts = refs.speaker_profiles[speaker_id].content_counts
                counts[content_type] = counts.get(content_type, 0) + 1

        category = clean_name(row.category)
        if category is not None and category not in refs.categories:
            refs.categories[category] = len(refs.categories) + 1

        for tag in split_tags(row.tags):
            if tag not in refs.tags:
                refs.tags[tag] = len(refs.tags) + 1

    logger.info("Built reference data", **refs.counts())
    return refs


def normalize_row(
    row: SourceRow,
    refs: ReferenceData,
    default_language: str = DEFAULT_LANGUAGE,
    now: Optional[datetime.datetime] = None,
) -> Optional[ContentRecord]:
    """
    Validate and normalize one source row.

    Args:
        row: The flat source row
        refs: Reference data built from the same source
        default_language: Language used when the row's language is missing or unknown
        now: Fallback creation time (defaults to the current UTC time)

    Returns:
        ContentRecord, or None when the row must be skipped
    """
    content_type = normalize_content_type(row.content_type)
    if content_type is None:
        logger.warning("Skipping row with invalid content_type", id=row.id, content_type=row.content_type)
        return None

    title = (row.title or "").strip()
    if not title:
        logger.warning("Skipping row without title", id=row.id)
        return None

    language = normalize_language(row.language, default_language)
    if row.language and language != row.language.strip():
        logger.debug("Unknown language, using default", id=row.id, language=row.language, default=language)

    speaker = clean_name(row.speaker)
    category = clean_name(row.category)
    tags = split_tags(row.tags)

    created_at = parse_datetime_string(row.created_at)
    if created_at is None:
        created_at = now or datetime.datetime.now(datetime.timezone.utc)

    return ContentRecord(
        id=row.id,
        title=title,
        speaker_id=refs.speakers.get(speaker) if speaker else None,
        speaker=speaker,
        content_type=content_type,
        file_url=row.file_url,
        file_size_estimate=row.file_size_estimate,
        duration_estimate=row.duration_estimate,
        language=language,
        category_id=refs.categories.get(category) if category else None,
        category=category,
        tag_ids=[refs.tags[t] for t in tags if t in refs.tags],
        tags=[t for t in tags if t in refs.tags],
        description=row.description,
        date_recorded=parse_date_string(row.date_recorded),
        source_page=row.source_page,
        scraped_date=parse_datetime_string(row.scraped_date),
        created_at=created_at,
    )
