"""
Mapping of normalized records onto destination row / document shapes.
"""

import datetime
from typing import Any, Dict, List, Tuple

from .config.constants import CATEGORIES_TABLE, SPEAKERS_TABLE, TAGS_TABLE, VALID_CONTENT_TYPES
from .models import ContentRecord, ReferenceData, SpeakerProfile


def prepare_reference_rows(refs: ReferenceData) -> Dict[str, List[Dict[str, Any]]]:
    """Rows for the three reference tables, ordered by id."""
    def rows(name_map: Dict[str, int]) -> List[Dict[str, Any]]:
        return [{"id": i, "name": n} for n, i in sorted(name_map.items(), key=lambda item: item[1])]

    return {
        SPEAKERS_TABLE: rows(refs.speakers),
        CATEGORIES_TABLE: rows(refs.categories),
        TAGS_TABLE: rows(refs.tags),
    }


def prepare_content_for_supabase(record: ContentRecord) -> Dict[str, Any]:
    """Column dict for the dhamma_content table (JSON-serializable)."""
    return {
        "id": record.id,
        "title": record.title,
        "speaker_id": record.speaker_id,
        "content_type": record.content_type,
        "file_url": record.file_url,
        "file_size_estimate": record.file_size_estimate,
        "duration_estimate": record.duration_estimate,
        "language": record.language,
        "category_id": record.category_id,
        "description": record.description,
        # DATE column expects YYYY-MM-DD
        "date_recorded": record.date_recorded.isoformat() if record.date_recorded else None,
        "source_page": record.source_page,
        "scraped_date": record.scraped_date.isoformat() if record.scraped_date else None,
        "created_at": record.created_at.isoformat(),
    }


def prepare_content_tags(record: ContentRecord) -> List[Dict[str, int]]:
    return [{"content_id": record.id, "tag_id": tag_id} for tag_id in record.tag_ids]


def prepare_content_for_firestore(record: ContentRecord) -> Tuple[str, Dict[str, Any]]:
    """Document id and camelCase fields; datetimes become Firestore timestamps on write."""
    date_recorded = None
    if record.date_recorded:
        date_recorded = datetime.datetime.combine(record.date_recorded, datetime.time(), tzinfo=datetime.timezone.utc)

    return str(record.id), {
        "title": record.title,
        "speakerId": str(record.speaker_id) if record.speaker_id else None,
        "speaker": record.speaker,
        "contentType": record.content_type,
        "fileUrl": record.file_url,
        "fileSizeEstimate": record.file_size_estimate,
        "durationEstimate": record.duration_estimate,
        "language": record.language,
        "categoryId": str(record.category_id) if record.category_id else None,
        "category": record.category,
        "tagIds": [str(t) for t in record.tag_ids],
        "tags": list(record.tags),
        "description": record.description,
        "dateRecorded": date_recorded,
        "sourcePage": record.source_page,
        "scrapedDate": record.scraped_date,
        "createdAt": record.created_at,
    }


def prepare_speaker_for_firestore(profile: SpeakerProfile) -> Tuple[str, Dict[str, Any]]:
    counts = {t: profile.content_counts.get(t, 0) for t in VALID_CONTENT_TYPES}
    counts["total"] = profile.total_content
    return str(profile.id), {
        "name": profile.name,
        "slug": profile.slug,
        "bio": profile.bio,
        "photoUrl": profile.photo_url,
        "contentTypes": profile.content_types,
        "contentCounts": counts,
        "featured": False,
    }


def prepare_reference_docs(refs: ReferenceData) -> List[Tuple[str, str, Dict[str, Any]]]:
    """(collection, document id, data) for every reference document, speakers first."""
    docs: List[Tuple[str, str, Dict[str, Any]]] = []
    for speaker_id in sorted(refs.speaker_profiles):
        doc_id, data = prepare_speaker_for_firestore(refs.speaker_profiles[speaker_id])
        docs.append((SPEAKERS_TABLE, doc_id, data))
    reference_rows = prepare_reference_rows(refs)
    for table in (CATEGORIES_TABLE, TAGS_TABLE):
        for row in reference_rows[table]:
            docs.append((table, str(row["id"]), {"name": row["name"]}))
    return docs
