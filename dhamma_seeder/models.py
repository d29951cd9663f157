"""
Models for the Dhamma seeder.

Contains the Pydantic models for source rows, normalized records,
run statistics and resume state.
"""

import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# ===== Source =====

class SourceRow(BaseModel):
    """One row of the flat SQLite export."""
    id: int
    title: Optional[str] = None
    speaker: Optional[str] = None
    content_type: Optional[str] = None
    file_url: Optional[str] = None
    file_size_estimate: Optional[int] = None
    duration_estimate: Optional[int] = None
    language: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[str] = None
    description: Optional[str] = None
    date_recorded: Optional[str] = None
    source_page: Optional[str] = None
    scraped_date: Optional[str] = None
    created_at: Optional[str] = None

# ===== Normalized records =====

class SpeakerProfile(BaseModel):
    """Speaker reference row plus the per-type content counts gathered during the scan."""
    id: int
    name: str
    slug: str
    bio: Optional[str] = None
    photo_url: Optional[str] = None
    content_counts: Dict[str, int] = Field(default_factory=dict)

    @property
    def content_types(self) -> List[str]:
        return sorted(t for t, n in self.content_counts.items() if n > 0)

    @property
    def total_content(self) -> int:
        return sum(self.content_counts.values())


class ReferenceData(BaseModel):
    """Name to id maps for every reference table, built once per run."""
    speakers: Dict[str, int] = Field(default_factory=dict)
    categories: Dict[str, int] = Field(default_factory=dict)
    tags: Dict[str, int] = Field(default_factory=dict)
    speaker_profiles: Dict[int, SpeakerProfile] = Field(default_factory=dict)

    def counts(self) -> Dict[str, int]:
        return {
            "speakers": len(self.speakers),
            "categories": len(self.categories),
            "tags": len(self.tags),
        }


class ContentRecord(BaseModel):
    """A validated, normalized content row ready for any destination."""
    id: int
    title: str
    speaker_id: Optional[int] = None
    speaker: Optional[str] = None
    content_type: str
    file_url: Optional[str] = None
    file_size_estimate: Optional[int] = None
    duration_estimate: Optional[int] = None
    language: str
    category_id: Optional[int] = None
    category: Optional[str] = None
    tag_ids: List[int] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    date_recorded: Optional[datetime.date] = None
    source_page: Optional[str] = None
    scraped_date: Optional[datetime.datetime] = None
    created_at: datetime.datetime

# ===== Run bookkeeping =====

class SeedStats(BaseModel):
    """Counters reported at the end of a run."""
    total: int = 0
    processed: int = 0
    inserted: int = 0
    skipped: int = 0
    errors: int = 0
    tag_link_errors: int = 0
    references: Dict[str, int] = Field(default_factory=dict)
    skipped_ids: List[int] = Field(default_factory=list)
    failed_ids: List[int] = Field(default_factory=list)


class ResumeState(BaseModel):
    """Progress marker persisted between Firestore runs.

    Serialized with the camelCase keys used by the state file.
    """
    model_config = ConfigDict(populate_by_name=True)

    last_run_date: Optional[str] = Field(default=None, alias="lastRunDate")
    last_processed_index: int = Field(default=0, ge=0, alias="lastProcessedIndex")
    daily_processed_count: int = Field(default=0, ge=0, alias="dailyProcessedCount")
    references_seeded: bool = Field(default=False, alias="referencesSeeded")
    references_index: int = Field(default=0, ge=0, alias="referencesIndex")
    failed_ranges: List[List[int]] = Field(default_factory=list, alias="failedRanges")
