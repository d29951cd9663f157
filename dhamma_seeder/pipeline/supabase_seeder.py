"""
Supabase seeding pipeline.

Reference tables are upserted first, then content is paged out of SQLite and
upserted batch by batch. A content batch that exhausts its retries is counted
as errors and the run moves on; the job is not atomic across batches.
"""

import time
from typing import Any, Callable, Dict, List

import structlog

from ..config.constants import CONTENT_TABLE, CONTENT_TAGS_TABLE, REFERENCE_TABLES
from ..config.settings import SeederSettings
from ..exceptions import BatchWriteError, ReferenceSeedError
from ..mappers import prepare_content_for_supabase, prepare_content_tags, prepare_reference_rows
from ..models import ContentRecord, ReferenceData, SeedStats
from ..normalize import build_reference_data, normalize_row
from ..retry import run_with_retry
from ..source import SqliteSource
from ..utils import chunked
from ..writers.base import BatchWriter

logger = structlog.get_logger(__name__)


class SupabaseSeeder:
    """Runs the SQLite to Supabase ETL once, start to finish."""

    def __init__(
        self,
        settings: SeederSettings,
        source: SqliteSource,
        writer: BatchWriter,
        sleep: Callable[[float], Any] = time.sleep,
    ):
        self.settings = settings
        self.source = source
        self.writer = writer
        self.sleep = sleep

    def _write(self, table: str, rows: List[Dict[str, Any]], **context: Any) -> int:
        return run_with_retry(
            lambda: self.writer.write(table, rows),
            attempts=self.settings.retry_attempts,
            backoff_seconds=self.settings.retry_backoff_seconds,
            strategy=self.settings.retry_backoff,
            sleep=self.sleep,
            description=f"{table} upsert",
            destination=self.writer.name,
            table=table,
            **context,
        )

    def seed_references(self, refs: ReferenceData) -> Dict[str, int]:
        """Upsert speakers, categories and tags; any exhausted batch is fatal."""
        seeded: Dict[str, int] = {}
        reference_rows = prepare_reference_rows(refs)

        for table in REFERENCE_TABLES:
            rows = reference_rows[table]
            if not rows:
                logger.info("No reference data to seed", table=table)
                seeded[table] = 0
                continue
            logger.info(f"Seeding {len(rows)} {table}...")
            written = 0
            for batch in chunked(rows, self.settings.batch_size):
                try:
                    written += self._write(table, list(batch), first_id=batch[0]["id"])
                except BatchWriteError as e:
                    raise ReferenceSeedError(f"Failed to seed {table}: {e}") from e
            seeded[table] = written
            logger.info(f"Seeded {written} {table}.")
        return seeded

    def _write_tag_links(self, records: List[ContentRecord], stats: SeedStats, offset: int) -> None:
        links = [link for record in records for link in prepare_content_tags(record)]
        for batch in chunked(links, self.settings.batch_size):
            try:
                self._write(CONTENT_TAGS_TABLE, list(batch), offset=offset)
            except BatchWriteError as e:
                stats.tag_link_errors += len(batch)
                logger.error("Giving up on tag links for batch", offset=offset, count=len(batch), error=str(e))

    def seed_content(self, refs: ReferenceData, stats: SeedStats) -> SeedStats:
        total = self.source.count()
        stats.total = total
        logger.info(f"Total content rows: {total}")

        batch_size = self.settings.batch_size
        offset = 0
        while offset < total:
            rows = self.source.fetch_batch(offset, batch_size)
            if not rows:
                break

            records: List[ContentRecord] = []
            for row in rows:
                record = normalize_row(row, refs, self.settings.default_language)
                if record is None:
                    stats.skipped += 1
                    stats.skipped_ids.append(row.id)
                else:
                    records.append(record)

            if records:
                payload = [prepare_content_for_supabase(r) for r in records]
                try:
                    self._write(CONTENT_TABLE, payload, offset=offset)
                except BatchWriteError:
                    stats.errors += len(records)
                    stats.failed_ids.extend(r.id for r in records)
                    logger.error("Batch abandoned after retries", offset=offset, rows=len(records))
                else:
                    stats.inserted += len(records)
                    self._write_tag_links(records, stats, offset)

            stats.processed += len(rows)
            offset += len(rows)
            logger.info(
                f"Progress: processed={stats.processed}/{total}, inserted={stats.inserted}, "
                f"skipped={stats.skipped}, errors={stats.errors}"
            )
            if offset < total and self.settings.batch_delay_seconds > 0:
                self.sleep(self.settings.batch_delay_seconds)

        return stats

    def run(self) -> SeedStats:
        """
        Seed reference tables, then content.

        Returns:
            SeedStats for the run

        Raises:
            ReferenceSeedError: If a reference table batch could not be written
            SourceError: If the SQLite source cannot be read
        """
        logger.info("Starting Supabase seeder...")
        refs = build_reference_data(self.source.iter_rows())
        stats = SeedStats(references=self.seed_references(refs))
        self.seed_content(refs, stats)

        logger.info("--- Summary ---")
        logger.info(f"Total processed: {stats.processed}")
        logger.info(f"Inserted: {stats.inserted}")
        logger.info(f"Skipped: {stats.skipped}")
        logger.info(f"Errors: {stats.errors}")
        return stats
