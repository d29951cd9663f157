"""
Resumable, quota-aware Firestore seeding pipeline.

Each committed batch advances the persisted resume state, so an interrupted
run (crash, Ctrl-C or an exhausted daily quota) continues where it stopped on
the next invocation. Writes are merge-upserts keyed by document id, so
re-committing a batch after a crash between commit and state save is safe.
"""

import datetime
import time
from typing import Any, Callable, List, Optional, Tuple

import structlog

from ..config.settings import SeederSettings
from ..exceptions import BatchWriteError, ConfigurationError, QuotaExceededError, ReferenceSeedError
from ..mappers import prepare_content_for_firestore, prepare_reference_docs
from ..models import ReferenceData, ResumeState, SeedStats, SourceRow
from ..normalize import build_reference_data, normalize_row
from ..retry import run_with_retry
from ..source import SqliteSource
from ..state import StateStore, remaining_quota, roll_over
from ..writers.firestore_writer import FirestoreWriter

logger = structlog.get_logger(__name__)


class FirestoreSeeder:
    """Seeds Firestore within a daily write budget, resuming across runs."""

    def __init__(
        self,
        settings: SeederSettings,
        source: SqliteSource,
        writer: FirestoreWriter,
        state_store: StateStore,
        sleep: Callable[[float], Any] = time.sleep,
        today: Callable[[], datetime.date] = datetime.date.today,
    ):
        if settings.firestore_batch_size > settings.daily_write_limit:
            raise ConfigurationError(
                f"FIRESTORE_BATCH_SIZE ({settings.firestore_batch_size}) exceeds "
                f"DAILY_WRITE_LIMIT ({settings.daily_write_limit}); no batch could ever be committed"
            )
        self.settings = settings
        self.source = source
        self.writer = writer
        self.state_store = state_store
        self.sleep = sleep
        self.today = today

    @property
    def daily_limit(self) -> int:
        return self.settings.daily_write_limit

    def _commit(self, write: Callable[[], int], **context: Any) -> int:
        return run_with_retry(
            write,
            attempts=self.settings.retry_attempts,
            backoff_seconds=self.settings.retry_backoff_seconds,
            strategy=self.settings.retry_backoff,
            sleep=self.sleep,
            description="Firestore batch commit",
            destination=self.writer.name,
            **context,
        )

    def _check_quota(self, state: ResumeState, needed: int, stats: SeedStats) -> None:
        if needed > remaining_quota(state, self.daily_limit):
            self.state_store.save(state)
            logger.warning(
                "Daily write quota reached, stopping",
                daily_processed=state.daily_processed_count,
                needed=needed,
                daily_limit=self.daily_limit,
                last_processed_index=state.last_processed_index,
            )
            raise QuotaExceededError(
                f"Daily write limit of {self.daily_limit} reached "
                f"({state.daily_processed_count} used, next batch needs {needed}). "
                f"Run again tomorrow to resume from index {state.last_processed_index}.",
                state=state,
                stats=stats,
            )

    def seed_references(self, refs: ReferenceData, state: ResumeState, stats: SeedStats) -> ResumeState:
        """Write speaker profiles, categories and tags, resuming mid-way if needed."""
        documents = prepare_reference_docs(refs)
        batch_size = self.settings.firestore_batch_size
        index = state.references_index
        logger.info("Seeding reference documents", total=len(documents), resume_from=index)

        while index < len(documents):
            batch = documents[index:index + batch_size]
            self._check_quota(state, len(batch), stats)
            try:
                self._commit(lambda: self.writer.write_many(batch), reference_index=index)
            except BatchWriteError as e:
                self.state_store.save(state)
                raise ReferenceSeedError(f"Failed to seed reference documents at index {index}: {e}") from e
            index += len(batch)
            state.references_index = index
            state.daily_processed_count += len(batch)
            self.state_store.save(state)
            if index < len(documents) and self.settings.batch_delay_seconds > 0:
                self.sleep(self.settings.batch_delay_seconds)

        state.references_seeded = True
        self.state_store.save(state)
        logger.info("Reference documents seeded", total=len(documents))
        return state

    def _page_documents(self, rows: List[SourceRow], refs: ReferenceData) -> Tuple[List[Tuple[str, Any]], List[int]]:
        documents = []
        skipped = []
        for row in rows:
            record = normalize_row(row, refs, self.settings.default_language)
            if record is None:
                skipped.append(row.id)
                continue
            doc_id, data = prepare_content_for_firestore(record)
            documents.append((doc_id, data))
        return documents, skipped

    def retry_failed_ranges(self, refs: ReferenceData, state: ResumeState, stats: SeedStats) -> ResumeState:
        """Re-seed pages whose commit was abandoned on an earlier run.

        A range is dropped from the state once its page commits. Ranges that
        fail again stay recorded for the next run.
        """
        if not state.failed_ranges:
            return state
        collection = self.settings.firestore_content_collection
        logger.info("Retrying previously failed ranges", ranges=state.failed_ranges)

        for start, end in list(state.failed_ranges):
            rows = self.source.fetch_batch(start, end - start)
            documents, _ = self._page_documents(rows, refs)
            self._check_quota(state, len(documents), stats)

            if documents:
                try:
                    self._commit(lambda: self.writer.write(collection, documents), index=start, failed_range=True)
                except BatchWriteError:
                    stats.errors += len(documents)
                    stats.failed_ids.extend(int(doc_id) for doc_id, _ in documents)
                    logger.error("Failed range still failing", start=start, end=end)
                    continue
                stats.inserted += len(documents)
                state.daily_processed_count += len(documents)

            state.failed_ranges.remove([start, end])
            self.state_store.save(state)
            logger.info("Recovered failed range", start=start, end=end, documents=len(documents))

        return state

    def seed_content(self, refs: ReferenceData, state: ResumeState, stats: SeedStats) -> ResumeState:
        collection = self.settings.firestore_content_collection
        batch_size = self.settings.firestore_batch_size
        total = stats.total

        state = self.retry_failed_ranges(refs, state, stats)

        index = state.last_processed_index
        if index >= total:
            logger.info("All content already processed", last_processed_index=index, total=total)
            return state
        if index > 0:
            logger.info("Resuming from saved state", last_processed_index=index, total=total)

        while index < total:
            rows = self.source.fetch_batch(index, batch_size)
            if not rows:
                break

            documents, skipped = self._page_documents(rows, refs)
            stats.skipped += len(skipped)
            stats.skipped_ids.extend(skipped)

            # Nothing from this page is committed if it would overflow the budget
            self._check_quota(state, len(documents), stats)

            if documents:
                try:
                    self._commit(lambda: self.writer.write(collection, documents), index=index)
                except BatchWriteError:
                    stats.errors += len(documents)
                    stats.failed_ids.extend(int(doc_id) for doc_id, _ in documents)
                    state.failed_ranges.append([index, index + len(rows)])
                    logger.error("Batch abandoned after retries", index=index, documents=len(documents))
                else:
                    stats.inserted += len(documents)
                    state.daily_processed_count += len(documents)

            index += len(rows)
            stats.processed += len(rows)
            state.last_processed_index = index
            self.state_store.save(state)

            logger.info(
                f"Progress: index={index}/{total}, inserted={stats.inserted}, skipped={stats.skipped}, "
                f"errors={stats.errors}, daily_writes={state.daily_processed_count}/{self.daily_limit}"
            )
            if index < total and self.settings.batch_delay_seconds > 0:
                self.sleep(self.settings.batch_delay_seconds)

        return state

    def run(self, state: Optional[ResumeState] = None) -> SeedStats:
        """
        Seed Firestore from the saved position.

        Returns:
            SeedStats for this invocation

        Raises:
            QuotaExceededError: When the daily write limit stops the run (state is saved)
            ReferenceSeedError: If reference documents could not be written
        """
        if state is None:
            state = self.state_store.load()
        state = roll_over(state, self.today())
        self.state_store.save(state)

        refs = build_reference_data(self.source.iter_rows())
        stats = SeedStats(total=self.source.count(), references=refs.counts())

        if not state.references_seeded:
            state = self.seed_references(refs, state, stats)
        state = self.seed_content(refs, state, stats)

        logger.info("--- Summary ---")
        logger.info(f"Processed this run: {stats.processed}")
        logger.info(f"Inserted: {stats.inserted}")
        logger.info(f"Skipped: {stats.skipped}")
        logger.info(f"Errors: {stats.errors}")
        logger.info(f"Daily writes used: {state.daily_processed_count}/{self.daily_limit}")
        return stats
