import datetime
import json

import pytest

from dhamma_seeder.exceptions import ConfigurationError, QuotaExceededError, ReferenceSeedError
from dhamma_seeder.pipeline import FirestoreSeeder, firestore_seeder
from dhamma_seeder.source import SqliteSource
from dhamma_seeder.state import StateStore
from dhamma_seeder.writers import FirestoreWriter

DAY_ONE = datetime.date(2024, 6, 1)
DAY_TWO = datetime.date(2024, 6, 2)

# Sample source: 2 speakers + 2 categories + 4 tags = 8 reference documents,
# and content pages of two rows produce 2, 1 and 1 documents.
REFERENCE_DOCS = 8


@pytest.fixture
def run_seeder(make_settings, firestore_db, no_sleep):
    def _run(today=DAY_ONE, **overrides):
        settings = make_settings(**overrides)
        store = StateStore(settings.state_file)
        with SqliteSource(settings.sqlite_db_path) as source:
            seeder = FirestoreSeeder(settings, source, FirestoreWriter(firestore_db), store,
                                     sleep=no_sleep.append, today=lambda: today)
            return seeder.run()
    return _run


@pytest.fixture
def saved_state(make_settings):
    def _load():
        with open(make_settings().state_file, encoding="utf-8") as f:
            return json.load(f)
    return _load


def test_full_run(run_seeder, firestore_db, saved_state):
    stats = run_seeder()

    assert stats.inserted == 4
    assert stats.skipped == 2
    assert stats.errors == 0
    assert sorted(firestore_db.docs["dhamma_content"]) == ["1", "2", "4", "6"]
    assert sorted(firestore_db.docs["speakers"]) == ["1", "2"]
    assert len(firestore_db.docs["tags"]) == 4
    assert firestore_db.writes == REFERENCE_DOCS + 4

    state = saved_state()
    assert state["lastProcessedIndex"] == 6
    assert state["dailyProcessedCount"] == REFERENCE_DOCS + 4
    assert state["referencesSeeded"] is True
    assert state["lastRunDate"] == "2024-06-01"
    assert state["failedRanges"] == []


def test_content_documents_are_denormalized(run_seeder, firestore_db):
    run_seeder()
    doc = firestore_db.docs["dhamma_content"]["2"]
    assert doc["speakerId"] == "1"
    assert doc["speaker"] == "Sayadaw U Pandita"
    assert doc["categoryId"] == "2"
    assert doc["tagIds"] == ["3", "1"]
    assert doc["tags"] == ["anatta", "metta"]
    assert doc["contentType"] == "video"

    speaker = firestore_db.docs["speakers"]["1"]
    assert speaker["slug"] == "sayadaw-u-pandita"
    assert speaker["contentCounts"]["total"] == 2


def test_speaker_counts_match_seeded_content(run_seeder, firestore_db):
    run_seeder()
    content = firestore_db.docs["dhamma_content"].values()
    for speaker_id, speaker in firestore_db.docs["speakers"].items():
        seeded = [doc for doc in content if doc["speakerId"] == speaker_id]
        assert speaker["contentCounts"]["total"] == len(seeded)
        assert speaker["contentTypes"] == sorted({doc["contentType"] for doc in seeded})


def test_batches_never_exceed_configured_size(run_seeder, firestore_db):
    run_seeder(firestore_batch_size=3)
    assert max(len(c) for c in firestore_db.commits) <= 3


def test_quota_stops_before_overflowing(run_seeder, firestore_db, saved_state):
    with pytest.raises(QuotaExceededError) as excinfo:
        run_seeder(daily_write_limit=10)

    # References (8) and the first content page (2) fit exactly
    assert firestore_db.writes == 10
    assert sorted(firestore_db.docs["dhamma_content"]) == ["1", "2"]
    state = saved_state()
    assert state["dailyProcessedCount"] == 10
    assert state["lastProcessedIndex"] == 2
    assert excinfo.value.state.last_processed_index == 2
    assert excinfo.value.stats.inserted == 2


def test_same_day_rerun_writes_nothing(run_seeder, firestore_db):
    with pytest.raises(QuotaExceededError):
        run_seeder(daily_write_limit=10)
    writes = firestore_db.writes

    with pytest.raises(QuotaExceededError):
        run_seeder(daily_write_limit=10)

    assert firestore_db.writes == writes


def test_next_day_resumes_where_it_stopped(run_seeder, firestore_db, saved_state):
    with pytest.raises(QuotaExceededError):
        run_seeder(daily_write_limit=10)

    stats = run_seeder(today=DAY_TWO, daily_write_limit=10)

    assert stats.inserted == 2
    assert sorted(firestore_db.docs["dhamma_content"]) == ["1", "2", "4", "6"]
    # References are not written a second time
    assert firestore_db.writes == REFERENCE_DOCS + 4
    state = saved_state()
    assert state["lastRunDate"] == "2024-06-02"
    assert state["dailyProcessedCount"] == 2
    assert state["lastProcessedIndex"] == 6


def test_quota_during_references_resumes_mid_references(run_seeder, firestore_db, saved_state):
    with pytest.raises(QuotaExceededError):
        run_seeder(daily_write_limit=5)

    state = saved_state()
    assert state["referencesSeeded"] is False
    assert state["referencesIndex"] == 4
    assert firestore_db.writes == 4

    with pytest.raises(QuotaExceededError):
        run_seeder(today=DAY_TWO, daily_write_limit=5)
    assert saved_state()["referencesIndex"] == 8
    assert saved_state()["referencesSeeded"] is True


def test_completed_run_is_a_no_op(run_seeder, firestore_db):
    run_seeder()
    writes = firestore_db.writes

    stats = run_seeder()

    assert firestore_db.writes == writes
    assert stats.processed == 0


def test_failed_batch_is_recorded_and_skipped(run_seeder, firestore_db, saved_state):
    firestore_db.fail(when=lambda docs: ("dhamma_content", "4") in docs)

    stats = run_seeder()

    assert stats.errors == 1
    assert stats.failed_ids == [4]
    assert "4" not in firestore_db.docs["dhamma_content"]
    state = saved_state()
    assert state["failedRanges"] == [[2, 4]]
    assert state["lastProcessedIndex"] == 6
    # The failed document does not count against the quota
    assert state["dailyProcessedCount"] == REFERENCE_DOCS + 3


def test_failed_range_is_reseeded_on_next_run(run_seeder, firestore_db, saved_state):
    firestore_db.fail(when=lambda docs: ("dhamma_content", "4") in docs)
    run_seeder()
    firestore_db.fail_when = None

    stats = run_seeder(today=DAY_TWO)

    assert stats.inserted == 1
    assert stats.errors == 0
    assert sorted(firestore_db.docs["dhamma_content"]) == ["1", "2", "4", "6"]
    state = saved_state()
    assert state["failedRanges"] == []
    assert state["lastProcessedIndex"] == 6
    assert state["dailyProcessedCount"] == 1


def test_failed_range_that_fails_again_stays_recorded(run_seeder, firestore_db, saved_state):
    firestore_db.fail(when=lambda docs: ("dhamma_content", "4") in docs)
    run_seeder()

    stats = run_seeder(today=DAY_TWO)

    assert stats.errors == 1
    assert stats.failed_ids == [4]
    assert saved_state()["failedRanges"] == [[2, 4]]


def test_failed_range_retry_respects_quota(run_seeder, firestore_db, saved_state):
    firestore_db.fail(when=lambda docs: ("dhamma_content", "4") in docs)
    run_seeder()
    firestore_db.fail_when = None
    state = saved_state()

    # Same day: the budget is already spent down to nothing
    with pytest.raises(QuotaExceededError):
        run_seeder(daily_write_limit=state["dailyProcessedCount"])

    assert "4" not in firestore_db.docs["dhamma_content"]
    assert saved_state()["failedRanges"] == [[2, 4]]


def test_commits_log_the_destination(run_seeder, monkeypatch):
    contexts = []
    real = firestore_seeder.run_with_retry

    def recording(operation, **kwargs):
        contexts.append(kwargs)
        return real(operation, **kwargs)

    monkeypatch.setattr(firestore_seeder, "run_with_retry", recording)
    run_seeder()

    assert contexts
    assert all(c["destination"] == "firestore" for c in contexts)


def test_transient_commit_failure_is_retried(run_seeder, firestore_db, no_sleep):
    firestore_db.fail(when=lambda docs: ("dhamma_content", "1") in docs, times=1)

    stats = run_seeder(retry_backoff_seconds=2)

    assert stats.errors == 0
    assert "1" in firestore_db.docs["dhamma_content"]
    assert no_sleep == [2.0]


def test_reference_failure_is_fatal(run_seeder, firestore_db, saved_state):
    firestore_db.fail(when=lambda docs: any(c == "speakers" for c, _ in docs))

    with pytest.raises(ReferenceSeedError):
        run_seeder()

    assert firestore_db.docs["dhamma_content"] == {}
    assert saved_state()["referencesSeeded"] is False


def test_batch_larger_than_daily_limit_is_rejected(make_settings, firestore_db):
    settings = make_settings(firestore_batch_size=50, daily_write_limit=20)
    with SqliteSource(settings.sqlite_db_path) as source:
        with pytest.raises(ConfigurationError):
            FirestoreSeeder(settings, source, FirestoreWriter(firestore_db), StateStore(settings.state_file))
