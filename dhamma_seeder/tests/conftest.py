import sqlite3
from collections import defaultdict
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import pytest

from dhamma_seeder.config.constants import SOURCE_COLUMNS
from dhamma_seeder.config.settings import SeederSettings

# Flat export rows, in id order. Row 3 has an unknown content type and
# row 5 has no title, so both must be skipped.
SAMPLE_ROWS: List[Dict[str, Any]] = [
    {
        "id": 1, "title": "Metta Bhavana", "speaker": "Sayadaw U Pandita", "content_type": "audio",
        "file_url": "https://example.org/a/1.mp3", "file_size_estimate": 1024, "duration_estimate": 3600,
        "language": "english", "category": "Meditation", "tags": "metta, loving-kindness",
        "description": "Guided loving-kindness", "date_recorded": "2019-05-01",
        "source_page": "https://example.org/p/1", "scraped_date": "2024-02-03T10:00:00Z",
        "created_at": "2023-01-02 10:00:00",
    },
    {
        "id": 2, "title": "Anatta", "speaker": "  Sayadaw   U Pandita ", "content_type": "Video",
        "file_url": "https://example.org/v/2.mp4", "file_size_estimate": None, "duration_estimate": None,
        "language": None, "category": "Suttas", "tags": "anatta;metta",
        "description": None, "date_recorded": None, "source_page": None, "scraped_date": None,
        "created_at": None,
    },
    {
        "id": 3, "title": "Bogus", "speaker": "Ajahn Chah", "content_type": "podcast",
        "file_url": "https://example.org/x/3", "file_size_estimate": None, "duration_estimate": None,
        "language": "English", "category": None, "tags": None, "description": None,
        "date_recorded": None, "source_page": None, "scraped_date": None, "created_at": None,
    },
    {
        "id": 4, "title": "Dana Talk", "speaker": "Ajahn Chah", "content_type": "ebook",
        "file_url": "https://example.org/e/4.pdf", "file_size_estimate": 2048, "duration_estimate": None,
        "language": "Pali", "category": "Meditation", "tags": None, "description": None,
        "date_recorded": "not a date", "source_page": None, "scraped_date": None,
        "created_at": "2023-03-04T05:06:07+00:00",
    },
    {
        "id": 5, "title": "   ", "speaker": "Ajahn Chah", "content_type": "audio",
        "file_url": "https://example.org/a/5.mp3", "file_size_estimate": None, "duration_estimate": None,
        "language": None, "category": None, "tags": None, "description": None,
        "date_recorded": None, "source_page": None, "scraped_date": None, "created_at": None,
    },
    {
        "id": 6, "title": "Sila", "speaker": None, "content_type": "audio",
        "file_url": "https://example.org/a/6.mp3", "file_size_estimate": None, "duration_estimate": 900,
        "language": "French", "category": None, "tags": "sila", "description": None,
        "date_recorded": "2020-12-31", "source_page": None, "scraped_date": None, "created_at": None,
    },
]

VALID_IDS = [1, 2, 4, 6]
SKIPPED_IDS = [3, 5]


def write_source_db(path: str, rows: List[Dict[str, Any]], columns: Optional[List[str]] = None,
                    table: str = "dhamma_content") -> str:
    columns = columns or SOURCE_COLUMNS
    defs = ", ".join("id INTEGER PRIMARY KEY" if c == "id" else f"{c} TEXT" for c in columns)
    conn = sqlite3.connect(path)
    try:
        conn.execute(f"CREATE TABLE {table} ({defs})")
        placeholders = ", ".join("?" for _ in columns)
        conn.executemany(
            f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})",
            [tuple(row.get(c) for c in columns) for row in rows],
        )
        conn.commit()
    finally:
        conn.close()
    return path


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment out of the tests."""
    for env_name in [name.upper() for name in SeederSettings.model_fields] + ["SEED_STATE_FILE", "SUPABASE_SERVICE_ROLE_KEY"]:
        monkeypatch.delenv(env_name, raising=False)


@pytest.fixture
def source_db(tmp_path) -> str:
    return write_source_db(str(tmp_path / "source.db"), SAMPLE_ROWS)


@pytest.fixture
def make_settings(source_db, tmp_path) -> Callable[..., SeederSettings]:
    def _make(**overrides: Any) -> SeederSettings:
        values: Dict[str, Any] = {
            "sqlite_db_path": source_db,
            "supabase_url": "https://test.supabase.co",
            "supabase_key": "service-key",
            "batch_size": 2,
            "retry_attempts": 2,
            "retry_backoff_seconds": 0,
            "batch_delay_seconds": 0,
            "firestore_batch_size": 2,
            "daily_write_limit": 1000,
            "state_file": str(tmp_path / "seed-state.json"),
        }
        values.update(overrides)
        return SeederSettings(**values)
    return _make


@pytest.fixture
def no_sleep() -> List[float]:
    """Records requested sleeps instead of sleeping."""
    return []

# --- Fake Supabase client ---

class FakeQuery:
    def __init__(self, client: "FakeSupabaseClient", table: str):
        self.client = client
        self.table = table
        self.pending: Optional[List[Dict[str, Any]]] = None
        self.on_conflict = "id"
        self.count_requested = False

    def upsert(self, rows, on_conflict: str = "id"):
        self.pending = [dict(r) for r in rows]
        self.on_conflict = on_conflict
        return self

    def select(self, *columns, count=None):
        self.count_requested = count == "exact"
        return self

    def limit(self, n):
        return self

    def execute(self):
        if self.pending is None:
            if self.table in self.client.missing_tables:
                raise RuntimeError(f'relation "{self.table}" does not exist')
            rows = list(self.client.tables[self.table].values())
            return SimpleNamespace(data=rows[:1], count=len(rows) if self.count_requested else None)

        self.client.calls.append((self.table, [r.get("id") for r in self.pending], self.on_conflict))
        rule = self.client.failures.get(self.table)
        if rule is not None:
            predicate, remaining = rule
            if predicate(self.pending) and (remaining is None or remaining > 0):
                if remaining is not None:
                    self.client.failures[self.table] = (predicate, remaining - 1)
                raise RuntimeError(f"upsert into {self.table} failed")

        keys = self.on_conflict.split(",")
        for row in self.pending:
            self.client.tables[self.table][tuple(row[k] for k in keys)] = row
        return SimpleNamespace(data=self.pending, count=None)


class FakeSupabaseClient:
    """Minimal stand-in for supabase.Client: table().upsert().execute() keyed on on_conflict."""

    def __init__(self):
        self.tables: Dict[str, Dict[tuple, Dict[str, Any]]] = defaultdict(dict)
        self.calls: List[tuple] = []
        self.failures: Dict[str, tuple] = {}
        self.missing_tables = set()

    def fail(self, table: str, times: Optional[int] = None,
             when: Callable[[List[Dict[str, Any]]], bool] = lambda rows: True) -> None:
        """Fail upserts into table (matching `when`), `times` times or forever."""
        self.failures[table] = (when, times)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return list(self.tables[table].values())


@pytest.fixture
def supabase_client() -> FakeSupabaseClient:
    return FakeSupabaseClient()

# --- Fake Firestore client ---

class FakeDocumentRef:
    def __init__(self, collection: str, doc_id: str):
        self.collection = collection
        self.id = doc_id


class FakeCollectionRef:
    def __init__(self, name: str):
        self.name = name

    def document(self, doc_id: str) -> FakeDocumentRef:
        return FakeDocumentRef(self.name, doc_id)


class FakeWriteBatch:
    def __init__(self, db: "FakeFirestore"):
        self.db = db
        self.ops: List[tuple] = []

    def set(self, ref: FakeDocumentRef, data: Dict[str, Any], merge: bool = False) -> None:
        self.ops.append((ref, data, merge))

    def commit(self):
        self.db.commit_attempts += 1
        docs = [(ref.collection, ref.id) for ref, _, _ in self.ops]
        if self.db.fail_when is not None and self.db.fail_when(docs):
            if self.db.fail_times is None or self.db.fail_times > 0:
                if self.db.fail_times is not None:
                    self.db.fail_times -= 1
                raise RuntimeError("commit failed")
        # Batches are atomic: either every set applies or none
        for ref, data, merge in self.ops:
            store = self.db.docs[ref.collection]
            if merge and ref.id in store:
                store[ref.id] = {**store[ref.id], **data}
            else:
                store[ref.id] = dict(data)
        self.db.commits.append(docs)
        return []


class FakeFirestore:
    """Minimal stand-in for google.cloud.firestore.Client batched writes."""

    def __init__(self):
        self.docs: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)
        self.commits: List[List[tuple]] = []
        self.commit_attempts = 0
        self.fail_when: Optional[Callable[[List[tuple]], bool]] = None
        self.fail_times: Optional[int] = None

    def fail(self, when: Callable[[List[tuple]], bool] = lambda docs: True, times: Optional[int] = None) -> None:
        self.fail_when = when
        self.fail_times = times

    def batch(self) -> FakeWriteBatch:
        return FakeWriteBatch(self)

    def collection(self, name: str) -> FakeCollectionRef:
        return FakeCollectionRef(name)

    @property
    def writes(self) -> int:
        return sum(len(c) for c in self.commits)


@pytest.fixture
def firestore_db() -> FakeFirestore:
    return FakeFirestore()


@pytest.fixture
def seed_env(monkeypatch, source_db, tmp_path) -> Dict[str, str]:
    """Environment for CLI runs against the sample source."""
    env = {
        "SQLITE_DB_PATH": source_db,
        "SUPABASE_URL": "https://test.supabase.co",
        "SUPABASE_KEY": "service-key",
        "BATCH_SIZE": "2",
        "RETRY_ATTEMPTS": "2",
        "RETRY_BACKOFF_SECONDS": "0",
        "BATCH_DELAY_SECONDS": "0",
        "FIRESTORE_BATCH_SIZE": "2",
        "SEED_STATE_FILE": str(tmp_path / "state" / "seed-state.json"),
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    monkeypatch.chdir(tmp_path)
    return env
