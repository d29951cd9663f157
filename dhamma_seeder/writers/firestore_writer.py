"""
Firestore batched-write writer.
"""

from typing import Any, Dict, Sequence, Tuple

import structlog

from .base import BatchWriter, ensure_list
from ..config.constants import FIRESTORE_MAX_BATCH_SIZE

logger = structlog.get_logger(__name__)

Document = Tuple[str, Dict[str, Any]]
CollectionDocument = Tuple[str, str, Dict[str, Any]]


class FirestoreWriter(BatchWriter):
    """Commits documents through a single WriteBatch using merge semantics.

    A WriteBatch is atomic, so a failed commit leaves none of its documents
    written and the whole batch can be retried safely.
    """

    name = "firestore"

    def __init__(self, db: Any):
        self.db = db

    def write(self, collection: str, records: Sequence[Document]) -> int:
        return self.write_many([(collection, doc_id, data) for doc_id, data in records])

    def write_many(self, documents: Sequence[CollectionDocument]) -> int:
        docs = ensure_list(documents)
        if not docs:
            return 0
        if len(docs) > FIRESTORE_MAX_BATCH_SIZE:
            raise ValueError(
                f"Firestore batches are limited to {FIRESTORE_MAX_BATCH_SIZE} writes, got {len(docs)}"
            )

        batch = self.db.batch()
        for collection, doc_id, data in docs:
            ref = self.db.collection(collection).document(doc_id)
            batch.set(ref, data, merge=True)
        batch.commit()
        logger.debug("Committed Firestore batch", count=len(docs))
        return len(docs)
