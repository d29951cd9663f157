"""
Base class for destination writers.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Sequence


class BatchWriter(ABC):
    """Writes one batch of records to a destination in a single round trip.

    Implementations must upsert (insert or update by key) so that writing
    the same batch twice leaves the destination unchanged.
    """

    name: str = "writer"

    @abstractmethod
    def write(self, collection: str, records: Sequence[Any]) -> int:
        """Upsert records into collection and return how many were written.

        Raises on any failure so the caller can retry.
        """
        pass


def ensure_list(records: Sequence[Any]) -> List[Any]:
    return records if isinstance(records, list) else list(records)
