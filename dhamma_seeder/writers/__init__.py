"""
Destination writers: one round trip per batch, upsert semantics.
"""

from .base import BatchWriter
from .supabase_writer import SupabaseWriter
from .firestore_writer import FirestoreWriter

__all__ = [
    'BatchWriter',
    'SupabaseWriter',
    'FirestoreWriter',
]
