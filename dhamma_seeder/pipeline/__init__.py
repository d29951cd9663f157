"""
Seeding pipelines for each destination.
"""

from .supabase_seeder import SupabaseSeeder
from .firestore_seeder import FirestoreSeeder

__all__ = ['SupabaseSeeder', 'FirestoreSeeder']
