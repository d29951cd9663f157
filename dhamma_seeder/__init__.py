"""
Dhamma content seeder

Migrates the flat Dhamma SQLite dataset (audio, video and ebook teachings)
into normalized Supabase tables or Firestore collections. It consists of:
- normalize.py: name de-duplication and row validation
- pipeline/: the batched, retrying Supabase and resumable Firestore seeders
- database/: Postgres DDL/RLS scripts and a local normalized export
- cli.py: the dhamma-seed command line
"""

__version__ = "0.1.0"
