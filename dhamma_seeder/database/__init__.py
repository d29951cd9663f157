"""
Database maintenance: Postgres DDL/RLS scripts and the local normalized export.
"""
