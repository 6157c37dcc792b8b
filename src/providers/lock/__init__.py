"""Ingestion claim providers.

SQLiteIngestionLockProvider keeps one claim row per radicado in
data/ingestion_locks.db so only one worker ingests a given document at a
time.
"""
