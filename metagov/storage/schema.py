"""
Database schema definitions for MetaGov.

This module defines the SQLite schema as SQL strings. The audit log is
append-only: rows are inserted by the audit log's single writer and
never updated or deleted.
"""

# Current schema version - increment when making schema changes
SCHEMA_VERSION = 1

# Schema version tracking table
SCHEMA_VERSION_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now')),
    description TEXT
);
"""

# Audit log - one row per governance decision
AUDIT_LOG_SQL = """
CREATE TABLE IF NOT EXISTS audit_log (
    sequence INTEGER PRIMARY KEY,
    request_id TEXT NOT NULL,
    final_status TEXT NOT NULL,  -- APPROVED, BLOCKED, CONDITIONAL
    dominant_policy TEXT NOT NULL,
    recorded_at TEXT NOT NULL,
    request TEXT NOT NULL,  -- JSON serialized ChangeRequest
    decision TEXT NOT NULL,  -- JSON serialized Decision
    skipped TEXT  -- JSON array of skipped policies
);

CREATE INDEX IF NOT EXISTS idx_audit_log_request_id ON audit_log(request_id);
CREATE INDEX IF NOT EXISTS idx_audit_log_final_status ON audit_log(final_status);
CREATE INDEX IF NOT EXISTS idx_audit_log_recorded_at ON audit_log(recorded_at);
"""

# Combined schema SQL for initialization
SCHEMA_SQL = f"""
-- MetaGov Database Schema v{SCHEMA_VERSION}

{SCHEMA_VERSION_SQL}

{AUDIT_LOG_SQL}

-- Insert initial schema version if not exists
INSERT OR IGNORE INTO schema_version (version, description)
VALUES ({SCHEMA_VERSION}, 'Initial schema');
"""

# List of all tables for reference
TABLES = [
    "schema_version",
    "audit_log",
]
