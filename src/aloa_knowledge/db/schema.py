"""DDL for the project database.

The same script runs on SQLite and Postgres: TEXT ids, ISO-8601 TEXT
timestamps, INTEGER flags and JSON stored as TEXT.
"""

from aloa_knowledge.db.backend import Database

SCHEMA_VERSION = 1

SOURCE_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS projects (
    id TEXT PRIMARY KEY,
    name TEXT,
    project_name TEXT,
    client_name TEXT,
    client_email TEXT,
    status TEXT,
    budget REAL,
    description TEXT,
    start_date TEXT,
    target_completion_date TEXT,
    target_launch_date TEXT,
    actual_completion_date TEXT,
    live_url TEXT,
    staging_url TEXT,
    metadata TEXT NOT NULL DEFAULT '{}',
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS forms (
    id TEXT PRIMARY KEY,
    project_id TEXT,
    title TEXT,
    description TEXT
);

CREATE TABLE IF NOT EXISTS form_fields (
    id TEXT PRIMARY KEY,
    form_id TEXT NOT NULL,
    field_label TEXT,
    field_name TEXT NOT NULL,
    field_type TEXT,
    field_order INTEGER NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_form_fields_form ON form_fields(form_id);

CREATE TABLE IF NOT EXISTS applets (
    id TEXT PRIMARY KEY,
    name TEXT,
    type TEXT,
    config TEXT NOT NULL DEFAULT '{}'
);

CREATE TABLE IF NOT EXISTS applet_responses (
    id TEXT PRIMARY KEY,
    project_id TEXT,
    form_id TEXT,
    applet_id TEXT,
    response_data TEXT NOT NULL DEFAULT '{}',
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS applet_interactions (
    id TEXT PRIMARY KEY,
    project_id TEXT,
    applet_id TEXT,
    interaction_type TEXT,
    data TEXT NOT NULL DEFAULT '{}',
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS project_files (
    id TEXT PRIMARY KEY,
    project_id TEXT,
    file_name TEXT,
    file_type TEXT,
    url TEXT,
    storage_path TEXT,
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS communications (
    id TEXT PRIMARY KEY,
    project_id TEXT NOT NULL,
    title TEXT,
    description TEXT,
    category TEXT,
    priority TEXT,
    direction TEXT,
    attachments TEXT NOT NULL DEFAULT '[]',
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS communication_messages (
    id TEXT PRIMARY KEY,
    communication_id TEXT NOT NULL,
    message TEXT,
    is_admin INTEGER NOT NULL DEFAULT 0,
    attachments TEXT NOT NULL DEFAULT '[]',
    created_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_messages_comm ON communication_messages(communication_id);
"""

KNOWLEDGE_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS knowledge_items (
    id TEXT PRIMARY KEY,
    project_id TEXT NOT NULL,
    source_type TEXT NOT NULL,
    source_id TEXT,
    source_name TEXT,
    source_url TEXT,
    content_type TEXT NOT NULL DEFAULT 'text',
    content TEXT NOT NULL,
    content_summary TEXT NOT NULL DEFAULT '',
    category TEXT NOT NULL,
    tags TEXT NOT NULL DEFAULT '[]',
    importance_score INTEGER NOT NULL DEFAULT 5,
    extracted_by TEXT NOT NULL DEFAULT 'system',
    extraction_confidence REAL NOT NULL DEFAULT 1.0,
    processed_at TEXT NOT NULL,
    created_at TEXT NOT NULL,
    is_current INTEGER NOT NULL DEFAULT 1
);
CREATE INDEX IF NOT EXISTS idx_knowledge_project ON knowledge_items(project_id, is_current);
CREATE INDEX IF NOT EXISTS idx_knowledge_source
    ON knowledge_items(project_id, source_type, source_id);

CREATE TABLE IF NOT EXISTS extraction_queue (
    id TEXT PRIMARY KEY,
    project_id TEXT NOT NULL,
    source_type TEXT NOT NULL,
    source_id TEXT NOT NULL,
    source_url TEXT,
    priority INTEGER NOT NULL DEFAULT 5,
    status TEXT NOT NULL DEFAULT 'pending',
    attempts INTEGER NOT NULL DEFAULT 0,
    error_message TEXT,
    created_at TEXT NOT NULL,
    processed_at TEXT,
    UNIQUE(project_id, source_type, source_id)
);
CREATE INDEX IF NOT EXISTS idx_queue_project_status ON extraction_queue(project_id, status);

CREATE TABLE IF NOT EXISTS ai_context_cache (
    project_id TEXT NOT NULL,
    context_type TEXT NOT NULL,
    context_data TEXT NOT NULL,
    token_count INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    expires_at TEXT NOT NULL,
    PRIMARY KEY (project_id, context_type)
);
"""


async def apply_schema(db: Database) -> None:
    """Apply the database schema and record its version."""
    await db.executescript(SOURCE_SCHEMA_SQL)
    await db.executescript(KNOWLEDGE_SCHEMA_SQL)

    cursor = await db.execute("SELECT version FROM schema_version")
    row = await cursor.fetchone()
    if row is None:
        await db.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))

    await db.commit()
