"""
Catalog schema and migrations.
"""
from ...shared import ErrorCode, Result, get_logger

logger = get_logger(__name__)

CURRENT_SCHEMA_VERSION = 1

SCHEMA_V1 = """
CREATE TABLE IF NOT EXISTS metadata (
    key   TEXT PRIMARY KEY,
    value TEXT
);

CREATE TABLE IF NOT EXISTS media_entries (
    path             TEXT PRIMARY KEY,
    title            TEXT NOT NULL,
    media_type       TEXT NOT NULL CHECK (media_type IN ('image', 'video')),
    duration_seconds REAL,
    thumbnail_ref    TEXT,
    created_at       INTEGER NOT NULL,
    updated_at       INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS entry_tags (
    path TEXT NOT NULL REFERENCES media_entries(path) ON UPDATE CASCADE ON DELETE CASCADE,
    tag  TEXT NOT NULL,
    PRIMARY KEY (path, tag)
);

CREATE TABLE IF NOT EXISTS bookmarks (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    path              TEXT NOT NULL REFERENCES media_entries(path) ON UPDATE CASCADE ON DELETE CASCADE,
    description       TEXT NOT NULL,
    timestamp_seconds REAL NOT NULL,
    position          INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_entry_tags_tag ON entry_tags(tag);
CREATE INDEX IF NOT EXISTS idx_bookmarks_path ON bookmarks(path, position);
"""


async def get_schema_version(db) -> int:
    res = await db.aquery("SELECT value FROM metadata WHERE key = 'schema_version'")
    if not res.ok or not res.data:
        return 0
    try:
        return int(res.data[0].get("value") or 0)
    except (TypeError, ValueError):
        return 0


async def migrate_schema(db) -> Result[int]:
    """Create or upgrade the catalog schema. Returns the resulting version."""
    script_res = await db.aexecutescript(SCHEMA_V1)
    if not script_res.ok:
        return Result.Err(ErrorCode.CATALOG_IO_ERROR, f"Schema creation failed: {script_res.error}")

    version = await get_schema_version(db)
    if version < CURRENT_SCHEMA_VERSION:
        res = await db.aexecute(
            "INSERT OR REPLACE INTO metadata (key, value) VALUES ('schema_version', ?)",
            (str(CURRENT_SCHEMA_VERSION),),
        )
        if not res.ok:
            return Result.Err(ErrorCode.CATALOG_IO_ERROR, f"Schema version update failed: {res.error}")
        logger.info("Catalog schema at version %d", CURRENT_SCHEMA_VERSION)
    return Result.Ok(CURRENT_SCHEMA_VERSION)
