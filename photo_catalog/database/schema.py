"""
Database schema definitions.
"""
import sqlite3
import logging

CURRENT_SCHEMA_VERSION = 1

def init_schema(conn: sqlite3.Connection):
    """
    Applies the core schema to the database.
    Idempotent: safe to run on every startup.
    """
    with conn:
        # 1. Version Tracking (For future migrations)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY
            );
        """)

        cur = conn.cursor()
        cur.execute("SELECT version FROM schema_version")
        if not cur.fetchone():
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (CURRENT_SCHEMA_VERSION,))

        # 2. Directories
        conn.execute("""
        CREATE TABLE IF NOT EXISTS directories (
            id              TEXT PRIMARY KEY,
            directory       TEXT NOT NULL UNIQUE,
            parent_id       TEXT,
            FOREIGN KEY(parent_id) REFERENCES directories(id) ON DELETE SET NULL
        );
        """)

        # 3. Pictures
        # Location is stored split (directory, filename) to support prefix queries.
        conn.execute("""
        CREATE TABLE IF NOT EXISTS pictures (
            id              TEXT PRIMARY KEY,
            directory       TEXT NOT NULL,
            filename        TEXT NOT NULL,
            raw_extension   TEXT,
            short_hash      BLOB,                 -- reserved
            full_hash       BLOB,                 -- reserved
            capture_time    TEXT,
            rating          INTEGER CHECK (rating BETWEEN 0 AND 5),
            flag            TEXT,
            hidden          INTEGER NOT NULL DEFAULT 0,
            selection       TEXT NOT NULL DEFAULT 'Ordinary',
            thumbnail       BLOB,
            directory_id    TEXT,
            UNIQUE (directory, filename),
            FOREIGN KEY(directory_id) REFERENCES directories(id) ON DELETE SET NULL
        );
        """)

        # 4. Indices for Performance
        conn.execute("CREATE INDEX IF NOT EXISTS idx_pictures_directory ON pictures(directory);")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_pictures_filename ON pictures(filename);")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_pictures_short_hash ON pictures(short_hash);")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_pictures_full_hash ON pictures(full_hash);")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_pictures_capture_time ON pictures(capture_time);")

    logging.debug("Database schema initialized.")
