"""
Catalog connection handling.

The catalog is one SQLite file opened once per process. The same connection
is handed to every worker thread; reads go straight through, writes take
`write_lock`.
"""
import sqlite3
import logging
import threading
from pathlib import Path
from typing import Optional

from .. import config
from ..exceptions import DatabaseError
from .schema import init_schema


def apply_pragmas(conn: sqlite3.Connection, pragmas=config.DB_PRAGMAS):
    for name, value in pragmas:
        conn.execute(f"PRAGMA {name}={value};")


class DBManager:
    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._write_lock = threading.Lock()

    def connect(self) -> sqlite3.Connection:
        """Opens the catalog on first use, creating the file and schema if needed."""
        if self._conn is not None:
            return self._conn

        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        except (OSError, sqlite3.Error) as e:
            raise DatabaseError(f"Cannot open catalog {self.db_path}: {e}") from e

        apply_pragmas(conn)
        init_schema(conn)
        journal = conn.execute("PRAGMA journal_mode;").fetchone()[0]
        logging.info(f"Opened catalog {self.db_path} (journal={journal})")

        self._conn = conn
        return conn

    @property
    def connected(self) -> bool:
        return self._conn is not None

    def close(self):
        if self._conn is None:
            return
        with self._write_lock:
            self._conn.close()
            self._conn = None
        logging.debug(f"Closed catalog {self.db_path}")

    def __enter__(self):
        return self.connect()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def write_lock(self) -> threading.Lock:
        return self._write_lock
