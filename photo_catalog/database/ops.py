import sqlite3
import logging
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional, List, Dict, Any, Iterable

from ..exceptions import DatabaseError
from ..models import PictureRecord, Selection, Flag

PICTURE_COLUMNS = (
    "id", "directory", "filename", "raw_extension", "short_hash", "full_hash",
    "capture_time", "rating", "flag", "hidden", "selection", "thumbnail", "directory_id",
)

# Fields that may be changed on an existing picture, one at a time.
UPDATABLE_FIELDS = {"selection", "rating", "flag", "hidden", "thumbnail", "directory_id"}


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class DBOperations:
    """
    The catalog query interface.

    Reads and writes pictures and directories over one sqlite connection.
    Writes are serialised through `write_lock` so workers may share it.
    """
    def __init__(self, conn: sqlite3.Connection, write_lock: Optional[threading.Lock] = None):
        self.conn = conn
        self.write_lock = write_lock or threading.Lock()

    # --- Queries ---

    def list_pictures_under(self, path_prefix) -> List[PictureRecord]:
        """Pictures in `path_prefix` itself or in any directory below it."""
        prefix = str(Path(path_prefix))
        pattern = _escape_like(prefix.rstrip("/")) + "/%"
        return self._select_pictures(
            "WHERE directory = ? OR directory LIKE ? ESCAPE '\\'",
            (prefix, pattern),
        )

    def list_directory_pictures(self, directory) -> List[PictureRecord]:
        return self._select_pictures(
            "WHERE directory = ? ORDER BY capture_time DESC, filename DESC",
            (str(Path(directory)),),
        )

    def list_pictures_for_thumbnails(self, update_all: bool = False) -> List[PictureRecord]:
        if update_all:
            return self._select_pictures("", ())
        return self._select_pictures("WHERE thumbnail IS NULL", ())

    def list_distinct_directories(self) -> List[str]:
        cur = self.conn.cursor()
        cur.execute("SELECT DISTINCT directory FROM pictures ORDER BY directory")
        return [row[0] for row in cur.fetchall()]

    def get_picture(self, picture_id: str) -> Optional[PictureRecord]:
        rows = self._select_pictures("WHERE id = ?", (picture_id,))
        return rows[0] if rows else None

    # --- Writes ---

    def insert_pictures(self, records: Iterable[PictureRecord]):
        """
        Bulk insert. Ids are assigned by the caller.
        The whole batch is one transaction: either every row lands or none does.
        """
        rows = [self._record_to_row(r) for r in records]
        if not rows:
            return

        placeholders = ", ".join("?" for _ in PICTURE_COLUMNS)
        sql = f"INSERT INTO pictures ({', '.join(PICTURE_COLUMNS)}) VALUES ({placeholders})"
        with self.write_lock:
            try:
                with self.conn:
                    self.conn.executemany(sql, rows)
            except sqlite3.Error as e:
                raise DatabaseError(f"Failed to insert {len(rows)} pictures: {e}") from e
        logging.info(f"Inserted {len(rows)} pictures into the catalog.")

    def update_field(self, picture_id: str, field: str, value: Any):
        """Partial update of exactly one field of an existing picture."""
        if field not in UPDATABLE_FIELDS:
            raise ValueError(f"Field '{field}' cannot be updated")
        value = self._encode_field(field, value)

        with self.write_lock:
            try:
                with self.conn:
                    cur = self.conn.execute(
                        f"UPDATE pictures SET {field} = ? WHERE id = ?", (value, picture_id)
                    )
            except sqlite3.Error as e:
                raise DatabaseError(f"Failed to update {field} of {picture_id}: {e}") from e
        if cur.rowcount == 0:
            raise DatabaseError(f"No picture with id {picture_id}")

    def set_selection(self, picture_id: str, selection: Selection):
        self.update_field(picture_id, "selection", selection)

    def set_rating(self, picture_id: str, rating: Optional[int]):
        self.update_field(picture_id, "rating", rating)

    def set_flag(self, picture_id: str, flag: Optional[Flag]):
        self.update_field(picture_id, "flag", flag)

    def set_hidden(self, picture_id: str, hidden: bool):
        self.update_field(picture_id, "hidden", hidden)

    def update_location(self, picture_id: str, path: Path, directory_id: Optional[str] = None):
        """Points an existing picture at a new file path."""
        path = Path(path)
        with self.write_lock:
            try:
                with self.conn:
                    cur = self.conn.execute(
                        "UPDATE pictures SET directory = ?, filename = ?, directory_id = ? WHERE id = ?",
                        (str(path.parent), path.name, directory_id, picture_id),
                    )
            except sqlite3.Error as e:
                raise DatabaseError(f"Failed to move {picture_id} to {path}: {e}") from e
        if cur.rowcount == 0:
            raise DatabaseError(f"No picture with id {picture_id}")

    def resolve_or_create_directory(self, path) -> str:
        """Returns the id of the directory row for `path`, creating it if needed."""
        directory = str(Path(path))
        parent = str(Path(path).parent)

        with self.write_lock:
            cur = self.conn.cursor()
            cur.execute("SELECT id FROM directories WHERE directory = ?", (directory,))
            row = cur.fetchone()
            if row:
                return row[0]

            parent_id = None
            if parent != directory:
                cur.execute("SELECT id FROM directories WHERE directory = ?", (parent,))
                parent_row = cur.fetchone()
                if parent_row:
                    parent_id = parent_row[0]

            dir_id = str(uuid.uuid4())
            try:
                with self.conn:
                    self.conn.execute(
                        "INSERT INTO directories (id, directory, parent_id) VALUES (?, ?, ?)",
                        (dir_id, directory, parent_id),
                    )
            except sqlite3.Error as e:
                raise DatabaseError(f"Failed to register directory {directory}: {e}") from e
            logging.debug(f"Registered directory {directory}")
            return dir_id

    # --- Helpers ---

    def _select_pictures(self, clause: str, params: tuple) -> List[PictureRecord]:
        cur = self.conn.cursor()
        cur.execute(f"SELECT {', '.join(PICTURE_COLUMNS)} FROM pictures {clause}", params)
        return [self._row_to_record(row) for row in cur.fetchall()]

    def _row_to_record(self, row: tuple) -> PictureRecord:
        data: Dict[str, Any] = dict(zip(PICTURE_COLUMNS, row))
        capture = data["capture_time"]
        return PictureRecord(
            id=data["id"],
            directory=data["directory"],
            filename=data["filename"],
            raw_extension=data["raw_extension"],
            short_hash=data["short_hash"],
            full_hash=data["full_hash"],
            capture_time=datetime.fromisoformat(capture) if capture else None,
            rating=data["rating"],
            flag=Flag(data["flag"]) if data["flag"] else None,
            hidden=bool(data["hidden"]),
            selection=Selection(data["selection"]),
            thumbnail=data["thumbnail"],
            directory_id=data["directory_id"],
        )

    def _record_to_row(self, rec: PictureRecord) -> tuple:
        return (
            rec.id,
            rec.directory,
            rec.filename,
            rec.raw_extension,
            rec.short_hash,
            rec.full_hash,
            rec.capture_time.isoformat() if rec.capture_time else None,
            self._encode_field("rating", rec.rating),
            self._encode_field("flag", rec.flag),
            int(rec.hidden),
            self._encode_field("selection", rec.selection),
            rec.thumbnail,
            rec.directory_id,
        )

    def _encode_field(self, field: str, value: Any) -> Any:
        if field == "selection":
            return Selection(value).value
        if field == "flag":
            return Flag(value).value if value is not None else None
        if field == "rating":
            if value is None:
                return None
            if not 0 <= int(value) <= 5:
                raise ValueError(f"Rating must be between 0 and 5, got {value}")
            return int(value)
        if field == "hidden":
            return int(bool(value))
        return value
