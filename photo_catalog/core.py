import logging
from pathlib import Path
from typing import List, Optional, Set

from . import config
from .database.db import DBManager
from .database.ops import DBOperations
from .models import (
    Flag, ImportSummary, PictureRecord, PreviewImage, Selection, ThumbnailResult, TransferResult,
)
from .scanning.filesystem import DirectoryScanner
from .organization.planner import ImportPlanner
from .organization.mover import FileTransferExecutor, export_pictures, move_picture_files
from .thumbnails.cache import PreviewCache
from .thumbnails.sync import ThumbnailSynchronizer


class PictureCatalogApp:
    def __init__(self,
                 db_path: Path,
                 max_workers: int = config.DEFAULT_MAX_WORKERS,
                 thumbnail_workers: Optional[int] = None,
                 preview_capacity: int = config.PREVIEW_CACHE_CAPACITY):
        self.db_manager = DBManager(db_path)
        self.max_workers = max_workers
        self.thumbnail_workers = thumbnail_workers
        self._db_ops: Optional[DBOperations] = None
        self.preview_cache = PreviewCache(self._resolve_path, capacity=preview_capacity)

    @property
    def db(self) -> DBOperations:
        if self._db_ops is None:
            conn = self.db_manager.connect()
            self._db_ops = DBOperations(conn, self.db_manager.write_lock)
        return self._db_ops

    def close(self):
        self.preview_cache.clear()
        self._db_ops = None
        self.db_manager.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # --- Workflows ---

    def import_directory(self,
                         src_root: Path,
                         library_root: Path,
                         dry_run: bool = False,
                         skip_dirs: Optional[Set[Path]] = None) -> ImportSummary:
        """
        Copies new pictures from src_root into the dated library layout and
        catalogs them.
        1. Scan & Group (fully, before planning)
        2. Plan (Dedup by filename, compute destinations)
        3. Execute (Copy, then one catalog insert)
        """
        logging.info(f"Scanning {src_root}...")
        records = list(DirectoryScanner().scan(src_root, skip_dirs))
        logging.info(f"Scan complete. Found {len(records)} pictures.")

        plan = ImportPlanner(self.db).plan(library_root, records)
        transfer = FileTransferExecutor(self.db, self.max_workers).execute(plan.tasks, dry_run=dry_run)
        return ImportSummary(scanned=len(records), plan=plan, transfer=transfer)

    def add_directory(self, root: Path, skip_dirs: Optional[Set[Path]] = None) -> ImportSummary:
        """Catalogs the pictures below root where they are, without copying."""
        logging.info(f"Scanning {root}...")
        records = list(DirectoryScanner().scan(root, skip_dirs))
        logging.info(f"Scan complete. Found {len(records)} pictures.")

        plan = ImportPlanner(self.db).plan_in_place(root, records)
        transfer = FileTransferExecutor(self.db, self.max_workers).execute(plan.tasks)
        return ImportSummary(scanned=len(records), plan=plan, transfer=transfer)

    def sync_thumbnails(self, update_all: bool = False) -> ThumbnailResult:
        synchronizer = ThumbnailSynchronizer(
            self.db, max_workers=self.thumbnail_workers, preview_cache=self.preview_cache
        )
        return synchronizer.sync(update_all=update_all)

    def preview(self, picture_id: str) -> PreviewImage:
        return self.preview_cache.get_or_load(picture_id)

    def export(self, directory: Path, dest_dir: Path, selection: Optional[Selection] = None) -> TransferResult:
        records = self.list_pictures(directory)
        if selection is not None:
            records = [r for r in records if r.selection == selection]
        return export_pictures(records, dest_dir, self.max_workers)

    # --- Catalog access ---

    def list_directories(self) -> List[str]:
        return self.db.list_distinct_directories()

    def list_pictures(self, directory: Path) -> List[PictureRecord]:
        return self.db.list_directory_pictures(directory)

    def mark(self,
             picture_id: str,
             selection: Optional[Selection] = None,
             rating: Optional[int] = None,
             flag: Optional[Flag] = None,
             hidden: Optional[bool] = None):
        """Applies each given attribute as its own partial update."""
        if selection is not None:
            self.db.set_selection(picture_id, selection)
        if rating is not None:
            self.db.set_rating(picture_id, rating)
        if flag is not None:
            self.db.set_flag(picture_id, flag)
        if hidden is not None:
            self.db.set_hidden(picture_id, hidden)

    def relocate_picture(self, picture_id: str, dest_dir: Path) -> PictureRecord:
        """
        Moves a catalogued picture (and its raw companion) into dest_dir and
        updates the catalog. A cached preview of the old location is dropped.
        """
        record = self.db.get_picture(picture_id)
        if record is None:
            raise KeyError(picture_id)

        new_path = move_picture_files(record, Path(dest_dir))
        directory_id = self.db.resolve_or_create_directory(new_path.parent)
        self.db.update_location(picture_id, new_path, directory_id)
        self.preview_cache.invalidate(picture_id)

        record.relocate(new_path)
        record.directory_id = directory_id
        return record

    def _resolve_path(self, picture_id: str) -> Path:
        record = self.db.get_picture(picture_id)
        if record is None:
            raise KeyError(picture_id)
        return record.filepath
