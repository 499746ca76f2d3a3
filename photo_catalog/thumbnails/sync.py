import os
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Optional

from tqdm import tqdm

from .. import config
from ..database.ops import DBOperations
from ..exceptions import ThumbnailError
from ..models import ThumbnailResult
from .generator import load_thumbnail


class ThumbnailSynchronizer:
    """
    Regenerates catalog thumbnails in a worker pool (one worker per CPU by
    default) and writes each one back as a single field update.
    """
    def __init__(self,
                 db_ops: DBOperations,
                 max_workers: Optional[int] = None,
                 preview_cache=None):
        if max_workers is None:
            max_workers = os.cpu_count() or 1
        elif max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.db = db_ops
        self.max_workers = max_workers
        self.preview_cache = preview_cache

    def sync(self, update_all: bool = False) -> ThumbnailResult:
        """
        Builds thumbnails for pictures that have none, or for every picture
        when update_all is set. Unreadable sources are logged and skipped.
        """
        records = self.db.list_pictures_for_thumbnails(update_all)
        result = ThumbnailResult()
        if not records:
            logging.info("All thumbnails are up to date.")
            return result

        logging.info(f"Generating {len(records)} thumbnails with {self.max_workers} workers...")
        width, height = config.THUMBNAIL_SIZE

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {
                pool.submit(load_thumbnail, rec.filepath, width, height): rec
                for rec in records
            }
            for future in tqdm(as_completed(futures), total=len(futures), desc="Thumbnails"):
                rec = futures[future]
                try:
                    blob = future.result()
                except ThumbnailError as e:
                    logging.warning(str(e))
                    result.failed.append(rec.id)
                    continue

                self.db.update_field(rec.id, "thumbnail", blob)
                if self.preview_cache is not None:
                    self.preview_cache.invalidate(rec.id)
                result.updated.append(rec.id)

        logging.info(f"Thumbnails updated: {len(result.updated)}, failed: {len(result.failed)}.")
        return result
