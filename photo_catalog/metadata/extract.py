import logging
from pathlib import Path
from datetime import datetime
from typing import Optional

import exifread

from .. import config


class MetadataExtractor:
    """
    Reads embedded EXIF metadata from image files using 'exifread'.

    Stateless: one instance can be shared between threads.
    """

    def get_capture_time(self, path: Path) -> Optional[datetime]:
        """
        Returns the capture time of the image, or None when the file has no
        usable date tag or cannot be read.
        """
        try:
            tags = self._read_tags(path)
        except Exception as e:
            logging.warning(f"ExifRead failed for {path}: {e}")
            return None

        dt = self._parse_exif_date(tags)
        if dt is None:
            logging.debug(f"No capture time found in {path}")
        return dt

    # --- Internal Helpers ---

    def _read_tags(self, path: Path) -> dict:
        with path.open('rb') as f:
            # details=False speeds up processing significantly
            return exifread.process_file(f, details=False)

    def _parse_exif_date(self, tags) -> Optional[datetime]:
        """Helper to parse standard EXIF date strings from exifread."""
        for tag in config.DATE_TAGS:
            if tag in tags:
                try:
                    # EXIF format is usually "YYYY:MM:DD HH:MM:SS"
                    dt_str = str(tags[tag]).strip().replace(':', '-', 2)
                    return datetime.strptime(dt_str, "%Y-%m-%d %H:%M:%S")
                except ValueError:
                    continue
        return None
