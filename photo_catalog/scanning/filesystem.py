import os
import logging
from itertools import groupby
from pathlib import Path
from typing import Iterable, Iterator, Set, Optional, List

from .. import config
from ..exceptions import AmbiguousGroupError
from ..models import DiscoveredGroup, PictureRecord
from ..metadata.extract import MetadataExtractor


def file_type(path: Path) -> str:
    """Classifies a file as 'jpeg', 'raw' or 'other' by its (case-sensitive) extension."""
    if path.name.startswith("._"):
        return 'other'
    return config.EXT_TO_TYPE.get(path.suffix[1:], 'other')


class DirectoryScanner:
    def __init__(self, extractor: Optional[MetadataExtractor] = None):
        self.metadata = extractor or MetadataExtractor()

    def scan(self, root: Path, skip_dirs: Optional[Set[Path]] = None) -> Iterator[PictureRecord]:
        """
        Generator that yields a PictureRecord for every picture below root.

        A picture is a jpeg plus, optionally, a raw file with the same name in
        the same directory. Capture time is read once per picture; when it
        cannot be read the record is still produced with no capture time.
        """
        skip_dirs = skip_dirs or set()
        for group in self.group(self._iter_files(root, skip_dirs)):
            record = group.to_record()
            record.capture_time = self.metadata.get_capture_time(group.primary)
            yield record

    def group(self, paths: Iterable[Path]) -> Iterator[DiscoveredGroup]:
        """
        Groups consecutive paths sharing a base name (path without extension).

        Paths must arrive so that members of a group are adjacent, which
        `_iter_files` guarantees. Raw files without a jpeg are dropped, and
        groups that do not reduce to one jpeg and at most one raw file are
        rejected with a warning.
        """
        candidates = (p for p in paths if file_type(p) != 'other')
        for base, members in groupby(candidates, key=lambda p: p.with_suffix('')):
            try:
                group = self._build_group(base, list(members))
            except AmbiguousGroupError as e:
                logging.warning(str(e))
                continue
            if group is not None:
                yield group

    def _build_group(self, base: Path, members: List[Path]) -> Optional[DiscoveredGroup]:
        primaries = [p for p in members if file_type(p) == 'jpeg']
        companions = [p for p in members if file_type(p) == 'raw']

        if len(primaries) > 1 or len(companions) > 1:
            names = ", ".join(p.name for p in members)
            raise AmbiguousGroupError(f"Skipping {base}: ambiguous files sharing a base name ({names})")

        if not primaries:
            logging.debug(f"Skipping {companions[0]}: raw file without a jpeg")
            return None

        raw_ext = companions[0].suffix[1:] if companions else None
        return DiscoveredGroup(primary=primaries[0], raw_extension=raw_ext)

    def _iter_files(self, root: Path, skip_dirs: Set[Path]) -> Iterator[Path]:
        """Depth-first walker using os.scandir for speed."""
        stack = [root]
        while stack:
            current = stack.pop()
            if skip_dirs and any(sd == current or sd in current.parents for sd in skip_dirs):
                continue

            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except OSError:
                logging.warning(f"Cannot read directory: {current}")
                continue

            dirs = []
            files = []
            for e in entries:
                if e.is_dir(follow_symlinks=False):
                    dirs.append(Path(e.path))
                elif e.is_file(follow_symlinks=False):
                    files.append(Path(e.path))

            # Files sharing a stem must be adjacent for grouping
            files.sort(key=lambda p: (p.stem, p.suffix))
            dirs.sort()

            # Push dirs to stack (reversed so we process A before Z)
            for d in reversed(dirs):
                stack.append(d)

            for f in files:
                yield f
