import logging
from pathlib import Path
from collections import defaultdict
from typing import Dict, Iterable, List, Set

from .. import config
from ..database.ops import DBOperations
from ..exceptions import MissingCaptureTimeError
from ..models import ImportPlan, ImportTask, PictureRecord


def build_existing_index(records: Iterable[PictureRecord]) -> Dict[str, List[str]]:
    """Maps each known filename to the directories it appears in."""
    index: Dict[str, List[str]] = defaultdict(list)
    for rec in records:
        index[rec.filename].append(rec.directory)
    return index


def build_destination(library_root: Path, record: PictureRecord) -> Path:
    """
    Returns {library_root}/{year}/{year}-{month}-{day}/{filename} for the
    picture's capture date.
    """
    dt = record.capture_time
    if dt is None:
        raise MissingCaptureTimeError(record.filepath)
    folder = config.FOLDER_PATTERN.format(year=dt.year, month=dt.month, day=dt.day)
    return Path(library_root) / folder / record.filename


def destination_paths(destination: Path, record: PictureRecord) -> List[Path]:
    """The primary destination and, for a pair, the companion destination beside it."""
    paths = [destination]
    if record.raw_extension:
        paths.append(destination.with_suffix(f".{record.raw_extension}"))
    return paths


class ImportPlanner:
    def __init__(self, db_ops: DBOperations):
        self.db = db_ops

    def plan(self, library_root: Path, records: Iterable[PictureRecord]) -> ImportPlan:
        """
        Keeps only pictures whose filename is unknown below library_root and
        pairs each with its destination.

        Matching is by filename alone: a different photo that happens to share
        a name with a catalogued one is treated as already imported.
        """
        known = self.db.list_pictures_under(library_root)
        existing = build_existing_index(known)
        logging.info(f"Catalog knows {len(existing)} filenames under {library_root}")

        # Every file path (primary or companion) already owned by a picture
        claimed: Set[Path] = set()
        for rec in known:
            claimed.update(destination_paths(rec.filepath, rec))

        plan = ImportPlan()
        for rec in records:
            if rec.filename in existing:
                logging.debug(f"Already in catalog: {rec.filepath} (known in {existing[rec.filename]})")
                plan.skipped_known += 1
                continue

            try:
                dest = build_destination(library_root, rec)
            except MissingCaptureTimeError as e:
                logging.warning(f"Excluding from import: {e}")
                plan.missing_capture_time += 1
                continue

            targets = destination_paths(dest, rec)
            taken = [str(p) for p in targets if p in claimed]
            if taken:
                logging.warning(f"Excluding from import: {rec.filepath} would share {', '.join(taken)} with another picture")
                plan.collisions += 1
                continue

            # Claim the name and paths so later pictures in this run cannot reuse them
            existing[rec.filename].append(str(dest.parent))
            claimed.update(targets)
            plan.tasks.append(ImportTask(
                record=rec,
                source=rec.filepath,
                destination=dest,
                create_parent=not dest.parent.exists(),
            ))

        logging.info(
            f"Planned {len(plan.tasks)} imports "
            f"({plan.skipped_known} already known, {plan.missing_capture_time} without capture time, "
            f"{plan.collisions} destination collisions)."
        )
        return plan

    def plan_in_place(self, root: Path, records: Iterable[PictureRecord]) -> ImportPlan:
        """
        Plans cataloguing pictures where they already are. Pictures whose full
        path is already in the catalog are skipped.
        """
        known = {rec.filepath for rec in self.db.list_pictures_under(root)}

        plan = ImportPlan()
        for rec in records:
            if rec.filepath in known:
                plan.skipped_known += 1
                continue
            known.add(rec.filepath)
            plan.tasks.append(ImportTask(record=rec, source=rec.filepath, destination=rec.filepath))

        logging.info(f"Planned {len(plan.tasks)} pictures to add in place ({plan.skipped_known} already known).")
        return plan
