import os
import shutil
import tempfile
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Iterable, List, Optional

from tqdm import tqdm

from .. import config
from ..database.ops import DBOperations
from ..exceptions import FileOperationError
from ..models import ImportTask, PictureRecord, TransferResult


def copy_if_absent(src: Path, dest: Path) -> bool:
    """
    Copies src to dest unless dest already exists.
    Returns True when a copy happened. Existing files are never overwritten.

    The data is written to a hidden temp file next to dest and only then
    hard linked into place, so dest either holds the complete file or does
    not exist at all. The link fails if dest was created meanwhile.
    """
    if dest.exists():
        logging.warning(f"Destination exists, not overwriting: {dest} (source {src})")
        return False

    fd, tmp_name = tempfile.mkstemp(prefix=f".{dest.name}.", suffix=".part", dir=str(dest.parent))
    os.close(fd)
    tmp = Path(tmp_name)
    try:
        shutil.copy2(str(src), str(tmp))
        try:
            os.link(tmp, dest)
        except FileExistsError:
            logging.warning(f"Destination exists, not overwriting: {dest} (source {src})")
            return False
    finally:
        tmp.unlink(missing_ok=True)
    return True


def move_picture_files(record: PictureRecord, dest_dir: Path) -> Path:
    """
    Moves a picture and its raw companion into dest_dir, keeping the
    filename. Nothing is moved if either target already exists.
    Returns the new path of the primary.
    """
    dest = dest_dir / record.filename
    moves = [(record.filepath, dest)]
    companion = record.companion_path
    if companion is not None:
        moves.append((companion, dest.with_suffix(companion.suffix)))

    for _, target in moves:
        if target.exists():
            raise FileOperationError(f"Destination exists, not overwriting: {target}")

    try:
        dest_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FileOperationError(f"Cannot create {dest_dir}: {e}") from e

    moved = 0
    for src, target in moves:
        try:
            shutil.move(str(src), str(target))
        except OSError as e:
            raise FileOperationError(f"Move {src} -> {target} failed: {e}", partial=moved > 0) from e
        moved += 1

    logging.info(f"Moved {record.filepath} -> {dest}")
    return dest


class FileTransferExecutor:
    """
    Copies planned pictures into the library with at most `max_workers`
    transfers in flight, then records them in the catalog in one batch.
    """
    def __init__(self, db_ops: DBOperations, max_workers: int = config.DEFAULT_MAX_WORKERS):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.db = db_ops
        self.max_workers = max_workers

    def execute(self, tasks: List[ImportTask], dry_run: bool = False) -> TransferResult:
        result = TransferResult()
        if not tasks:
            logging.info("No files need importing.")
            return result

        if dry_run:
            for task in tasks:
                if task.in_place:
                    logging.info(f"[DRY RUN] Catalog in place {task.source}")
                else:
                    mkdir_note = " (new directory)" if task.create_parent else ""
                    logging.info(f"[DRY RUN] Copy {task.source} -> {task.destination}{mkdir_note}")
            return result

        logging.info(f"Importing {len(tasks)} pictures with {self.max_workers} workers...")

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {pool.submit(self._transfer, task): task for task in tasks}
            for future in tqdm(as_completed(futures), total=len(futures), desc="Importing"):
                task = futures[future]
                try:
                    copied, skipped = future.result()
                except FileOperationError as e:
                    logging.error(f"Import failed for {task.source}: {e}")
                    result.failures.append((task.source, e))
                    continue

                result.copied += copied
                result.skipped_existing += skipped

                rec = task.record
                rec.relocate(task.destination)
                rec.directory_id = self.db.resolve_or_create_directory(task.destination.parent)
                result.imported.append(rec)

        # Single batch so readers never see half an import
        self.db.insert_pictures(result.imported)

        logging.info(
            f"Import complete: {len(result.imported)} catalogued, {result.copied} files copied, "
            f"{result.skipped_existing} existing files skipped, {len(result.failures)} failures."
        )
        return result

    def _transfer(self, task: ImportTask):
        """Runs in a worker. Returns (files copied, files skipped because they existed)."""
        if task.in_place:
            return 0, 0

        copied = skipped = 0
        try:
            task.destination.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileOperationError(f"Cannot create {task.destination.parent}: {e}") from e

        try:
            if copy_if_absent(task.source, task.destination):
                copied += 1
            else:
                skipped += 1
        except OSError as e:
            raise FileOperationError(f"Copy {task.source} -> {task.destination} failed: {e}") from e

        companion = task.record.companion_path
        if companion is not None:
            dest_companion = task.destination.with_suffix(companion.suffix)
            try:
                if copy_if_absent(companion, dest_companion):
                    copied += 1
                else:
                    skipped += 1
            except OSError as e:
                raise FileOperationError(
                    f"Copy {companion} -> {dest_companion} failed after {task.destination} was written; "
                    f"the pair is incomplete: {e}",
                    partial=True,
                ) from e

        return copied, skipped


def export_pictures(records: Iterable[PictureRecord],
                    dest_dir: Path,
                    max_workers: int = config.DEFAULT_MAX_WORKERS) -> TransferResult:
    """
    Copies pictures (and their raw companions) flat into dest_dir.
    Files already present in dest_dir are left alone.
    """
    dest_dir.mkdir(parents=True, exist_ok=True)
    tasks = [
        ImportTask(record=rec, source=rec.filepath, destination=dest_dir / rec.filename)
        for rec in records
    ]
    result = TransferResult()
    if not tasks:
        return result

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = {pool.submit(_export_one, task): task for task in tasks}
        for future in tqdm(as_completed(futures), total=len(futures), desc="Exporting"):
            task = futures[future]
            try:
                copied, skipped = future.result()
            except OSError as e:
                logging.error(f"Export failed for {task.source}: {e}")
                result.failures.append((task.source, e))
                continue
            result.copied += copied
            result.skipped_existing += skipped
            result.imported.append(task.record)

    logging.info(f"Exported {result.copied} files to {dest_dir} ({result.skipped_existing} already present).")
    return result


def _export_one(task: ImportTask):
    copied = skipped = 0
    pairs = [(task.source, task.destination)]
    companion: Optional[Path] = task.record.companion_path
    if companion is not None:
        pairs.append((companion, task.destination.with_suffix(companion.suffix)))
    for src, dest in pairs:
        if copy_if_absent(src, dest):
            copied += 1
        else:
            skipped += 1
    return copied, skipped
