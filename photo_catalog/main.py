import argparse
import logging
import sys
from pathlib import Path

from . import config
from .core import PictureCatalogApp
from .exceptions import PhotoCatalogError
from .models import Flag, Selection

def setup_logging(log_dir: Path, verbose: bool):
    """Sets up logging to both console and a file in log_dir."""
    log_level = logging.DEBUG if verbose else logging.INFO

    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / config.LOG_FILE_NAME

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[
            logging.FileHandler(log_file, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ]
    )

    # Silence chatty libraries
    logging.getLogger("exifread").setLevel(logging.ERROR)
    logging.getLogger("PIL").setLevel(logging.WARNING)

def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Photo Catalog: import pictures and keep thumbnails in sync")

    p.add_argument("--db", type=Path, default=None,
                   help=f"Path of the SQLite catalog (default: <library>/{config.DEFAULT_DB_NAME} or ./{config.DEFAULT_DB_NAME})")
    p.add_argument("--workers", type=int, default=config.DEFAULT_MAX_WORKERS,
                   help="Maximum number of concurrent file transfers")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = p.add_subparsers(dest="command", required=True)

    imp = sub.add_parser("import", help="Copy new pictures into the library and catalog them")
    imp.add_argument("src", type=Path, help="Source directory to scan")
    imp.add_argument("library", type=Path, help="Library root")
    imp.add_argument("--dry-run", action="store_true", help="Plan only, do not copy or catalog")
    imp.add_argument("--skip-dirs-file", type=Path, default=None, help="File containing paths to ignore")

    add = sub.add_parser("add", help="Catalog pictures where they are, without copying")
    add.add_argument("directory", type=Path)
    add.add_argument("--skip-dirs-file", type=Path, default=None, help="File containing paths to ignore")

    thumbs = sub.add_parser("thumbnails", help="Generate missing thumbnails")
    thumbs.add_argument("--all", action="store_true", help="Regenerate every thumbnail")
    thumbs.add_argument("--thumbnail-workers", type=int, default=None,
                        help="Concurrent thumbnail jobs (default: one per CPU)")

    sub.add_parser("directories", help="List catalogued directories")

    ls = sub.add_parser("list", help="List pictures in a directory")
    ls.add_argument("directory", type=Path)

    mark = sub.add_parser("mark", help="Set selection, rating, flag or visibility of a picture")
    mark.add_argument("picture_id")
    mark.add_argument("--selection", choices=[s.value for s in Selection])
    mark.add_argument("--rating", type=int, choices=range(0, 6))
    mark.add_argument("--flag", choices=[f.value for f in Flag])
    vis = mark.add_mutually_exclusive_group()
    vis.add_argument("--hidden", dest="hidden", action="store_const", const=True, default=None)
    vis.add_argument("--visible", dest="hidden", action="store_const", const=False)

    mv = sub.add_parser("move", help="Move a picture and its raw companion to another directory")
    mv.add_argument("picture_id")
    mv.add_argument("directory", type=Path)

    exp = sub.add_parser("export", help="Copy the pictures of a directory to another location")
    exp.add_argument("directory", type=Path)
    exp.add_argument("dest", type=Path)
    exp.add_argument("--selection", choices=[s.value for s in Selection], default=None,
                     help="Only export pictures with this selection state")

    return p.parse_args(argv)

def load_skip_dirs(skip_file: Path) -> set[Path]:
    if not skip_file or not skip_file.exists():
        return set()

    skips = set()
    with skip_file.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#"):
                skips.add(Path(line).resolve())
    return skips

def run(args, app: PictureCatalogApp) -> int:
    if args.command == "import":
        summary = app.import_directory(
            src_root=args.src.resolve(),
            library_root=args.library.resolve(),
            dry_run=args.dry_run,
            skip_dirs=load_skip_dirs(args.skip_dirs_file),
        )
        return 1 if summary.transfer.failures else 0

    if args.command == "add":
        summary = app.add_directory(args.directory.resolve(), load_skip_dirs(args.skip_dirs_file))
        return 1 if summary.transfer.failures else 0

    if args.command == "thumbnails":
        if args.thumbnail_workers is not None:
            app.thumbnail_workers = args.thumbnail_workers
        app.sync_thumbnails(update_all=args.all)
        return 0

    if args.command == "directories":
        for directory in app.list_directories():
            print(directory)
        return 0

    if args.command == "list":
        for rec in app.list_pictures(args.directory.resolve()):
            captured = rec.capture_time.isoformat(sep=" ") if rec.capture_time else ""
            raw = rec.raw_extension or ""
            print(f"{rec.id} | {captured.ljust(19)} | {rec.selection.value.ljust(8)} | {raw.ljust(4)} | {rec.filename}")
        return 0

    if args.command == "mark":
        app.mark(
            args.picture_id,
            selection=Selection(args.selection) if args.selection else None,
            rating=args.rating,
            flag=Flag(args.flag) if args.flag else None,
            hidden=args.hidden,
        )
        return 0

    if args.command == "move":
        rec = app.relocate_picture(args.picture_id, args.directory.resolve())
        print(rec.filepath)
        return 0

    if args.command == "export":
        selection = Selection(args.selection) if args.selection else None
        result = app.export(args.directory.resolve(), args.dest.resolve(), selection)
        return 1 if result.failures else 0

    raise ValueError(f"Unknown command {args.command}")

def main(argv=None):
    args = parse_args(argv)

    # 1. Setup
    library = args.library.resolve() if args.command == "import" else None
    if args.db:
        db_path = args.db.resolve()
    elif library:
        db_path = library / config.DEFAULT_DB_NAME
    else:
        db_path = Path.cwd() / config.DEFAULT_DB_NAME

    setup_logging(library or db_path.parent, args.verbose)
    logging.info(f"=== Photo Catalog: {args.command} ===")
    logging.info(f"Catalog: {db_path}")

    # 2. Execution
    app = PictureCatalogApp(db_path, max_workers=args.workers)
    try:
        status = run(args, app)
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        status = 1
    except (PhotoCatalogError, OSError, ValueError, KeyError):
        logging.exception(f"Fatal error during {args.command}.")
        status = 1
    finally:
        app.close()
    sys.exit(status)

if __name__ == "__main__":
    main()
