#!/usr/bin/env python3
"""
import_library.py - Import an album spreadsheet into the library

Reads an `.xlsx` file in the compatible layout (BANDA, BESTSELLER, AÑO BS,
GÉNERO, SUBGÉNERO, PAÍS, ESCUCHADO, PIONERA) and reconciles it against the
configured user's library:

1. Rows without artist or title are counted and reported, not imported
2. Rows matching an existing album (case-insensitive artist + title) update
   that entry's metadata
3. Remaining rows are inserted, up to the per-user album limit

Use --dry-run to see what would happen without writing anything.
"""

import argparse
import logging
import sys
from pathlib import Path

# Ensure project root is importable so we can import `albumlog` modules
repo_root = Path(__file__).resolve().parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from albumlog.config_manager import Config, setup_logging
from albumlog.exceptions import AlbumLogError, DatastoreError
from albumlog.library_store import LibraryStore
from albumlog.reconciler import import_rows, invalid_message, reconcile, validate_rows
from albumlog.spreadsheet import parse_import_file

logger = logging.getLogger("import_library")


def print_plan(plan) -> None:
    """Summarize a reconciliation plan on stdout (dry-run mode)."""
    print(f"New albums to insert:   {len(plan.to_insert)}")
    for row in plan.to_insert:
        print(f"  + {row.artist} - {row.title}")
    print(f"Existing albums to update: {len(plan.to_update)}")
    print(f"Skipped by album limit: {plan.skipped_due_to_limit}")
    for message in plan.errors:
        print(f"  ! {message}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Import an album spreadsheet (.xlsx) into the library",
        epilog="""
USAGE EXAMPLES:
    # Preview what would be imported
    python scripts/import_library.py my_albums.xlsx --dry-run

    # Import and keep a log file
    python scripts/import_library.py my_albums.xlsx --log-file import.log
                """,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument("input", help="Path to the .xlsx spreadsheet")
    parser.add_argument("--dry-run", action="store_true",
                        help="Show inserts/updates without writing to the library")
    parser.add_argument("--log-file", type=str,
                        help="Write detailed logs to specified file (in addition to console)")
    args = parser.parse_args(argv)

    try:
        config = Config()
        setup_logging(config)
        config._validate()
    except AlbumLogError as e:
        logging.error(f"Failed to load configuration: {e}")
        logging.error("Please ensure config.py exists (copy from config.template.py)")
        return 1

    if args.log_file:
        file_handler = logging.FileHandler(args.log_file, encoding='utf-8')
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter(config.log_format))
        logging.getLogger().addHandler(file_handler)
        logger.info(f"Logging to file: {args.log_file}")

    path = Path(args.input)
    if not path.exists():
        logger.error(f"File not found: {path}")
        return 1

    try:
        rows = parse_import_file(path.read_bytes())
    except Exception as e:
        logger.exception("Failed to read spreadsheet %s: %s", path, e)
        return 1
    logger.info(f"Loaded {len(rows)} rows from {path}")

    store = LibraryStore(
        config.datastore_url,
        config.datastore_api_key,
        access_token=config.datastore_access_token,
        timeout=config.request_timeout,
    )
    user_id = config.library_user_id
    max_albums = config.max_albums_per_user

    if args.dry_run:
        valid_rows, invalid_count = validate_rows(rows)
        try:
            existing = store.select_existing(user_id) if valid_rows else []
        except DatastoreError as e:
            logger.error(f"Failed to read existing library: {e}")
            return 1
        plan = reconcile(valid_rows, existing, max_albums - len(existing), max_albums=max_albums)
        if invalid_count:
            plan.errors.append(invalid_message(invalid_count))
        print_plan(plan)
        return 0

    result = import_rows(store, user_id, rows, max_albums, progress=True)
    logger.info(
        f"✅ Import finished: {result.imported} imported, {result.updated} updated, "
        f"{result.skipped_due_to_limit} skipped due to limit"
    )
    for message in result.errors:
        logger.warning(message)
    return 0


if __name__ == "__main__":
    sys.exit(main())
