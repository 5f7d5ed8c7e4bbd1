#!/usr/bin/env python3
"""
export_library.py - Export the library to an .xlsx spreadsheet

The compatible format can be re-imported with import_library.py; the full
format carries every stored field (tracks and similar artists as JSON).
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
from albumlog.exceptions import AlbumLogError
from albumlog.library_store import LibraryStore
from albumlog.spreadsheet import generate_compatible_export, generate_full_export

logger = logging.getLogger("export_library")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Export the album library to .xlsx")
    parser.add_argument("output", help="Destination .xlsx path")
    parser.add_argument("--format", choices=["compatible", "full"], default="compatible",
                        help="Column layout (default: compatible)")
    parser.add_argument("--status", type=str,
                        help="Export only entries with this status (Queued, Listening, Finished)")
    args = parser.parse_args(argv)

    try:
        config = Config()
        setup_logging(config)
        config._validate()
        store = LibraryStore(
            config.datastore_url,
            config.datastore_api_key,
            access_token=config.datastore_access_token,
            timeout=config.request_timeout,
        )
        entries = store.list_entries(config.library_user_id, status=args.status)
    except AlbumLogError as e:
        logger.error(f"Export failed: {e}")
        return 1

    if args.format == "full":
        data = generate_full_export(entries)
    else:
        data = generate_compatible_export(entries)

    Path(args.output).write_bytes(data)
    logger.info(f"✅ Wrote {len(entries)} entries to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
