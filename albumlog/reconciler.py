"""
Import Reconciler

Decides, for each row of an uploaded spreadsheet, whether it is a new library
entry, an update to an entry the user already has, or invalid:

1. Rows missing artist or title (after trimming) are dropped and reported as
   one aggregate message.
2. Each remaining row is keyed by lowercase "artist|title" and matched
   against the existing collection.
3. Matches become per-row updates of the mutable metadata only; the rest
   become insert candidates.
4. Insert candidates are truncated to the user's remaining album slots
   (earliest rows win). Updates never consume slots.

Inserts are written as one batch; updates are written one at a time and each
may fail without affecting the others.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from tqdm import tqdm

from albumlog.exceptions import DatastoreError
from albumlog.models import ExistingEntry, ImportResult, ImportRow
from albumlog.text_utils import clean_text, dedup_key

logger = logging.getLogger(__name__)


@dataclass
class UpdateOp:
    entry_id: str
    patch: Dict[str, Any]


@dataclass
class ReconcilePlan:
    to_insert: List[ImportRow] = field(default_factory=list)
    to_update: List[UpdateOp] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    skipped_due_to_limit: int = 0
    invalid_count: int = 0


def invalid_message(count: int) -> str:
    return f"{count} entries missing artist or title"


def validate_rows(rows: Iterable[ImportRow]) -> Tuple[List[ImportRow], int]:
    """
    Split rows into valid (trimmed) rows and a count of invalid ones.

    Args:
        rows: Rows mapped from the spreadsheet

    Returns:
        Tuple of (valid rows with artist/title trimmed, number of invalid rows)
    """
    valid = []
    invalid_count = 0
    for row in rows:
        artist = clean_text(row.artist)
        title = clean_text(row.title)
        if not artist or not title:
            invalid_count += 1
            continue
        valid.append(replace(row, artist=artist, title=title))
    return valid, invalid_count


def build_existing_map(existing: Iterable[ExistingEntry]) -> Dict[str, str]:
    """Map dedup key -> entry id. If two entries share a key the last one wins."""
    existing_map = {}
    for entry in existing:
        existing_map[dedup_key(entry.artist, entry.title)] = entry.id
    return existing_map


def reconcile(
    rows: Sequence[ImportRow],
    existing: Sequence[ExistingEntry],
    cap_remaining: int,
    max_albums: Optional[int] = None,
) -> ReconcilePlan:
    """
    Classify import rows into inserts and updates and apply the album cap.

    Args:
        rows: Rows mapped from the spreadsheet
        existing: The user's current entries (id, artist, title)
        cap_remaining: Number of new entries the user may still add
        max_albums: Per-user limit, used only in the limit-reached message

    Returns:
        ReconcilePlan with the truncated insert list, the update list, the
        cap/invalid messages and the number of rows skipped by the cap
    """
    plan = ReconcilePlan()
    valid_rows, plan.invalid_count = validate_rows(rows)
    existing_map = build_existing_map(existing)

    candidates = []
    for row in valid_rows:
        existing_id = existing_map.get(dedup_key(row.artist, row.title))
        if existing_id:
            plan.to_update.append(UpdateOp(entry_id=existing_id, patch=row.metadata()))
        else:
            candidates.append(row)

    slots = max(0, cap_remaining)
    plan.to_insert = candidates[:slots]
    if len(candidates) > slots:
        plan.skipped_due_to_limit = len(candidates) - slots
        if slots == 0:
            limit = f" ({max_albums} max)" if max_albums is not None else ""
            plan.errors.append(
                f"Album limit reached{limit}. {plan.skipped_due_to_limit} new albums skipped."
            )
        else:
            plan.errors.append(
                f"Album limit approaching. Only {slots} of {len(candidates)} new albums imported. "
                f"{plan.skipped_due_to_limit} skipped."
            )
        logger.warning(
            f"Album cap: {len(plan.to_insert)} of {len(candidates)} new albums kept, "
            f"{plan.skipped_due_to_limit} skipped"
        )

    if plan.invalid_count > 0:
        plan.errors.append(invalid_message(plan.invalid_count))

    logger.info(
        f"Reconciled {len(valid_rows)} valid rows: {len(plan.to_insert)} to insert, "
        f"{len(plan.to_update)} to update, {plan.invalid_count} invalid"
    )
    return plan


def apply_plan(store, plan: ReconcilePlan, user_id: str, progress: bool = False) -> ImportResult:
    """
    Write a reconciliation plan to the datastore.

    The insert batch succeeds or fails as a whole. Updates are attempted one by
    one; a failed update is recorded and the loop moves on to the next row.

    Args:
        store: Datastore exposing insert_batch(records) and update_one(id, patch)
        plan: Plan produced by `reconcile`
        user_id: Owner of the inserted rows
        progress: Show a progress bar over the update loop

    Returns:
        ImportResult with counts and errors ordered: insert error, update
        errors, cap message, invalid-row message
    """
    result = ImportResult(skipped_due_to_limit=plan.skipped_due_to_limit)

    if plan.to_insert:
        records = []
        for row in plan.to_insert:
            record = {"user_id": user_id, "artist": row.artist, "title": row.title}
            record.update(row.metadata())
            records.append(record)
        try:
            store.insert_batch(records)
            result.imported = len(records)
            logger.info(f"✅ Inserted {len(records)} new entries")
        except DatastoreError as e:
            logger.error(f"Batch insert of {len(records)} entries failed: {e}")
            result.errors.append(f"Insert error: {e}")

    for op in tqdm(plan.to_update, desc="Updating", unit="entry", disable=not progress):
        try:
            store.update_one(op.entry_id, op.patch)
            result.updated += 1
        except DatastoreError as e:
            logger.warning(f"Update of entry {op.entry_id} failed: {e}")
            result.errors.append(f"Update error: {e}")

    result.errors.extend(plan.errors)
    return result


def import_rows(
    store,
    user_id: str,
    rows: Sequence[ImportRow],
    max_albums: int,
    progress: bool = False,
) -> ImportResult:
    """
    Reconcile rows against the user's library and write the result.

    Args:
        store: Datastore exposing select_existing, insert_batch and update_one
        user_id: Owner of the library
        rows: Rows mapped from the spreadsheet
        max_albums: Per-user album limit
        progress: Show a progress bar over the update loop

    Returns:
        ImportResult; the datastore is not touched if no row is valid
    """
    valid_rows, invalid_count = validate_rows(rows)
    if not valid_rows:
        errors = [invalid_message(invalid_count)] if invalid_count > 0 else []
        return ImportResult(imported=0, updated=0, errors=errors)

    try:
        existing = store.select_existing(user_id)
    except DatastoreError as e:
        logger.exception("Failed to read existing library: %s", e)
        errors = [f"Failed to read existing library: {e}"]
        if invalid_count > 0:
            errors.append(invalid_message(invalid_count))
        return ImportResult(imported=0, updated=0, errors=errors)

    cap_remaining = max_albums - len(existing)
    plan = reconcile(valid_rows, existing, cap_remaining, max_albums=max_albums)
    plan.invalid_count = invalid_count
    if invalid_count > 0:
        plan.errors.append(invalid_message(invalid_count))
    return apply_plan(store, plan, user_id, progress=progress)
