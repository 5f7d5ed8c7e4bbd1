#!/usr/bin/env python3
"""Flask web UI for the album log

Features:
- Browse the library with status filter, search and ordering
- Add albums by searching Last.fm (artist -> albums -> prefilled form)
- Edit status/rating/notes, delete entries
- Enrich an entry from Last.fm with a per-field review before saving
- Import/export the library as .xlsx spreadsheets

JSON endpoints under /api mirror the Last.fm lookups, the album limit check
and the library import/export for scripted use.
"""
from pathlib import Path
import io
import json
import logging
import os
import sys
from typing import Optional

from flask import Flask, render_template, request, redirect, url_for, flash, jsonify, send_file, abort

# Ensure project root is importable so we can import `albumlog` modules
HERE = Path(__file__).resolve().parent.parent
if str(HERE) not in sys.path:
    sys.path.insert(0, str(HERE))

from albumlog.config_manager import Config, setup_logging
from albumlog.exceptions import (
    CapacityError,
    ConfigurationError,
    DatastoreError,
    EntryNotFoundError,
    LastFmAPIError,
    ValidationError,
)
from albumlog.field_merge import apply_merge, describe_fields, parse_field_keys
from albumlog.lastfm_client import LastFmClient
from albumlog.library_service import add_entry, check_album_limit, update_details
from albumlog.library_store import LibraryStore
from albumlog.library_view import ORDER_OPTIONS, filter_entries, sort_entries
from albumlog.models import EntryStatus, FetchedMetadata, ImportRow, LibraryEntry, SimilarArtist, Track
from albumlog.reconciler import import_rows
from albumlog.spreadsheet import (
    XLSX_MIME,
    generate_compatible_export,
    generate_full_export,
    parse_import_file,
)

logger = logging.getLogger(__name__)

_config: Optional[Config] = None

app = Flask(__name__)
app.secret_key = os.environ.get('WEBUI_SECRET', 'dev-secret')


def get_config() -> Config:
    global _config
    if _config is None:
        _config = Config()
        setup_logging(_config)
        app.secret_key = _config.webui_secret
    return _config


def get_store() -> LibraryStore:
    cfg = get_config()
    cfg._validate()
    return LibraryStore(
        cfg.datastore_url,
        cfg.datastore_api_key,
        access_token=cfg.datastore_access_token,
        timeout=cfg.request_timeout,
    )


def get_lastfm() -> LastFmClient:
    cfg = get_config()
    if not cfg.lastfm_api_key:
        raise ConfigurationError("LASTFM_API_KEY is not configured")
    return LastFmClient(
        cfg.lastfm_api_key,
        request_delay=cfg.request_delay,
        max_retries=cfg.max_retries,
        retry_delay=cfg.retry_delay,
        timeout=cfg.request_timeout,
    )


def current_user_id() -> Optional[str]:
    return get_config().library_user_id or None


def require_user() -> str:
    user_id = current_user_id()
    if not user_id:
        abort(401)
    return user_id


def _json_list(raw: Optional[str]) -> Optional[list]:
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except ValueError:
        return None
    return value if isinstance(value, list) else None


def _int_or_none(raw: Optional[str]) -> Optional[int]:
    try:
        return int(raw) if raw not in (None, '') else None
    except ValueError:
        return None


@app.before_request
def _ensure_config():
    get_config()


@app.errorhandler(ConfigurationError)
def _config_error(exc):
    logger.error(f"Configuration error: {exc}")
    if request.path.startswith('/api/'):
        return jsonify({'error': str(exc)}), 500
    return render_template('error.html', message=str(exc)), 500


@app.errorhandler(DatastoreError)
def _datastore_error(exc):
    logger.error(f"Datastore error: {exc}")
    if request.path.startswith('/api/'):
        return jsonify({'error': str(exc)}), 502
    return render_template('error.html', message=f'Datastore error: {exc}'), 502


# ---------------------------------------------------------------- library

@app.route('/')
def index():
    user_id = require_user()
    status = request.args.get('status') or None
    order_by = request.args.get('orderBy') or 'created_at'
    q = request.args.get('q') or ''

    entries = []
    try:
        entries = get_store().list_entries(user_id, status=status)
    except DatastoreError as e:
        logger.exception("Failed to load library: %s", e)
        flash(f'Failed to load library: {e}', 'error')

    entries = sort_entries(filter_entries(entries, q), order_by)
    return render_template(
        'index.html',
        entries=entries,
        title=EntryStatus.parse(status).value if status else 'Your Library',
        status=status,
        q=q,
        order_by=order_by,
        order_options=ORDER_OPTIONS,
        statuses=[s.value for s in EntryStatus],
    )


@app.route('/album/<entry_id>')
def album_detail(entry_id):
    require_user()
    try:
        entry = get_store().get_entry(entry_id)
    except DatastoreError as e:
        flash(f'Failed to load album: {e}', 'error')
        return redirect(url_for('index'))
    if entry is None:
        abort(404)
    return render_template('album.html', entry=entry, statuses=[s.value for s in EntryStatus])


@app.route('/album/<entry_id>', methods=['POST'])
def album_save(entry_id):
    require_user()
    try:
        update_details(
            get_store(),
            entry_id,
            request.form.get('status'),
            _int_or_none(request.form.get('rating')),
            request.form.get('influence_notes'),
        )
        flash('Saved')
    except EntryNotFoundError:
        abort(404)
    except (ValidationError, DatastoreError) as e:
        flash(f'Failed to save changes: {e}', 'error')
    return redirect(url_for('album_detail', entry_id=entry_id))


@app.route('/album/<entry_id>/delete', methods=['POST'])
def album_delete(entry_id):
    require_user()
    try:
        get_store().delete_entry(entry_id)
        flash('Album deleted')
    except DatastoreError as e:
        flash(f'Failed to delete album: {e}', 'error')
        return redirect(url_for('album_detail', entry_id=entry_id))
    return redirect(url_for('index'))


# ---------------------------------------------------------------- add flow

@app.route('/add')
def add():
    require_user()
    q = (request.args.get('q') or '').strip()
    artists = []
    if q:
        try:
            artists = get_lastfm().search_artist(q)
        except LastFmAPIError as e:
            logger.error(f"Last.fm artist search failed: {e}")
            flash('Search failed', 'error')
    return render_template('add.html', q=q, artists=artists, albums=None, artist=None)


@app.route('/add/albums')
def add_albums():
    require_user()
    artist = (request.args.get('artist') or '').strip()
    if not artist:
        return redirect(url_for('add'))
    albums = []
    try:
        albums = get_lastfm().get_artist_albums(artist)
    except LastFmAPIError as e:
        logger.error(f"Last.fm albums lookup failed: {e}")
        flash('Failed to fetch albums', 'error')
    return render_template('add.html', q='', artists=[], albums=albums, artist=artist)


@app.route('/add/entry')
def add_entry_form():
    require_user()
    artist = (request.args.get('artist') or '').strip()
    album = (request.args.get('album') or '').strip()
    fetched = None
    if artist and album:
        fetched = get_lastfm().fetch_album_metadata(artist, album)
        if fetched is None:
            flash('Could not fetch album details from Last.fm; fill in the form manually', 'error')
    return render_template(
        'entry_form.html',
        artist=fetched.artist if fetched else artist,
        title=fetched.title if fetched else album,
        fetched=fetched,
        tracks_json=json.dumps([t.to_dict() for t in fetched.tracks]) if fetched else '',
        similar_json=json.dumps([a.to_dict() for a in fetched.similar_artists]) if fetched else '',
        statuses=[s.value for s in EntryStatus],
    )


@app.route('/add', methods=['POST'])
def add_save():
    user_id = require_user()
    form = request.form
    tracks = _json_list(form.get('tracks_json'))
    similar = _json_list(form.get('similar_json'))
    entry = LibraryEntry(
        user_id=user_id,
        artist=(form.get('artist') or '').strip(),
        title=(form.get('title') or '').strip(),
        cover_image_url=form.get('cover_image_url') or None,
        genre=form.get('genre') or None,
        subgenre=form.get('subgenre') or None,
        country=form.get('country') or None,
        release_year=_int_or_none(form.get('release_year')),
        status=EntryStatus.parse(form.get('status')),
        rating=_int_or_none(form.get('rating')) or None,
        influence_notes=form.get('influence_notes') or None,
        lastfm_url=form.get('lastfm_url') or None,
        album_wiki=form.get('album_wiki') or None,
        tracks=[Track.from_dict(t) for t in tracks] if tracks else None,
        similar_artists=[SimilarArtist.from_dict(a) for a in similar] if similar else None,
    )
    try:
        stored = add_entry(get_store(), entry, get_config().max_albums_per_user)
    except (ValidationError, CapacityError, DatastoreError) as e:
        logger.error(f"Failed to save entry {entry.artist} - {entry.title}: {e}")
        flash(f'Failed to save entry: {e}', 'error')
        return redirect(url_for('add_entry_form', artist=entry.artist, album=entry.title))
    flash(f'Added {stored.title} by {stored.artist}')
    return redirect(url_for('index'))


# ---------------------------------------------------------------- Last.fm merge

@app.route('/album/<entry_id>/lastfm')
def merge_search(entry_id):
    require_user()
    entry = get_store().get_entry(entry_id)
    if entry is None:
        abort(404)
    results = []
    try:
        results = get_lastfm().search_album(f"{entry.artist} {entry.title}")
    except LastFmAPIError as e:
        logger.error(f"Last.fm search failed for entry {entry_id}: {e}")
        flash('Failed to search Last.fm', 'error')
    return render_template('merge_search.html', entry=entry, results=results)


@app.route('/album/<entry_id>/lastfm/preview')
def merge_preview(entry_id):
    require_user()
    entry = get_store().get_entry(entry_id)
    if entry is None:
        abort(404)
    artist = request.args.get('artist') or entry.artist
    album = request.args.get('album') or entry.title
    fetched = get_lastfm().fetch_album_metadata(artist, album)
    if fetched is None:
        flash('Failed to fetch album details', 'error')
        return redirect(url_for('merge_search', entry_id=entry_id))
    return render_template(
        'merge_preview.html',
        entry=entry,
        fetched=fetched,
        fields=describe_fields(entry, fetched),
        fetched_json=json.dumps(fetched.to_dict()),
    )


def _reviewed_metadata(raw: Optional[str]) -> Optional[FetchedMetadata]:
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        return None
    return FetchedMetadata.from_dict(data) if isinstance(data, dict) else None


@app.route('/album/<entry_id>/lastfm/apply', methods=['POST'])
def merge_apply(entry_id):
    require_user()
    selected = parse_field_keys(request.form.getlist('fields'))
    if not selected:
        flash('No fields selected')
        return redirect(url_for('album_detail', entry_id=entry_id))
    # Apply exactly the values shown on the review screen
    fetched = _reviewed_metadata(request.form.get('fetched_json'))
    if fetched is None:
        logger.error(f"Merge for entry {entry_id} submitted without reviewed metadata")
        flash('Reviewed album details are missing; fetch from Last.fm again', 'error')
        return redirect(url_for('merge_search', entry_id=entry_id))
    result = apply_merge(get_store(), entry_id, fetched, selected)
    if result.ok:
        flash(f'Applied {len(result.patch)} changes from Last.fm')
    else:
        flash(result.error, 'error')
    return redirect(url_for('album_detail', entry_id=entry_id))


# ---------------------------------------------------------------- import / export

@app.route('/import', methods=['GET'])
def import_form():
    require_user()
    return render_template('import.html')


@app.route('/import', methods=['POST'])
def import_upload():
    user_id = require_user()
    file = request.files.get('file')
    if not file or not file.filename:
        flash('No file uploaded', 'error')
        return redirect(url_for('import_form'))
    try:
        rows = parse_import_file(file.read())
    except Exception as e:
        logger.exception("Failed to read spreadsheet %s: %s", file.filename, e)
        flash(f'Could not read spreadsheet: {e}', 'error')
        return redirect(url_for('import_form'))

    result = import_rows(get_store(), user_id, rows, get_config().max_albums_per_user)
    logger.info(f"Import of {file.filename}: {result.imported} imported, {result.updated} updated")
    return render_template('import_result.html', result=result, filename=file.filename)


@app.route('/export')
def export():
    user_id = require_user()
    fmt = request.args.get('format', 'compatible')
    try:
        entries = get_store().list_entries(user_id)
    except DatastoreError as e:
        logger.exception("Export failed: %s", e)
        flash(f'Export failed: {e}', 'error')
        return redirect(url_for('index'))
    if fmt == 'full':
        data = generate_full_export(entries)
        name = 'library_full.xlsx'
    else:
        data = generate_compatible_export(entries)
        name = 'library.xlsx'
    return send_file(io.BytesIO(data), mimetype=XLSX_MIME, as_attachment=True, download_name=name)


# ---------------------------------------------------------------- JSON API

@app.route('/api/lastfm/search-artist')
def api_search_artist():
    q = request.args.get('q')
    if not q:
        return jsonify({'error': 'Query required'}), 400
    try:
        return jsonify(get_lastfm().search_artist(q))
    except LastFmAPIError as e:
        logger.error(f"Last.fm search error: {e}")
        return jsonify({'error': 'Search failed'}), 500


@app.route('/api/lastfm/search-album')
def api_search_album():
    q = request.args.get('q')
    if not q:
        return jsonify({'error': 'Query required'}), 400
    try:
        return jsonify(get_lastfm().search_album(q))
    except LastFmAPIError as e:
        logger.error(f"Last.fm album search error: {e}")
        return jsonify({'error': 'Search failed'}), 500


@app.route('/api/lastfm/artist-albums')
def api_artist_albums():
    artist = request.args.get('artist')
    if not artist:
        return jsonify({'error': 'Artist required'}), 400
    try:
        return jsonify(get_lastfm().get_artist_albums(artist))
    except LastFmAPIError as e:
        logger.error(f"Last.fm albums error: {e}")
        return jsonify({'error': 'Failed to fetch albums'}), 500


@app.route('/api/lastfm/album-info')
def api_album_info():
    artist = request.args.get('artist')
    album = request.args.get('album')
    if not artist or not album:
        return jsonify({'error': 'Artist and album required'}), 400
    fetched = get_lastfm().fetch_album_metadata(artist, album)
    if fetched is None:
        return jsonify({'error': 'Album not found'}), 404
    return jsonify(fetched.to_dict())


@app.route('/api/limits/albums')
def api_album_limit():
    user_id = current_user_id()
    if not user_id:
        return jsonify({'error': 'Unauthorized'}), 401
    try:
        limit = check_album_limit(get_store(), user_id, get_config().max_albums_per_user)
    except DatastoreError as e:
        logger.error(f"Error checking album count: {e}")
        return jsonify({'error': 'Failed to check album limit'}), 500
    return jsonify(limit.to_dict())


@app.route('/api/library/import', methods=['POST'])
def api_import():
    user_id = current_user_id()
    if not user_id:
        return jsonify({'error': 'Unauthorized'}), 401
    payload = request.get_json(silent=True)
    entries = payload.get('entries') if isinstance(payload, dict) else None
    if not isinstance(entries, list):
        return jsonify({'error': 'Invalid data format'}), 400
    rows = [ImportRow.from_dict(e) if isinstance(e, dict) else ImportRow() for e in entries]
    try:
        result = import_rows(get_store(), user_id, rows, get_config().max_albums_per_user)
    except Exception as e:
        logger.exception("Import error: %s", e)
        return jsonify({'error': 'Import failed'}), 500
    return jsonify(result.to_dict())


@app.route('/api/library/export')
def api_export():
    user_id = current_user_id()
    if not user_id:
        return jsonify({'error': 'Unauthorized'}), 401
    try:
        entries = get_store().list_entries(user_id)
    except DatastoreError as e:
        logger.error(f"Export error: {e}")
        return jsonify({'error': 'Failed to fetch entries'}), 500
    records = []
    for e in entries:
        record = e.to_record()
        record['id'] = e.id
        record['created_at'] = e.created_at
        records.append(record)
    return jsonify({'entries': records})


if __name__ == '__main__':
    # Development server with auto-reload
    app.run(debug=True, port=5000, use_reloader=True)
