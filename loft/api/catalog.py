"""
Catalog Store - Persists the full song collection as one JSON document.

Handles:
- Loading (first run and unreadable documents both yield an empty catalog)
- Atomic saves (temp file + rename), recovery of an interrupted save
- Storage usage and full purge, delegated to the content store
"""
import os
import json
import base64
import logging
import threading
from pathlib import Path
from datetime import datetime
from typing import List

from ..models import Song
from .content_store import ContentStore

logger = logging.getLogger(__name__)

_OPTIONAL_TEXT = (
    ('originalArtist', 'original_artist'),
    ('customTitle', 'custom_title'),
    ('customArtist', 'custom_artist'),
)
_OPTIONAL_BYTES = (
    ('coverArt', 'cover_art'),
    ('customCoverArt', 'custom_cover_art'),
)


def song_to_dict(song: Song) -> dict:
    """Serialize a song. Absent optional fields are omitted, not nulled."""
    data = {
        'id': song.id,
        'contentHash': song.content_hash,
        'storageFileName': song.storage_file_name,
        'originalTitle': song.original_title,
        'durationSeconds': song.duration_seconds,
        'dateAdded': song.date_added.isoformat(),
    }
    for key, attr in _OPTIONAL_TEXT:
        value = getattr(song, attr)
        if value is not None:
            data[key] = value
    for key, attr in _OPTIONAL_BYTES:
        value = getattr(song, attr)
        if value is not None:
            data[key] = base64.b64encode(value).decode('ascii')
    return data


def song_from_dict(data: dict) -> Song:
    """Inverse of song_to_dict. Raises KeyError/ValueError on malformed records."""
    kwargs = {
        'id': data['id'],
        'content_hash': data['contentHash'],
        'storage_file_name': data['storageFileName'],
        'original_title': data['originalTitle'],
        'duration_seconds': float(data['durationSeconds']),
        'date_added': datetime.fromisoformat(data['dateAdded']),
    }
    for key, attr in _OPTIONAL_TEXT:
        if key in data:
            kwargs[attr] = data[key]
    for key, attr in _OPTIONAL_BYTES:
        if key in data:
            kwargs[attr] = base64.b64decode(data[key])
    return Song(**kwargs)


class CatalogStore:
    """Single-document catalog persistence with a single-writer lock."""

    def __init__(self, catalog_path: Path, content_store: ContentStore):
        self.catalog_path = Path(catalog_path)
        self.content_store = content_store
        self._catalog_lock = threading.Lock()

    @property
    def _temp_path(self) -> Path:
        return self.catalog_path.with_suffix(self.catalog_path.suffix + '.tmp')

    # ============================================
    # LOADING & SAVING
    # ============================================

    def load(self) -> List[Song]:
        """Load all songs. Never raises; degraded loads return []."""
        with self._catalog_lock:
            self._recover_temp_file()
            if not self.catalog_path.exists():
                logger.info(f'No catalog at {self.catalog_path} (first run)')
                return []

            try:
                logger.info(f'Loading catalog from {self.catalog_path}')
                data = json.loads(self.catalog_path.read_text(encoding='utf-8'))
                if not isinstance(data, list):
                    raise ValueError(f'expected a list of songs, got {type(data).__name__}')
                songs = [song_from_dict(item) for item in data]
                logger.info(f'Loaded {len(songs)} songs')
                return songs
            except json.JSONDecodeError as e:
                logger.error(f'Invalid JSON in catalog file: {e}', exc_info=True)
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f'Malformed catalog document: {e}', exc_info=True)
            except (IOError, OSError) as e:
                logger.error(f'Cannot read catalog file: {e}', exc_info=True)
            except Exception as e:
                logger.error(f'Unexpected error loading catalog: {e}', exc_info=True)
            return []

    def save(self, songs: List[Song]) -> bool:
        """Replace the catalog document with the given songs."""
        with self._catalog_lock:
            temp_path = self._temp_path
            try:
                payload = json.dumps([song_to_dict(s) for s in songs], indent=2)
                self.catalog_path.parent.mkdir(parents=True, exist_ok=True)
                with open(temp_path, 'w', encoding='utf-8') as f:
                    f.write(payload)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(temp_path, self.catalog_path)
                logger.debug(f'Saved catalog: {len(songs)} songs')
                return True
            except (IOError, OSError) as e:
                logger.error(f'Error saving catalog: {e}', exc_info=True)
            except Exception as e:
                logger.error(f'Unexpected error saving catalog: {e}', exc_info=True)
            self._discard(temp_path)
            return False

    def _recover_temp_file(self):
        """Finish or discard a save that was interrupted before the rename."""
        temp_path = self._temp_path
        if not temp_path.exists():
            return
        if self.catalog_path.exists():
            logger.warning(f'Discarding stale temp catalog: {temp_path}')
            self._discard(temp_path)
            return
        try:
            json.loads(temp_path.read_text(encoding='utf-8'))
            os.replace(temp_path, self.catalog_path)
            logger.warning(f'Recovered catalog from interrupted save: {temp_path}')
        except (json.JSONDecodeError, IOError, OSError) as e:
            logger.warning(f'Temp catalog unusable, discarding: {e}')
            self._discard(temp_path)

    @staticmethod
    def _discard(path: Path):
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f'Cannot remove {path}: {e}')

    # ============================================
    # STORAGE
    # ============================================

    def used_bytes(self) -> int:
        return self.content_store.total_bytes_used()

    def purge_all(self):
        """Back to a fresh install: no stored files, no catalog document."""
        with self._catalog_lock:
            self.content_store.purge()
            self._discard(self.catalog_path)
            self._discard(self._temp_path)
        logger.info('All library data deleted')
