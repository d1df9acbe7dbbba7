"""
Library Manager - Owns the in-memory catalog.

Every mutation (import, delete, edit, purge) is followed by a full save
of the catalog document.
"""
import logging
import threading
from typing import Callable, List, Optional, Sequence

from ..models import ImportSource, Song
from ..api.catalog import CatalogStore
from ..api.content_store import ContentStore
from ..utils import format_bytes, run_async
from .importer import ImportPipeline, ProgressCallback

logger = logging.getLogger(__name__)

Dispatch = Callable[..., None]


def _call_now(fn, *args):
    fn(*args)


_KEEP = object()


class LibraryManager:
    """Catalog operations on top of the catalog store and import pipeline."""

    def __init__(self, catalog_store: CatalogStore, content_store: ContentStore,
                 pipeline: ImportPipeline):
        self.catalog_store = catalog_store
        self.content_store = content_store
        self.pipeline = pipeline

        self._lock = threading.RLock()
        self._songs: List[Song] = []
        self.storage_used = 0
        self.is_importing = False

    @property
    def songs(self) -> List[Song]:
        """Copy of the catalog, newest first after imports."""
        with self._lock:
            return list(self._songs)

    @property
    def formatted_storage_used(self) -> str:
        return format_bytes(self.storage_used)

    def existing_hashes(self) -> set:
        with self._lock:
            return {s.content_hash for s in self._songs}

    # ============================================
    # LOADING
    # ============================================

    def load(self) -> List[Song]:
        with self._lock:
            self._songs = self.catalog_store.load()
            self.storage_used = self.catalog_store.used_bytes()
            logger.info(f'Library: {len(self._songs)} songs, {self.formatted_storage_used}')
            return list(self._songs)

    def _persist(self):
        if not self.catalog_store.save(self._songs):
            logger.error('Catalog save failed; changes kept in memory only')

    # ============================================
    # IMPORT
    # ============================================

    def import_files(self, sources: Sequence[ImportSource],
                     on_progress: Optional[ProgressCallback] = None,
                     cancel: Optional[threading.Event] = None) -> List[Song]:
        """Import a batch, merge it into the catalog and save."""
        with self._lock:
            if self.is_importing:
                logger.warning('Import already running; batch ignored')
                return []
            self.is_importing = True
        # The batch runs unlocked so other operations stay responsive
        try:
            new_songs = self.pipeline.import_batch(
                sources, self.existing_hashes(), on_progress, cancel
            )
            with self._lock:
                if new_songs:
                    self._songs.extend(new_songs)
                    self._songs.sort(key=lambda s: s.date_added, reverse=True)
                    self._persist()
                self.storage_used = self.catalog_store.used_bytes()
            return new_songs
        finally:
            self.is_importing = False

    def import_files_async(self, sources: Sequence[ImportSource],
                           on_progress: Optional[ProgressCallback] = None,
                           on_complete: Optional[Callable[[List[Song]], None]] = None,
                           dispatch: Dispatch = _call_now,
                           cancel: Optional[threading.Event] = None) -> threading.Thread:
        """Run import_files on a worker thread.

        Progress and completion go through `dispatch`, which hands them to
        the interactive context (the app's task loop).
        """
        sources = list(sources)

        def progress(done: int, total: int):
            if on_progress:
                dispatch(on_progress, done, total)

        def import_worker():
            new_songs: List[Song] = []
            try:
                new_songs = self.import_files(sources, progress, cancel)
            finally:
                if on_complete:
                    dispatch(on_complete, new_songs)

        return run_async(import_worker)

    # ============================================
    # EDIT & DELETE
    # ============================================

    def delete_song(self, song: Song) -> bool:
        """Remove a song and its stored file. Returns False if it was unknown."""
        with self._lock:
            if not any(s.same_song(song) for s in self._songs):
                logger.warning(f'Delete: song not in catalog: {song.id}')
                return False
            if not self.content_store.remove(song.storage_file_name):
                logger.warning(f'Stored file for "{song.display_title}" not removed; '
                               'dropping catalog entry anyway')
            self._songs = [s for s in self._songs if not s.same_song(song)]
            self._persist()
            self.storage_used = self.catalog_store.used_bytes()
            logger.info(f'Deleted: {song.display_title}')
            return True

    def update_song(self, song: Song) -> bool:
        """Replace the catalog entry with the same id."""
        with self._lock:
            index = next((i for i, s in enumerate(self._songs) if s.same_song(song)), None)
            if index is None:
                logger.warning(f'Update: song not in catalog: {song.id}')
                return False
            self._songs[index] = song
            self._persist()
            return True

    def edit_song(self, song: Song, title: Optional[str] = None,
                  artist: Optional[str] = None,
                  cover_art=_KEEP) -> Song:
        """Apply edit-dialog input and return the updated song.

        `title`/`artist` are the field contents (None keeps the current
        display value). Input equal to the original clears the override.
        `cover_art` replaces the custom artwork (None clears it); when not
        given, the current custom artwork stays.
        """
        if cover_art is _KEEP:
            cover_art = song.custom_cover_art
        if title is None:
            title = song.display_title
        if artist is None:
            artist = (song.custom_artist if song.custom_artist is not None
                      else song.original_artist or '')
        title_input = title.strip()
        artist_input = artist.strip()

        updated = song.with_overrides(
            custom_title=title_input if title_input != song.original_title else None,
            custom_artist=artist_input if artist_input != (song.original_artist or '') else None,
            custom_cover_art=cover_art,
        )
        self.update_song(updated)
        return updated

    def delete_all_data(self):
        with self._lock:
            self.catalog_store.purge_all()
            self._songs = []
            self.storage_used = 0
