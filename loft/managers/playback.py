"""
Playback Session - Playlist position and transport state.

Idle (no current song) <-> Loaded (current song, playing or paused).
The session owns a snapshot copy of the playlist and drives the player
backend; backend state is copied in on every status update and handed to
observers as an immutable PlaybackState.
"""
import logging
import threading
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from ..models import PlaybackState, Song

logger = logging.getLogger(__name__)

Observer = Callable[[PlaybackState], None]


class PlaybackSession:
    """Single-writer playback state machine."""

    def __init__(self, player, resolve_path: Callable[[Song], Path],
                 restart_threshold: float = 3.0):
        """
        Args:
            player: Backend with load/play/pause/seek/stop/update_now_playing
            resolve_path: Maps a song to its stored audio file
            restart_threshold: "Previous" restarts the track after this many seconds
        """
        self.player = player
        self.resolve_path = resolve_path
        self.restart_threshold = restart_threshold

        # Transitions are atomic; observers only see finished transitions
        self._lock = threading.RLock()
        self._observers: List[Observer] = []

        self._playlist: List[Song] = []
        self._current_index = 0
        self._current_song: Optional[Song] = None
        self._is_playing = False
        self._current_time = 0.0
        self._duration = 0.0

    # ============================================
    # OBSERVATION
    # ============================================

    @property
    def state(self) -> PlaybackState:
        with self._lock:
            return PlaybackState(
                playlist=tuple(self._playlist),
                current_index=self._current_index,
                current_song=self._current_song,
                is_playing=self._is_playing,
                current_time=self._current_time,
                duration=self._duration,
            )

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an observer; returns a function that unregisters it."""
        self._observers.append(observer)

        def unsubscribe():
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self):
        snapshot = self.state
        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception as e:
                logger.warning(f'Playback observer failed: {e}', exc_info=True)

    # ============================================
    # TRANSITIONS
    # ============================================

    def play_song(self, song: Song, playlist: Sequence[Song]):
        """Start `song`, with `playlist` (copied) as the play order."""
        with self._lock:
            self._playlist = list(playlist)
            if not self._playlist:
                self._playlist = [song]
            index = self._index_of(song)
            if index is None:
                logger.warning(f'Song {song.id} not in its playlist, starting at index 0')
                index = 0
            self._current_index = index
            self._current_song = song
            self._load_and_play(song)
        self._notify()

    def toggle_play_pause(self):
        with self._lock:
            if self._current_song is None:
                logger.debug('Toggle ignored: nothing loaded')
                return
            if self._is_playing:
                self.player.pause()
                self._is_playing = False
            else:
                self._is_playing = bool(self.player.play())
        self._notify()

    def play_next(self):
        with self._lock:
            if not self._playlist:
                return
            self._advance()
        self._notify()

    def play_previous(self):
        with self._lock:
            if not self._playlist:
                return
            if self._current_time > self.restart_threshold:
                self.player.seek(0)
                self._current_time = 0.0
            else:
                if self._current_index > 0:
                    self._current_index -= 1
                else:
                    self._current_index = len(self._playlist) - 1
                self._current_song = self._playlist[self._current_index]
                self._load_and_play(self._current_song)
        self._notify()

    def seek(self, seconds: float):
        with self._lock:
            if self._current_song is None:
                return
            seconds = max(0.0, seconds)
            self.player.seek(seconds)
            self._current_time = seconds
        self._notify()

    def stop(self):
        with self._lock:
            self.player.stop()
            self._current_song = None
            self._playlist = []
            self._current_index = 0
            self._is_playing = False
            self._current_time = 0.0
            self._duration = 0.0
        self._notify()

    def update_song(self, song: Song):
        """Swap in an edited record without touching playback position."""
        with self._lock:
            index = self._index_of(song)
            if index is not None:
                self._playlist[index] = song
            if song.same_song(self._current_song):
                self._current_song = song
                self.player.update_now_playing(song)
            elif index is None:
                return
        self._notify()

    def remove_song_from_playlist(self, song: Song):
        """Drop a song (e.g. deleted from the library) from the playlist."""
        with self._lock:
            if song.same_song(self._current_song):
                if len(self._playlist) > 1:
                    self._advance()
                    self._remove_all(song)
                    self._reindex_current()
                else:
                    self.stop()
                    return
            else:
                if self._index_of(song) is None:
                    return
                self._remove_all(song)
                if self._current_song is not None:
                    self._reindex_current()
        self._notify()

    # ============================================
    # BACKEND EVENTS
    # ============================================

    def on_backend_update(self, is_playing: bool, current_time: float, duration: float):
        """Copy reported backend state into the session."""
        with self._lock:
            if self._current_song is None:
                return
            self._is_playing = is_playing
            self._current_time = max(0.0, current_time)
            if duration > 0:
                self._duration = duration
        self._notify()

    def on_track_finished(self):
        with self._lock:
            if self._current_song is None:
                return
            self._is_playing = False
            if not self._playlist:
                return
            self._advance()
        self._notify()

    # ============================================
    # HELPERS
    # ============================================

    def _load_and_play(self, song: Song):
        self._current_time = 0.0
        self._duration = song.duration_seconds
        path = self.resolve_path(song)
        if not self.player.load(path, song.duration_seconds):
            logger.error(f'Cannot play "{song.display_title}": {path} did not load')
            self._is_playing = False
            return
        self._is_playing = bool(self.player.play())
        self.player.update_now_playing(song)

    def _advance(self):
        self._current_index = (self._current_index + 1) % len(self._playlist)
        self._current_song = self._playlist[self._current_index]
        self._load_and_play(self._current_song)

    def _index_of(self, song: Song) -> Optional[int]:
        return next((i for i, s in enumerate(self._playlist) if s.same_song(song)), None)

    def _remove_all(self, song: Song):
        self._playlist = [s for s in self._playlist if not s.same_song(song)]

    def _reindex_current(self):
        index = self._index_of(self._current_song) if self._current_song else None
        if index is None:
            logger.warning('Current song missing from playlist after removal, resetting index')
            index = 0
        self._current_index = index if index < len(self._playlist) else 0
