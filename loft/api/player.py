"""
Player Backends - Audio output behind the playback session.

The session only talks to this surface:
load / play / pause / seek / stop / update_now_playing, plus status()
for time reporting and poll() for the "track finished" event.

pygame.mixer.music decodes mp3, wav and aiff. It has no AAC decoder, so
imported m4a/aac files are catalogued but fail to load on PygamePlayer.
"""
import logging
from pathlib import Path
from typing import List, Optional, Tuple

import pygame

from ..models import Song

logger = logging.getLogger(__name__)

# Containers pygame.mixer.music cannot decode
UNDECODABLE_EXTENSIONS = ('.m4a', '.aac')


class PygamePlayer:
    """Plays one file at a time through pygame.mixer.music."""

    def __init__(self, frequency: int = 44100, buffer: int = 2048):
        self.frequency = frequency
        self.buffer = buffer
        self._loaded: Optional[Path] = None
        self._duration = 0.0
        self._offset = 0.0       # Seconds skipped by the last seek
        self._started = False    # music.play() issued for the current file
        self._playing = False
        self._finished_reported = False
        self._warned_undecodable = False

    def _ensure_mixer(self) -> bool:
        if pygame.mixer.get_init():
            return True
        try:
            pygame.mixer.init(frequency=self.frequency, buffer=self.buffer)
            logger.info(f'Audio mixer ready: {pygame.mixer.get_init()}')
            return True
        except pygame.error as e:
            logger.error(f'Cannot open audio device: {e}', exc_info=True)
            return False

    # ============================================
    # TRANSPORT
    # ============================================

    def load(self, path: Path, duration_hint: float = 0.0) -> bool:
        """Load a file. Returns False when it is missing or cannot be opened."""
        self._reset()
        path = Path(path)
        if not path.exists():
            logger.error(f'Audio file missing: {path}')
            return False
        if not self._ensure_mixer():
            return False
        try:
            pygame.mixer.music.load(str(path))
        except pygame.error as e:
            logger.error(f'Cannot load {path.name}: {e}', exc_info=True)
            if path.suffix.lower() in UNDECODABLE_EXTENSIONS and not self._warned_undecodable:
                logger.warning('AAC audio (m4a/aac) is not supported by the pygame backend')
                self._warned_undecodable = True
            return False
        self._loaded = path
        self._duration = duration_hint
        logger.info(f'Loaded: {path.name} ({duration_hint:.0f}s)')
        return True

    def play(self) -> bool:
        if self._loaded is None:
            return False
        try:
            if self._started:
                pygame.mixer.music.unpause()
            else:
                pygame.mixer.music.play(start=self._offset)
                self._started = True
            self._playing = True
            return True
        except pygame.error as e:
            logger.error(f'Play error: {e}', exc_info=True)
            self._playing = False
            return False

    def pause(self) -> bool:
        if self._loaded is None:
            return False
        pygame.mixer.music.pause()
        self._playing = False
        return True

    def seek(self, seconds: float) -> bool:
        """Restart the current file at an offset, keeping the paused state."""
        if self._loaded is None:
            return False
        seconds = max(0.0, seconds)
        was_playing = self._playing
        try:
            pygame.mixer.music.play(start=seconds)
            self._started = True
            self._offset = seconds
            if not was_playing:
                pygame.mixer.music.pause()
            logger.debug(f'Seek to {seconds:.1f}s')
            return True
        except pygame.error as e:
            logger.error(f'Seek error to {seconds:.1f}s: {e}', exc_info=True)
            return False

    def stop(self):
        if pygame.mixer.get_init():
            pygame.mixer.music.stop()
            pygame.mixer.music.unload()
        self._reset()

    def update_now_playing(self, song: Song):
        """No system media center here; the log is the only surface."""
        logger.info(f'Now playing: {song.display_title} - {song.display_artist}')

    def _reset(self):
        self._loaded = None
        self._duration = 0.0
        self._offset = 0.0
        self._started = False
        self._playing = False
        self._finished_reported = False

    # ============================================
    # STATUS
    # ============================================

    def current_time(self) -> float:
        if not self._started:
            return self._offset
        pos_ms = pygame.mixer.music.get_pos()
        if pos_ms < 0:
            return self._offset
        return self._offset + pos_ms / 1000.0

    def status(self) -> Tuple[bool, float, float]:
        """(is_playing, current_time, duration)"""
        return self._playing, self.current_time(), self._duration

    def poll(self) -> bool:
        """True once when the loaded track has played to its end."""
        if not self._playing or self._finished_reported:
            return False
        if pygame.mixer.music.get_busy():
            return False
        self._playing = False
        self._finished_reported = True
        logger.debug(f'Finished: {self._loaded.name if self._loaded else "?"}')
        return True


class NullPlayer:
    """Silent backend for mock mode and tests. Records every command."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.loaded: Optional[Path] = None
        self.playing = False
        self.position = 0.0
        self.duration = 0.0
        self.fail_loads = False

    def load(self, path: Path, duration_hint: float = 0.0) -> bool:
        self.calls.append(('load', Path(path)))
        if self.fail_loads:
            self.loaded = None
            return False
        self.loaded = Path(path)
        self.playing = False
        self.position = 0.0
        self.duration = duration_hint
        return True

    def play(self) -> bool:
        self.calls.append(('play',))
        if self.loaded is None:
            return False
        self.playing = True
        return True

    def pause(self) -> bool:
        self.calls.append(('pause',))
        self.playing = False
        return self.loaded is not None

    def seek(self, seconds: float) -> bool:
        self.calls.append(('seek', seconds))
        self.position = max(0.0, seconds)
        return self.loaded is not None

    def stop(self):
        self.calls.append(('stop',))
        self.loaded = None
        self.playing = False
        self.position = 0.0
        self.duration = 0.0

    def update_now_playing(self, song: Song):
        self.calls.append(('update_now_playing', song.id))

    def status(self) -> Tuple[bool, float, float]:
        return self.playing, self.position, self.duration

    def poll(self) -> bool:
        return False
