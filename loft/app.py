"""
Loft Application - Main application class.

Composes the stores, import pipeline, library and playback session, and
runs everything interactive on one task loop: shell commands, backend
polling, import progress and completion.
"""
import time
import queue
import shlex
import signal
import logging
import threading
from pathlib import Path
from typing import Callable, List, Optional

from .config import (
    CATALOG_PATH, MUSIC_DIR, MOCK_MODE,
    SUPPORTED_EXTENSIONS, RESTART_THRESHOLD, POLL_INTERVAL,
    MIXER_FREQUENCY, MIXER_BUFFER, COVER_ART_MAX_SIZE, COVER_ART_QUALITY,
)
from .models import ImportSource, PlaybackState, Song
from .api import ContentStore, CatalogStore, MetadataExtractor, PygamePlayer, NullPlayer, load_cover_art
from .managers import ImportPipeline, LibraryManager, PlaybackSession
from .handlers import CommandReader
from .utils import format_time

logger = logging.getLogger(__name__)

HELP = """Commands:
   import PATH...                      Import files or folders
   list                                Show the library
   play N                              Play song N (library order)
   pause | next | prev | stop          Transport
   seek SECONDS                        Jump within the current song
   status                              Show what is playing
   edit N [title=..] [artist=..] [cover=PATH|none]
   delete N                            Delete song N
   usage                               Storage used
   purge                               Delete all library data
   quit"""


class Loft:
    """Main Loft application."""

    def __init__(self, catalog_path: Path = CATALOG_PATH, music_dir: Path = MUSIC_DIR,
                 player=None, mock: bool = MOCK_MODE, output: Callable[[str], None] = print):
        self.output = output
        self.running = False
        self._tasks: 'queue.Queue' = queue.Queue()
        self._last_poll = 0.0
        self._last_song_id: Optional[str] = None
        self._import_thread: Optional[threading.Thread] = None

        self._init_components(Path(catalog_path), Path(music_dir), player, mock)

    def _init_components(self, catalog_path: Path, music_dir: Path, player, mock: bool):
        self.content_store = ContentStore(music_dir)
        self.catalog_store = CatalogStore(catalog_path, self.content_store)
        self.pipeline = ImportPipeline(self.content_store, MetadataExtractor(), SUPPORTED_EXTENSIONS)
        self.library = LibraryManager(self.catalog_store, self.content_store, self.pipeline)

        if player is None:
            player = NullPlayer() if mock else PygamePlayer(MIXER_FREQUENCY, MIXER_BUFFER)
        self.player = player
        self.session = PlaybackSession(
            self.player,
            resolve_path=lambda song: self.content_store.path_for(song.storage_file_name),
            restart_threshold=RESTART_THRESHOLD,
        )
        self.session.subscribe(self._on_playback_change)
        self.reader = CommandReader(
            on_command=lambda line: self.dispatch(self.handle_command, line),
            on_eof=lambda: self.dispatch(self.quit),
        )

    # ============================================
    # TASK LOOP
    # ============================================

    def dispatch(self, fn, *args):
        """Queue a call for the task loop (safe from any thread)."""
        self._tasks.put((fn, args))

    def process_pending(self, timeout: float = 0.0) -> int:
        """Run queued tasks. Waits up to `timeout` for the first one."""
        handled = 0
        block = timeout > 0
        while True:
            try:
                if block:
                    fn, args = self._tasks.get(timeout=timeout)
                else:
                    fn, args = self._tasks.get_nowait()
            except queue.Empty:
                return handled
            block = False
            try:
                fn(*args)
            except Exception as e:
                logger.error(f'Task {getattr(fn, "__name__", fn)} failed: {e}', exc_info=True)
            handled += 1

    def _poll_player(self):
        now = time.monotonic()
        if now - self._last_poll < POLL_INTERVAL:
            return
        self._last_poll = now
        if not self.session.state.is_loaded:
            return
        if self.player.poll():
            self.session.on_track_finished()
        else:
            self.session.on_backend_update(*self.player.status())

    def _handle_signal(self, signum, frame):
        logger.info(f'Received signal {signum}, shutting down...')
        self.running = False

    def start(self):
        """Load the library and run until quit."""
        signal.signal(signal.SIGTERM, self._handle_signal)
        signal.signal(signal.SIGINT, self._handle_signal)

        self.library.load()
        self.output(f'{len(self.library.songs)} songs, {self.library.formatted_storage_used} used')
        self.output(HELP)

        self.running = True
        self.reader.start()
        try:
            while self.running:
                self.process_pending(timeout=POLL_INTERVAL / 2)
                self._poll_player()
        finally:
            self.reader.stop()
            self.session.stop()
            logger.info('Loft stopped')

    def quit(self):
        self.running = False

    # ============================================
    # OBSERVERS & CALLBACKS
    # ============================================

    def _on_playback_change(self, state: PlaybackState):
        song_id = state.current_song.id if state.current_song else None
        if song_id == self._last_song_id:
            return
        self._last_song_id = song_id
        if state.current_song:
            song = state.current_song
            self.output(f'> {song.display_title} - {song.display_artist} '
                        f'[{state.current_index + 1}/{len(state.playlist)}]')
        else:
            self.output('Stopped')

    def _on_import_progress(self, done: int, total: int):
        self.output(f'Importing {done}/{total}')

    def _on_import_complete(self, songs: List[Song]):
        self._import_thread = None
        self.output(f'Imported {len(songs)} new songs ({self.library.formatted_storage_used} used)')

    # ============================================
    # COMMANDS
    # ============================================

    def handle_command(self, line: str):
        try:
            parts = shlex.split(line)
        except ValueError as e:
            self.output(f'Cannot parse command: {e}')
            return
        if not parts:
            return

        name, args = parts[0].lower(), parts[1:]
        handlers = {
            'import': self._cmd_import,
            'list': self._cmd_list,
            'play': self._cmd_play,
            'pause': lambda a: self.session.toggle_play_pause(),
            'next': lambda a: self.session.play_next(),
            'prev': lambda a: self.session.play_previous(),
            'stop': lambda a: self.session.stop(),
            'seek': self._cmd_seek,
            'status': self._cmd_status,
            'edit': self._cmd_edit,
            'delete': self._cmd_delete,
            'usage': lambda a: self.output(f'{self.library.formatted_storage_used} used'),
            'purge': self._cmd_purge,
            'help': lambda a: self.output(HELP),
            'quit': lambda a: self.quit(),
            'exit': lambda a: self.quit(),
        }
        handler = handlers.get(name)
        if handler is None:
            self.output(f'Unknown command: {name} (try "help")')
            return
        handler(args)

    def _song_at(self, arg: Optional[str]) -> Optional[Song]:
        songs = self.library.songs
        try:
            number = int(arg)
        except (TypeError, ValueError):
            self.output('Expected a song number')
            return None
        if not 1 <= number <= len(songs):
            self.output(f'No song {number} (library has {len(songs)})')
            return None
        return songs[number - 1]

    def _cmd_import(self, args: List[str]):
        if self.library.is_importing or self._import_thread is not None:
            self.output('An import is already running')
            return
        sources = []
        for arg in args:
            path = Path(arg).expanduser()
            if path.is_dir():
                sources.extend(ImportSource.from_path(p) for p in sorted(path.rglob('*')) if p.is_file())
            else:
                sources.append(ImportSource.from_path(path))
        if not sources:
            self.output('Nothing to import')
            return
        self._import_thread = self.library.import_files_async(
            sources,
            on_progress=self._on_import_progress,
            on_complete=self._on_import_complete,
            dispatch=self.dispatch,
        )

    def _cmd_list(self, args: List[str]):
        songs = self.library.songs
        if not songs:
            self.output('Library is empty')
            return
        current = self.session.state.current_song
        for number, song in enumerate(songs, 1):
            marker = '*' if song.same_song(current) else ' '
            self.output(f'{marker}{number:3d}. {song.display_title} - {song.display_artist} '
                        f'({format_time(song.duration_seconds)})')

    def _cmd_play(self, args: List[str]):
        song = self._song_at(args[0] if args else None)
        if song:
            self.session.play_song(song, self.library.songs)

    def _cmd_seek(self, args: List[str]):
        try:
            self.session.seek(float(args[0]))
        except (IndexError, ValueError):
            self.output('Usage: seek SECONDS')

    def _cmd_status(self, args: List[str]):
        state = self.session.state
        if not state.is_loaded:
            self.output('Nothing playing')
            return
        song = state.current_song
        self.output(f'{"Playing" if state.is_playing else "Paused"}: {song.display_title} - '
                    f'{song.display_artist} {format_time(state.current_time)}/'
                    f'{format_time(state.duration)} [{state.current_index + 1}/{len(state.playlist)}]')

    def _cmd_edit(self, args: List[str]):
        song = self._song_at(args[0] if args else None)
        if not song:
            return
        changes = {}
        for arg in args[1:]:
            key, sep, value = arg.partition('=')
            if not sep or key not in ('title', 'artist', 'cover'):
                self.output(f'Bad edit argument: {arg}')
                return
            changes[key] = value

        if 'cover' in changes:
            cover = changes.pop('cover')
            if cover.lower() == 'none':
                changes['cover_art'] = None
            else:
                try:
                    changes['cover_art'] = load_cover_art(
                        Path(cover).expanduser(), COVER_ART_MAX_SIZE, COVER_ART_QUALITY
                    )
                except ValueError as e:
                    self.output(str(e))
                    return

        updated = self.library.edit_song(song, **changes)
        self.session.update_song(updated)
        self.output(f'Saved: {updated.display_title} - {updated.display_artist}')

    def _cmd_delete(self, args: List[str]):
        song = self._song_at(args[0] if args else None)
        if not song:
            return
        self.session.remove_song_from_playlist(song)
        self.library.delete_song(song)
        self.output(f'Deleted: {song.display_title}')

    def _cmd_purge(self, args: List[str]):
        if self.library.is_importing or self._import_thread is not None:
            self.output('Wait for the import to finish first')
            return
        self.session.stop()
        self.library.delete_all_data()
        self.output('All library data deleted')
