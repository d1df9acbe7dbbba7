"""
Loft Data Models - Core data structures.
"""
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple, Callable

from .config import UNKNOWN_ARTIST


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Song:
    """
    A single imported audio file in the catalog.

    Import-time fields never change. The custom_* fields are user overrides
    and are changed through `with_overrides`, which returns a new record.
    `==` compares every field; use `same_song` when only identity matters.
    """
    content_hash: str
    storage_file_name: str
    original_title: str
    duration_seconds: float
    original_artist: Optional[str] = None
    cover_art: Optional[bytes] = None
    id: str = field(default_factory=_new_id)
    date_added: datetime = field(default_factory=_now)
    custom_title: Optional[str] = None
    custom_artist: Optional[str] = None
    custom_cover_art: Optional[bytes] = None

    @property
    def display_title(self) -> str:
        return self.custom_title if self.custom_title is not None else self.original_title

    @property
    def display_artist(self) -> str:
        if self.custom_artist is not None:
            return self.custom_artist
        if self.original_artist is not None:
            return self.original_artist
        return UNKNOWN_ARTIST

    @property
    def display_artwork(self) -> Optional[bytes]:
        return self.custom_cover_art if self.custom_cover_art is not None else self.cover_art

    def same_song(self, other: Optional['Song']) -> bool:
        """Identity equality: same catalog record, regardless of edits."""
        return other is not None and self.id == other.id

    def with_overrides(self, custom_title: Optional[str], custom_artist: Optional[str],
                       custom_cover_art: Optional[bytes]) -> 'Song':
        """Return a copy carrying the given user overrides."""
        return replace(
            self,
            custom_title=custom_title,
            custom_artist=custom_artist,
            custom_cover_art=custom_cover_art,
        )


@dataclass(frozen=True)
class ImportSource:
    """
    A candidate file handed over by the file picker.

    `read` returns the full byte content and may raise OSError when the
    source is unreadable.
    """
    name: str
    extension: str
    read: Callable[[], bytes]
    location: Optional[Path] = None

    @classmethod
    def from_path(cls, path: Path) -> 'ImportSource':
        path = Path(path)
        return cls(
            name=path.stem,
            extension=path.suffix.lstrip('.'),
            read=path.read_bytes,
            location=path,
        )


@dataclass(frozen=True)
class ProbeResult:
    """Metadata read from an audio file."""
    title: str
    duration_seconds: float = 0.0
    artist: Optional[str] = None
    cover_art: Optional[bytes] = None


@dataclass(frozen=True)
class PlaybackState:
    """Immutable snapshot of the playback session, handed to observers."""
    playlist: Tuple[Song, ...] = ()
    current_index: int = 0
    current_song: Optional[Song] = None
    is_playing: bool = False
    current_time: float = 0.0
    duration: float = 0.0

    @property
    def is_loaded(self) -> bool:
        return self.current_song is not None

    @property
    def progress(self) -> float:
        """Get playback progress as 0.0-1.0."""
        if self.duration <= 0:
            return 0.0
        return min(1.0, self.current_time / self.duration)
