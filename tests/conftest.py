"""
Pytest configuration and shared fixtures for Loft tests.
"""
import pytest
from pathlib import Path
from datetime import datetime, timedelta, timezone
from tempfile import TemporaryDirectory

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from loft.models import Song, ImportSource, ProbeResult
from loft.api.content_store import ContentStore
from loft.api.catalog import CatalogStore
from loft.api.player import NullPlayer
from loft.managers.importer import ImportPipeline
from loft.managers.library import LibraryManager
from loft.managers.playback import PlaybackSession


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that's cleaned up after each test."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def catalog_path(temp_dir):
    """Provide path for a temporary library.json file."""
    return temp_dir / 'library.json'


@pytest.fixture
def music_dir(temp_dir):
    """Provide path for the content store directory."""
    return temp_dir / 'music'


@pytest.fixture
def content_store(music_dir):
    return ContentStore(music_dir)


@pytest.fixture
def catalog_store(catalog_path, content_store):
    return CatalogStore(catalog_path, content_store)


class FakeExtractor:
    """Stands in for mutagen: title from the fallback, fixed duration."""

    def __init__(self, duration=180.0, artist=None):
        self.duration = duration
        self.artist = artist
        self.probed = []

    def probe(self, file_path, fallback_title):
        self.probed.append((Path(file_path), fallback_title))
        return ProbeResult(title=fallback_title, duration_seconds=self.duration, artist=self.artist)


@pytest.fixture
def extractor():
    return FakeExtractor()


@pytest.fixture
def pipeline(content_store, extractor):
    return ImportPipeline(content_store, extractor, ('mp3', 'm4a', 'aac', 'wav', 'aiff'))


@pytest.fixture
def library(catalog_store, content_store, pipeline):
    return LibraryManager(catalog_store, content_store, pipeline)


def make_source(name, data, extension='mp3'):
    """In-memory import source."""
    return ImportSource(name=name, extension=extension, read=lambda: data)


def failing_source(name, extension='mp3'):
    """Import source whose read fails like a vanished file."""
    def read():
        raise FileNotFoundError(f'{name}.{extension} vanished')
    return ImportSource(name=name, extension=extension, read=read)


def make_song(title, content_hash=None, added=None, **kwargs):
    content_hash = content_hash or f'hash-{title}'
    return Song(
        content_hash=content_hash,
        storage_file_name=f'{content_hash}.mp3',
        original_title=title,
        duration_seconds=kwargs.pop('duration_seconds', 200.0),
        date_added=added or datetime(2024, 1, 1, tzinfo=timezone.utc),
        **kwargs
    )


@pytest.fixture
def songs():
    """Three songs, A oldest."""
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return [make_song(name, added=base + timedelta(days=i)) for i, name in enumerate('ABC')]


@pytest.fixture
def player():
    return NullPlayer()


@pytest.fixture
def session(player, music_dir):
    return PlaybackSession(player, resolve_path=lambda s: music_dir / s.storage_file_name)
