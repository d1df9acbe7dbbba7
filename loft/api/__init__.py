"""
Loft API modules - Storage, metadata and audio output integrations.
"""
from .content_store import ContentStore
from .catalog import CatalogStore
from .metadata import MetadataExtractor
from .player import PygamePlayer, NullPlayer
from .artwork import load_cover_art

__all__ = [
    'ContentStore', 'CatalogStore', 'MetadataExtractor',
    'PygamePlayer', 'NullPlayer', 'load_cover_art',
]
