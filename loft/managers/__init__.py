"""
Loft Managers - Library, import and playback state.
"""
from .importer import ImportPipeline
from .library import LibraryManager
from .playback import PlaybackSession

__all__ = ['ImportPipeline', 'LibraryManager', 'PlaybackSession']
