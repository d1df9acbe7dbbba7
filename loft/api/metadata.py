"""
Metadata Extractor - Reads title, artist, artwork and duration with mutagen.

Degrades step by step: container tags first, then a looser format-specific
load for the duration only, then zero. Nothing here writes to disk.
"""
import math
import logging
from pathlib import Path
from typing import Optional, Tuple

import mutagen
from mutagen.id3 import ID3
from mutagen.mp4 import MP4
from mutagen.mp3 import MP3
from mutagen.aac import AAC
from mutagen.wave import WAVE
from mutagen.aiff import AIFF

from ..models import ProbeResult

logger = logging.getLogger(__name__)

# Format-specific loaders for the fallback path, keyed by extension
_FALLBACK_LOADERS = {
    '.mp3': MP3,
    '.m4a': MP4,
    '.aac': AAC,
    '.wav': WAVE,
    '.aiff': AIFF,
    '.aif': AIFF,
}


def normalize_duration(value) -> float:
    """NaN, infinite, negative or missing durations become 0."""
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(seconds) or math.isinf(seconds) or seconds < 0:
        return 0.0
    return seconds


def _clean(value) -> Optional[str]:
    """First text value of a tag, with empty strings treated as absent."""
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class MetadataExtractor:
    """Probes audio files for display metadata."""

    def probe(self, file_path: Path, fallback_title: str) -> ProbeResult:
        file_path = Path(file_path)
        title: Optional[str] = None
        artist: Optional[str] = None
        artwork: Optional[bytes] = None
        duration = 0.0

        try:
            audio = mutagen.File(file_path)
            if audio is None:
                raise mutagen.MutagenError(f'Unrecognized container: {file_path.name}')
            duration = normalize_duration(getattr(audio.info, 'length', 0))
            title, artist = self._read_text_tags(audio)
            artwork = self._read_artwork(audio)
        except (mutagen.MutagenError, IOError, OSError) as e:
            logger.info(f'Tag probe failed for {file_path.name}, falling back: {e}')
            duration = self._fallback_duration(file_path)
        except Exception as e:
            logger.warning(f'Unexpected error probing {file_path.name}: {e}', exc_info=True)
            duration = self._fallback_duration(file_path)

        return ProbeResult(
            title=title or fallback_title,
            duration_seconds=duration,
            artist=artist,
            cover_art=artwork,
        )

    def _fallback_duration(self, file_path: Path) -> float:
        """Looser load by extension; 0 when that fails as well."""
        loader = _FALLBACK_LOADERS.get(file_path.suffix.lower())
        if loader is None:
            return 0.0
        try:
            return normalize_duration(loader(file_path).info.length)
        except (mutagen.MutagenError, IOError, OSError) as e:
            logger.info(f'Fallback duration failed for {file_path.name}: {e}')
            return 0.0
        except Exception as e:
            logger.warning(f'Unexpected fallback error for {file_path.name}: {e}', exc_info=True)
            return 0.0

    # ============================================
    # TAG READING
    # ============================================

    def _read_text_tags(self, audio) -> Tuple[Optional[str], Optional[str]]:
        tags = getattr(audio, 'tags', None)
        if tags is None:
            return None, None
        if isinstance(tags, ID3):
            return self._id3_text(tags, 'TIT2'), self._id3_text(tags, 'TPE1')
        if isinstance(audio, MP4):
            return _clean(tags.get('\xa9nam')), _clean(tags.get('\xa9ART'))
        # Vorbis comments, APEv2 and friends: case-insensitive text keys
        return _clean(tags.get('title')), _clean(tags.get('artist'))

    @staticmethod
    def _id3_text(tags: ID3, key: str) -> Optional[str]:
        frame = tags.get(key)
        if frame is None:
            return None
        return _clean(getattr(frame, 'text', None))

    def _read_artwork(self, audio) -> Optional[bytes]:
        tags = getattr(audio, 'tags', None)
        if isinstance(tags, ID3):
            frames = tags.getall('APIC')
            if frames:
                return bytes(frames[0].data) or None
        elif isinstance(audio, MP4) and tags is not None:
            covers = tags.get('covr')
            if covers:
                return bytes(covers[0]) or None
        pictures = getattr(audio, 'pictures', None)
        if pictures:
            return bytes(pictures[0].data) or None
        return None
