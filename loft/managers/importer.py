"""
Import Pipeline - Brings external audio files into the library.

Per candidate, in input order: read, hash, dedup-check, store, probe,
build the Song. Any per-file problem drops that file and moves on.
"""
import logging
import threading
from typing import Callable, Iterable, List, Optional, Set

from ..models import ImportSource, Song
from ..api.content_store import ContentStore
from ..api.metadata import MetadataExtractor
from ..utils import sha256_hex

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class ImportPipeline:
    """Turns a batch of import sources into new Song records."""

    def __init__(self, content_store: ContentStore, extractor: MetadataExtractor,
                 supported_extensions: Iterable[str]):
        self.content_store = content_store
        self.extractor = extractor
        self.supported_extensions = {ext.lower().lstrip('.') for ext in supported_extensions}

    def is_supported(self, source: ImportSource) -> bool:
        return source.extension.lower().lstrip('.') in self.supported_extensions

    def import_batch(self, sources: Iterable[ImportSource], existing_hashes: Set[str],
                     on_progress: Optional[ProgressCallback] = None,
                     cancel: Optional[threading.Event] = None) -> List[Song]:
        """Import every new, supported source and return the Songs built.

        `existing_hashes` is copied; hashes imported earlier in the same
        batch count as duplicates too. Progress fires once per candidate,
        skips included. If `cancel` gets set, the batch stops before the
        next candidate and keeps what it has imported.
        """
        candidates = [s for s in sources if self.is_supported(s)]
        total = len(candidates)
        known = set(existing_hashes)
        imported: List[Song] = []
        logger.info(f'Importing {total} candidate files')

        for index, source in enumerate(candidates):
            if cancel is not None and cancel.is_set():
                logger.info(f'Import cancelled after {index}/{total} files')
                break

            song = self._import_one(source, known)
            if song is not None:
                imported.append(song)
                known.add(song.content_hash)

            if on_progress:
                try:
                    on_progress(index + 1, total)
                except Exception as e:
                    logger.warning(f'Progress callback failed: {e}', exc_info=True)

        logger.info(f'Import finished: {len(imported)} new of {total} candidates')
        return imported

    def _import_one(self, source: ImportSource, known: Set[str]) -> Optional[Song]:
        try:
            data = source.read()
        except (IOError, OSError) as e:
            logger.info(f'Skipping unreadable source {source.name}: {e}')
            return None
        except Exception as e:
            logger.warning(f'Unexpected error reading {source.name}: {e}', exc_info=True)
            return None

        content_hash = sha256_hex(data)
        if content_hash in known:
            logger.info(f'Skipping duplicate: {source.name}')
            return None

        try:
            file_name = self.content_store.store(data, source.extension, content_hash)
        except (IOError, OSError) as e:
            logger.warning(f'Cannot store {source.name}: {e}', exc_info=True)
            return None
        except Exception as e:
            logger.warning(f'Unexpected error storing {source.name}: {e}', exc_info=True)
            return None

        try:
            meta = self.extractor.probe(self.content_store.path_for(file_name), source.name)
        except Exception as e:
            # The extractor degrades on its own; this only guards against a broken one
            logger.warning(f'Metadata probe crashed for {source.name}: {e}', exc_info=True)
            return None

        song = Song(
            content_hash=content_hash,
            storage_file_name=file_name,
            original_title=meta.title,
            original_artist=meta.artist,
            duration_seconds=meta.duration_seconds,
            cover_art=meta.cover_art,
        )
        logger.info(f'Imported: {song.display_title} ({file_name})')
        return song
