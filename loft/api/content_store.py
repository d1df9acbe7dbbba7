"""
Content Store - Content-addressed storage for imported audio files.

Every file is named `<sha256>.<extension>`, so identical bytes always land
on the same name no matter where they were imported from.
"""
import os
import shutil
import logging
import tempfile
import threading
from pathlib import Path
from typing import Optional

from ..utils import sha256_hex

logger = logging.getLogger(__name__)


class ContentStore:
    """Owns the music directory: atomic writes, removal, size accounting."""

    def __init__(self, music_dir: Path):
        self.music_dir = Path(music_dir)
        self._lock = threading.Lock()
        self.music_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def file_name_for(content_hash: str, extension: str) -> str:
        return f'{content_hash}.{extension.lstrip(".").lower()}'

    def path_for(self, storage_file_name: str) -> Path:
        return self.music_dir / storage_file_name

    def store(self, data: bytes, extension: str, content_hash: Optional[str] = None) -> str:
        """Write bytes under their content name and return the file name.

        Writes go to a temp file in the same directory and are renamed into
        place, so a crash never leaves a partial file under the final name.
        Raises OSError when the write fails.
        """
        if content_hash is None:
            content_hash = sha256_hex(data)
        file_name = self.file_name_for(content_hash, extension)
        target = self.path_for(file_name)

        with self._lock:
            self.music_dir.mkdir(parents=True, exist_ok=True)
            if target.exists() and target.stat().st_size == len(data):
                logger.debug(f'Already stored: {file_name}')
                return file_name

            fd, tmp_name = tempfile.mkstemp(dir=self.music_dir, prefix='.tmp_', suffix='.part')
            try:
                with os.fdopen(fd, 'wb') as f:
                    f.write(data)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, target)
            except BaseException:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
                raise

        logger.debug(f'Stored {len(data)} bytes as {file_name}')
        return file_name

    def remove(self, storage_file_name: str) -> bool:
        """Delete a stored file. Returns False if it could not be removed."""
        with self._lock:
            try:
                self.path_for(storage_file_name).unlink()
                logger.info(f'Removed stored file: {storage_file_name}')
                return True
            except FileNotFoundError:
                logger.warning(f'Stored file already gone: {storage_file_name}')
                return False
            except (IOError, OSError) as e:
                logger.warning(f'Cannot remove {storage_file_name}: {e}', exc_info=True)
                return False

    def total_bytes_used(self) -> int:
        """Sum of file sizes under the music directory (unreadable entries skipped)."""
        total = 0
        with self._lock:
            if not self.music_dir.exists():
                return 0
            for root, _dirs, files in os.walk(self.music_dir):
                for name in files:
                    try:
                        total += os.stat(os.path.join(root, name)).st_size
                    except OSError:
                        continue
        return total

    def purge(self):
        """Remove every stored file and recreate an empty music directory."""
        with self._lock:
            try:
                shutil.rmtree(self.music_dir)
            except FileNotFoundError:
                pass
            except (IOError, OSError) as e:
                logger.error(f'Cannot remove music directory: {e}', exc_info=True)
            self.music_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f'Purged content store: {self.music_dir}')
