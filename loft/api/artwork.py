"""
Artwork - Turns a user-picked image file into cover art bytes.
"""
import logging
from io import BytesIO
from pathlib import Path

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


def load_cover_art(path: Path, max_size: int = 600, quality: int = 90) -> bytes:
    """Read an image, shrink it to fit max_size and re-encode as JPEG.

    Raises ValueError if the file cannot be read as an image.
    """
    path = Path(path)
    try:
        with Image.open(path) as img:
            img.load()
            if img.mode in ('RGBA', 'LA', 'P'):
                # Flatten transparency onto black, like the player background
                rgba = img.convert('RGBA')
                background = Image.new('RGB', rgba.size, (0, 0, 0))
                background.paste(rgba, mask=rgba.split()[3])
                converted = background
            else:
                converted = img.convert('RGB')
    except (UnidentifiedImageError, IOError, OSError) as e:
        raise ValueError(f'Not a readable image: {path.name}') from e

    converted.thumbnail((max_size, max_size), Image.Resampling.LANCZOS)
    buffer = BytesIO()
    converted.save(buffer, 'JPEG', quality=quality)
    logger.info(f'Cover art from {path.name}: {converted.size[0]}x{converted.size[1]}, '
                f'{buffer.tell()} bytes')
    return buffer.getvalue()
