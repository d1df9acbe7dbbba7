"""
Loft Utilities - Shared helper functions.
"""
import math
import hashlib
import threading
import logging

logger = logging.getLogger(__name__)


def run_async(fn, *args) -> threading.Thread:
    """Run fn on a daemon thread and return the started thread.

    An exception escaping fn is logged, not raised.
    """
    def wrapper():
        try:
            fn(*args)
        except Exception as e:
            logger.warning(f'Async task {fn.__name__} failed: {e}', exc_info=True)

    thread = threading.Thread(target=wrapper, daemon=True)
    thread.start()
    return thread


def sha256_hex(data: bytes) -> str:
    """Content hash used for deduplication and storage naming."""
    return hashlib.sha256(data).hexdigest()


def format_time(seconds: float) -> str:
    """Format seconds as m:ss."""
    if seconds is None or math.isnan(seconds) or math.isinf(seconds):
        return '0:00'
    total = max(0, int(seconds))
    return f'{total // 60}:{total % 60:02d}'


def format_bytes(size: int) -> str:
    """Human-readable file size (1000-based, like a file browser)."""
    if size < 1000:
        return f'{size} bytes'
    value = float(size)
    for unit in ('KB', 'MB', 'GB', 'TB'):
        value /= 1000
        if value < 1000 or unit == 'TB':
            return f'{value:.1f} {unit}'
    return f'{size} bytes'
