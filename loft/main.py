#!/usr/bin/env python3
"""
Loft - Offline audio library and player

Usage:
    python -m loft           # Play through the audio device
    python -m loft --mock    # Silent backend (no audio device needed)
"""
import os
import sys
import logging
import platform
from logging.handlers import RotatingFileHandler

from .config import (
    DATA_DIR, CATALOG_PATH, MUSIC_DIR, MOCK_MODE,
    LOG_DIR, LOG_FILE, LOG_MAX_BYTES, LOG_BACKUP_COUNT,
)
from .app import Loft


def setup_logging():
    """Configure logging with console and rotating file handler."""
    level_name = os.environ.get('LOFT_LOG_LEVEL', 'WARNING').upper()
    level = getattr(logging, level_name, logging.WARNING)

    console_formatter = logging.Formatter(
        '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%H:%M:%S'
    )
    file_formatter = logging.Formatter(
        '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Console stays quiet by default; the shell prints its own output
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(console_formatter)
    console.setLevel(level)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.addHandler(console)

    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            LOG_FILE,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding='utf-8'
        )
        file_handler.setFormatter(file_formatter)
        file_handler.setLevel(logging.DEBUG)  # Always log DEBUG to file
        root.addHandler(file_handler)
        root.info(f'Logging to: {LOG_FILE}')
    except (OSError, PermissionError) as e:
        root.warning(f'Could not create log file: {e}')

    # Quiet down noisy libraries
    logging.getLogger('PIL').setLevel(logging.WARNING)


def log_system_info(logger: logging.Logger):
    """Log system information at startup."""
    logger.info('=' * 50)
    logger.info('LOFT STARTUP')
    logger.info('=' * 50)
    logger.info(f'Python: {sys.version.split()[0]}')
    logger.info(f'Platform: {platform.system()} {platform.release()}')
    logger.info(f'Data: {DATA_DIR}')
    logger.info(f'Catalog: {CATALOG_PATH}')
    logger.info(f'Music: {MUSIC_DIR}')
    logger.info('=' * 50)


def main():
    """Entry point for the Loft shell."""
    setup_logging()

    logger = logging.getLogger(__name__)
    log_system_info(logger)
    if MOCK_MODE:
        logger.info('Mode: MOCK (silent backend)')

    app = Loft(mock=MOCK_MODE)
    app.start()


if __name__ == '__main__':
    main()
