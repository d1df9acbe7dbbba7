"""
Loft Configuration - All constants and settings.
"""
import os
import sys
from pathlib import Path

# ============================================
# PATHS
# ============================================

# Private data folder (catalog document & content store)
DATA_DIR = Path(os.environ.get('LOFT_DATA_DIR', Path.home() / '.loft')).expanduser()
CATALOG_PATH = DATA_DIR / 'library.json'
MUSIC_DIR = DATA_DIR / 'music'

# Logging directory
LOG_DIR = DATA_DIR / 'logs'
LOG_FILE = LOG_DIR / 'loft.log'
LOG_MAX_BYTES = 5 * 1024 * 1024  # 5MB per file
LOG_BACKUP_COUNT = 5

# ============================================
# COMMAND LINE FLAGS
# ============================================

MOCK_MODE = '--mock' in sys.argv or '-m' in sys.argv

# ============================================
# LIBRARY
# ============================================

SUPPORTED_EXTENSIONS = ('mp3', 'm4a', 'aac', 'wav', 'aiff')
UNKNOWN_ARTIST = 'Unknown Artist'
COVER_ART_MAX_SIZE = 600  # Custom artwork is downsized to fit this box
COVER_ART_QUALITY = 90

# ============================================
# PLAYBACK
# ============================================

RESTART_THRESHOLD = 3.0  # "Previous" restarts the track after this many seconds
POLL_INTERVAL = 0.5      # Backend status polling (seconds)
MIXER_FREQUENCY = 44100
MIXER_BUFFER = 2048
