"""
Command Reader - Reads shell commands from stdin on a background thread.
"""
import sys
import logging
import threading
from typing import Callable, Optional, TextIO

logger = logging.getLogger(__name__)


class CommandReader:
    """Feeds each input line to a callback; reports end of input once."""

    def __init__(self, on_command: Callable[[str], None], on_eof: Callable[[], None],
                 stream: Optional[TextIO] = None):
        """
        Args:
            on_command: Called with each stripped, non-empty line
            on_eof: Called when the input stream closes
            stream: Input stream (defaults to stdin)
        """
        self.on_command = on_command
        self.on_eof = on_eof
        self.stream = stream
        self.thread: Optional[threading.Thread] = None
        self.running = False

    def start(self):
        self.running = True
        self.thread = threading.Thread(target=self._run, name='loft-commands', daemon=True)
        self.thread.start()
        logger.debug('Command reader started')

    def stop(self):
        self.running = False

    def _run(self):
        stream = self.stream or sys.stdin
        try:
            for line in stream:
                if not self.running:
                    return
                line = line.strip()
                if line:
                    self.on_command(line)
        except (IOError, OSError, ValueError) as e:
            logger.warning(f'Input closed with error: {e}')
        if self.running:
            self.on_eof()
