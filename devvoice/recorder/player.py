"""Playback through the platform's default media application."""

import sys
import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from ..exceptions import PlaybackError

logger = logging.getLogger(__name__)


def open_command(path: str, platform: Optional[str] = None) -> List[str]:
    """argv that opens a file with the default application."""
    platform = platform or sys.platform
    if platform == "win32":
        return ["cmd", "/c", "start", "", path]
    if platform == "darwin":
        return ["open", path]
    return ["xdg-open", path]


class AudioPlayer:
    """Keeps at most one playback process; a new request replaces the old one."""

    def __init__(self, platform: Optional[str] = None):
        self.platform = platform
        self.process: Optional[subprocess.Popen] = None

    @property
    def is_playing(self) -> bool:
        return self.process is not None and self.process.poll() is None

    def play(self, audio_path: str) -> None:
        """Open an audio file, stopping any playback still running.

        Raises:
            PlaybackError: The file is missing or the player cannot start
        """
        if not Path(audio_path).exists():
            raise PlaybackError(f"Audio file not found: {audio_path}")

        self.stop()
        command = open_command(str(audio_path), self.platform)
        try:
            self.process = subprocess.Popen(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            self.process = None
            raise PlaybackError(f"Error playing audio: {e}") from e
        logger.info(f"Playing {audio_path}")

    def stop(self) -> None:
        if self.is_playing:
            try:
                self.process.terminate()
                logger.debug("Stopped previous playback")
            except OSError as e:
                logger.debug(f"Playback already gone: {e}")
        self.process = None
