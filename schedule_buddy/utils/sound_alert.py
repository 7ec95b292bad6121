"""Alert sound playback for Schedule Buddy application.

Plays the platform's stock notification sound without blocking the
event loop: ``afplay`` on macOS, ``paplay`` on Linux and ``winsound`` on
Windows.
"""

import logging
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Optional

MACOS_SOUND = "/System/Library/Sounds/Glass.aiff"
LINUX_SOUND = "/usr/share/sounds/freedesktop/stereo/message.oga"
WINDOWS_SOUND = r"C:\Windows\Media\notify.wav"


class PlatformSoundAlert:
    """Plays an alert sound with the platform's native player."""

    def __init__(self, sound_file: Optional[str] = None, enabled: bool = True, platform: Optional[str] = None):
        self.logger = logging.getLogger(__name__)
        self.platform = platform or sys.platform
        self.sound_file = sound_file or self.default_sound_file()
        self.enabled = enabled

    def default_sound_file(self) -> str:
        if self.platform == "darwin":
            return MACOS_SOUND
        if self.platform == "win32":
            return WINDOWS_SOUND
        return LINUX_SOUND

    def player_command(self) -> Optional[list[str]]:
        """Command line that plays the sound, or None when no player exists."""
        if self.platform == "darwin":
            player = "afplay"
        elif self.platform.startswith("linux"):
            player = "paplay"
        else:
            return None
        executable = shutil.which(player)
        if executable is None:
            return None
        return [executable, self.sound_file]

    def play(self) -> None:
        if not self.enabled:
            return

        if self.platform == "win32":
            self._play_windows()
            return

        command = self.player_command()
        if command is None:
            self.logger.warning(f"No sound player available on {self.platform}")
            return
        if not Path(self.sound_file).exists():
            self.logger.warning(f"Sound file not found: {self.sound_file}")
            return

        try:
            subprocess.Popen(command, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)  # noqa: S603
        except OSError:
            self.logger.exception(f"Failed to start sound player: {command[0]}")

    def _play_windows(self) -> None:
        import winsound

        try:
            winsound.PlaySound(self.sound_file, winsound.SND_FILENAME | winsound.SND_ASYNC)
        except RuntimeError:
            winsound.MessageBeep()
