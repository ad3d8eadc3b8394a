import os
import shutil
import subprocess
from typing import List, Optional

from clypsync.clipboard.base import Clipboard


class LinuxClipboard(Clipboard):
    """Wayland (wl-clipboard) first, X11 (xclip) as fallback."""

    timeout = 1.5

    def _wayland(self) -> bool:
        return bool(os.environ.get("WAYLAND_DISPLAY")) and shutil.which("wl-copy") is not None

    def _read_text(self) -> Optional[str]:
        if self._wayland() and shutil.which("wl-paste"):
            output = self._run_command(["wl-paste", "--no-newline"])
        elif shutil.which("xclip"):
            output = self._run_command(["xclip", "-selection", "clipboard", "-o"])
        else:
            return None

        if output is None:
            return None
        return output.decode("utf-8", errors="ignore")

    def _write_text(self, text: str) -> bool:
        if self._wayland():
            command = ["wl-copy"]
        elif shutil.which("xclip"):
            command = ["xclip", "-selection", "clipboard"]
        else:
            return False

        return self._run_command(command, payload=text.encode("utf-8")) is not None

    def _run_command(self, command: List[str], payload: Optional[bytes] = None) -> Optional[bytes]:
        try:
            result = subprocess.run(
                command,
                input=payload,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=True,
                timeout=self.timeout,
            )
            return result.stdout
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, FileNotFoundError):
            return None
