import time
from typing import Optional

import win32clipboard as wc

from clypsync.clipboard.base import Clipboard


class WindowsClipboard(Clipboard):

    retries = 5

    def _open(self) -> bool:
        # Another process may hold the clipboard for a moment.
        for _ in range(self.retries):
            try:
                wc.OpenClipboard()
                return True
            except Exception:
                time.sleep(0.05)
        return False

    def _read_text(self) -> Optional[str]:
        if not self._open():
            return None
        try:
            if not wc.IsClipboardFormatAvailable(wc.CF_UNICODETEXT):
                return None
            return wc.GetClipboardData(wc.CF_UNICODETEXT)
        finally:
            wc.CloseClipboard()

    def _write_text(self, text: str) -> bool:
        if not self._open():
            return False
        try:
            wc.EmptyClipboard()
            wc.SetClipboardData(wc.CF_UNICODETEXT, text)
            return True
        finally:
            wc.CloseClipboard()
