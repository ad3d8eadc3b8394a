from typing import Optional

from AppKit import NSPasteboard, NSPasteboardTypeString

from clypsync.clipboard.base import Clipboard


class MacOSClipboard(Clipboard):

    def _read_text(self) -> Optional[str]:
        pasteboard = NSPasteboard.generalPasteboard()
        if NSPasteboardTypeString not in pasteboard.types():
            return None
        text = pasteboard.stringForType_(NSPasteboardTypeString)
        return str(text) if text else None

    def _write_text(self, text: str) -> bool:
        pasteboard = NSPasteboard.generalPasteboard()
        pasteboard.clearContents()
        return bool(pasteboard.setString_forType_(text, NSPasteboardTypeString))
