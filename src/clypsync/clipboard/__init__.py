from clypsync.clipboard.base import Clipboard
from clypsync.clipboard.factory import get_clipboard, get_clipboard_class

__all__ = [
    'Clipboard',
    'get_clipboard',
    'get_clipboard_class',
]
