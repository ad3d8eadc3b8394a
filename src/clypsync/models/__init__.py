from clypsync.models.image import BlobInfo, ImageFile, ValidationResult
from clypsync.models.paste import Paste, PasteKind
from clypsync.models.room import is_valid_pin, room_channel, validate_pin

__all__ = [
    'BlobInfo',
    'ImageFile',
    'Paste',
    'PasteKind',
    'ValidationResult',
    'is_valid_pin',
    'room_channel',
    'validate_pin',
]
