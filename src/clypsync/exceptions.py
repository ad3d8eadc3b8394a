"""Error taxonomy shared by the store, the image coordinator and the room session."""

from typing import Optional


class ClypSyncError(Exception):
    """Base class; the message is short enough to show to the user as is."""


class StoreError(ClypSyncError):
    """A paste store or image bucket call failed (or timed out)."""


class LoadError(ClypSyncError):
    pass


class AddError(ClypSyncError):

    UPLOAD = "upload"
    STORE = "store"

    def __init__(self, message: str, phase: str) -> None:
        super().__init__(message)
        self.phase = phase


class DeleteError(ClypSyncError):
    pass


class ClearError(ClypSyncError):
    pass


class ValidationError(ClypSyncError):
    """Input rejected before any network call.

    ``code`` is machine readable (``not_image``, ``too_large``, ``empty``,
    ``too_long``); ``reason`` is the text shown to the user.
    """

    def __init__(self, reason: str, code: Optional[str] = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.code = code


class InvalidReferenceError(ClypSyncError):
    """A stored image URL does not have the shape of an issued public URL."""


class DisplayError(ClypSyncError):
    """An image URL cannot be resolved to a stored blob at render time."""


class InvalidPinError(ClypSyncError, ValueError):
    pass
