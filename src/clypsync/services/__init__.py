"""Service layer for ClypSync."""

from clypsync.services.change_feed import ChangeFeedSubscriber, PasteInserted, PastesDeleted
from clypsync.services.image_service import ImageStorageCoordinator
from clypsync.services.paste_service import PasteService
from clypsync.services.room_session import RoomSession

__all__ = [
    "ChangeFeedSubscriber",
    "ImageStorageCoordinator",
    "PasteInserted",
    "PasteService",
    "PastesDeleted",
    "RoomSession",
]
