import logging
from typing import List, Optional

from clypsync.config import MAX_TEXT_LENGTH
from clypsync.database.base import DeleteCallback, InsertCallback, PasteStore, Subscription
from clypsync.exceptions import ValidationError
from clypsync.models import Paste, PasteKind
from clypsync.utils.aio import with_timeout

logger = logging.getLogger(__name__)


def prepare_text(content: str, max_length: int = MAX_TEXT_LENGTH) -> str:
    text = content.strip()
    if not text:
        raise ValidationError("Paste is empty", code="empty")
    if len(text) > max_length:
        raise ValidationError(
            f"Paste is too long ({len(text)} characters, limit is {max_length})",
            code="too_long",
        )
    return text


class PasteService:
    """Room-scoped access to the paste store.

    Store failures surface as ``StoreError``; calls are bounded by
    ``timeout`` when one is configured.
    """

    def __init__(self, store: PasteStore, timeout: Optional[float] = None,
                 max_text_length: int = MAX_TEXT_LENGTH):
        self.store = store
        self.timeout = timeout
        self.max_text_length = max_text_length

    async def list_pastes(self, room_code: str) -> List[Paste]:
        return await with_timeout(self.store.list(room_code), self.timeout, "Loading pastes")

    async def get_paste(self, paste_id: str) -> Optional[Paste]:
        return await with_timeout(self.store.get(paste_id), self.timeout, "Loading paste")

    async def create_text(self, room_code: str, content: str) -> Paste:
        text = prepare_text(content, self.max_text_length)
        return await self._insert(room_code, text, PasteKind.TEXT)

    async def create_image(self, room_code: str, url: str) -> Paste:
        return await self._insert(room_code, url, PasteKind.IMAGE)

    async def _insert(self, room_code: str, content: str, kind: PasteKind) -> Paste:
        paste = await with_timeout(
            self.store.insert(room_code, content, kind), self.timeout, "Saving paste")
        logger.info(f"Created {kind.value} paste {paste.id} in room {room_code}")
        return paste

    async def delete_paste(self, paste_id: str) -> None:
        await with_timeout(self.store.delete_by_id(paste_id), self.timeout, "Deleting paste")
        logger.info(f"Deleted paste {paste_id}")

    async def delete_room(self, room_code: str) -> None:
        await with_timeout(self.store.delete_by_room(room_code), self.timeout, "Clearing room")
        logger.info(f"Cleared room {room_code}")

    async def subscribe(self, room_code: str, on_insert: InsertCallback,
                        on_delete: DeleteCallback) -> Subscription:
        return await with_timeout(
            self.store.subscribe(room_code, on_insert, on_delete),
            self.timeout, "Subscribing to room")
