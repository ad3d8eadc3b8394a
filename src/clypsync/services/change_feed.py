import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Union

from clypsync.database.base import Subscription
from clypsync.models import Paste
from clypsync.services.paste_service import PasteService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PasteInserted:
    paste: Paste


@dataclass(frozen=True)
class PastesDeleted:
    """One or many pastes of the room were deleted; which ones is unknown."""


ChangeEvent = Union[PasteInserted, PastesDeleted]


class ChangeFeedSubscriber:
    """Turns the store's insert/delete callbacks for one room into a queue of events."""

    def __init__(self, pastes: PasteService, room_code: str):
        self.pastes = pastes
        self.room_code = room_code
        self._queue: "asyncio.Queue[ChangeEvent]" = asyncio.Queue()
        self._subscription: Optional[Subscription] = None

    @property
    def active(self) -> bool:
        return self._subscription is not None

    async def start(self) -> None:
        if self._subscription is not None:
            return
        self._subscription = await self.pastes.subscribe(
            self.room_code, self._on_insert, self._on_delete)
        logger.info(f"Listening for changes in room {self.room_code}")

    def _on_insert(self, paste: Paste) -> None:
        if paste.room_code != self.room_code:
            return
        self._queue.put_nowait(PasteInserted(paste))

    def _on_delete(self) -> None:
        self._queue.put_nowait(PastesDeleted())

    async def next_event(self) -> ChangeEvent:
        return await self._queue.get()

    def __aiter__(self) -> "ChangeFeedSubscriber":
        return self

    async def __anext__(self) -> ChangeEvent:
        return await self.next_event()

    async def close(self) -> None:
        subscription, self._subscription = self._subscription, None
        if subscription is None:
            return
        await subscription.close()
        logger.info(f"Stopped listening to room {self.room_code}")
