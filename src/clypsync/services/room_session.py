import asyncio
import logging
from typing import Callable, Dict, List, Optional, Union

from clypsync.clipboard.base import Clipboard
from clypsync.exceptions import (
    AddError,
    ClearError,
    ClypSyncError,
    DeleteError,
    InvalidReferenceError,
    LoadError,
    StoreError,
)
from clypsync.models import ImageFile, Paste, PasteKind, validate_pin
from clypsync.models.room import DEFAULT_PIN_LENGTH
from clypsync.services.change_feed import ChangeFeedSubscriber, PasteInserted
from clypsync.services.image_service import ImageStorageCoordinator
from clypsync.services.paste_service import PasteService

logger = logging.getLogger(__name__)

ChangeListener = Callable[[List[Paste]], None]


class RoomSession:
    """Reconciled, newest-first view of one room's pastes.

    The session merges three sources into ``pastes``: the ordered fetch done
    by ``open``/``refresh``, pastes returned by this session's own ``add``,
    and the room's change feed. Inserts are merged by id; a delete event
    triggers a full re-fetch because a single delete and a clear look the
    same on the feed.

    Use as ``async with RoomSession(...) as session:`` so ``close`` runs on
    every exit path.
    """

    def __init__(
        self,
        room_code: str,
        pastes: PasteService,
        images: ImageStorageCoordinator,
        clipboard: Optional[Clipboard] = None,
        on_change: Optional[ChangeListener] = None,
        auto_copy: bool = True,
        pin_length: int = DEFAULT_PIN_LENGTH,
    ) -> None:
        self.room_code = validate_pin(room_code, pin_length)
        self._service = pastes
        self._images = images
        self._clipboard = clipboard
        self._on_change = on_change
        self._auto_copy = auto_copy
        self._auto_copy_done = False
        self._pastes: List[Paste] = []
        # Locally deleted id -> number of fetches started before the delete.
        self._deleted_ids: Dict[str, int] = {}
        self._feed: Optional[ChangeFeedSubscriber] = None
        self._reconcile_task: Optional[asyncio.Task] = None
        self._fetches_started = 0
        self._fetch_applied = 0

    @property
    def pastes(self) -> List[Paste]:
        return list(self._pastes)

    @property
    def is_open(self) -> bool:
        return self._feed is not None

    def get(self, paste_id: str) -> Optional[Paste]:
        for paste in self._pastes:
            if paste.id == paste_id:
                return paste
        return None

    async def open(self) -> List[Paste]:
        if self.is_open:
            return self.pastes

        feed = ChangeFeedSubscriber(self._service, self.room_code)
        opened = False
        try:
            # Subscribed before the fetch; inserts racing it are queued and merged by id.
            await feed.start()
            self._feed = feed
            await self._fetch()
            opened = True
        except StoreError as e:
            logger.error(f"Failed to load room {self.room_code}: {e}")
            raise LoadError("Failed to load pastes") from e
        finally:
            if not opened:
                self._feed = None
                await feed.close()

        await self._auto_copy_newest()
        self._reconcile_task = asyncio.create_task(self._reconcile())
        logger.info(f"Opened room {self.room_code} with {len(self._pastes)} paste(s)")
        return self.pastes

    async def refresh(self) -> List[Paste]:
        """Discard the local list and re-run the ordered fetch."""
        self._require_open()
        try:
            await self._fetch()
        except StoreError as e:
            raise LoadError("Failed to load pastes") from e
        return self.pastes

    async def add(self, content: Union[str, ImageFile], kind: PasteKind = PasteKind.TEXT) -> Paste:
        """Create a paste; it becomes visible once the store confirms it."""
        self._require_open()
        kind = PasteKind(kind)

        if kind is PasteKind.TEXT:
            if not isinstance(content, str):
                raise TypeError("text pastes take a str")
            try:
                paste = await self._service.create_text(self.room_code, content)
            except StoreError as e:
                logger.error(f"Failed to add paste: {e}")
                raise AddError("Failed to add paste", phase=AddError.STORE) from e
        else:
            if not isinstance(content, ImageFile):
                raise TypeError("image pastes take an ImageFile")
            try:
                url = await self._images.upload(content, self.room_code)
            except StoreError as e:
                logger.error(f"Failed to upload image: {e}")
                raise AddError("Failed to upload image", phase=AddError.UPLOAD) from e
            try:
                paste = await self._service.create_image(self.room_code, url)
            except StoreError as e:
                logger.error(f"Failed to add image paste: {e}")
                await self._release_blob(url)
                raise AddError("Failed to add image paste", phase=AddError.STORE) from e

        self._merge(paste)
        return paste

    async def delete_one(self, paste_id: str) -> None:
        self._require_open()
        paste = self.get(paste_id)
        if paste is not None and paste.is_image:
            await self._release_blob(paste.content)

        try:
            await self._service.delete_paste(paste_id)
        except StoreError as e:
            logger.error(f"Failed to delete paste {paste_id}: {e}")
            raise DeleteError("Failed to delete paste") from e

        # Deletes are applied locally right away, unlike adds which wait for
        # the store; this asymmetry is intentional.
        self._deleted_ids[paste_id] = self._fetches_started
        self._replace([p for p in self._pastes if p.id != paste_id])

    async def clear_all(self) -> None:
        self._require_open()
        if any(paste.is_image for paste in self._pastes):
            try:
                await self._images.delete_all_for_room(self.room_code)
            except StoreError as e:
                logger.warning(f"Failed to delete images for room {self.room_code}: {e}")

        try:
            await self._service.delete_room(self.room_code)
        except StoreError as e:
            logger.error(f"Failed to clear room {self.room_code}: {e}")
            raise ClearError("Failed to clear pastes") from e

        for paste in self._pastes:
            self._deleted_ids[paste.id] = self._fetches_started
        self._replace([])

    async def copy(self, paste_id: str) -> bool:
        paste = self.get(paste_id)
        if paste is None:
            raise ClypSyncError(f"No paste with id {paste_id}")
        return await self._write_clipboard(paste.content)

    async def close(self) -> None:
        task, self._reconcile_task = self._reconcile_task, None
        try:
            if task is not None and task is not asyncio.current_task():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
                except Exception:
                    logger.exception(f"Reconcile loop for room {self.room_code} failed")
        finally:
            feed, self._feed = self._feed, None
            if feed is not None:
                await feed.close()
                logger.info(f"Closed room {self.room_code}")

    async def __aenter__(self) -> "RoomSession":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _require_open(self) -> None:
        if not self.is_open:
            raise ClypSyncError(f"Room {self.room_code} is not open")

    async def _fetch(self) -> None:
        self._fetches_started += 1
        sequence = self._fetches_started
        fetched = await self._service.list_pastes(self.room_code)

        # An older fetch finishing after a newer one must not win.
        if sequence < self._fetch_applied:
            return
        self._fetch_applied = sequence

        present = {p.id for p in fetched}
        # A fetch started after a delete no longer needs that id filtered.
        self._deleted_ids = {
            paste_id: started for paste_id, started in self._deleted_ids.items()
            if started >= sequence or paste_id in present
        }
        self._replace([p for p in fetched if p.id not in self._deleted_ids])

    async def _reconcile(self) -> None:
        async for event in self._feed:
            if isinstance(event, PasteInserted):
                self._merge(event.paste)
                continue
            try:
                await self._fetch()
            except StoreError as e:
                logger.error(f"Failed to reload room {self.room_code} after a delete: {e}")
            except Exception:
                logger.exception(f"Unexpected error reloading room {self.room_code}")

    def _merge(self, paste: Paste) -> None:
        if paste.id in self._deleted_ids or self.get(paste.id) is not None:
            return

        index = 0
        while index < len(self._pastes) and self._pastes[index].created_at >= paste.created_at:
            index += 1
        self._replace(self._pastes[:index] + [paste] + self._pastes[index:])

    def _replace(self, pastes: List[Paste]) -> None:
        self._pastes = pastes
        if self._on_change is None:
            return
        try:
            self._on_change(self.pastes)
        except Exception:
            logger.exception("Change listener failed")

    async def _release_blob(self, url: str) -> None:
        try:
            if not await self._images.delete_by_url(url):
                logger.warning(f"Image left in storage: {url}")
        except InvalidReferenceError as e:
            logger.warning(f"Skipping image delete: {e}")

    async def _auto_copy_newest(self) -> None:
        if not self._auto_copy or self._auto_copy_done:
            return
        self._auto_copy_done = True

        newest = next((p for p in self._pastes if p.kind is PasteKind.TEXT), None)
        if newest is not None:
            await self._write_clipboard(newest.content)

    async def _write_clipboard(self, text: str) -> bool:
        if self._clipboard is None:
            return False
        copied = await asyncio.to_thread(self._clipboard.write_text, text)
        if not copied:
            logger.warning("Failed to copy to clipboard")
        return copied
