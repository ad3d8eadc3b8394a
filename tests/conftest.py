"""
Shared test fixtures.

``SharedBackend`` stands in for the remote paste store: every
``MemoryPasteStore`` built on the same backend sees the same rooms and
receives the same change events, so several sessions can play different
devices in one room.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence

import pytest
from ulid import ULID

from clypsync.database.base import PasteStore, Subscription
from clypsync.database.file_bucket import LocalImageBucket
from clypsync.exceptions import StoreError
from clypsync.models import Paste, PasteKind
from clypsync.services import ImageStorageCoordinator, PasteService, RoomSession

PNG_HEADER = b"\x89PNG\r\n\x1a\n"


class MemorySubscription(Subscription):

    def __init__(self, backend: "SharedBackend", room_code: str, on_insert, on_delete):
        self.backend = backend
        self.room_code = room_code
        self.on_insert = on_insert
        self.on_delete = on_delete
        self.closed = False
        self.close_calls = 0

    async def close(self) -> None:
        self.close_calls += 1
        if self.closed:
            return
        self.closed = True
        self.backend.subscriptions.remove(self)


class SharedBackend:

    def __init__(self):
        self.records: Dict[str, Paste] = {}
        self.subscriptions: List[MemorySubscription] = []
        self.clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def next_time(self) -> datetime:
        self.clock += timedelta(seconds=1)
        return self.clock

    def seed(self, room_code: str, content: str, kind: PasteKind = PasteKind.TEXT) -> Paste:
        paste = Paste(id=str(ULID()), room_code=room_code, content=content,
                      kind=kind, created_at=self.next_time())
        self.records[paste.id] = paste
        return paste

    def publish_insert(self, paste: Paste) -> None:
        for sub in list(self.subscriptions):
            if sub.room_code == paste.room_code:
                sub.on_insert(paste)

    def publish_delete(self, room_code: str) -> None:
        for sub in list(self.subscriptions):
            if sub.room_code == room_code:
                sub.on_delete()


class MemoryPasteStore(PasteStore):

    def __init__(self, backend: SharedBackend):
        self.backend = backend
        self.fail_on: set = set()
        self.crash_on: Dict[str, Exception] = {}
        self.calls: List[str] = []
        self.list_gate: Optional[asyncio.Event] = None

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail_on:
            raise StoreError(f"{operation} failed")
        if operation in self.crash_on:
            raise self.crash_on[operation]

    async def list(self, room_code: str) -> List[Paste]:
        self._check("list")
        pastes = [p for p in self.backend.records.values() if p.room_code == room_code]
        # The snapshot is taken before the gate, like a reply delayed in transit.
        if self.list_gate is not None:
            await self.list_gate.wait()
        return sorted(pastes, key=lambda p: p.created_at, reverse=True)

    async def get(self, paste_id: str) -> Optional[Paste]:
        self._check("get")
        return self.backend.records.get(paste_id)

    async def insert(self, room_code: str, content: str, kind: PasteKind) -> Paste:
        self._check("insert")
        paste = self.backend.seed(room_code, content, kind)
        self.backend.publish_insert(paste)
        return paste

    async def delete_by_id(self, paste_id: str) -> None:
        self._check("delete_by_id")
        paste = self.backend.records.pop(paste_id, None)
        if paste is not None:
            self.backend.publish_delete(paste.room_code)

    async def delete_by_room(self, room_code: str) -> None:
        self._check("delete_by_room")
        doomed = [pid for pid, p in self.backend.records.items() if p.room_code == room_code]
        for paste_id in doomed:
            del self.backend.records[paste_id]
        if doomed:
            self.backend.publish_delete(room_code)

    async def subscribe(self, room_code: str, on_insert, on_delete) -> Subscription:
        self._check("subscribe")
        subscription = MemorySubscription(self.backend, room_code, on_insert, on_delete)
        self.backend.subscriptions.append(subscription)
        return subscription


class FlakyBucket(LocalImageBucket):
    """Local bucket whose operations can be made to fail."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_on: set = set()
        self.calls: List[str] = []

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail_on:
            raise StoreError(f"{operation} failed")

    async def put(self, path: str, data: bytes, content_type: Optional[str] = None) -> None:
        self._check("put")
        await super().put(path, data, content_type)

    async def list(self, prefix: str):
        self._check("list")
        return await super().list(prefix)

    async def remove(self, paths: Sequence[str]) -> None:
        self._check("remove")
        await super().remove(paths)


class FakeClipboard:

    def __init__(self, text: Optional[str] = None):
        self.text = text
        self.writes: List[str] = []

    def read_text(self) -> Optional[str]:
        return self.text

    def write_text(self, text: str) -> bool:
        self.writes.append(text)
        self.text = text
        return True


async def settle() -> None:
    """Let queued change events reach the reconcile loop."""
    for _ in range(5):
        await asyncio.sleep(0)


async def eventually(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def backend():
    return SharedBackend()


@pytest.fixture
def store(backend):
    return MemoryPasteStore(backend)


@pytest.fixture
def bucket(tmp_path):
    return FlakyBucket(base_dir=tmp_path / "bucket", public_url="http://files.test")


@pytest.fixture
def images(bucket):
    return ImageStorageCoordinator(bucket)


@pytest.fixture
def clipboard():
    return FakeClipboard()


@pytest.fixture
def make_session(backend, images, clipboard):
    """Build sessions for the same room, one per simulated device."""

    def _make(room_code: str = "4242", store: Optional[MemoryPasteStore] = None,
              **kwargs) -> RoomSession:
        kwargs.setdefault("clipboard", clipboard)
        return RoomSession(room_code, PasteService(store or MemoryPasteStore(backend)),
                           images, **kwargs)

    return _make
