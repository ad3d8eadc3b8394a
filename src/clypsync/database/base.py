from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Sequence

from clypsync.models import BlobInfo, Paste, PasteKind

InsertCallback = Callable[[Paste], None]
DeleteCallback = Callable[[], None]


class Subscription(ABC):

    @abstractmethod
    async def close(self) -> None:
        """Stop delivering events. Safe to call more than once."""


class PasteStore(ABC):
    """Persistent, room-scoped collection of pastes plus its change feed."""

    @abstractmethod
    async def list(self, room_code: str) -> List[Paste]:
        """All pastes of the room, newest ``created_at`` first."""

    @abstractmethod
    async def get(self, paste_id: str) -> Optional[Paste]:
        pass

    @abstractmethod
    async def insert(self, room_code: str, content: str, kind: PasteKind) -> Paste:
        pass

    @abstractmethod
    async def delete_by_id(self, paste_id: str) -> None:
        pass

    @abstractmethod
    async def delete_by_room(self, room_code: str) -> None:
        pass

    @abstractmethod
    async def subscribe(
        self,
        room_code: str,
        on_insert: InsertCallback,
        on_delete: DeleteCallback,
    ) -> Subscription:
        pass

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy"}

    async def close(self) -> None:
        pass


class ImageBucket(ABC):
    """Blob store with room-namespaced paths and public URLs."""

    @abstractmethod
    async def put(self, path: str, data: bytes, content_type: Optional[str] = None) -> None:
        pass

    @abstractmethod
    def public_url(self, path: str) -> str:
        pass

    @abstractmethod
    async def list(self, prefix: str) -> List[BlobInfo]:
        """Objects directly under ``prefix``; names are relative to it."""

    @abstractmethod
    async def remove(self, paths: Sequence[str]) -> None:
        pass

    @abstractmethod
    async def exists(self, path: str) -> bool:
        pass
