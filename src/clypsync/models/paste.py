from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping

from pydantic import BaseModel, ConfigDict


class PasteKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"


class Paste(BaseModel):
    """Immutable paste record as stored for a room.

    ``content`` holds the literal text for text pastes and the public blob
    URL for image pastes.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    room_code: str
    content: str
    kind: PasteKind = PasteKind.TEXT
    created_at: datetime

    @property
    def is_image(self) -> bool:
        return self.kind is PasteKind.IMAGE

    def to_mapping(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "room_code": self.room_code,
            "content": self.content,
            "kind": self.kind.value,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Paste":
        return cls.model_validate(dict(data))
