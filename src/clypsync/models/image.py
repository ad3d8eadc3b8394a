import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union


@dataclass(frozen=True)
class ImageFile:
    """An image picked by the user, not yet uploaded."""
    name: str
    data: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        suffix = Path(self.name).suffix.lstrip(".")
        return suffix.lower() or "png"

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "ImageFile":
        path = Path(path)
        mime, _ = mimetypes.guess_type(path.name)
        return cls(name=path.name, data=path.read_bytes(), content_type=mime)


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    reason: Optional[str] = None
    code: Optional[str] = None
    content_type: Optional[str] = None


@dataclass(frozen=True)
class BlobInfo:
    name: str
    size: int = 0
