import asyncio
import logging
from pathlib import Path, PurePosixPath
from typing import List, Optional, Sequence
from urllib.parse import quote

from clypsync.database.base import ImageBucket
from clypsync.exceptions import StoreError
from clypsync.models import BlobInfo

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "storage/public"


class LocalImageBucket(ImageBucket):
    """Blob bucket backed by a local directory.

    Objects live at ``{base_dir}/{bucket_name}/{path}`` and are published as
    ``{public_url}/storage/public/{bucket_name}/{path}``, which the HTTP app
    in ``clypsync.api`` serves.
    """

    def __init__(self, base_dir: Optional[Path] = None, bucket_name: str = "images",
                 public_url: str = "http://localhost:3001"):
        if base_dir is None:
            base_dir = Path.home() / ".clypsync" / "bucket"
        self.bucket_name = bucket_name
        self.root = Path(base_dir) / bucket_name
        self.public_base = public_url.rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)

    def resolve(self, path: str) -> Path:
        parts = PurePosixPath(path).parts
        if not parts or any(part in ("..", "/") for part in parts):
            raise StoreError(f"Invalid object path: {path!r}")
        return self.root.joinpath(*parts)

    async def put(self, path: str, data: bytes, content_type: Optional[str] = None) -> None:
        target = self.resolve(path)

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            raise StoreError(f"Failed to store {path}: {e}") from e
        logger.debug(f"Stored {len(data)} bytes at {target}")

    def public_url(self, path: str) -> str:
        return f"{self.public_base}/{PUBLIC_PREFIX}/{self.bucket_name}/{quote(path)}"

    async def list(self, prefix: str) -> List[BlobInfo]:
        folder = self.resolve(prefix)

        def _scan() -> List[BlobInfo]:
            if not folder.is_dir():
                return []
            return [
                BlobInfo(name=entry.name, size=entry.stat().st_size)
                for entry in sorted(folder.iterdir())
                if entry.is_file()
            ]

        try:
            return await asyncio.to_thread(_scan)
        except OSError as e:
            raise StoreError(f"Failed to list {prefix}: {e}") from e

    async def remove(self, paths: Sequence[str]) -> None:
        targets = [self.resolve(path) for path in paths]

        def _unlink() -> None:
            for target in targets:
                target.unlink(missing_ok=True)

        try:
            await asyncio.to_thread(_unlink)
        except OSError as e:
            raise StoreError(f"Failed to remove objects: {e}") from e
        logger.debug(f"Removed {len(targets)} object(s)")

    async def exists(self, path: str) -> bool:
        try:
            target = self.resolve(path)
        except StoreError:
            return False
        return await asyncio.to_thread(target.is_file)
