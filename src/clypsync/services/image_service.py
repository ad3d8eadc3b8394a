import io
import logging
import secrets
import string
import time
from typing import Optional
from urllib.parse import unquote

from PIL import Image, UnidentifiedImageError

from clypsync.config import MAX_IMAGE_BYTES
from clypsync.database.base import ImageBucket
from clypsync.exceptions import (
    DisplayError,
    InvalidReferenceError,
    StoreError,
    ValidationError,
)
from clypsync.models import ImageFile, ValidationResult
from clypsync.utils.aio import with_timeout

logger = logging.getLogger(__name__)

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def _random_suffix(length: int = 8) -> str:
    return "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(length))


def _format_size(size: int) -> str:
    mib = size / (1024 * 1024)
    return f"{mib:g} MiB" if mib >= 1 else f"{size // 1024} KiB"


class ImageStorageCoordinator:
    """Owns the lifecycle of image blobs referenced by pastes.

    Blobs are stored under ``{room_code}/`` in the bucket. A paste only
    references a blob after ``upload`` succeeded; deleting a paste releases
    its blob first, on a best-effort basis.
    """

    def __init__(self, bucket: ImageBucket, max_bytes: int = MAX_IMAGE_BYTES,
                 timeout: Optional[float] = None):
        self.bucket = bucket
        self.max_bytes = max_bytes
        self.timeout = timeout

    def _detect_content_type(self, file: ImageFile) -> Optional[str]:
        if file.content_type:
            return file.content_type
        try:
            with Image.open(io.BytesIO(file.data)) as image:
                return Image.MIME.get(image.format or "")
        except (UnidentifiedImageError, OSError):
            return None

    def validate(self, file: ImageFile) -> ValidationResult:
        content_type = self._detect_content_type(file)
        if not content_type or not content_type.startswith("image/"):
            return ValidationResult(
                valid=False, reason="File must be an image", code="not_image")
        if file.size > self.max_bytes:
            return ValidationResult(
                valid=False,
                reason=f"Image is too large (must be smaller than {_format_size(self.max_bytes)})",
                code="too_large",
                content_type=content_type,
            )
        return ValidationResult(valid=True, content_type=content_type)

    def build_path(self, file: ImageFile, room_code: str) -> str:
        timestamp = int(time.time() * 1000)
        return f"{room_code}/{timestamp}-{_random_suffix()}.{file.extension}"

    async def upload(self, file: ImageFile, room_code: str) -> str:
        """Store ``file`` for the room and return its public URL.

        Raises ``ValidationError`` before touching the bucket when the file is
        rejected, and ``StoreError`` when the write fails.
        """
        result = self.validate(file)
        if not result.valid:
            raise ValidationError(result.reason, code=result.code)

        path = self.build_path(file, room_code)
        await with_timeout(
            self.bucket.put(path, file.data, content_type=result.content_type),
            self.timeout, "Image upload")
        logger.info(f"Uploaded image {path} ({file.size} bytes)")
        return self.bucket.public_url(path)

    def path_from_url(self, url: str) -> str:
        prefix = self.bucket.public_url("")
        if not url or not url.startswith(prefix):
            raise InvalidReferenceError(f"Not an image URL issued by this bucket: {url!r}")

        path = unquote(url[len(prefix):])
        room_code, _, name = path.partition("/")
        if not room_code or not name or "/" in name or ".." in path:
            raise InvalidReferenceError(f"Malformed image URL: {url!r}")
        return path

    async def delete_by_url(self, url: str) -> bool:
        """Delete the blob behind ``url``.

        ``InvalidReferenceError`` propagates; a failing delete is logged and
        reported as ``False``.
        """
        path = self.path_from_url(url)
        try:
            await with_timeout(self.bucket.remove([path]), self.timeout, "Image delete")
        except StoreError as e:
            logger.warning(f"Failed to delete image {path}: {e}")
            return False
        logger.info(f"Deleted image {path}")
        return True

    async def delete_all_for_room(self, room_code: str) -> int:
        blobs = await with_timeout(self.bucket.list(room_code), self.timeout, "Image listing")
        if not blobs:
            return 0

        paths = [f"{room_code}/{blob.name}" for blob in blobs]
        await with_timeout(self.bucket.remove(paths), self.timeout, "Image cleanup")
        logger.info(f"Deleted {len(paths)} image(s) for room {room_code}")
        return len(paths)

    async def locate(self, url: str) -> str:
        """Return the storage path behind ``url`` if the blob can be displayed."""
        try:
            path = self.path_from_url(url)
        except InvalidReferenceError as e:
            raise DisplayError(str(e)) from e
        if not await self.bucket.exists(path):
            raise DisplayError(f"Image is no longer available: {url}")
        return path
