from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, TYPE_CHECKING
from urllib.parse import urlparse

from dotenv import load_dotenv

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from clypsync.database.file_bucket import LocalImageBucket
    from clypsync.database.redis_manager import RedisPasteStore

MAX_IMAGE_BYTES = 5 * 1024 * 1024
MAX_TEXT_LENGTH = 10_000
DEFAULT_HOME = Path.home() / ".clypsync"


def _to_bool(value: Optional[str], default: bool = True) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _to_int(value: Optional[str], default: int) -> int:
    return int(value) if value else default


def _to_float(value: Optional[str], default: float) -> float:
    return float(value) if value else default


@dataclass(frozen=True)
class RedisConfig:
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None
    ssl: bool = False

    @classmethod
    def from_env(cls) -> "RedisConfig":
        uri = os.getenv("REDIS_URI")
        if uri:
            return cls.from_uri(uri)

        return cls(
            host=os.getenv("REDIS_HOST", cls.host),
            port=_to_int(os.getenv("REDIS_PORT"), cls.port),
            db=_to_int(os.getenv("REDIS_DB"), cls.db),
            password=os.getenv("REDIS_PASSWORD") or None,
            ssl=_to_bool(os.getenv("REDIS_SSL"), default=False),
        )

    @classmethod
    def from_uri(cls, uri: str) -> "RedisConfig":
        parsed = urlparse(uri)
        if parsed.scheme not in {"redis", "rediss"}:
            raise ValueError(
                f"Unsupported Redis URI scheme: {parsed.scheme!r}")

        db_fragment = parsed.path.lstrip("/")
        return cls(
            host=parsed.hostname or cls.host,
            port=parsed.port or cls.port,
            db=int(db_fragment) if db_fragment else cls.db,
            password=parsed.password or None,
            ssl=parsed.scheme == "rediss",
        )


@dataclass(frozen=True)
class ClypSyncConfig:
    redis: RedisConfig = field(default_factory=RedisConfig)
    bucket_dir: Path = DEFAULT_HOME / "bucket"
    bucket_name: str = "images"
    public_url: str = "http://localhost:3001"
    max_text_length: int = MAX_TEXT_LENGTH
    max_image_bytes: int = MAX_IMAGE_BYTES
    pin_length: int = 4
    request_timeout: Optional[float] = 10.0
    state_file: Path = DEFAULT_HOME / "state.json"
    api_host: str = "0.0.0.0"
    api_port: int = 3001

    @classmethod
    def from_env(cls, *, env_path: Optional[Path] = None) -> "ClypSyncConfig":
        load_dotenv(dotenv_path=env_path)

        timeout = _to_float(os.getenv("CLYPSYNC_REQUEST_TIMEOUT"), 10.0)
        bucket_dir = os.getenv("CLYPSYNC_BUCKET_DIR")
        state_file = os.getenv("CLYPSYNC_STATE_FILE")

        return cls(
            redis=RedisConfig.from_env(),
            bucket_dir=Path(bucket_dir).expanduser() if bucket_dir else cls.bucket_dir,
            bucket_name=os.getenv("CLYPSYNC_BUCKET_NAME", cls.bucket_name),
            public_url=os.getenv("CLYPSYNC_PUBLIC_URL", cls.public_url).rstrip("/"),
            max_text_length=_to_int(
                os.getenv("CLYPSYNC_MAX_TEXT_LENGTH"), cls.max_text_length),
            max_image_bytes=_to_int(
                os.getenv("CLYPSYNC_MAX_IMAGE_BYTES"), cls.max_image_bytes),
            pin_length=_to_int(os.getenv("CLYPSYNC_PIN_LENGTH"), cls.pin_length),
            request_timeout=timeout if timeout > 0 else None,
            state_file=Path(state_file).expanduser() if state_file else cls.state_file,
            api_host=os.getenv("CLYPSYNC_API_HOST", cls.api_host),
            api_port=_to_int(os.getenv("CLYPSYNC_API_PORT"), cls.api_port),
        )

    def create_store(self) -> "RedisPasteStore":
        from clypsync.database.redis_manager import RedisPasteStore

        return RedisPasteStore(
            host=self.redis.host,
            port=self.redis.port,
            db=self.redis.db,
            password=self.redis.password,
            ssl=self.redis.ssl,
        )

    def create_bucket(self) -> "LocalImageBucket":
        from clypsync.database.file_bucket import LocalImageBucket

        return LocalImageBucket(
            base_dir=self.bucket_dir,
            bucket_name=self.bucket_name,
            public_url=self.public_url,
        )
