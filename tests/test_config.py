import os
from pathlib import Path

import pytest

from clypsync.config import ClypSyncConfig, RedisConfig

@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    keys = ("REDIS_URI", "REDIS_HOST", "REDIS_PORT", "REDIS_DB", "REDIS_PASSWORD",
            "CLYPSYNC_PUBLIC_URL", "CLYPSYNC_REQUEST_TIMEOUT", "CLYPSYNC_PIN_LENGTH",
            "CLYPSYNC_BUCKET_DIR", "CLYPSYNC_MAX_TEXT_LENGTH")
    for key in keys:
        monkeypatch.delenv(key, raising=False)
    yield
    # values loaded from .env files bypass monkeypatch
    for key in keys:
        os.environ.pop(key, None)


def test_redis_uri_is_parsed():
    config = RedisConfig.from_uri("rediss://:secret@cache.example:6380/2")

    assert config == RedisConfig(host="cache.example", port=6380, db=2,
                                 password="secret", ssl=True)

def test_unsupported_redis_scheme_is_rejected():
    with pytest.raises(ValueError):
        RedisConfig.from_uri("http://cache.example")

def test_from_env_reads_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("REDIS_HOST", "redis.internal")
    monkeypatch.setenv("REDIS_PORT", "6390")
    monkeypatch.setenv("CLYPSYNC_PUBLIC_URL", "https://clips.example/")
    monkeypatch.setenv("CLYPSYNC_REQUEST_TIMEOUT", "0")
    monkeypatch.setenv("CLYPSYNC_BUCKET_DIR", str(tmp_path))

    config = ClypSyncConfig.from_env(env_path=tmp_path / "missing.env")

    assert config.redis.host == "redis.internal"
    assert config.redis.port == 6390
    assert config.public_url == "https://clips.example"
    assert config.request_timeout is None
    assert config.bucket_dir == tmp_path

def test_from_env_loads_dotenv_file(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("CLYPSYNC_PIN_LENGTH=6\nCLYPSYNC_MAX_TEXT_LENGTH=500\n")

    config = ClypSyncConfig.from_env(env_path=env_file)

    assert config.pin_length == 6
    assert config.max_text_length == 500

def test_defaults():
    config = ClypSyncConfig()

    assert config.max_image_bytes == 5 * 1024 * 1024
    assert config.pin_length == 4
    assert config.bucket_dir == Path.home() / ".clypsync" / "bucket"
