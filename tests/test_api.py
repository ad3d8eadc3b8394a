import pytest
from fastapi.testclient import TestClient

from clypsync.api import create_app
from clypsync.config import ClypSyncConfig
from clypsync.database.file_bucket import LocalImageBucket

from conftest import PNG_HEADER, MemoryPasteStore, SharedBackend


@pytest.fixture
def client(tmp_path):
    bucket = LocalImageBucket(base_dir=tmp_path, public_url="http://testserver")
    app = create_app(ClypSyncConfig(bucket_dir=tmp_path), store=MemoryPasteStore(SharedBackend()),
                     bucket=bucket)
    with TestClient(app) as test_client:
        test_client.bucket = bucket
        yield test_client


def test_root(client):
    assert client.get("/").json() == "running"


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"


def test_public_url_serves_stored_image(client):
    target = client.bucket.resolve("4242/1-abc.png")
    target.parent.mkdir(parents=True)
    target.write_bytes(PNG_HEADER)
    url = client.bucket.public_url("4242/1-abc.png")

    response = client.get(url)

    assert response.status_code == 200
    assert response.content == PNG_HEADER
    assert response.headers["content-type"] == "image/png"


def test_missing_image_is_404(client):
    assert client.get("/storage/public/images/4242/nope.png").status_code == 404
