import logging
import mimetypes
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import FileResponse

from clypsync.config import ClypSyncConfig
from clypsync.database.base import PasteStore
from clypsync.database.file_bucket import LocalImageBucket
from clypsync.exceptions import StoreError

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[ClypSyncConfig] = None,
    store: Optional[PasteStore] = None,
    bucket: Optional[LocalImageBucket] = None,
) -> FastAPI:
    """HTTP surface that makes issued image URLs reachable and reports health."""
    config = config or ClypSyncConfig.from_env()
    bucket = bucket or config.create_bucket()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.store = store or config.create_store()
        try:
            yield
        finally:
            await app.state.store.close()

    app = FastAPI(title="ClypSync", lifespan=lifespan)
    app.state.bucket = bucket

    @app.get("/")
    def root():
        return "running"

    @app.get("/health")
    async def health():
        return await app.state.store.health_check()

    @app.get(f"/storage/public/{bucket.bucket_name}/{{path:path}}")
    async def get_image(path: str):
        try:
            target = bucket.resolve(path)
        except StoreError:
            raise HTTPException(status_code=400, detail="Invalid image path")
        if not target.is_file():
            raise HTTPException(status_code=404, detail="Image not found")

        media_type, _ = mimetypes.guess_type(target.name)
        return FileResponse(target, media_type=media_type or "application/octet-stream")

    return app
