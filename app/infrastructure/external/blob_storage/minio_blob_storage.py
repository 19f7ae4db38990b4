import logging
from typing import Optional

from app.domain.external.blob_storage import BlobStorage
from app.infrastructure.storage.minio import MinioStore

logger = logging.getLogger(__name__)


class MinioBlobStorage(BlobStorage):
    """基于MinIO的Blob存储，存储路径直接作为对象名"""

    def __init__(self, bucket: str, minio_store: MinioStore) -> None:
        """构造函数，完成MinIO Blob存储初始化"""
        self.bucket = bucket
        self.minio_store = minio_store
        self._bucket_ready = False

    async def write(
        self, path: str, data: bytes, content_type: Optional[str] = None
    ) -> None:
        """写入对象，首次写入时确保bucket存在"""
        if not self._bucket_ready:
            await self.minio_store.ensure_bucket(self.bucket)
            self._bucket_ready = True

        await self.minio_store.put_bytes(
            bucket_name=self.bucket,
            object_name=path,
            data=data,
            content_type=content_type,
        )
        logger.debug(f"对象写入成功: {self.bucket}/{path} ({len(data)} bytes)")

    async def read(self, path: str) -> bytes:
        return await self.minio_store.get_bytes(bucket_name=self.bucket, object_name=path)

    async def delete(self, path: str) -> None:
        await self.minio_store.delete_object(bucket_name=self.bucket, object_name=path)

    async def stat(self, path: str) -> int:
        return await self.minio_store.stat_object(
            bucket_name=self.bucket, object_name=path
        )

    def get_url(self, path: str) -> str:
        return self.minio_store.object_url(self.bucket, path)
