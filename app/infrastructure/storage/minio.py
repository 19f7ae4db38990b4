import io
import logging
from functools import lru_cache
from typing import Callable, Optional, TypeVar

import anyio
from core.config import Settings, get_settings
from minio import Minio
from minio.error import S3Error

logger = logging.getLogger(__name__)

R = TypeVar("R")

# 对象或bucket不存在时MinIO返回的错误码
_MISSING_CODES = {"NoSuchKey", "NoSuchBucket", "NoSuchObject"}


class MinioStore:
    """MinIO(S3兼容)客户端封装，SDK为同步实现，所有调用放到工作线程执行"""

    def __init__(self) -> None:
        self._settings: Settings = get_settings()
        self._client: Optional[Minio] = None

    async def init(self) -> None:
        if self._client is not None:
            logger.warning("MinIO客户端已初始化，忽略本次调用")
            return
        self._client = Minio(
            endpoint=self._settings.minio_endpoint,
            access_key=self._settings.minio_access_key,
            secret_key=self._settings.minio_secret_key,
            secure=self._settings.minio_secure,
            region=self._settings.minio_region,
        )
        logger.info(f"MinIO客户端初始化成功: {self._settings.minio_endpoint}")

    async def shutdown(self) -> None:
        # SDK没有显式的close，释放引用即可
        self._client = None
        get_minio.cache_clear()
        logger.info("MinIO客户端已释放")

    @property
    def client(self) -> Minio:
        if self._client is None:
            raise RuntimeError("MinIO客户端未初始化，请先调用init()")
        return self._client

    async def _call(self, fn: Callable[..., R], *args, **kwargs) -> R:
        return await anyio.to_thread.run_sync(lambda: fn(*args, **kwargs))

    def object_url(self, bucket_name: str, object_name: str) -> str:
        protocol = "https" if self._settings.minio_secure else "http"
        return f"{protocol}://{self._settings.minio_endpoint}/{bucket_name}/{object_name}"

    async def bucket_exists(self, bucket_name: str) -> bool:
        return await self._call(self.client.bucket_exists, bucket_name)

    async def ensure_bucket(self, bucket_name: str) -> None:
        if not await self.bucket_exists(bucket_name):
            await self._call(self.client.make_bucket, bucket_name)
            logger.info(f"MinIO bucket[{bucket_name}]不存在，已自动创建")

    async def put_bytes(
        self,
        bucket_name: str,
        object_name: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> None:
        await self._call(
            self.client.put_object,
            bucket_name,
            object_name,
            io.BytesIO(data),
            len(data),
            content_type=content_type or "application/octet-stream",
        )

    async def get_bytes(self, bucket_name: str, object_name: str) -> bytes:
        """读取对象全部内容，对象不存在时抛出FileNotFoundError"""
        client = self.client

        def _download() -> bytes:
            response = client.get_object(bucket_name, object_name)
            try:
                return response.read()
            finally:
                response.close()
                response.release_conn()

        try:
            return await anyio.to_thread.run_sync(_download)
        except S3Error as e:
            if e.code in _MISSING_CODES:
                raise FileNotFoundError(f"{bucket_name}/{object_name}") from e
            raise

    async def stat_object(self, bucket_name: str, object_name: str) -> int:
        try:
            stat = await self._call(self.client.stat_object, bucket_name, object_name)
        except S3Error as e:
            if e.code in _MISSING_CODES:
                raise FileNotFoundError(f"{bucket_name}/{object_name}") from e
            raise
        return int(stat.size or 0)

    async def delete_object(self, bucket_name: str, object_name: str) -> None:
        # 删除不存在的对象在S3语义下视为成功
        await self._call(self.client.remove_object, bucket_name, object_name)


@lru_cache()
def get_minio() -> MinioStore:
    return MinioStore()
