import logging
import os
from pathlib import Path
from typing import Optional

import anyio
from app.domain.external.blob_storage import BlobStorage

logger = logging.getLogger(__name__)


class LocalBlobStorage(BlobStorage):
    """基于本地磁盘目录的Blob存储，文件通过静态路由对外提供"""

    def __init__(self, base_dir: str, public_base_url: str = "/uploads") -> None:
        self._base_dir = Path(base_dir).resolve()
        self._public_base_url = public_base_url.rstrip("/")

    def _resolve(self, path: str) -> Path:
        """将存储路径映射为磁盘路径，禁止越出根目录"""
        target = (self._base_dir / path.lstrip("/")).resolve()
        if target != self._base_dir and self._base_dir not in target.parents:
            raise ValueError(f"非法的存储路径: {path}")
        return target

    async def write(
        self, path: str, data: bytes, content_type: Optional[str] = None
    ) -> None:
        target = self._resolve(path)

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        await anyio.to_thread.run_sync(_write)
        logger.debug(f"文件写入成功: {target} ({len(data)} bytes)")

    async def read(self, path: str) -> bytes:
        target = self._resolve(path)
        return await anyio.to_thread.run_sync(target.read_bytes)

    async def delete(self, path: str) -> None:
        target = self._resolve(path)
        await anyio.to_thread.run_sync(os.remove, target)

    async def stat(self, path: str) -> int:
        target = self._resolve(path)
        result = await anyio.to_thread.run_sync(os.stat, target)
        return result.st_size

    def get_url(self, path: str) -> str:
        return f"{self._public_base_url}/{path.lstrip('/')}"
