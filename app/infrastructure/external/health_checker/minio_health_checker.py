import logging

from app.domain.external.health_checker import HealthChecker
from app.domain.models.health_status import HealthStatus
from app.infrastructure.storage.minio import MinioStore

logger = logging.getLogger(__name__)


class MinioHealthChecker(HealthChecker):
    """检查上传文件所在的bucket是否可访问"""

    service_name = "minio"

    def __init__(self, minio_store: MinioStore, bucket_name: str) -> None:
        self._minio_store = minio_store
        self._bucket_name = bucket_name

    async def check(self) -> HealthStatus:
        try:
            bucket_exists = await self._minio_store.bucket_exists(self._bucket_name)
        except Exception as e:
            logger.error(f"MinIO健康检查失败: {e}")
            return HealthStatus.error(self.service_name, str(e))

        # bucket在第一次写入时自动创建
        if not bucket_exists:
            return HealthStatus.ok(self.service_name, f"bucket[{self._bucket_name}]尚未创建")
        return HealthStatus.ok(self.service_name)
