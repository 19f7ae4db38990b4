import logging
import time

from app.domain.external.health_checker import HealthChecker
from app.domain.models.health_status import HealthStatus
from app.infrastructure.storage.redis import RedisClient

logger = logging.getLogger(__name__)


class RedisHealthChecker(HealthChecker):
    service_name = "redis"

    def __init__(self, redis_client: RedisClient) -> None:
        self._redis_client = redis_client

    async def check(self) -> HealthStatus:
        started = time.perf_counter()
        try:
            await self._redis_client.ping()
        except Exception as e:
            logger.error(f"Redis健康检查失败: {e}")
            return HealthStatus.error(self.service_name, str(e))
        elapsed_ms = (time.perf_counter() - started) * 1000
        return HealthStatus.ok(self.service_name, f"{elapsed_ms:.1f}ms")
