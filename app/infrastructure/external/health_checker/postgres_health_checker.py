import logging
import time

from app.domain.external.health_checker import HealthChecker
from app.domain.models.health_status import HealthStatus
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class PostgresHealthChecker(HealthChecker):
    service_name = "postgres"

    def __init__(self, db_session: AsyncSession) -> None:
        self._db_session = db_session

    async def check(self) -> HealthStatus:
        started = time.perf_counter()
        try:
            await self._db_session.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Postgres健康检查失败: {e}")
            return HealthStatus.error(self.service_name, str(e))
        elapsed_ms = (time.perf_counter() - started) * 1000
        return HealthStatus.ok(self.service_name, f"{elapsed_ms:.1f}ms")
