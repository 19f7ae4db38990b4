import asyncio
import logging
from typing import List

from app.domain.external.health_checker import HealthChecker
from app.domain.models.health_status import HealthStatus

logger = logging.getLogger(__name__)


class StatusService:
    """并发执行各依赖服务的健康检查并汇总结果"""

    def __init__(self, checkers: List[HealthChecker], timeout_seconds: float = 5) -> None:
        self._checkers = checkers
        self._timeout_seconds = timeout_seconds

    async def _run(self, checker: HealthChecker) -> HealthStatus:
        service = getattr(checker, "service_name", type(checker).__name__)
        try:
            return await asyncio.wait_for(checker.check(), self._timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(f"{service}健康检查超时")
            return HealthStatus.error(service, f"超过{self._timeout_seconds}秒未响应")
        except Exception as e:
            logger.error(f"{service}健康检查异常: {e}")
            return HealthStatus.error(service, str(e))

    async def check_all(self) -> List[HealthStatus]:
        statuses = list(await asyncio.gather(*(self._run(c) for c in self._checkers)))
        # 能执行到这里说明API进程本身可用
        statuses.append(HealthStatus.ok("fastapi"))
        return statuses

    @staticmethod
    def is_healthy(statuses: List[HealthStatus]) -> bool:
        return all(item.status != "error" for item in statuses)
