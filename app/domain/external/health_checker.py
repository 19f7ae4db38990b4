from typing import Protocol

from app.domain.models.health_status import HealthStatus


class HealthChecker(Protocol):
    """依赖服务健康检查协议，check() 自行处理预期内的故障并返回error状态"""

    service_name: str

    async def check(self) -> HealthStatus:
        ...
