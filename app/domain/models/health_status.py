from pydantic import BaseModel


class HealthStatus(BaseModel):
    """单个依赖服务的健康状态"""

    service: str = ""
    status: str = ""  # ok / error
    details: str = ""

    @classmethod
    def ok(cls, service: str, details: str = "") -> "HealthStatus":
        return cls(service=service, status="ok", details=details)

    @classmethod
    def error(cls, service: str, details: str = "") -> "HealthStatus":
        return cls(service=service, status="error", details=details)
