from typing import List

from app.application.services.status_service import StatusService
from app.domain.models.health_status import HealthStatus
from app.interfaces.schemas import Response
from app.interfaces.service_dependencies import get_status_service
from fastapi import APIRouter, Depends
from fastapi import Response as HTTPResponse

router = APIRouter(prefix="/status", tags=["状态模块"])


@router.get(
    "",
    response_model=Response[List[HealthStatus]],
    summary="系统健康检查",
    description="检查postgres、redis以及对象存储的健康状态，任一依赖异常时返回503",
)
async def get_status(
    http_response: HTTPResponse,
    status_service: StatusService = Depends(get_status_service),
) -> Response[List[HealthStatus]]:
    statuses = await status_service.check_all()
    if status_service.is_healthy(statuses):
        return Response.success(msg="系统健康检查成功", data=statuses)

    http_response.status_code = 503
    return Response.fail(503, "系统存在服务异常", statuses)
