"""邮件队列管理路由，仅限管理员"""

import logging
from typing import Optional

from app.application.services.email_queue_service import EmailQueueService
from app.domain.models.email_job import EmailJob, QueueStatus
from app.interfaces.dependencies import AdminUser
from app.interfaces.schemas import Response
from app.interfaces.schemas.email_queue import (
    BroadcastEmailRequest,
    BroadcastResponse,
    EnqueueResponse,
    SendEmailRequest,
)
from app.interfaces.service_dependencies import get_email_queue_service
from fastapi import APIRouter, Depends

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/email-queue", tags=["邮件队列模块"])


@router.get(
    "/status",
    response_model=Response[QueueStatus],
    summary="邮件队列状态",
)
async def get_queue_status(
    admin_user: AdminUser,
    email_queue_service: EmailQueueService = Depends(get_email_queue_service),
) -> Response[QueueStatus]:
    return Response.success(data=await email_queue_service.status())


@router.post(
    "/send",
    response_model=Response[EnqueueResponse],
    summary="单封邮件入队",
)
async def send_email(
    request: SendEmailRequest,
    admin_user: AdminUser,
    email_queue_service: EmailQueueService = Depends(get_email_queue_service),
) -> Response[EnqueueResponse]:
    message_id = await email_queue_service.enqueue(
        to=str(request.to),
        subject=request.subject,
        content=request.content,
        user_id=request.user_id,
    )
    return Response.success(data=EnqueueResponse(message_id=message_id), msg="邮件已加入队列")


@router.post(
    "/send-all",
    response_model=Response[BroadcastResponse],
    summary="群发邮件",
    description="给所有用户各加入一封邮件",
)
async def send_all(
    request: BroadcastEmailRequest,
    admin_user: AdminUser,
    email_queue_service: EmailQueueService = Depends(get_email_queue_service),
) -> Response[BroadcastResponse]:
    queued = await email_queue_service.broadcast(request.subject, request.content)
    return Response.success(data=BroadcastResponse(queued=queued), msg="群发邮件已加入队列")


@router.delete(
    "/clear",
    response_model=Response[dict],
    summary="清空邮件队列",
    description="同时清空待发送和处理中列表，不可恢复",
)
async def clear_queue(
    admin_user: AdminUser,
    email_queue_service: EmailQueueService = Depends(get_email_queue_service),
) -> Response[dict]:
    await email_queue_service.clear()
    logger.warning(f"邮件队列被管理员[{admin_user.id}]清空")
    return Response.success(msg="邮件队列已清空")


@router.post(
    "/start",
    response_model=Response[QueueStatus],
    summary="启动队列处理",
)
async def start_processing(
    admin_user: AdminUser,
    email_queue_service: EmailQueueService = Depends(get_email_queue_service),
) -> Response[QueueStatus]:
    email_queue_service.start_processing()
    return Response.success(data=await email_queue_service.status(), msg="邮件队列处理已启动")


@router.post(
    "/stop",
    response_model=Response[QueueStatus],
    summary="停止队列处理",
)
async def stop_processing(
    admin_user: AdminUser,
    email_queue_service: EmailQueueService = Depends(get_email_queue_service),
) -> Response[QueueStatus]:
    await email_queue_service.stop_processing()
    return Response.success(data=await email_queue_service.status(), msg="邮件队列处理已停止")


@router.post(
    "/process",
    response_model=Response[Optional[EmailJob]],
    summary="立即处理一封邮件",
    description="不等待调度间隔，立即执行一次出队投递",
)
async def process_once(
    admin_user: AdminUser,
    email_queue_service: EmailQueueService = Depends(get_email_queue_service),
) -> Response[Optional[EmailJob]]:
    job = await email_queue_service.process_once()
    if job is None:
        return Response.success(msg="邮件队列为空")
    return Response.success(data=job, msg="邮件已处理")
