"""用户路由模块"""

import logging
from typing import Optional

from app.application.errors.exceptions import ForbiddenError
from app.application.services.user_service import UserService
from app.interfaces.dependencies import (
    AdminUser,
    CurrentUser,
    rate_limit_read,
    rate_limit_write,
)
from app.interfaces.schemas import Pagination, Response
from app.interfaces.schemas.auth import UserResponse
from app.interfaces.schemas.memo import MemoListResponse
from app.interfaces.schemas.user import (
    CreateUserRequest,
    UpdateUserRequest,
    UserListResponse,
    user_to_response,
)
from app.interfaces.service_dependencies import get_user_service
from fastapi import APIRouter, Depends, Query

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["用户模块"])


@router.get(
    "",
    response_model=Response[UserListResponse],
    summary="用户列表",
    description="分页获取用户列表，search 匹配用户名或邮箱",
    dependencies=[Depends(rate_limit_read)],
)
async def list_users(
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None),
    user_service: UserService = Depends(get_user_service),
) -> Response[UserListResponse]:
    users, total = await user_service.list_users(page=page, limit=limit, search=search)
    return Response.success(
        data=UserListResponse(
            users=[user_to_response(user) for user in users],
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.get(
    "/{user_id}",
    response_model=Response[UserResponse],
    summary="获取用户详情",
    dependencies=[Depends(rate_limit_read)],
)
async def get_user(
    user_id: str,
    current_user: CurrentUser,
    user_service: UserService = Depends(get_user_service),
) -> Response[UserResponse]:
    user = await user_service.get_user(user_id)
    return Response.success(data=user_to_response(user))


@router.post(
    "",
    response_model=Response[UserResponse],
    summary="创建用户",
    description="管理员直接创建已验证邮箱的用户",
    dependencies=[Depends(rate_limit_write)],
)
async def create_user(
    request: CreateUserRequest,
    admin_user: AdminUser,
    user_service: UserService = Depends(get_user_service),
) -> Response[UserResponse]:
    user = await user_service.create_user(
        username=request.username,
        email=request.email,
        password=request.password,
    )
    return Response.success(data=user_to_response(user), msg="用户创建成功")


@router.put(
    "/{user_id}",
    response_model=Response[UserResponse],
    summary="更新用户",
    description="用户只能修改自己的信息，管理员可以修改任意用户",
    dependencies=[Depends(rate_limit_write)],
)
async def update_user(
    user_id: str,
    request: UpdateUserRequest,
    current_user: CurrentUser,
    user_service: UserService = Depends(get_user_service),
) -> Response[UserResponse]:
    if current_user.id != user_id and not current_user.is_admin():
        raise ForbiddenError("无权修改其他用户")

    user = await user_service.update_user(
        user_id,
        username=request.username,
        email=request.email,
    )
    return Response.success(data=user_to_response(user), msg="用户更新成功")


@router.delete(
    "/{user_id}",
    response_model=Response[dict],
    summary="删除用户",
    dependencies=[Depends(rate_limit_write)],
)
async def delete_user(
    user_id: str,
    admin_user: AdminUser,
    user_service: UserService = Depends(get_user_service),
) -> Response[dict]:
    await user_service.delete_user(user_id)
    return Response.success(msg="用户删除成功")


@router.get(
    "/{user_id}/memos",
    response_model=Response[MemoListResponse],
    summary="用户的备忘录列表",
    dependencies=[Depends(rate_limit_read)],
)
async def list_user_memos(
    user_id: str,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_service: UserService = Depends(get_user_service),
) -> Response[MemoListResponse]:
    memos, total = await user_service.list_user_memos(user_id, page=page, limit=limit)
    return Response.success(
        data=MemoListResponse(
            memos=memos,
            pagination=Pagination.build(page, limit, total),
        )
    )
