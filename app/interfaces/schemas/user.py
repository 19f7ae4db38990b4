"""用户相关 Schema"""

from typing import Optional

from app.domain.models.user import User
from pydantic import BaseModel, EmailStr, Field

from .auth import UserResponse
from .base import Pagination


def user_to_response(user: User) -> UserResponse:
    """将用户领域模型转换为响应结构"""
    return UserResponse(
        id=user.id,
        username=user.username,
        email=str(user.email),
        is_email_verified=user.is_email_verified,
        role=user.role.value,
        status=user.status.value,
        created_at=user.created_at.isoformat(),
    )


class CreateUserRequest(BaseModel):
    """管理员创建用户请求"""

    username: str = Field(..., min_length=3, max_length=30, description="用户名")
    email: EmailStr = Field(..., description="邮箱")
    password: str = Field(..., min_length=6, max_length=128, description="密码")


class UpdateUserRequest(BaseModel):
    """更新用户请求"""

    username: Optional[str] = Field(None, min_length=3, max_length=30, description="用户名")
    email: Optional[EmailStr] = Field(None, description="邮箱")


class UserListResponse(BaseModel):
    """用户列表响应"""

    users: list[UserResponse] = Field(default_factory=list, description="用户列表")
    pagination: Pagination = Field(default_factory=Pagination)
