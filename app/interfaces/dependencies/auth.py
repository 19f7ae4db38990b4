"""认证依赖：从 Bearer 令牌解析当前用户"""

from typing import Annotated, Optional

from app.application.errors.exceptions import ForbiddenError, UnauthorizedError
from app.application.services.auth_service import AuthService
from app.domain.models.user import User
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..service_dependencies import get_auth_service

# 不自动返回403，缺少令牌时由依赖自行决定是否报错
bearer_scheme = HTTPBearer(auto_error=False)

Credentials = Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)]


async def get_current_user(
    credentials: Credentials,
    auth_service: AuthService = Depends(get_auth_service),
) -> User:
    """必须登录，令牌缺失或无效时返回401"""
    if credentials is None:
        raise UnauthorizedError("未提供认证信息")
    return await auth_service.get_current_user(credentials.credentials)


async def get_current_user_optional(
    credentials: Credentials,
    auth_service: AuthService = Depends(get_auth_service),
) -> Optional[User]:
    """可选登录，令牌缺失、无效或账户被禁用时视为匿名"""
    if credentials is None:
        return None
    try:
        return await auth_service.get_current_user(credentials.credentials)
    except (UnauthorizedError, ForbiddenError):
        return None


async def require_admin(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    if not current_user.is_admin():
        raise ForbiddenError("需要管理员权限")
    return current_user


CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[Optional[User], Depends(get_current_user_optional)]
AdminUser = Annotated[User, Depends(require_admin)]
