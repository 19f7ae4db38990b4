"""认证路由模块"""

import logging

from app.application.services.auth_service import AuthService
from app.interfaces.dependencies import CurrentUser, rate_limit_read, rate_limit_write
from app.interfaces.schemas import Response
from app.interfaces.schemas.auth import (
    LoginRequest,
    LoginResponse,
    RefreshTokenRequest,
    RegisterRequest,
    RegisterResponse,
    ResendVerificationRequest,
    TokenResponse,
    UserResponse,
    VerifyEmailResponse,
)
from app.interfaces.schemas.user import user_to_response
from app.interfaces.service_dependencies import get_auth_service
from fastapi import APIRouter, Depends, Query

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["认证模块"])


@router.post(
    "/register",
    response_model=Response[RegisterResponse],
    summary="用户注册",
    description="注册新账户，注册后会向邮箱发送验证码",
    dependencies=[Depends(rate_limit_read)],
)
async def register(
    request: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> Response[RegisterResponse]:
    """用户注册"""
    user = await auth_service.register(
        username=request.username,
        email=request.email,
        password=request.password,
    )
    return Response.success(
        data=RegisterResponse(user=user_to_response(user)),
        msg="注册成功，请查收验证邮件",
    )


@router.get(
    "/verify-email",
    response_model=Response[VerifyEmailResponse],
    summary="邮箱验证",
    description="使用邮件中的验证码完成邮箱验证，成功后直接返回登录令牌",
    dependencies=[Depends(rate_limit_read)],
)
async def verify_email(
    email: str = Query(..., description="邮箱"),
    token: str = Query(..., description="验证码"),
    auth_service: AuthService = Depends(get_auth_service),
) -> Response[VerifyEmailResponse]:
    """邮箱验证"""
    user, tokens = await auth_service.verify_email(email=email, token=token)
    if tokens is None:
        return Response.success(
            data=VerifyEmailResponse(user=user_to_response(user)),
            msg="邮箱已验证",
        )
    return Response.success(
        data=VerifyEmailResponse(
            user=user_to_response(user),
            tokens=TokenResponse(**tokens),
        ),
        msg="邮箱验证成功",
    )


@router.post(
    "/resend-verification",
    response_model=Response[dict],
    summary="重新发送验证邮件",
    dependencies=[Depends(rate_limit_read)],
)
async def resend_verification(
    request: ResendVerificationRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> Response[dict]:
    await auth_service.resend_verification(request.email)
    return Response.success(msg="验证邮件已重新发送")


@router.post(
    "/login",
    response_model=Response[LoginResponse],
    summary="用户登录",
    description="通过用户名或邮箱登录",
    dependencies=[Depends(rate_limit_read)],
)
async def login(
    request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> Response[LoginResponse]:
    """用户登录"""
    user, tokens = await auth_service.login(
        username=request.username,
        password=request.password,
    )
    return Response.success(
        data=LoginResponse(
            user=user_to_response(user),
            tokens=TokenResponse(**tokens),
        ),
        msg="登录成功",
    )


@router.post(
    "/logout",
    response_model=Response[dict],
    summary="退出登录",
    description="令牌为无状态JWT，客户端丢弃令牌即可",
)
async def logout(current_user: CurrentUser) -> Response[dict]:
    logger.info(f"User logged out: {current_user.id}")
    return Response.success(msg="退出登录成功")


@router.post(
    "/refresh-token",
    response_model=Response[TokenResponse],
    summary="刷新令牌",
    description="使用 refresh token 获取新的 access token",
    dependencies=[Depends(rate_limit_read)],
)
async def refresh_token(
    request: RefreshTokenRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> Response[TokenResponse]:
    """刷新令牌"""
    tokens = await auth_service.refresh_token(request.refresh_token)
    return Response.success(data=TokenResponse(**tokens), msg="令牌刷新成功")


@router.get(
    "/me",
    response_model=Response[UserResponse],
    summary="获取当前用户信息",
    dependencies=[Depends(rate_limit_read)],
)
async def get_me(current_user: CurrentUser) -> Response[UserResponse]:
    """获取当前登录用户信息"""
    return Response.success(data=user_to_response(current_user))
