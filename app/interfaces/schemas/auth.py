"""认证相关 Schema"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

# ============ 请求 Schema ============


class RegisterRequest(BaseModel):
    """用户注册请求"""

    username: str = Field(..., min_length=3, max_length=30, description="用户名")
    email: EmailStr = Field(..., description="邮箱")
    password: str = Field(..., min_length=6, max_length=128, description="密码")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "username": "testuser",
                "email": "test@example.com",
                "password": "password123",
            }
        }
    )


class LoginRequest(BaseModel):
    """用户登录请求，username 可填写用户名或邮箱"""

    username: str = Field(..., description="用户名或邮箱")
    password: str = Field(..., description="密码")

    model_config = ConfigDict(
        json_schema_extra={"example": {"username": "testuser", "password": "password123"}}
    )


class ResendVerificationRequest(BaseModel):
    """重新发送验证邮件请求"""

    email: EmailStr = Field(..., description="邮箱")


class RefreshTokenRequest(BaseModel):
    """刷新令牌请求"""

    refresh_token: str = Field(..., description="刷新令牌")


# ============ 响应 Schema ============


class TokenResponse(BaseModel):
    """令牌响应"""

    access_token: str = Field(..., description="访问令牌")
    refresh_token: str = Field(..., description="刷新令牌")
    token_type: str = Field(default="bearer", description="令牌类型")


class UserResponse(BaseModel):
    """用户信息响应"""

    id: str = Field(..., description="用户 ID")
    username: str = Field(..., description="用户名")
    email: str = Field(..., description="邮箱")
    is_email_verified: bool = Field(..., description="邮箱是否已验证")
    role: str = Field(..., description="角色")
    status: str = Field(..., description="状态")
    created_at: str = Field(..., description="创建时间")


class RegisterResponse(BaseModel):
    """注册响应"""

    user: UserResponse
    requires_email_verification: bool = True


class LoginResponse(BaseModel):
    """登录响应"""

    user: UserResponse
    tokens: TokenResponse


class VerifyEmailResponse(BaseModel):
    """邮箱验证响应，已验证过的邮箱不再返回令牌"""

    user: UserResponse
    tokens: Optional[TokenResponse] = None
