"""用户领域模型"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class UserRole(str, Enum):
    """用户角色枚举"""

    SUPER_ADMIN = "super_admin"
    USER = "user"


class UserStatus(str, Enum):
    """用户状态枚举"""

    ACTIVE = "active"
    INACTIVE = "inactive"
    BANNED = "banned"


class User(BaseModel):
    """用户领域模型"""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    username: str = Field(min_length=3, max_length=30)
    email: EmailStr
    password_hash: Optional[str] = None
    is_email_verified: bool = False
    email_verification_token: Optional[str] = None  # 6位数字验证码
    email_verification_expires: Optional[datetime] = None
    role: UserRole = UserRole.USER
    status: UserStatus = UserStatus.ACTIVE
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @field_validator("username")
    @classmethod
    def _strip_username(cls, value: str) -> str:
        return value.strip()

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return value.strip().lower()

    def is_admin(self) -> bool:
        """检查用户是否为超级管理员"""
        return self.role == UserRole.SUPER_ADMIN

    def is_active(self) -> bool:
        """检查用户是否处于活跃状态"""
        return self.status == UserStatus.ACTIVE

    def verification_expired(self, now: Optional[datetime] = None) -> bool:
        """邮箱验证码是否已过期"""
        if self.email_verification_expires is None:
            return True
        return (now or datetime.now()) > self.email_verification_expires
