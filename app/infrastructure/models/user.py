"""用户 ORM 模型"""

import uuid
from datetime import datetime
from typing import Optional

from app.domain.models.user import User
from sqlalchemy import Boolean, DateTime, PrimaryKeyConstraint, String, text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin

# 允许从领域模型同步到数据库的字段
_SYNCED_FIELDS = (
    "username",
    "email",
    "password_hash",
    "is_email_verified",
    "email_verification_token",
    "email_verification_expires",
    "role",
    "status",
)


class UserModel(TimestampMixin, Base):
    __tablename__ = "users"
    __table_args__ = (PrimaryKeyConstraint("id", name="pk_users_id"),)

    id: Mapped[str] = mapped_column(
        String(255), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    username: Mapped[str] = mapped_column(String(30), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255))
    is_email_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false")
    )
    email_verification_token: Mapped[Optional[str]] = mapped_column(String(16))
    email_verification_expires: Mapped[Optional[datetime]] = mapped_column(DateTime)
    role: Mapped[str] = mapped_column(
        String(32), nullable=False, server_default=text("'user'")
    )
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, server_default=text("'active'")
    )

    @classmethod
    def from_domain(cls, user: User) -> "UserModel":
        # 枚举以字符串值入库，时间字段保留datetime
        values = user.model_dump(mode="json", include={"id", *_SYNCED_FIELDS})
        values["email_verification_expires"] = user.email_verification_expires
        return cls(**values, created_at=user.created_at, updated_at=user.updated_at)

    def to_domain(self) -> User:
        return User.model_validate(self)

    def update_from_domain(self, user: User) -> None:
        values = user.model_dump(mode="json", include=set(_SYNCED_FIELDS))
        values["email_verification_expires"] = user.email_verification_expires
        for field, value in values.items():
            setattr(self, field, value)
        self.updated_at = datetime.now()
