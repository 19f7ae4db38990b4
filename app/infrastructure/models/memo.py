import uuid
from typing import List, Optional

from sqlalchemy import ForeignKey, Index, PrimaryKeyConstraint, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from ...domain.models.memo import Memo
from .base import Base, TimestampMixin


class MemoModel(TimestampMixin, Base):
    """备忘录ORM模型"""

    __tablename__ = "memos"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_memos_id"),
        Index("ix_memos_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    template_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("design_templates.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    image_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    attached_files: Mapped[List[str]] = mapped_column(
        JSONB,
        nullable=False,
        server_default=text("'[]'::jsonb"),
    )

    @classmethod
    def from_domain(cls, memo: Memo) -> "MemoModel":
        """从领域模型创建ORM模型"""
        return cls(**memo.model_dump(mode="python"))

    def to_domain(self) -> Memo:
        """将ORM模型转换为领域模型"""
        return Memo.model_validate(self, from_attributes=True)

    def update_from_domain(self, memo: Memo) -> None:
        """从领域模型更新数据"""
        data = memo.model_dump(mode="python", exclude={"id", "created_at"})
        for field, value in data.items():
            setattr(self, field, value)
