import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Index,
    Integer,
    PrimaryKeyConstraint,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from ...domain.models.file import FileAsset, FileMetadata, FileStats
from .base import Base, TimestampMixin


class FileModel(TimestampMixin, Base):
    """上传文件ORM模型，原始文件与尺寸变体信息存放在metadata(JSONB)中"""

    __tablename__ = "files"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_files_id"),
        Index("ix_files_domain_reference_id", "domain", "reference_id"),
        Index("ix_files_uploaded_by_created_at", "uploaded_by", "created_at"),
    )

    id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )  # 文件id
    original_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        server_default=text("''::character varying"),
    )  # 上传时的文件名
    domain: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
    )  # 业务域
    reference_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )  # 所属实体id
    uploaded_by: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )  # 上传者id
    # metadata 为声明式基类保留属性，这里用 file_metadata 映射同名列
    file_metadata: Mapped[Dict[str, Any]] = mapped_column(
        "metadata",
        JSONB,
        nullable=False,
        server_default=text("'{}'::jsonb"),
    )
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        index=True,
        server_default=text("'active'"),
    )  # 文件状态
    tags: Mapped[List[str]] = mapped_column(
        JSONB,
        nullable=False,
        server_default=text("'[]'::jsonb"),
    )  # 标签
    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        server_default=text("''::text"),
    )  # 描述
    is_public: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
    )  # 是否公开
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        nullable=True,
        index=True,
    )  # 过期时间
    download_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default=text("0"),
    )
    view_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default=text("0"),
    )
    last_accessed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        nullable=True,
    )

    @classmethod
    def from_domain(cls, file: FileAsset) -> "FileModel":
        """从领域模型创建ORM模型"""
        record = cls(id=file.id, created_at=file.created_at)
        record.update_from_domain(file)
        return record

    def to_domain(self) -> FileAsset:
        """将ORM模型转换为领域模型"""
        return FileAsset(
            id=self.id,
            original_name=self.original_name,
            domain=self.domain,
            reference_id=self.reference_id,
            uploaded_by=self.uploaded_by,
            metadata=FileMetadata.model_validate(self.file_metadata),
            status=self.status,
            tags=list(self.tags or []),
            description=self.description or "",
            is_public=self.is_public,
            expires_at=self.expires_at,
            stats=FileStats(
                download_count=self.download_count,
                view_count=self.view_count,
                last_accessed_at=self.last_accessed_at,
            ),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def update_from_domain(self, file: FileAsset) -> None:
        """从领域模型更新数据"""
        self.original_name = file.original_name
        self.domain = file.domain.value
        self.reference_id = file.reference_id
        self.uploaded_by = file.uploaded_by
        self.file_metadata = file.metadata.model_dump(mode="json")
        self.status = file.status.value
        self.tags = list(file.tags)
        self.description = file.description
        self.is_public = file.is_public
        self.expires_at = file.expires_at
        self.download_count = file.stats.download_count
        self.view_count = file.stats.view_count
        self.last_accessed_at = file.stats.last_accessed_at
        self.updated_at = file.updated_at
