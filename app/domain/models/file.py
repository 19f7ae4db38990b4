import os
import uuid
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class FileDomain(str, Enum):
    """文件所属业务域，决定存储路径与访问规则"""

    MEMO = "memo"
    PROFILE_IMAGE = "profile-image"
    TEMPLATE_IMAGE = "template-image"
    ATTACHMENT = "attachment"


class FileStatus(str, Enum):
    """文件生命周期状态"""

    ACTIVE = "active"
    PROCESSING = "processing"
    DELETED = "deleted"
    FAILED = "failed"


class VariantName(str, Enum):
    """图片尺寸变体名称，取值集合固定"""

    THUMBNAIL = "thumbnail"
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class Dimensions(BaseModel):
    """图片像素尺寸"""

    width: int = Field(ge=0)
    height: int = Field(ge=0)


class OriginalFile(BaseModel):
    """原始文件的存储信息"""

    filename: str
    path: str
    url: str
    size: int = Field(default=0, ge=0)
    mime_type: str = ""
    extension: str = ""  # 小写且不含点
    dimensions: Optional[Dimensions] = None


class VariantFile(BaseModel):
    """尺寸变体的存储信息"""

    filename: str
    path: str
    url: str
    size: int = Field(default=0, ge=0)
    dimensions: Optional[Dimensions] = None


class FileMetadata(BaseModel):
    """原始文件 + 各尺寸变体"""

    original: OriginalFile
    resized: Dict[VariantName, VariantFile] = Field(default_factory=dict)


class FileStats(BaseModel):
    """访问统计，计数只增不减"""

    download_count: int = Field(default=0, ge=0)
    view_count: int = Field(default=0, ge=0)
    last_accessed_at: Optional[datetime] = None


class VariantSpec(BaseModel):
    """单个尺寸变体的生成参数，按cover方式裁剪且不放大"""

    name: VariantName
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    quality: int = Field(default=85, ge=1, le=100)


DEFAULT_VARIANT_SPECS: List[VariantSpec] = [
    VariantSpec(name=VariantName.THUMBNAIL, width=150, height=150),
    VariantSpec(name=VariantName.SMALL, width=300, height=300),
    VariantSpec(name=VariantName.MEDIUM, width=600, height=600),
    VariantSpec(name=VariantName.LARGE, width=1200, height=1200),
]


class RawFile(BaseModel):
    """已经写入Blob存储、等待登记的原始文件"""

    original_name: str
    stored_filename: str
    stored_path: str
    size: int = 0
    mime_type: str = "application/octet-stream"


class RegisterOptions(BaseModel):
    """登记文件时的可选参数"""

    tags: List[str] = Field(default_factory=list)
    description: str = ""
    is_public: bool = False
    expires_at: Optional[datetime] = None


def normalize_tags(tags: List[str]) -> List[str]:
    """标签去空白、转小写、去重并保持首次出现的顺序"""
    result: List[str] = []
    for tag in tags:
        value = tag.strip().lower()
        if value and value not in result:
            result.append(value)
    return result


def extension_of(filename: str) -> str:
    """从文件名中提取小写扩展名，不含点"""
    return os.path.splitext(filename)[1].lower().lstrip(".")


class FileAsset(BaseModel):
    """上传文件领域模型，记录原始文件、尺寸变体、状态与访问统计"""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))  # 文件id
    original_name: str = Field(min_length=1, max_length=255)  # 用户上传时的文件名
    domain: FileDomain  # 业务域
    reference_id: str  # 所属实体id（备忘录/用户/模板）
    uploaded_by: str  # 上传者id
    metadata: FileMetadata
    status: FileStatus = FileStatus.ACTIVE
    tags: List[str] = Field(default_factory=list)
    description: str = Field(default="", max_length=500)
    is_public: bool = False
    expires_at: Optional[datetime] = None
    stats: FileStats = Field(default_factory=FileStats)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, value: List[str]) -> List[str]:
        return normalize_tags(value)

    @property
    def is_image(self) -> bool:
        return self.metadata.original.mime_type.startswith("image/")

    @property
    def is_video(self) -> bool:
        return self.metadata.original.mime_type.startswith("video/")

    @property
    def is_document(self) -> bool:
        mime_type = self.metadata.original.mime_type
        return mime_type.startswith("application/") or mime_type.startswith("text/")

    @property
    def is_active(self) -> bool:
        return self.status == FileStatus.ACTIVE

    def blob_paths(self) -> List[str]:
        """原始文件及全部变体在Blob存储中的路径"""
        return [self.metadata.original.path] + [
            variant.path for variant in self.metadata.resized.values()
        ]

    def add_variant(self, name: VariantName, variant: VariantFile) -> None:
        """记录一个尺寸变体，同名变体会被覆盖"""
        if self.metadata.original is None:
            raise ValueError("原始文件信息不存在，无法记录尺寸变体")
        self.metadata.resized[VariantName(name)] = variant
        self.updated_at = datetime.now()

    def mark_viewed(self, now: Optional[datetime] = None) -> None:
        self.stats.view_count += 1
        self.stats.last_accessed_at = now or datetime.now()

    def mark_downloaded(self, now: Optional[datetime] = None) -> None:
        self.stats.download_count += 1
        self.stats.last_accessed_at = now or datetime.now()

    def variant_filename(self, name: VariantName) -> str:
        """变体文件名: <原始文件名主干>_<变体名>.<扩展名>"""
        stem, ext = os.path.splitext(self.metadata.original.filename)
        return f"{stem}_{VariantName(name).value}{ext.lower()}"

    def variant_path(self, name: VariantName) -> str:
        """变体与原始文件存放在同一目录"""
        directory = os.path.dirname(self.metadata.original.path)
        filename = self.variant_filename(name)
        return f"{directory}/{filename}" if directory else filename


class DomainStats(BaseModel):
    """单个业务域的统计"""

    domain: FileDomain
    count: int = 0
    total_size: int = 0
    avg_size: float = 0


class FileStatsOverview(BaseModel):
    """活跃文件的汇总统计"""

    total_files: int = 0
    total_size: int = 0
    by_domain: List[DomainStats] = Field(default_factory=list)
