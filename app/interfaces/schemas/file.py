"""文件相关 Schema"""

from app.domain.models.file import FileAsset
from pydantic import BaseModel, Field

from .base import Pagination


class FileListResponse(BaseModel):
    files: list[FileAsset] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


class DownloadResponse(BaseModel):
    download_url: str
    filename: str


def parse_tags(raw: str | None) -> list[str]:
    """表单中的标签以逗号分隔"""
    if not raw:
        return []
    return [tag for tag in raw.split(",") if tag.strip()]
