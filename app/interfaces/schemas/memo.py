"""备忘录相关 Schema"""

from typing import Optional

from app.domain.models.file import FileAsset
from app.domain.models.memo import Memo
from pydantic import BaseModel, Field

from .base import Pagination


class CreateMemoRequest(BaseModel):
    """创建备忘录请求"""

    title: str = Field(..., min_length=1, max_length=200, description="标题")
    content: str = Field(..., min_length=1, max_length=10000, description="内容")
    template_id: str = Field(..., description="设计模板 ID")
    image_url: Optional[str] = Field(None, description="图片地址")


class UpdateMemoRequest(BaseModel):
    """部分更新备忘录请求"""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = Field(None, min_length=1, max_length=10000)
    template_id: Optional[str] = None
    image_url: Optional[str] = None


class DuplicateMemoRequest(BaseModel):
    """复制备忘录请求"""

    user_id: str = Field(..., description="目标用户 ID")


class MemoListResponse(BaseModel):
    memos: list[Memo] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


class MemoWithImageResponse(BaseModel):
    memo: Memo
    file: FileAsset
