import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class Memo(BaseModel):
    """备忘录领域模型"""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1, max_length=10000)
    template_id: str
    user_id: Optional[str] = None
    image_url: Optional[str] = None  # 兼容旧版本的单图字段
    attached_files: List[str] = Field(default_factory=list)  # FileAsset id列表
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class MemoQuery(BaseModel):
    """备忘录列表查询条件"""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    user_id: Optional[str] = None
    template_id: Optional[str] = None
    search: Optional[str] = None
    sort_by: str = "created_at"
    sort_order: str = "desc"


class TemplateMemoCount(BaseModel):
    """按模板聚合的备忘录数量"""

    template_id: str
    count: int = 0
    template_name: Optional[str] = None


class MemoTotals(BaseModel):
    memos: int = 0
    users: int = 0
    templates: int = 0


class MemoStatsOverview(BaseModel):
    """备忘录总览统计"""

    totals: MemoTotals = Field(default_factory=MemoTotals)
    recent_memos: List[Memo] = Field(default_factory=list)
    memos_by_template: List[TemplateMemoCount] = Field(default_factory=list)
