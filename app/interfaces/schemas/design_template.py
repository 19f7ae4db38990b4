"""设计模板相关 Schema"""

from typing import Optional

from app.domain.models.design_template import DesignTemplate
from pydantic import BaseModel, Field

from .base import Pagination


class CreateTemplateRequest(BaseModel):
    """创建模板请求，颜色格式在领域模型中校验"""

    name: str = Field(..., min_length=1, max_length=100)
    background_color: str = Field(..., description="背景色，例如 #ffffff")
    text_color: str = Field(..., description="文字颜色，例如 #333")
    border_style: str = Field(..., min_length=1, max_length=200)
    shadow_style: str = Field(..., min_length=1, max_length=200)
    preview: str = Field(..., min_length=1, max_length=10)


class UpdateTemplateRequest(BaseModel):
    """部分更新模板请求"""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    background_color: Optional[str] = None
    text_color: Optional[str] = None
    border_style: Optional[str] = Field(None, min_length=1, max_length=200)
    shadow_style: Optional[str] = Field(None, min_length=1, max_length=200)
    preview: Optional[str] = Field(None, min_length=1, max_length=10)


class TemplateListResponse(BaseModel):
    templates: list[DesignTemplate] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)
