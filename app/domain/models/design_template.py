import re
import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

HEX_COLOR_PATTERN = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")


class DesignTemplate(BaseModel):
    """备忘录设计模板"""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(min_length=1, max_length=100)
    background_color: str
    text_color: str
    border_style: str = Field(min_length=1, max_length=200)
    shadow_style: str = Field(min_length=1, max_length=200)
    preview: str = Field(min_length=1, max_length=10)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @field_validator("background_color", "text_color")
    @classmethod
    def _check_hex_color(cls, value: str) -> str:
        value = value.strip()
        if not HEX_COLOR_PATTERN.match(value):
            raise ValueError("颜色必须是合法的十六进制色值，例如 #fff 或 #ffffff")
        return value


class TemplateUsage(BaseModel):
    """模板使用次数统计"""

    template_id: str
    count: int = 0
    name: str = ""
    preview: str = ""
    background_color: str = ""
