import uuid

from sqlalchemy import PrimaryKeyConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from ...domain.models.design_template import DesignTemplate
from .base import Base, TimestampMixin


class DesignTemplateModel(TimestampMixin, Base):
    """设计模板ORM模型"""

    __tablename__ = "design_templates"
    __table_args__ = (PrimaryKeyConstraint("id", name="pk_design_templates_id"),)

    id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    background_color: Mapped[str] = mapped_column(String(7), nullable=False)
    text_color: Mapped[str] = mapped_column(String(7), nullable=False)
    border_style: Mapped[str] = mapped_column(String(200), nullable=False)
    shadow_style: Mapped[str] = mapped_column(String(200), nullable=False)
    preview: Mapped[str] = mapped_column(String(10), nullable=False)

    @classmethod
    def from_domain(cls, template: DesignTemplate) -> "DesignTemplateModel":
        """从领域模型创建ORM模型"""
        return cls(**template.model_dump(mode="python"))

    def to_domain(self) -> DesignTemplate:
        """将ORM模型转换为领域模型"""
        return DesignTemplate.model_validate(self, from_attributes=True)

    def update_from_domain(self, template: DesignTemplate) -> None:
        """从领域模型更新数据"""
        data = template.model_dump(mode="python", exclude={"id", "created_at"})
        for field, value in data.items():
            setattr(self, field, value)
