"""设计模板仓储接口"""

from abc import ABC, abstractmethod
from typing import Optional

from app.domain.models.design_template import DesignTemplate


class TemplateRepository(ABC):
    """设计模板仓储抽象接口"""

    @abstractmethod
    async def save(self, template: DesignTemplate) -> DesignTemplate:
        """新增或更新模板"""
        pass

    @abstractmethod
    async def get_by_id(self, template_id: str) -> Optional[DesignTemplate]:
        """根据 ID 获取模板"""
        pass

    @abstractmethod
    async def get_many(self, template_ids: list[str]) -> list[DesignTemplate]:
        """批量获取模板"""
        pass

    @abstractmethod
    async def delete(self, template_id: str) -> bool:
        """删除模板"""
        pass

    @abstractmethod
    async def list_all(
        self, skip: int = 0, limit: int = 20, search: Optional[str] = None
    ) -> list[DesignTemplate]:
        """获取模板列表，按创建时间倒序"""
        pass

    @abstractmethod
    async def count(self, search: Optional[str] = None) -> int:
        """获取模板总数"""
        pass
