"""备忘录仓储接口"""

from abc import ABC, abstractmethod
from typing import Optional

from app.domain.models.memo import Memo, MemoQuery, TemplateMemoCount


class MemoRepository(ABC):
    """备忘录仓储抽象接口"""

    @abstractmethod
    async def save(self, memo: Memo) -> Memo:
        """新增或更新备忘录"""
        pass

    @abstractmethod
    async def get_by_id(self, memo_id: str) -> Optional[Memo]:
        """根据 ID 获取备忘录"""
        pass

    @abstractmethod
    async def delete(self, memo_id: str) -> bool:
        """删除备忘录"""
        pass

    @abstractmethod
    async def search(self, query: MemoQuery) -> list[Memo]:
        """按条件分页查询"""
        pass

    @abstractmethod
    async def count(self, query: Optional[MemoQuery] = None) -> int:
        """按条件统计数量，query 为空时统计全部"""
        pass

    @abstractmethod
    async def count_by_template(self) -> list[TemplateMemoCount]:
        """按模板统计备忘录数量，数量倒序"""
        pass
