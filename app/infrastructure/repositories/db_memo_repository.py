"""备忘录仓储实现"""

from typing import Optional

from app.domain.models.memo import Memo, MemoQuery, TemplateMemoCount
from app.domain.repositories.memo_repository import MemoRepository
from app.infrastructure.models import DesignTemplateModel, MemoModel
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

# 允许排序的字段
_SORTABLE_COLUMNS = {
    "created_at": MemoModel.created_at,
    "updated_at": MemoModel.updated_at,
    "title": MemoModel.title,
}


class DBMemoRepository(MemoRepository):
    """基于数据库的备忘录仓储"""

    def __init__(self, db_session: AsyncSession) -> None:
        self.db_session = db_session

    async def _get_record(self, memo_id: str) -> Optional[MemoModel]:
        stmt = select(MemoModel).where(MemoModel.id == memo_id)
        result = await self.db_session.execute(stmt)
        return result.scalar_one_or_none()

    async def save(self, memo: Memo) -> Memo:
        """新增或更新备忘录"""
        record = await self._get_record(memo.id)
        if not record:
            record = MemoModel.from_domain(memo)
            self.db_session.add(record)
        else:
            record.update_from_domain(memo)
        await self.db_session.flush()
        return record.to_domain()

    async def get_by_id(self, memo_id: str) -> Optional[Memo]:
        record = await self._get_record(memo_id)
        return record.to_domain() if record else None

    async def delete(self, memo_id: str) -> bool:
        record = await self._get_record(memo_id)
        if record:
            await self.db_session.delete(record)
            return True
        return False

    @staticmethod
    def _filters(query: MemoQuery) -> list:
        filters = []
        if query.user_id:
            filters.append(MemoModel.user_id == query.user_id)
        if query.template_id:
            filters.append(MemoModel.template_id == query.template_id)
        if query.search and query.search.strip():
            pattern = f"%{query.search.strip()}%"
            filters.append(
                or_(MemoModel.title.ilike(pattern), MemoModel.content.ilike(pattern))
            )
        return filters

    async def search(self, query: MemoQuery) -> list[Memo]:
        """按条件分页查询"""
        column = _SORTABLE_COLUMNS.get(query.sort_by, MemoModel.created_at)
        order = column.asc() if query.sort_order == "asc" else column.desc()
        stmt = (
            select(MemoModel)
            .where(*self._filters(query))
            .order_by(order)
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
        )
        result = await self.db_session.execute(stmt)
        return [record.to_domain() for record in result.scalars().all()]

    async def count(self, query: Optional[MemoQuery] = None) -> int:
        stmt = select(func.count()).select_from(MemoModel)
        if query is not None:
            stmt = stmt.where(*self._filters(query))
        result = await self.db_session.execute(stmt)
        return result.scalar() or 0

    async def count_by_template(self) -> list[TemplateMemoCount]:
        """按模板统计备忘录数量，数量倒序"""
        count = func.count(MemoModel.id).label("count")
        stmt = (
            select(MemoModel.template_id, count, DesignTemplateModel.name)
            .join(
                DesignTemplateModel,
                DesignTemplateModel.id == MemoModel.template_id,
                isouter=True,
            )
            .group_by(MemoModel.template_id, DesignTemplateModel.name)
            .order_by(count.desc())
        )
        result = await self.db_session.execute(stmt)
        return [
            TemplateMemoCount(
                template_id=row.template_id, count=row.count, template_name=row.name
            )
            for row in result.all()
        ]
