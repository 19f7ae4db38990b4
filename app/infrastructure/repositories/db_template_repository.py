"""设计模板仓储实现"""

from typing import Optional

from app.domain.models.design_template import DesignTemplate
from app.domain.repositories.template_repository import TemplateRepository
from app.infrastructure.models import DesignTemplateModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession


class DBTemplateRepository(TemplateRepository):
    """基于数据库的设计模板仓储"""

    def __init__(self, db_session: AsyncSession) -> None:
        self.db_session = db_session

    async def _get_record(self, template_id: str) -> Optional[DesignTemplateModel]:
        stmt = select(DesignTemplateModel).where(DesignTemplateModel.id == template_id)
        result = await self.db_session.execute(stmt)
        return result.scalar_one_or_none()

    async def save(self, template: DesignTemplate) -> DesignTemplate:
        """新增或更新模板"""
        record = await self._get_record(template.id)
        if not record:
            record = DesignTemplateModel.from_domain(template)
            self.db_session.add(record)
        else:
            record.update_from_domain(template)
        await self.db_session.flush()
        return record.to_domain()

    async def get_by_id(self, template_id: str) -> Optional[DesignTemplate]:
        record = await self._get_record(template_id)
        return record.to_domain() if record else None

    async def get_many(self, template_ids: list[str]) -> list[DesignTemplate]:
        if not template_ids:
            return []
        stmt = select(DesignTemplateModel).where(
            DesignTemplateModel.id.in_(template_ids)
        )
        result = await self.db_session.execute(stmt)
        return [record.to_domain() for record in result.scalars().all()]

    async def delete(self, template_id: str) -> bool:
        record = await self._get_record(template_id)
        if record:
            await self.db_session.delete(record)
            return True
        return False

    async def list_all(
        self, skip: int = 0, limit: int = 20, search: Optional[str] = None
    ) -> list[DesignTemplate]:
        stmt = select(DesignTemplateModel)
        if search and search.strip():
            stmt = stmt.where(DesignTemplateModel.name.ilike(f"%{search.strip()}%"))
        stmt = (
            stmt.order_by(DesignTemplateModel.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.db_session.execute(stmt)
        return [record.to_domain() for record in result.scalars().all()]

    async def count(self, search: Optional[str] = None) -> int:
        stmt = select(func.count()).select_from(DesignTemplateModel)
        if search and search.strip():
            stmt = stmt.where(DesignTemplateModel.name.ilike(f"%{search.strip()}%"))
        result = await self.db_session.execute(stmt)
        return result.scalar() or 0
