"""设计模板服务"""

import logging
from datetime import datetime
from typing import Any, Callable, Optional

from app.application.errors.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationError,
)
from app.domain.models.design_template import DesignTemplate, TemplateUsage
from app.domain.models.memo import Memo, MemoQuery
from app.domain.repositories.uow import IUnitOfWork
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)

# 允许更新的字段
_EDITABLE_FIELDS = (
    "name",
    "background_color",
    "text_color",
    "border_style",
    "shadow_style",
    "preview",
)


class TemplateService:
    """设计模板增删改查与使用统计"""

    def __init__(self, uow_factory: Callable[[], IUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    async def list_templates(
        self, page: int = 1, limit: int = 20, search: Optional[str] = None
    ) -> tuple[list[DesignTemplate], int]:
        async with self._uow_factory() as uow:
            templates = await uow.template.list_all(
                skip=(page - 1) * limit, limit=limit, search=search
            )
            total = await uow.template.count(search=search)
        return templates, total

    async def get_template(self, template_id: str) -> DesignTemplate:
        async with self._uow_factory() as uow:
            template = await uow.template.get_by_id(template_id)
        if not template:
            raise NotFoundError(f"模板[{template_id}]不存在")
        return template

    async def create_template(self, **fields: Any) -> DesignTemplate:
        try:
            template = DesignTemplate(**fields)
        except PydanticValidationError as e:
            raise ValidationError("模板信息校验失败", data=e.errors(include_url=False))

        async with self._uow_factory() as uow:
            created = await uow.template.save(template)
        logger.info(f"Template created: {created.id}")
        return created

    async def update_template(
        self, template_id: str, changes: dict[str, Any]
    ) -> DesignTemplate:
        """部分更新模板，值为None的字段忽略"""
        async with self._uow_factory() as uow:
            template = await uow.template.get_by_id(template_id)
            if not template:
                raise NotFoundError(f"模板[{template_id}]不存在")

            patch = {
                key: value
                for key, value in changes.items()
                if key in _EDITABLE_FIELDS and value is not None
            }
            try:
                updated = DesignTemplate.model_validate(
                    {**template.model_dump(), **patch, "updated_at": datetime.now()}
                )
            except PydanticValidationError as e:
                raise ValidationError(
                    "模板信息校验失败", data=e.errors(include_url=False)
                )
            return await uow.template.save(updated)

    async def delete_template(self, template_id: str) -> None:
        """删除模板，仍被备忘录使用时拒绝删除"""
        async with self._uow_factory() as uow:
            template = await uow.template.get_by_id(template_id)
            if not template:
                raise NotFoundError(f"模板[{template_id}]不存在")
            in_use = await uow.memo.count(MemoQuery(template_id=template_id))
            if in_use:
                raise ConflictError(f"模板仍被{in_use}条备忘录使用，无法删除")
            await uow.template.delete(template_id)
        logger.info(f"Template deleted: {template_id}")

    async def list_template_memos(
        self, template_id: str, page: int = 1, limit: int = 10
    ) -> tuple[list[Memo], int]:
        await self.get_template(template_id)
        query = MemoQuery(page=page, limit=limit, template_id=template_id)
        async with self._uow_factory() as uow:
            memos = await uow.memo.search(query)
            total = await uow.memo.count(query)
        return memos, total

    async def popular_templates(self, limit: int = 5) -> list[TemplateUsage]:
        """按使用次数倒序返回最常用的模板"""
        async with self._uow_factory() as uow:
            counts = (await uow.memo.count_by_template())[:limit]
            templates = await uow.template.get_many([c.template_id for c in counts])

        by_id = {template.id: template for template in templates}
        result: list[TemplateUsage] = []
        for item in counts:
            template = by_id.get(item.template_id)
            result.append(
                TemplateUsage(
                    template_id=item.template_id,
                    count=item.count,
                    name=template.name if template else "",
                    preview=template.preview if template else "",
                    background_color=template.background_color if template else "",
                )
            )
        return result
