"""备忘录服务"""

import logging
from datetime import datetime
from typing import Any, Callable, Optional

from app.application.errors.exceptions import (
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from app.application.services.file_service import FileService
from app.domain.models.file import FileAsset, FileDomain, RegisterOptions
from app.domain.models.memo import (
    Memo,
    MemoQuery,
    MemoStatsOverview,
    MemoTotals,
)
from app.domain.models.user import User
from app.domain.repositories.uow import IUnitOfWork
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("title", "content", "template_id", "image_url")


class MemoService:
    """备忘录增删改查、带图创建、复制与统计"""

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        file_service: Optional[FileService] = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._file_service = file_service

    @staticmethod
    def _check_owner(memo: Memo, actor: User) -> None:
        """只有作者或管理员可以修改备忘录"""
        if actor.is_admin():
            return
        if not memo.user_id or memo.user_id != actor.id:
            raise ForbiddenError("无权操作此备忘录")

    async def list_memos(self, query: MemoQuery) -> tuple[list[Memo], int]:
        async with self._uow_factory() as uow:
            memos = await uow.memo.search(query)
            total = await uow.memo.count(query)
        return memos, total

    async def get_memo(self, memo_id: str) -> Memo:
        async with self._uow_factory() as uow:
            memo = await uow.memo.get_by_id(memo_id)
        if not memo:
            raise NotFoundError(f"备忘录[{memo_id}]不存在")
        return memo

    async def create_memo(
        self,
        title: str,
        content: str,
        template_id: str,
        user_id: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> Memo:
        try:
            memo = Memo(
                title=title,
                content=content,
                template_id=template_id,
                user_id=user_id,
                image_url=image_url,
            )
        except PydanticValidationError as e:
            raise ValidationError("备忘录信息校验失败", data=e.errors(include_url=False))

        async with self._uow_factory() as uow:
            if not await uow.template.get_by_id(template_id):
                raise NotFoundError(f"模板[{template_id}]不存在")
            created = await uow.memo.save(memo)
        logger.info(f"Memo created: {created.id}")
        return created

    async def create_with_image(
        self,
        title: str,
        content: str,
        template_id: str,
        author: User,
        filename: str,
        content_type: Optional[str],
        data: bytes,
    ) -> tuple[Memo, FileAsset]:
        """创建备忘录并将图片登记为memo业务域的文件"""
        if self._file_service is None:
            raise RuntimeError("未配置文件服务，无法上传图片")

        # 1.先创建备忘录，文件以备忘录id为所属实体
        memo = await self.create_memo(title, content, template_id, user_id=author.id)

        # 2.上传图片，失败时删除刚创建的备忘录
        try:
            asset = await self._file_service.upload_asset(
                filename=filename,
                content_type=content_type,
                data=data,
                domain=FileDomain.MEMO,
                reference_id=memo.id,
                uploader_id=author.id,
                options=RegisterOptions(is_public=True),
            )
        except Exception:
            async with self._uow_factory() as uow:
                await uow.memo.delete(memo.id)
            raise

        # 3.回写图片地址和附件
        memo.image_url = asset.metadata.original.url
        memo.attached_files.append(asset.id)
        memo.updated_at = datetime.now()
        async with self._uow_factory() as uow:
            memo = await uow.memo.save(memo)
        return memo, asset

    async def update_memo(
        self, memo_id: str, changes: dict[str, Any], actor: User
    ) -> Memo:
        """部分更新，模板变更时重新校验模板是否存在"""
        async with self._uow_factory() as uow:
            memo = await uow.memo.get_by_id(memo_id)
            if not memo:
                raise NotFoundError(f"备忘录[{memo_id}]不存在")
            self._check_owner(memo, actor)

            patch = {
                key: value
                for key, value in changes.items()
                if key in _EDITABLE_FIELDS and value is not None
            }
            if "template_id" in patch and patch["template_id"] != memo.template_id:
                if not await uow.template.get_by_id(patch["template_id"]):
                    raise NotFoundError(f"模板[{patch['template_id']}]不存在")

            try:
                updated = Memo.model_validate(
                    {**memo.model_dump(), **patch, "updated_at": datetime.now()}
                )
            except PydanticValidationError as e:
                raise ValidationError(
                    "备忘录信息校验失败", data=e.errors(include_url=False)
                )
            return await uow.memo.save(updated)

    async def delete_memo(self, memo_id: str, actor: User) -> None:
        async with self._uow_factory() as uow:
            memo = await uow.memo.get_by_id(memo_id)
            if not memo:
                raise NotFoundError(f"备忘录[{memo_id}]不存在")
            self._check_owner(memo, actor)
            await uow.memo.delete(memo_id)
        logger.info(f"Memo deleted: {memo_id}")

    async def duplicate_memo(self, memo_id: str, user_id: str) -> Memo:
        """复制备忘录给指定用户，标题追加 (Copy)"""
        async with self._uow_factory() as uow:
            memo = await uow.memo.get_by_id(memo_id)
            if not memo:
                raise NotFoundError(f"备忘录[{memo_id}]不存在")
            if not await uow.user.get_by_id(user_id):
                raise NotFoundError(f"用户[{user_id}]不存在")

            title = f"{memo.title} (Copy)"[:200]
            copy = Memo(
                title=title,
                content=memo.content,
                template_id=memo.template_id,
                user_id=user_id,
                image_url=memo.image_url,
            )
            return await uow.memo.save(copy)

    async def stats_overview(self, recent_limit: int = 5) -> MemoStatsOverview:
        """总数、最近备忘录与按模板统计"""
        async with self._uow_factory() as uow:
            totals = MemoTotals(
                memos=await uow.memo.count(),
                users=await uow.user.count(),
                templates=await uow.template.count(),
            )
            recent = await uow.memo.search(MemoQuery(page=1, limit=recent_limit))
            by_template = await uow.memo.count_by_template()
        return MemoStatsOverview(
            totals=totals, recent_memos=recent, memos_by_template=by_template
        )
