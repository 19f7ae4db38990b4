"""用户管理服务"""

import logging
from typing import Callable, Optional

from app.application.errors.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationError,
)
from app.domain.external.user_cache import UserCache
from app.domain.models.memo import Memo, MemoQuery
from app.domain.models.user import User, UserRole
from app.domain.repositories.uow import IUnitOfWork
from core.security import get_password_hash
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)


class UserService:
    """用户增删改查，按id读取时走Redis读穿透缓存"""

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        user_cache: Optional[UserCache] = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._cache = user_cache

    async def _cache_get(self, user_id: str) -> Optional[User]:
        if self._cache is None:
            return None
        try:
            return await self._cache.get(user_id)
        except Exception as e:
            logger.warning(f"读取用户缓存失败[{user_id}]: {str(e)}")
            return None

    async def _cache_set(self, user: User) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.set(user)
        except Exception as e:
            logger.warning(f"写入用户缓存失败[{user.id}]: {str(e)}")

    async def _cache_delete(self, user_id: str) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.delete(user_id)
        except Exception as e:
            logger.warning(f"删除用户缓存失败[{user_id}]: {str(e)}")

    async def list_users(
        self, page: int = 1, limit: int = 10, search: Optional[str] = None
    ) -> tuple[list[User], int]:
        """分页查询用户，search 匹配用户名或邮箱"""
        async with self._uow_factory() as uow:
            users = await uow.user.list_all(
                skip=(page - 1) * limit, limit=limit, search=search
            )
            total = await uow.user.count(search=search)
        return users, total

    async def get_user(self, user_id: str) -> User:
        """根据 ID 获取用户，优先读取缓存"""
        cached = await self._cache_get(user_id)
        if cached is not None:
            return cached

        async with self._uow_factory() as uow:
            user = await uow.user.get_by_id(user_id)
        if not user:
            raise NotFoundError(f"用户[{user_id}]不存在")

        await self._cache_set(user)
        return user

    async def create_user(
        self,
        username: str,
        email: str,
        password: str,
        role: UserRole = UserRole.USER,
    ) -> User:
        """管理员创建用户，邮箱视为已验证"""
        if not password or len(password) < 6:
            raise ValidationError("密码长度至少6位")
        try:
            user = User(
                username=username,
                email=email,
                password_hash=get_password_hash(password),
                is_email_verified=True,
                role=role,
            )
        except PydanticValidationError as e:
            raise ValidationError("用户信息校验失败", data=e.errors(include_url=False))

        async with self._uow_factory() as uow:
            if await uow.user.get_by_username(user.username):
                raise ConflictError("用户名已被使用")
            if await uow.user.get_by_email(user.email):
                raise ConflictError("邮箱已被注册")
            created = await uow.user.create(user)

        logger.info(f"User created: {created.id}")
        return created

    async def update_user(
        self,
        user_id: str,
        username: Optional[str] = None,
        email: Optional[str] = None,
    ) -> User:
        """更新用户名或邮箱，并使缓存失效"""
        async with self._uow_factory() as uow:
            user = await uow.user.get_by_id(user_id)
            if not user:
                raise NotFoundError(f"用户[{user_id}]不存在")

            changes = {}
            if username is not None:
                changes["username"] = username
            if email is not None:
                changes["email"] = email
            try:
                updated = User.model_validate({**user.model_dump(), **changes})
            except PydanticValidationError as e:
                raise ValidationError(
                    "用户信息校验失败", data=e.errors(include_url=False)
                )

            if updated.username != user.username:
                existing = await uow.user.get_by_username(updated.username)
                if existing and existing.id != user_id:
                    raise ConflictError("用户名已被使用")
            if updated.email != user.email:
                existing = await uow.user.get_by_email(updated.email)
                if existing and existing.id != user_id:
                    raise ConflictError("邮箱已被注册")

            updated = await uow.user.update(updated)

        await self._cache_delete(user_id)
        return updated

    async def delete_user(self, user_id: str) -> None:
        """删除用户，并使缓存失效"""
        async with self._uow_factory() as uow:
            deleted = await uow.user.delete(user_id)
        if not deleted:
            raise NotFoundError(f"用户[{user_id}]不存在")
        await self._cache_delete(user_id)
        logger.info(f"User deleted: {user_id}")

    async def list_user_memos(
        self, user_id: str, page: int = 1, limit: int = 10
    ) -> tuple[list[Memo], int]:
        """分页查询用户的备忘录"""
        await self.get_user(user_id)
        query = MemoQuery(page=page, limit=limit, user_id=user_id)
        async with self._uow_factory() as uow:
            memos = await uow.memo.search(query)
            total = await uow.memo.count(query)
        return memos, total
