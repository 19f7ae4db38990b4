"""用户仓储实现"""

from typing import Any, Optional

from app.domain.models.user import User
from app.domain.repositories.user_repository import UserRepository
from app.infrastructure.models.user import UserModel
from sqlalchemy import Select, exists, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession


class DBUserRepository(UserRepository):
    """基于Postgres的用户仓储"""

    def __init__(self, db_session: AsyncSession) -> None:
        self.db_session = db_session

    async def _first(self, *conditions: Any) -> Optional[User]:
        record = await self.db_session.scalar(select(UserModel).where(*conditions))
        return record.to_domain() if record else None

    @staticmethod
    def _apply_search(stmt: Select, search: Optional[str]) -> Select:
        """用户名或邮箱模糊匹配，忽略大小写"""
        keyword = (search or "").strip()
        if not keyword:
            return stmt
        pattern = f"%{keyword}%"
        return stmt.where(
            or_(UserModel.username.ilike(pattern), UserModel.email.ilike(pattern))
        )

    async def create(self, user: User) -> User:
        record = UserModel.from_domain(user)
        self.db_session.add(record)
        await self.db_session.flush()
        return record.to_domain()

    async def get_by_id(self, user_id: str) -> Optional[User]:
        record = await self.db_session.get(UserModel, user_id)
        return record.to_domain() if record else None

    async def get_by_username(self, username: str) -> Optional[User]:
        return await self._first(UserModel.username == username)

    async def get_by_email(self, email: str) -> Optional[User]:
        # 邮箱统一按小写存储
        return await self._first(UserModel.email == email.strip().lower())

    async def update(self, user: User) -> User:
        record = await self.db_session.get(UserModel, user.id)
        if record is None:
            raise ValueError(f"用户[{user.id}]不存在")
        record.update_from_domain(user)
        await self.db_session.flush()
        return record.to_domain()

    async def delete(self, user_id: str) -> bool:
        record = await self.db_session.get(UserModel, user_id)
        if record is None:
            return False
        await self.db_session.delete(record)
        return True

    async def list_all(
        self, skip: int = 0, limit: int = 100, search: Optional[str] = None
    ) -> list[User]:
        stmt = self._apply_search(select(UserModel), search)
        stmt = stmt.order_by(UserModel.created_at.desc()).offset(skip).limit(limit)
        records = await self.db_session.scalars(stmt)
        return [record.to_domain() for record in records]

    async def count(self, search: Optional[str] = None) -> int:
        stmt = self._apply_search(select(func.count(UserModel.id)), search)
        return await self.db_session.scalar(stmt) or 0

    async def list_emails(self) -> list[tuple[str, str]]:
        """按注册时间返回全部(用户id, 邮箱)"""
        result = await self.db_session.execute(
            select(UserModel.id, UserModel.email).order_by(UserModel.created_at)
        )
        return [(user_id, email) for user_id, email in result if email]

    async def exists_by_role(self, role: str) -> bool:
        return bool(
            await self.db_session.scalar(select(exists().where(UserModel.role == role)))
        )
