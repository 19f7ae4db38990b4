from typing import Optional, Protocol

from app.domain.models.user import User


class UserRepository(Protocol):
    """用户数据仓库，邮箱按小写存储和查询"""

    async def create(self, user: User) -> User:
        ...

    async def get_by_id(self, user_id: str) -> Optional[User]:
        ...

    async def get_by_username(self, username: str) -> Optional[User]:
        ...

    async def get_by_email(self, email: str) -> Optional[User]:
        ...

    async def update(self, user: User) -> User:
        """更新已存在的用户，用户不存在时抛出ValueError"""
        ...

    async def delete(self, user_id: str) -> bool:
        ...

    async def list_all(
        self, skip: int = 0, limit: int = 100, search: Optional[str] = None
    ) -> list[User]:
        """按注册时间倒序分页，search 对用户名和邮箱做模糊匹配"""
        ...

    async def count(self, search: Optional[str] = None) -> int:
        ...

    async def list_emails(self) -> list[tuple[str, str]]:
        """全部(用户id, 邮箱)，用于群发邮件"""
        ...

    async def exists_by_role(self, role: str) -> bool:
        ...
