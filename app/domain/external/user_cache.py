from typing import Optional, Protocol

from app.domain.models.user import User


class UserCache(Protocol):
    """用户读穿透缓存协议"""

    async def get(self, user_id: str) -> Optional[User]:
        ...

    async def set(self, user: User) -> None:
        ...

    async def delete(self, user_id: str) -> None:
        ...
