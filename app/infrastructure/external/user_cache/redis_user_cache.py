import logging
from typing import Optional

from app.domain.external.user_cache import UserCache
from app.domain.models.user import User
from app.infrastructure.storage.redis import RedisClient, get_redis

logger = logging.getLogger(__name__)


class RedisUserCache(UserCache):
    """基于Redis的用户缓存，键为 user:{id}"""

    def __init__(
        self, ttl_seconds: int = 300, redis_client: Optional[RedisClient] = None
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._redis = redis_client or get_redis()

    @staticmethod
    def _key(user_id: str) -> str:
        return f"user:{user_id}"

    async def get(self, user_id: str) -> Optional[User]:
        raw = await self._redis.client.get(self._key(user_id))
        if raw is None:
            return None
        return User.model_validate_json(raw)

    async def set(self, user: User) -> None:
        await self._redis.client.set(
            self._key(user.id),
            user.model_dump_json(),
            ex=self._ttl_seconds,
        )

    async def delete(self, user_id: str) -> None:
        await self._redis.client.delete(self._key(user_id))
