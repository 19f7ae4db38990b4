import asyncio

from app.domain.models.user import User
from app.infrastructure.external.user_cache.redis_user_cache import RedisUserCache


class FakeRedis:
    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.expires: dict[str, int] = {}

    async def get(self, key: str) -> str | None:
        return self.values.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.values[key] = value
        if ex is not None:
            self.expires[key] = ex
        return True

    async def delete(self, key: str) -> int:
        return 1 if self.values.pop(key, None) is not None else 0


class FakeRedisClient:
    def __init__(self, redis: FakeRedis) -> None:
        self.client = redis


def test_user_cache_roundtrip_with_ttl() -> None:
    redis = FakeRedis()
    cache = RedisUserCache(ttl_seconds=120, redis_client=FakeRedisClient(redis))
    user = User(id="u1", username="alice", email="alice@example.com")

    asyncio.run(cache.set(user))
    cached = asyncio.run(cache.get("u1"))

    assert cached == user
    assert redis.expires["user:u1"] == 120


def test_user_cache_miss_and_delete() -> None:
    redis = FakeRedis()
    cache = RedisUserCache(redis_client=FakeRedisClient(redis))
    asyncio.run(cache.set(User(id="u1", username="alice", email="alice@example.com")))

    asyncio.run(cache.delete("u1"))

    assert asyncio.run(cache.get("u1")) is None
