import asyncio

from app.infrastructure.external.queue_store.redis_list_queue_store import (
    RedisListQueueStore,
)


class FakeRedis:
    def __init__(self) -> None:
        self.lists: dict[str, list[str]] = {}
        self.calls: list[tuple] = []

    async def rpush(self, key: str, value: str) -> int:
        self.lists.setdefault(key, []).append(value)
        return len(self.lists[key])

    async def lmove(self, source: str, destination: str, src: str, dest: str) -> str | None:
        self.calls.append(("lmove", source, destination, src, dest))
        items = self.lists.get(source)
        if not items:
            return None
        item = items.pop(0)
        self.lists.setdefault(destination, []).append(item)
        return item

    async def lrange(self, key: str, start: int, stop: int) -> list[str]:
        items = self.lists.get(key, [])
        return items[start:] if stop == -1 else items[start : stop + 1]

    async def lrem(self, key: str, count: int, value: str) -> int:
        items = self.lists.get(key, [])
        removed = 0
        while value in items and removed < count:
            items.remove(value)
            removed += 1
        return removed

    async def delete(self, key: str) -> int:
        return 1 if self.lists.pop(key, None) is not None else 0

    async def llen(self, key: str) -> int:
        return len(self.lists.get(key, []))


class FakeRedisClient:
    def __init__(self, redis: FakeRedis) -> None:
        self.client = redis


def test_move_head_is_fifo_and_uses_single_lmove() -> None:
    redis = FakeRedis()
    store = RedisListQueueStore(FakeRedisClient(redis))

    async def scenario() -> list[str | None]:
        await store.push_tail("q", "a")
        await store.push_tail("q", "b")
        return [
            await store.move_head("q", "p"),
            await store.move_head("q", "p"),
            await store.move_head("q", "p"),
        ]

    assert asyncio.run(scenario()) == ["a", "b", None]
    assert redis.lists["p"] == ["a", "b"]
    assert redis.calls[0] == ("lmove", "q", "p", "LEFT", "RIGHT")


def test_remove_one_only_removes_first_match() -> None:
    redis = FakeRedis()
    redis.lists["p"] = ["x", "y", "x"]
    store = RedisListQueueStore(FakeRedisClient(redis))

    asyncio.run(store.remove_one("p", "x"))

    assert redis.lists["p"] == ["y", "x"]
    assert asyncio.run(store.list_all("p")) == ["y", "x"]
    assert asyncio.run(store.length("p")) == 2


def test_delete_list_clears_everything() -> None:
    redis = FakeRedis()
    redis.lists["q"] = ["a"]
    store = RedisListQueueStore(FakeRedisClient(redis))

    asyncio.run(store.delete_list("q"))

    assert asyncio.run(store.length("q")) == 0
