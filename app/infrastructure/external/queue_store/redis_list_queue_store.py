import logging
from typing import List, Optional

from app.domain.external.queue_store import QueueStore
from app.infrastructure.storage.redis import RedisClient, get_redis

logger = logging.getLogger(__name__)


class RedisListQueueStore(QueueStore):
    """基于Redis List的队列存储，尾部RPUSH、头部LMOVE保证先进先出"""

    def __init__(self, redis_client: Optional[RedisClient] = None) -> None:
        self._redis = redis_client or get_redis()

    async def push_tail(self, list_name: str, item: str) -> None:
        await self._redis.client.rpush(list_name, item)

    async def move_head(self, source: str, destination: str) -> Optional[str]:
        """LMOVE在一条命令内完成出队和移入处理中列表"""
        return await self._redis.client.lmove(source, destination, "LEFT", "RIGHT")

    async def list_all(self, list_name: str) -> List[str]:
        return await self._redis.client.lrange(list_name, 0, -1)

    async def remove_one(self, list_name: str, item: str) -> None:
        removed = await self._redis.client.lrem(list_name, 1, item)
        if not removed:
            logger.debug(f"列表[{list_name}]中未找到待移除的元素")

    async def delete_list(self, list_name: str) -> None:
        await self._redis.client.delete(list_name)

    async def length(self, list_name: str) -> int:
        return await self._redis.client.llen(list_name)
