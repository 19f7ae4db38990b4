import logging
from functools import lru_cache
from typing import Optional

from core.config import get_settings
from redis.asyncio import ConnectionPool, Redis

logger = logging.getLogger(__name__)


class RedisClient:
    """进程内共享的Redis连接池，限流、用户缓存和邮件队列共用"""

    def __init__(self) -> None:
        self._settings = get_settings()
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[Redis] = None

    def _address(self) -> str:
        s = self._settings
        return f"{s.redis_host}:{s.redis_port}/{s.redis_db}"

    async def init(self) -> None:
        """创建连接池并PING一次，失败时释放连接池后抛出"""
        if self._client is not None:
            logger.warning("Redis客户端已初始化，忽略本次调用")
            return

        s = self._settings
        pool = ConnectionPool(
            host=s.redis_host,
            port=s.redis_port,
            db=s.redis_db,
            password=s.redis_password,
            max_connections=s.redis_max_connections,
            decode_responses=True,
            socket_connect_timeout=5,
            health_check_interval=30,
        )
        client = Redis(connection_pool=pool)
        try:
            await client.ping()
        except Exception as e:
            logger.error(f"Redis连接失败[{self._address()}]: {e}")
            await pool.aclose()
            raise

        self._pool = pool
        self._client = client
        logger.info(f"Redis连接成功: {self._address()}")

    async def shutdown(self) -> None:
        if self._client is None:
            logger.warning("Redis客户端未初始化，无需关闭")
        else:
            await self._client.aclose()
            await self._pool.aclose()
            logger.info("Redis连接池已关闭")
        self._client = None
        self._pool = None
        get_redis.cache_clear()

    async def ping(self) -> bool:
        return bool(await self.client.ping())

    @property
    def client(self) -> Redis:
        if self._client is None:
            raise RuntimeError("Redis客户端未初始化，请先调用init()")
        return self._client


@lru_cache()
def get_redis() -> RedisClient:
    return RedisClient()
