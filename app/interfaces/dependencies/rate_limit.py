"""请求限流依赖，基于Redis计数的固定窗口算法"""

import logging
import time
from enum import Enum

from app.application.errors.exceptions import ServiceUnavailableError, TooManyRequestsError
from app.infrastructure.storage.redis import RedisClient, get_redis
from core.config import Settings, get_settings
from fastapi import Depends, Request
from redis.asyncio import Redis

from .auth import CurrentUser, OptionalUser

logger = logging.getLogger(__name__)


class RateLimitBucket(str, Enum):
    READ = "read"
    WRITE = "write"
    UPLOAD = "upload"


# 每个桶对应的配置项
_LIMIT_SETTINGS = {
    RateLimitBucket.READ: "rate_limit_read_per_minute",
    RateLimitBucket.WRITE: "rate_limit_write_per_minute",
    RateLimitBucket.UPLOAD: "rate_limit_upload_per_minute",
}


def _limit_for(bucket: RateLimitBucket, settings: Settings) -> int:
    return int(getattr(settings, _LIMIT_SETTINGS[bucket]))


def _window_key(bucket: RateLimitBucket, subject: str, window_seconds: int) -> str:
    window = int(time.time() // window_seconds)
    return f"rl:req:{bucket.value}:{subject}:{window}"


async def _retry_after(redis: Redis, key: str, window_seconds: int) -> int:
    try:
        ttl = await redis.ttl(key)
    except Exception:
        return window_seconds
    return ttl if isinstance(ttl, int) and ttl > 0 else window_seconds


async def enforce_request_limit(
    bucket: RateLimitBucket,
    subject: str,
    redis_client: RedisClient,
) -> None:
    """对subject(用户id或ip:客户端地址)计数，超过当前窗口的上限时抛出429"""
    settings = get_settings()
    window_seconds = settings.rate_limit_window_seconds
    limit = _limit_for(bucket, settings)
    key = _window_key(bucket, subject, window_seconds)

    try:
        redis = redis_client.client
        current = await redis.incr(key)
        if current == 1:
            await redis.expire(key, window_seconds + 1)
    except Exception as e:
        logger.error(f"请求限流计数失败[{key}]: {e}")
        raise ServiceUnavailableError("限流服务不可用，请稍后重试") from e

    if current <= limit:
        return

    logger.warning(f"请求过于频繁: bucket={bucket.value}, subject={subject}")
    raise TooManyRequestsError(
        retry_after=await _retry_after(redis, key, window_seconds),
        limit=limit,
        window_seconds=window_seconds,
        bucket=bucket.value,
    )


async def rate_limit_read(
    request: Request,
    current_user: OptionalUser,
    redis_client: RedisClient = Depends(get_redis),
) -> None:
    """读接口允许匿名访问，匿名请求按客户端地址计数"""
    if current_user is not None:
        subject = current_user.id
    else:
        subject = f"ip:{request.client.host if request.client else 'unknown'}"
    await enforce_request_limit(RateLimitBucket.READ, subject, redis_client)


async def rate_limit_write(
    current_user: CurrentUser,
    redis_client: RedisClient = Depends(get_redis),
) -> None:
    await enforce_request_limit(RateLimitBucket.WRITE, current_user.id, redis_client)


async def rate_limit_upload(
    current_user: CurrentUser,
    redis_client: RedisClient = Depends(get_redis),
) -> None:
    await enforce_request_limit(RateLimitBucket.UPLOAD, current_user.id, redis_client)
