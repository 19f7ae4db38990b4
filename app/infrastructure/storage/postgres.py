import logging
from functools import lru_cache
from typing import AsyncGenerator, Optional

from app.domain.repositories.uow import IUnitOfWork
from app.infrastructure.repositories.db_uow import DBUnitOfWork
from core.config import Settings, get_settings
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

logger = logging.getLogger(__name__)


def _build_engine(settings: Settings) -> AsyncEngine:
    """按配置创建异步引擎，连接池参数来自配置"""
    return create_async_engine(
        settings.sqlalchemy_database_url,
        echo=settings.sqlalchemy_echo,
        pool_size=settings.sqlalchemy_pool_size,
        max_overflow=settings.sqlalchemy_max_overflow,
        pool_pre_ping=True,
    )


class Postgres:
    """Postgres客户端，持有全局唯一的引擎和会话工厂"""

    def __init__(self) -> None:
        self._settings = get_settings()
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    async def init(self) -> None:
        """创建引擎和会话工厂，并执行一次连通性检查"""
        if self.is_initialized:
            logger.warning("Postgres客户端已初始化，忽略本次调用")
            return

        logger.info("正在连接Postgres...")
        engine = _build_engine(self._settings)
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            await engine.dispose()
            logger.error(f"Postgres连接失败: {e}")
            raise

        self._engine = engine
        self._session_factory = async_sessionmaker(
            bind=engine, autoflush=False, expire_on_commit=False
        )
        logger.info("Postgres连接成功")

    async def shutdown(self) -> None:
        """释放连接池并清除单例缓存"""
        if self._engine is None:
            logger.warning("Postgres客户端未初始化，无需关闭")
        else:
            await self._engine.dispose()
            logger.info("Postgres连接池已释放")
        self._engine = None
        self._session_factory = None
        get_postgres.cache_clear()

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            raise RuntimeError("Postgres客户端未初始化，请先调用init()")
        return self._session_factory


@lru_cache()
def get_postgres() -> Postgres:
    return Postgres()


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """依赖注入用的数据库会话，请求结束时关闭，异常时回滚"""
    async with get_postgres().session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


def get_uow() -> IUnitOfWork:
    """每次调用返回一个新的UoW，供服务层按操作创建"""
    return DBUnitOfWork(session_factory=get_postgres().session_factory)
