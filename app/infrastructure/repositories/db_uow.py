import logging
from typing import Optional

from app.domain.repositories.uow import IUnitOfWork
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .db_file_repository import DBFileRepository
from .db_memo_repository import DBMemoRepository
from .db_template_repository import DBTemplateRepository
from .db_user_repository import DBUserRepository

logger = logging.getLogger(__name__)


class DBUnitOfWork(IUnitOfWork):
    """基于Postgres的UoW，一个上下文对应一个会话和一个事务

    上下文正常退出时提交，提交失败会回滚并把异常继续抛给调用方；
    上下文内出现异常时回滚。
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory
        self.db_session: Optional[AsyncSession] = None

    async def commit(self):
        await self.db_session.commit()

    async def rollback(self):
        await self.db_session.rollback()

    async def __aenter__(self) -> "DBUnitOfWork":
        self.db_session = self.session_factory()
        self.file = DBFileRepository(db_session=self.db_session)
        self.user = DBUserRepository(db_session=self.db_session)
        self.memo = DBMemoRepository(db_session=self.db_session)
        self.template = DBTemplateRepository(db_session=self.db_session)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None:
                await self._commit_or_rollback()
            else:
                await self._safe_rollback()
        finally:
            await self.db_session.close()
            self.db_session = None

    async def _commit_or_rollback(self) -> None:
        try:
            await self.commit()
        except BaseException:
            logger.exception("UoW提交失败，执行回滚")
            await self._safe_rollback()
            raise

    async def _safe_rollback(self) -> None:
        try:
            await self.rollback()
        except Exception as e:
            logger.warning(f"UoW回滚失败: {e}")
