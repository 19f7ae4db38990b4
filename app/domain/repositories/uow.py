from abc import ABC, abstractmethod
from typing import TypeVar

from .file_repository import FileRepository
from .memo_repository import MemoRepository
from .template_repository import TemplateRepository
from .user_repository import UserRepository

T = TypeVar("T", bound="IUnitOfWork")


class IUnitOfWork(ABC):
    """工作单元：一个 async with 块内的仓库操作共享同一事务

    正常退出时提交，块内抛出异常时回滚；提交失败的异常会传给调用方。
    服务层每个操作通过工厂创建新的实例，不跨操作复用。
    """

    file: FileRepository
    user: UserRepository
    memo: MemoRepository
    template: TemplateRepository

    @abstractmethod
    async def commit(self): ...

    @abstractmethod
    async def rollback(self): ...

    @abstractmethod
    async def __aenter__(self: T) -> T: ...

    @abstractmethod
    async def __aexit__(self, exc_type, exc_val, exc_tb): ...
