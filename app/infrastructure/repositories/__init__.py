from .db_file_repository import DBFileRepository
from .db_memo_repository import DBMemoRepository
from .db_template_repository import DBTemplateRepository
from .db_uow import DBUnitOfWork
from .db_user_repository import DBUserRepository

__all__ = [
    "DBFileRepository",
    "DBMemoRepository",
    "DBTemplateRepository",
    "DBUnitOfWork",
    "DBUserRepository",
]
