from .base import Base
from .design_template import DesignTemplateModel
from .file import FileModel
from .memo import MemoModel
from .user import UserModel

__all__ = [
    "Base",
    "DesignTemplateModel",
    "FileModel",
    "MemoModel",
    "UserModel",
]
