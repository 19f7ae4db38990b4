import math
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Response(BaseModel, Generic[T]):
    """统一响应结构，code 与 HTTP 状态码保持一致"""

    code: int = 200
    msg: str = "success"
    data: Optional[T] = None

    @staticmethod
    def success(data: Optional[T] = None, msg: str = "success") -> "Response[T]":
        return Response[T](code=200, msg=msg, data=data)

    @staticmethod
    def fail(
        code: int = 400, msg: str = "fail", data: Optional[Any] = None
    ) -> "Response[Any]":
        return Response[Any](code=code, msg=msg, data=data)


class Pagination(BaseModel):
    """分页信息：当前页、总页数、总条数"""

    current: int = 1
    pages: int = 0
    total: int = 0

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        pages = math.ceil(total / limit) if limit > 0 else 0
        return cls(current=page, pages=pages, total=total)
