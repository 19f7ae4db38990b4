from .base import Pagination, Response

__all__ = ["Pagination", "Response"]
