from typing import Protocol

from app.domain.models.file import Dimensions, VariantSpec
from pydantic import BaseModel


class ResizedImage(BaseModel):
    """缩放后的图片数据及实际输出尺寸"""

    data: bytes
    dimensions: Dimensions


class VariantGenerator(Protocol):
    """图片尺寸变体生成协议，可选协作者"""

    async def probe_dimensions(self, data: bytes) -> Dimensions:
        """读取图片固有像素尺寸"""
        ...

    async def resize(
        self, data: bytes, spec: VariantSpec, extension: str
    ) -> ResizedImage:
        """按cover方式缩放且不放大，返回输出字节与实际尺寸"""
        ...
