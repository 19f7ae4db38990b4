import io
import logging

import anyio
from app.domain.external.variant_generator import ResizedImage, VariantGenerator
from app.domain.models.file import Dimensions, VariantSpec
from PIL import Image, ImageOps

logger = logging.getLogger(__name__)

# 扩展名 -> Pillow输出格式
_FORMATS = {
    "jpg": "JPEG",
    "jpeg": "JPEG",
    "png": "PNG",
    "gif": "GIF",
    "webp": "WEBP",
}


def _detect_dimensions(data: bytes) -> Dimensions:
    with Image.open(io.BytesIO(data)) as img:
        width, height = img.size
        return Dimensions(width=int(width), height=int(height))


def _render(data: bytes, spec: VariantSpec, extension: str) -> ResizedImage:
    """按cover方式裁剪缩放，目标尺寸大于原图时不放大"""
    output_format = _FORMATS.get(extension.lower().lstrip("."), "JPEG")
    with Image.open(io.BytesIO(data)) as img:
        img = ImageOps.exif_transpose(img)
        width = min(spec.width, img.width)
        height = min(spec.height, img.height)
        out = ImageOps.fit(img, (width, height), method=Image.Resampling.LANCZOS)

        if output_format == "JPEG" and out.mode not in ("RGB", "L"):
            out = out.convert("RGB")

        buffer = io.BytesIO()
        save_kwargs = {"format": output_format}
        if output_format in ("JPEG", "WEBP"):
            save_kwargs["quality"] = spec.quality
        if output_format in ("JPEG", "PNG"):
            save_kwargs["optimize"] = True
        out.save(buffer, **save_kwargs)

        return ResizedImage(
            data=buffer.getvalue(),
            dimensions=Dimensions(width=out.width, height=out.height),
        )


class PillowVariantGenerator(VariantGenerator):
    """基于Pillow的图片尺寸变体生成器，在工作线程中执行"""

    async def probe_dimensions(self, data: bytes) -> Dimensions:
        return await anyio.to_thread.run_sync(_detect_dimensions, data)

    async def resize(
        self, data: bytes, spec: VariantSpec, extension: str
    ) -> ResizedImage:
        logger.debug(f"生成图片变体: {spec.name.value} {spec.width}x{spec.height}")
        return await anyio.to_thread.run_sync(_render, data, spec, extension)
