from typing import Optional, Protocol


class BlobStorage(Protocol):
    """按路径寻址的字节存储协议，路径形如 <domain>/<year>/<month>/<filename>"""

    async def write(
        self, path: str, data: bytes, content_type: Optional[str] = None
    ) -> None:
        """写入数据，目录或前缀在首次写入时自动创建"""
        ...

    async def read(self, path: str) -> bytes:
        """读取指定路径的全部字节"""
        ...

    async def delete(self, path: str) -> None:
        """删除指定路径的数据"""
        ...

    async def stat(self, path: str) -> int:
        """获取指定路径数据的字节大小"""
        ...

    def get_url(self, path: str) -> str:
        """根据存储路径计算对外访问地址"""
        ...
