from datetime import datetime
from typing import List, Optional, Protocol

from app.domain.models.file import (
    DomainStats,
    FileAsset,
    FileDomain,
    FileMetadata,
    FileStats,
    FileStatus,
)


class FileRepository(Protocol):
    """文件模型数据仓库"""

    async def save(self, file: FileAsset) -> None:
        """新增或更新文件信息"""
        ...

    async def get_by_id(self, file_id: str) -> Optional[FileAsset]:
        """根据传递的文件id获取文件信息"""
        ...

    async def delete(self, file_id: str) -> bool:
        """根据传递的文件id删除文件记录"""
        ...

    async def update_variant_state(
        self,
        file_id: str,
        metadata: FileMetadata,
        status: FileStatus,
        updated_at: datetime,
    ) -> bool:
        """只更新变体元数据和状态，文件不存在或已删除时不更新并返回False"""
        ...

    async def mark_deleted(self, file_id: str, updated_at: datetime) -> bool:
        """只把状态改为deleted，其余字段保持不变"""
        ...

    async def increment_access(
        self, file_id: str, download: bool, accessed_at: datetime
    ) -> Optional[FileStats]:
        """原子地累加查看或下载次数，返回累加后的统计，文件不存在时返回None"""
        ...

    async def list_by_domain(
        self, domain: FileDomain, reference_id: str
    ) -> List[FileAsset]:
        """查询指定业务域+所属实体下的活跃文件"""
        ...

    async def list_by_uploader(
        self,
        uploader_id: str,
        skip: int = 0,
        limit: int = 20,
        domain: Optional[FileDomain] = None,
    ) -> List[FileAsset]:
        """查询上传者的活跃文件，按创建时间倒序"""
        ...

    async def count_by_uploader(
        self, uploader_id: str, domain: Optional[FileDomain] = None
    ) -> int:
        """统计上传者的活跃文件数"""
        ...

    async def aggregate_active_by_domain(self) -> List[DomainStats]:
        """按业务域统计活跃文件的数量与大小"""
        ...
