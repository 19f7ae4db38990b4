from datetime import datetime
from typing import List, Optional

from app.domain.models.file import (
    DomainStats,
    FileAsset,
    FileDomain,
    FileMetadata,
    FileStats,
    FileStatus,
)
from app.domain.repositories.file_repository import FileRepository
from app.infrastructure.models import FileModel
from sqlalchemy import BigInteger, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession


class DBFileRepository(FileRepository):
    """基于数据库的文件数据仓库"""

    def __init__(self, db_session: AsyncSession) -> None:
        """构造函数，完成数据仓库初始化"""
        self.db_session = db_session

    async def save(self, file: FileAsset) -> None:
        """根据传递的文件模型存储or更新数据"""
        # 1.根据id查询记录是否存在
        stmt = select(FileModel).where(FileModel.id == file.id)
        result = await self.db_session.execute(stmt)
        record = result.scalar_one_or_none()

        # 2.判断如果文件不存在则新建文件
        if not record:
            record = FileModel.from_domain(file)
            self.db_session.add(record)
            await self.db_session.flush()
            return

        # 3.文件存在则直接更新文件
        record.update_from_domain(file)
        await self.db_session.flush()

    async def get_by_id(self, file_id: str) -> Optional[FileAsset]:
        """根据传递的文件id获取文件信息"""
        stmt = select(FileModel).where(FileModel.id == file_id)
        result = await self.db_session.execute(stmt)
        record = result.scalar_one_or_none()
        return record.to_domain() if record is not None else None

    async def delete(self, file_id: str) -> bool:
        """根据传递的文件id删除文件记录"""
        stmt = select(FileModel).where(FileModel.id == file_id)
        result = await self.db_session.execute(stmt)
        record = result.scalar_one_or_none()

        if record:
            await self.db_session.delete(record)
            return True
        return False

    async def update_variant_state(
        self,
        file_id: str,
        metadata: FileMetadata,
        status: FileStatus,
        updated_at: datetime,
    ) -> bool:
        """只更新变体元数据和状态，已删除的文件不会被改回"""
        stmt = (
            update(FileModel)
            .where(
                FileModel.id == file_id,
                FileModel.status != FileStatus.DELETED.value,
            )
            .values(
                file_metadata=metadata.model_dump(mode="json"),
                status=FileStatus(status).value,
                updated_at=updated_at,
            )
            .returning(FileModel.id)
            .execution_options(synchronize_session=False)
        )
        result = await self.db_session.execute(stmt)
        return result.first() is not None

    async def mark_deleted(self, file_id: str, updated_at: datetime) -> bool:
        """只把状态改为deleted"""
        stmt = (
            update(FileModel)
            .where(FileModel.id == file_id)
            .values(status=FileStatus.DELETED.value, updated_at=updated_at)
            .returning(FileModel.id)
            .execution_options(synchronize_session=False)
        )
        result = await self.db_session.execute(stmt)
        return result.first() is not None

    async def increment_access(
        self, file_id: str, download: bool, accessed_at: datetime
    ) -> Optional[FileStats]:
        """在数据库端累加计数"""
        counter = FileModel.download_count if download else FileModel.view_count
        stmt = (
            update(FileModel)
            .where(FileModel.id == file_id)
            .values({counter: counter + 1, FileModel.last_accessed_at: accessed_at})
            .returning(
                FileModel.download_count,
                FileModel.view_count,
                FileModel.last_accessed_at,
            )
            .execution_options(synchronize_session=False)
        )
        row = (await self.db_session.execute(stmt)).first()
        if row is None:
            return None
        return FileStats(
            download_count=row.download_count,
            view_count=row.view_count,
            last_accessed_at=row.last_accessed_at,
        )

    async def list_by_domain(
        self, domain: FileDomain, reference_id: str
    ) -> List[FileAsset]:
        """查询指定业务域+所属实体下的活跃文件"""
        stmt = select(FileModel).where(
            FileModel.domain == FileDomain(domain).value,
            FileModel.reference_id == reference_id,
            FileModel.status == FileStatus.ACTIVE.value,
        )
        result = await self.db_session.execute(stmt)
        return [record.to_domain() for record in result.scalars().all()]

    def _uploader_filters(self, uploader_id: str, domain: Optional[FileDomain]):
        filters = [
            FileModel.uploaded_by == uploader_id,
            FileModel.status == FileStatus.ACTIVE.value,
        ]
        if domain is not None:
            filters.append(FileModel.domain == FileDomain(domain).value)
        return filters

    async def list_by_uploader(
        self,
        uploader_id: str,
        skip: int = 0,
        limit: int = 20,
        domain: Optional[FileDomain] = None,
    ) -> List[FileAsset]:
        """查询上传者的活跃文件，按创建时间倒序"""
        stmt = (
            select(FileModel)
            .where(*self._uploader_filters(uploader_id, domain))
            .order_by(FileModel.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.db_session.execute(stmt)
        return [record.to_domain() for record in result.scalars().all()]

    async def count_by_uploader(
        self, uploader_id: str, domain: Optional[FileDomain] = None
    ) -> int:
        """统计上传者的活跃文件数"""
        stmt = (
            select(func.count())
            .select_from(FileModel)
            .where(*self._uploader_filters(uploader_id, domain))
        )
        result = await self.db_session.execute(stmt)
        return result.scalar() or 0

    async def aggregate_active_by_domain(self) -> List[DomainStats]:
        """按业务域统计活跃文件的数量与原始文件总大小，数量倒序"""
        size = FileModel.file_metadata["original"]["size"].astext.cast(BigInteger)
        count = func.count().label("count")
        stmt = (
            select(
                FileModel.domain,
                count,
                func.coalesce(func.sum(size), 0).label("total_size"),
                func.coalesce(func.avg(size), 0).label("avg_size"),
            )
            .where(FileModel.status == FileStatus.ACTIVE.value)
            .group_by(FileModel.domain)
            .order_by(count.desc())
        )
        result = await self.db_session.execute(stmt)
        return [
            DomainStats(
                domain=row.domain,
                count=row.count,
                total_size=int(row.total_size),
                avg_size=float(row.avg_size),
            )
            for row in result.all()
        ]
