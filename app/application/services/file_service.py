import logging
import re
import time
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Tuple, TypeVar

from app.application.errors.exceptions import (
    AppException,
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    PersistenceError,
    UnauthorizedError,
    ValidationError,
    VariantGenerationError,
)
from app.domain.external.blob_storage import BlobStorage
from app.domain.external.variant_generator import VariantGenerator
from app.domain.models.file import (
    DEFAULT_VARIANT_SPECS,
    Dimensions,
    FileAsset,
    FileDomain,
    FileMetadata,
    FileStatsOverview,
    FileStatus,
    OriginalFile,
    RawFile,
    RegisterOptions,
    VariantFile,
    VariantName,
    VariantSpec,
    extension_of,
)
from app.domain.models.user import User
from app.domain.repositories.uow import IUnitOfWork
from core.config import Settings, get_settings
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# 存储文件名中只保留字母、数字和韩文字符
_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9가-힣]")


def coerce_domain(domain: Any) -> FileDomain:
    """将外部传入的业务域转换为枚举，非法值抛出ValidationError"""
    try:
        return FileDomain(domain)
    except ValueError:
        allowed = ", ".join(item.value for item in FileDomain)
        raise ValidationError(f"无效的业务域[{domain}]，可选值: {allowed}")


def build_stored_filename(
    domain: FileDomain, uploader_id: str, original_name: str, timestamp_ms: int
) -> str:
    """<domain>_<uploader>_<毫秒时间戳>_<清洗后的文件名主干>.<ext>"""
    extension = extension_of(original_name)
    stem = original_name[: -(len(extension) + 1)] if extension else original_name
    safe_stem = _UNSAFE_FILENAME_CHARS.sub("_", stem) or "file"
    suffix = f".{extension}" if extension else ""
    return f"{domain.value}_{uploader_id}_{timestamp_ms}_{safe_stem}{suffix}"


def build_storage_path(
    domain: FileDomain, filename: str, now: Optional[datetime] = None
) -> str:
    """按 <domain>/<year>/<month>/<filename> 组织存储路径"""
    now = now or datetime.now()
    return f"{domain.value}/{now:%Y}/{now:%m}/{filename}"


class FileService:
    """文件/尺寸变体管理服务，负责上传文件的登记、变体生成、访问统计与删除"""

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        blob_storage: BlobStorage,
        variant_generator: Optional[VariantGenerator] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        """构造函数，完成文件服务的初始化

        Args:
            uow_factory: UoW工厂，每次数据库操作创建新的UoW
            blob_storage: 文件字节存储
            variant_generator: 图片变体生成器，为None时不探测尺寸也不生成变体
            settings: 应用配置
        """
        self._uow_factory = uow_factory
        self.blob_storage = blob_storage
        self.variant_generator = variant_generator
        self._settings = settings or get_settings()

    async def _persist(
        self, asset_id: str, action: Callable[[IUnitOfWork], Awaitable[T]]
    ) -> T:
        """在新的UoW中执行一次写操作，任何存储异常统一转换为PersistenceError"""
        try:
            async with self._uow_factory() as uow:
                return await action(uow)
        except AppException:
            raise
        except Exception as e:
            logger.error(f"保存文件记录[{asset_id}]失败: {str(e)}")
            raise PersistenceError(f"保存文件记录[{asset_id}]失败", cause=e) from e

    async def _save(self, asset: FileAsset) -> None:
        await self._persist(asset.id, lambda uow: uow.file.save(asset))

    async def _save_variant_state(self, asset: FileAsset) -> bool:
        """只写入变体元数据和状态，文件已被删除时返回False"""
        asset.updated_at = datetime.now()
        return await self._persist(
            asset.id,
            lambda uow: uow.file.update_variant_state(
                asset.id, asset.metadata, asset.status, asset.updated_at
            ),
        )

    async def _save_progress(self, asset: FileAsset) -> bool:
        try:
            return await self._save_variant_state(asset)
        except PersistenceError:
            await self._mark_failed(asset)
            raise

    async def upload_asset(
        self,
        filename: str,
        content_type: Optional[str],
        data: bytes,
        domain: Any,
        reference_id: Any,
        uploader_id: str,
        options: Optional[RegisterOptions] = None,
    ) -> FileAsset:
        """校验并写入上传的图片，然后登记为文件记录"""
        # 1.校验业务域、文件类型和大小
        file_domain = coerce_domain(domain)
        original_name = (filename or "").strip()
        if not original_name:
            raise BadRequestError("没有上传文件")

        allowed = self._settings.allowed_upload_extensions
        extension = extension_of(original_name)
        mime_type = (content_type or "").lower()
        mime_subtype = mime_type.split("/", 1)[1] if "/" in mime_type else ""
        if (
            extension not in allowed
            or not mime_type.startswith("image/")
            or mime_subtype not in allowed
        ):
            raise BadRequestError(
                f"只允许上传图片文件 ({', '.join(sorted(allowed))})"
            )
        if len(data) > self._settings.upload_max_bytes:
            raise BadRequestError(
                f"文件大小超过限制，最大 {self._settings.upload_max_bytes} 字节"
            )

        # 2.生成存储文件名和路径，写入Blob存储
        stored_filename = build_stored_filename(
            file_domain, str(uploader_id), original_name, int(time.time() * 1000)
        )
        stored_path = build_storage_path(file_domain, stored_filename)
        await self.blob_storage.write(stored_path, data, content_type=mime_type)

        # 3.登记文件记录，失败时清理刚写入的文件
        raw_file = RawFile(
            original_name=original_name,
            stored_filename=stored_filename,
            stored_path=stored_path,
            size=len(data),
            mime_type=mime_type,
        )
        try:
            return await self.register_asset(
                raw_file, file_domain, reference_id, uploader_id, options
            )
        except Exception:
            try:
                await self.blob_storage.delete(stored_path)
            except Exception as cleanup_error:
                logger.warning(f"清理未登记的文件[{stored_path}]失败: {cleanup_error}")
            raise

    async def register_asset(
        self,
        raw_file: RawFile,
        domain: Any,
        reference_id: Any,
        uploader_id: Any,
        options: Optional[RegisterOptions] = None,
    ) -> FileAsset:
        """登记一个已经写入Blob存储的原始文件"""
        # 1.参数校验，校验失败不产生任何副作用
        file_domain = coerce_domain(domain)
        reference = str(reference_id).strip() if reference_id is not None else ""
        uploader = str(uploader_id).strip() if uploader_id is not None else ""
        if not reference:
            raise ValidationError("reference_id不能为空")
        if not uploader:
            raise ValidationError("uploader_id不能为空")
        if raw_file.size < 0:
            raise ValidationError("文件大小不能为负数")
        options = options or RegisterOptions()

        # 2.图片文件尝试读取像素尺寸，失败不影响登记
        dimensions: Optional[Dimensions] = None
        if raw_file.mime_type.startswith("image/") and self.variant_generator:
            try:
                data = await self.blob_storage.read(raw_file.stored_path)
                dimensions = await self.variant_generator.probe_dimensions(data)
            except Exception as e:
                logger.warning(f"读取图片尺寸失败[{raw_file.stored_path}]: {str(e)}")

        # 3.构建文件记录
        try:
            asset = FileAsset(
                original_name=raw_file.original_name,
                domain=file_domain,
                reference_id=reference,
                uploaded_by=uploader,
                metadata=FileMetadata(
                    original=OriginalFile(
                        filename=raw_file.stored_filename,
                        path=raw_file.stored_path,
                        url=self.blob_storage.get_url(raw_file.stored_path),
                        size=raw_file.size,
                        mime_type=raw_file.mime_type,
                        extension=extension_of(raw_file.original_name),
                        dimensions=dimensions,
                    ),
                ),
                status=FileStatus.ACTIVE,
                tags=options.tags,
                description=options.description,
                is_public=options.is_public,
                expires_at=options.expires_at,
            )
        except PydanticValidationError as e:
            raise ValidationError("文件信息校验失败", data=e.errors(include_url=False))

        # 4.持久化
        await self._save(asset)
        logger.info(
            f"文件登记成功: {asset.original_name} (ID: {asset.id}, 业务域: {asset.domain.value})"
        )
        return asset

    async def generate_variants(
        self,
        asset: FileAsset,
        variant_specs: Optional[Iterable[VariantSpec]] = None,
    ) -> FileAsset:
        """按顺序生成尺寸变体，每成功一个立即持久化；任意一个失败则标记为failed"""
        # 1.没有生成器、不是图片或已删除时直接返回
        if self.variant_generator is None or not asset.is_image:
            return asset
        if asset.status == FileStatus.DELETED:
            logger.info(f"文件[{asset.id}]已删除，跳过变体生成")
            return asset

        specs: List[VariantSpec] = list(variant_specs or DEFAULT_VARIANT_SPECS)

        # 2.标记为处理中，只写入变体元数据和状态，文件已被删除则停止
        asset.status = FileStatus.PROCESSING
        if not await self._save_variant_state(asset):
            return self._stop_deleted(asset)

        # 3.逐个生成变体
        source: Optional[bytes] = None
        for spec in specs:
            try:
                if source is None:
                    source = await self.blob_storage.read(asset.metadata.original.path)
                resized = await self.variant_generator.resize(
                    source, spec, asset.metadata.original.extension
                )
                path = asset.variant_path(spec.name)
                await self.blob_storage.write(
                    path, resized.data, content_type=asset.metadata.original.mime_type
                )
            except Exception as e:
                logger.error(
                    f"生成文件[{asset.id}]的{spec.name.value}变体失败: {str(e)}"
                )
                await self._mark_failed(asset)
                raise VariantGenerationError(
                    f"生成{spec.name.value}变体失败: {str(e)}",
                    cause=e,
                    variant=spec.name.value,
                ) from e

            asset.add_variant(
                spec.name,
                VariantFile(
                    filename=asset.variant_filename(spec.name),
                    path=path,
                    url=self.blob_storage.get_url(path),
                    size=len(resized.data),
                    dimensions=resized.dimensions,
                ),
            )
            if not await self._save_progress(asset):
                await self._discard_blob(path)
                return self._stop_deleted(asset)

        # 4.全部成功后恢复为活跃状态
        asset.status = FileStatus.ACTIVE
        if not await self._save_progress(asset):
            return self._stop_deleted(asset)
        logger.info(f"文件[{asset.id}]变体生成完成: {[s.name.value for s in specs]}")
        return asset

    @staticmethod
    def _stop_deleted(asset: FileAsset) -> FileAsset:
        logger.info(f"文件[{asset.id}]在生成变体期间被删除，停止生成")
        asset.status = FileStatus.DELETED
        return asset

    async def _discard_blob(self, path: str) -> None:
        try:
            await self.blob_storage.delete(path)
        except Exception as e:
            logger.warning(f"清理未登记的变体文件[{path}]失败: {str(e)}")

    async def _mark_failed(self, asset: FileAsset) -> None:
        asset.status = FileStatus.FAILED
        try:
            await self._save_variant_state(asset)
        except PersistenceError:
            logger.error(f"标记文件[{asset.id}]为failed状态时持久化失败")

    async def generate_variants_in_background(self, asset_id: str) -> None:
        """后台任务入口，失败只记录日志"""
        try:
            asset = await self.get_asset(asset_id)
            await self.generate_variants(asset)
        except Exception as e:
            logger.error(f"后台生成文件[{asset_id}]变体失败: {str(e)}")

    async def get_asset(self, asset_id: str, include_deleted: bool = True) -> FileAsset:
        """根据id获取文件记录，include_deleted为False时已删除的文件视为不存在"""
        async with self._uow_factory() as uow:
            asset = await uow.file.get_by_id(asset_id)
        if not asset or (not include_deleted and asset.status == FileStatus.DELETED):
            raise NotFoundError(f"该文件[{asset_id}]不存在")
        return asset

    async def soft_delete(self, asset_id: str) -> FileAsset:
        """软删除：标记为deleted并保留记录和文件，重复删除视为成功"""
        asset = await self.get_asset(asset_id)
        if asset.status == FileStatus.DELETED:
            logger.info(f"文件[{asset_id}]已是删除状态")
        now = datetime.now()
        await self._persist(asset_id, lambda uow: uow.file.mark_deleted(asset_id, now))
        asset.status = FileStatus.DELETED
        asset.updated_at = now
        return asset

    async def hard_delete(self, asset_id: str) -> None:
        """物理删除：尽力删除全部文件，元数据记录一定删除"""
        asset = await self.get_asset(asset_id)

        # 1.删除原始文件和全部变体，单个失败只记录日志
        for path in asset.blob_paths():
            try:
                await self.blob_storage.delete(path)
            except Exception as e:
                logger.warning(f"删除文件[{path}]失败: {str(e)}")

        # 2.删除元数据记录
        try:
            async with self._uow_factory() as uow:
                await uow.file.delete(asset_id)
        except Exception as e:
            logger.error(f"删除文件记录[{asset_id}]失败: {str(e)}")
            raise PersistenceError(f"删除文件记录[{asset_id}]失败", cause=e) from e
        logger.info(f"文件已物理删除: {asset.original_name} (ID: {asset_id})")

    async def query_by_domain(self, domain: Any, reference_id: Any) -> List[FileAsset]:
        """查询业务域+所属实体下的活跃文件"""
        file_domain = coerce_domain(domain)
        async with self._uow_factory() as uow:
            return await uow.file.list_by_domain(file_domain, str(reference_id))

    async def query_by_uploader(
        self,
        uploader_id: str,
        page: int = 1,
        limit: int = 20,
        domain: Optional[Any] = None,
    ) -> List[FileAsset]:
        """分页查询上传者的活跃文件，最新的在前"""
        if page < 1 or limit < 1:
            raise ValidationError("page和limit必须为正整数")
        file_domain = coerce_domain(domain) if domain else None
        async with self._uow_factory() as uow:
            return await uow.file.list_by_uploader(
                str(uploader_id),
                skip=(page - 1) * limit,
                limit=limit,
                domain=file_domain,
            )

    async def count_by_uploader(
        self, uploader_id: str, domain: Optional[Any] = None
    ) -> int:
        file_domain = coerce_domain(domain) if domain else None
        async with self._uow_factory() as uow:
            return await uow.file.count_by_uploader(str(uploader_id), file_domain)

    async def record_view(self, asset: FileAsset) -> None:
        """记录一次查看，失败不影响调用方"""
        await self._record_access(asset, download=False)

    async def record_download(self, asset: FileAsset) -> None:
        """记录一次下载，失败不影响调用方"""
        await self._record_access(asset, download=True)

    async def _record_access(self, asset: FileAsset, download: bool) -> None:
        try:
            async with self._uow_factory() as uow:
                stats = await uow.file.increment_access(
                    asset.id, download, datetime.now()
                )
        except Exception as e:
            logger.warning(f"记录文件[{asset.id}]访问统计失败: {str(e)}")
            return
        if stats is None:
            logger.warning(f"记录访问统计时文件[{asset.id}]不存在")
            return
        asset.stats = stats

    async def aggregate_stats(self) -> FileStatsOverview:
        """活跃文件总数、总大小以及按业务域的统计（数量倒序）"""
        async with self._uow_factory() as uow:
            by_domain = await uow.file.aggregate_active_by_domain()
        by_domain = sorted(by_domain, key=lambda item: item.count, reverse=True)
        return FileStatsOverview(
            total_files=sum(item.count for item in by_domain),
            total_size=sum(item.total_size for item in by_domain),
            by_domain=by_domain,
        )

    async def get_accessible_asset(
        self, asset_id: str, viewer: Optional[User] = None
    ) -> FileAsset:
        """获取可访问的活跃文件，私有文件只允许上传者或管理员访问"""
        asset = await self.get_asset(asset_id)
        if asset.status != FileStatus.ACTIVE:
            raise NotFoundError(f"该文件[{asset_id}]不存在")
        if not asset.is_public:
            if viewer is None:
                raise UnauthorizedError("访问私有文件需要登录")
            self.check_owner(asset, viewer)
        return asset

    def check_owner(self, asset: FileAsset, user: User) -> None:
        """检查用户是否为文件上传者或管理员"""
        if user.is_admin():
            return
        if asset.uploaded_by != user.id:
            raise ForbiddenError("无权访问此文件")

    @staticmethod
    def filter_visible(
        assets: Iterable[FileAsset], viewer: Optional[User] = None
    ) -> List[FileAsset]:
        """过滤掉查看者无权看到的私有文件"""
        return [
            asset
            for asset in assets
            if asset.is_public
            or (
                viewer is not None
                and (viewer.is_admin() or asset.uploaded_by == viewer.id)
            )
        ]

    async def open_asset(
        self, asset: FileAsset, variant: Optional[VariantName] = None
    ) -> Tuple[bytes, str]:
        """读取原始文件或指定变体的内容，返回(字节, 文件名)"""
        if variant is None:
            target = asset.metadata.original
        else:
            target = asset.metadata.resized.get(VariantName(variant))
            if target is None:
                raise NotFoundError(f"文件[{asset.id}]不存在{VariantName(variant).value}变体")
        try:
            data = await self.blob_storage.read(target.path)
        except FileNotFoundError:
            logger.error(f"文件记录[{asset.id}]存在但存储中缺少[{target.path}]")
            raise NotFoundError(f"文件[{asset.id}]内容不存在")
        return data, target.filename
